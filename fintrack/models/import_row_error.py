"""
Import row error model for rows dropped during CSV import.

Stores which row was rejected and why, so callers can show diagnostics after
the import instead of rows vanishing silently.
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import JSON, TIMESTAMP, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fintrack.lib.db import Base

if TYPE_CHECKING:
    from fintrack.models.import_job import ImportJob


class ImportRowError(Base):  # type: ignore[misc,valid-type]
    """
    Represents a validation failure for one source row.

    Attributes:
        id: Unique identifier for the error
        job_id: Reference to the import job
        row_number: Zero-based index of the data row (header excluded)
        field: Semantic field that failed (date, description, amount)
        reason: Human-readable error message
        original_data: Raw cells of the row
        created_at: Timestamp when error was recorded
    """

    __tablename__ = "import_row_errors"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    job_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("import_jobs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    row_number: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    field: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
    )

    reason: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    original_data: Mapped[list[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP,
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    job: Mapped["ImportJob"] = relationship(
        "ImportJob",
        back_populates="row_errors",
    )

    def __repr__(self) -> str:
        """Return string representation of import row error."""
        return (
            f"<ImportRowError(id={self.id}, "
            f"job_id={self.job_id!r}, "
            f"row={self.row_number}, "
            f"field={self.field!r})>"
        )
