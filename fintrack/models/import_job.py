"""
Import job model for tracking CSV import operations.

A job is opened as ``pending`` when a file is selected for commit and moves
exactly once to ``committed`` or ``failed`` when the batch commit finishes.
"""

import enum
from datetime import datetime, timezone
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import TIMESTAMP, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fintrack.lib.db import Base

if TYPE_CHECKING:
    from fintrack.models.import_row_error import ImportRowError
    from fintrack.models.transaction import Transaction


class ImportJobStatus(str, enum.Enum):
    """Enumeration of import job statuses."""

    PENDING = "pending"
    COMMITTED = "committed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not ImportJobStatus.PENDING


class ImportJob(Base):  # type: ignore[misc,valid-type]
    """
    Represents one CSV import.

    Attributes:
        id: Unique identifier for the job
        user_id: Owning user
        source_name: Label of the source (usually the file name)
        status: pending, committed or failed
        total_rows: Data rows in the source file
        record_count: Rows that passed validation
        rejected_count: Rows dropped by validation
        committed_count: Rows written to the store
        error_message: Failure reason when status is failed
        created_at: When the job was opened
        completed_at: When the job reached a terminal status
    """

    __tablename__ = "import_jobs"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    user_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
    )

    source_name: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )

    status: Mapped[ImportJobStatus] = mapped_column(
        Enum(ImportJobStatus),
        nullable=False,
        default=ImportJobStatus.PENDING,
        index=True,
    )

    # Statistics
    total_rows: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    record_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rejected_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    committed_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    error_message: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP,
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    completed_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP,
        nullable=True,
    )

    # Relationships
    row_errors: Mapped[list["ImportRowError"]] = relationship(
        "ImportRowError",
        back_populates="job",
        cascade="all, delete-orphan",
        order_by="ImportRowError.row_number",
    )

    transactions: Mapped[list["Transaction"]] = relationship(
        "Transaction",
        back_populates="import_job",
    )

    def __repr__(self) -> str:
        """Return string representation of import job."""
        return (
            f"<ImportJob(id={self.id!r}, "
            f"source={self.source_name!r}, "
            f"status={self.status.value}, "
            f"committed={self.committed_count})>"
        )
