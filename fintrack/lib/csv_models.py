"""Pydantic models for the transaction import pipeline.

These models carry data between the tabular parser, the column mapper and the
batch committer. They hold no ORM state so parsing stays safe to unit test.
"""

from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_serializer, field_validator

REQUIRED_FIELDS = ("date", "description", "amount")


class ParsedTable(BaseModel):
    """Header row plus raw string rows, exactly as split from the file."""

    header: list[str]
    rows: list[list[str]] = Field(default_factory=list)

    @property
    def total_rows(self) -> int:
        return len(self.rows)


class ColumnMapping(BaseModel):
    """Binds semantic fields to user-chosen header names.

    ``date``, ``description`` and ``amount`` are required for an import; an
    empty value means the user has not picked a column yet.
    """

    date: str = ""
    description: str = ""
    amount: str = ""
    external_id: str | None = None
    dayfirst: bool = False

    model_config = {"str_strip_whitespace": True}

    @field_validator("external_id", mode="before")
    @classmethod
    def blank_external_id_is_none(cls, v: Any) -> Any:
        """Treat an empty external id choice as "(none)"."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def required_columns(self) -> dict[str, str]:
        """Return the required field -> header name pairs."""
        return {name: getattr(self, name) for name in REQUIRED_FIELDS}


class TransactionRecord(BaseModel):
    """Normalized transaction ready to commit.

    The owning user and import job are attached by the batch committer.
    """

    account_id: str
    posted_at: date
    description: str = Field(min_length=1)
    amount: Decimal
    external_id: str | None = None
    row_number: int | None = None  # zero-based index into ParsedTable.rows

    @field_validator("amount")
    @classmethod
    def validate_amount_finite(cls, v: Decimal) -> Decimal:
        """Reject NaN and infinities."""
        if not v.is_finite():
            raise ValueError(f"Amount must be finite, got {v}")
        return v

    @field_serializer("posted_at")
    def serialize_posted_at(self, v: date) -> str:
        return v.isoformat()

    def to_row(self, user_id: str, import_job_id: str) -> dict[str, Any]:
        """Build the column dict for a bulk insert."""
        return {
            "user_id": user_id,
            "account_id": self.account_id,
            "posted_at": self.posted_at,
            "description": self.description,
            "amount": self.amount,
            "external_id": self.external_id,
            "import_job_id": import_job_id,
        }


class RowRejection(BaseModel):
    """Why a source row was dropped before commit."""

    row_index: int  # zero-based index into ParsedTable.rows
    field: str
    reason: str
    cells: list[str] = Field(default_factory=list)


class MappingResult(BaseModel):
    """Output of the column mapper: accepted records plus rejections."""

    records: list[TransactionRecord] = Field(default_factory=list)
    rejected: list[RowRejection] = Field(default_factory=list)
