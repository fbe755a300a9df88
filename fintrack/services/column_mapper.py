"""Column mapper: binds user-chosen headers to transaction fields.

Turns uninterpreted string rows into ``TransactionRecord`` objects. Mapping
problems (a required field with no column) reject the whole import up front;
cell problems only drop the offending row, which is reported back as a
``RowRejection`` so callers can show what was skipped.
"""

import logging
from typing import Sequence

from fintrack.lib.csv_models import (
    ColumnMapping,
    MappingResult,
    ParsedTable,
    RowRejection,
    TransactionRecord,
)
from fintrack.lib.errors import MappingError, ValidationError
from fintrack.lib.validators import parse_amount, parse_posted_date

logger = logging.getLogger(__name__)


def _cell(row: Sequence[str], index: int) -> str | None:
    """Return the cell at ``index`` or None when the row is too short."""
    return row[index] if index < len(row) else None


class ColumnMapper:
    """Validate and normalize rows according to a column mapping."""

    def __init__(self, mapping: ColumnMapping):
        self.mapping = mapping

    def resolve_columns(self, header: Sequence[str]) -> dict[str, int]:
        """
        Resolve mapped header names to column indexes.

        Duplicate header names resolve to their first occurrence.

        Args:
            header: Header row from the parser

        Returns:
            Field name -> column index for required fields and, when chosen
            and present, ``external_id``

        Raises:
            MappingError: If any required field is unmapped or names a header
                          that is not in the file
        """
        positions: dict[str, int] = {}
        for index, name in enumerate(header):
            positions.setdefault(name, index)

        columns: dict[str, int] = {}
        missing: list[str] = []
        for field, name in self.mapping.required_columns().items():
            if not name or name not in positions:
                missing.append(field)
            else:
                columns[field] = positions[name]

        if missing:
            raise MappingError(missing, available=list(header))

        external = self.mapping.external_id
        if external:
            if external in positions:
                columns["external_id"] = positions[external]
            else:
                logger.warning(f"External id column {external!r} not in file; ignoring it")

        return columns

    def map_rows(
        self,
        header: Sequence[str],
        rows: Sequence[Sequence[str]],
        account_id: str,
    ) -> MappingResult:
        """
        Map rows to transaction records.

        Each row is checked in order: date, then description, then amount. The
        first failing check drops the row. Surviving rows keep their input
        order.

        Args:
            header: Header row
            rows: Data rows (cells as strings)
            account_id: Account every record is posted to

        Returns:
            MappingResult with accepted records and per-row rejections

        Raises:
            MappingError: If a required field has no column or no account was given
        """
        if not account_id or not account_id.strip():
            raise MappingError(["account"])

        columns = self.resolve_columns(header)
        external_index = columns.get("external_id")

        result = MappingResult()
        for row_index, row in enumerate(rows):
            try:
                record = self._map_row(row, row_index, columns, external_index, account_id)
            except ValidationError as e:
                result.rejected.append(
                    RowRejection(
                        row_index=row_index,
                        field=e.field or "row",
                        reason=e.message,
                        cells=list(row),
                    )
                )
                continue
            result.records.append(record)

        if result.rejected:
            logger.info(
                f"Mapped {len(result.records)} row(s), dropped {len(result.rejected)} invalid row(s)"
            )

        return result

    def map_table(self, table: ParsedTable, account_id: str) -> MappingResult:
        return self.map_rows(table.header, table.rows, account_id)

    def _map_row(
        self,
        row: Sequence[str],
        row_index: int,
        columns: dict[str, int],
        external_index: int | None,
        account_id: str,
    ) -> TransactionRecord:
        posted_at = parse_posted_date(_cell(row, columns["date"]), dayfirst=self.mapping.dayfirst)

        description = (_cell(row, columns["description"]) or "").strip()
        if not description:
            raise ValidationError("Description is empty", field="description")

        amount = parse_amount(_cell(row, columns["amount"]))

        external_id = _cell(row, external_index) if external_index is not None else None

        return TransactionRecord(
            account_id=account_id,
            posted_at=posted_at,
            description=description,
            amount=amount,
            external_id=external_id,
            row_number=row_index,
        )
