"""Delimited text parser for transaction imports.

Splits raw file text into a header row and string rows on a single fixed
delimiter. It knows nothing about financial fields; the column mapper decides
what the cells mean.

Known limitation: there is no quoting or escaping support. A value containing
the delimiter (``"Smith, J"``) is split into two cells and cannot be
reconstructed. Rows whose cell count differs from the header are returned
as-is, so downstream code must treat missing cells as absent.
"""

import logging
import re
from pathlib import Path

from fintrack.lib.config import CSV_DELIMITER
from fintrack.lib.csv_models import ParsedTable
from fintrack.lib.errors import DataError

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r"\r?\n")
_BOM = "\ufeff"


class CSVParseError(DataError):
    """Raised when the file has no usable header row."""

    def __init__(self, message: str, row_number: int | None = None):
        self.row_number = row_number
        super().__init__(message)


class TabularParser:
    """Split delimited text into a header and uninterpreted string rows."""

    def __init__(self, delimiter: str = CSV_DELIMITER):
        if not delimiter:
            raise ValueError("Delimiter cannot be empty")
        self.delimiter = delimiter

    def parse(self, text: str) -> ParsedTable:
        """
        Parse raw text.

        Blank lines are skipped. Header names are trimmed; data cells are
        returned verbatim with no padding or truncation.

        Args:
            text: Raw file contents

        Returns:
            ParsedTable with header and rows in file order

        Raises:
            CSVParseError: If the text contains no header line
        """
        if text.startswith(_BOM):
            text = text[len(_BOM) :]

        lines = [line for line in _LINE_BREAK.split(text) if line]
        if not lines:
            raise CSVParseError("File is empty: no header row found")

        header = [name.strip() for name in lines[0].split(self.delimiter)]
        rows = [line.split(self.delimiter) for line in lines[1:]]

        ragged = sum(1 for row in rows if len(row) != len(header))
        if ragged:
            logger.debug(f"{ragged} row(s) have a cell count different from the header")

        return ParsedTable(header=header, rows=rows)

    def parse_file(self, filepath: Path, encoding: str = "utf-8") -> ParsedTable:
        """Read a file and parse its contents."""
        try:
            text = filepath.read_text(encoding=encoding)
        except UnicodeDecodeError as e:
            raise CSVParseError(f"File is not valid {encoding} text: {e}") from e
        return self.parse(text)
