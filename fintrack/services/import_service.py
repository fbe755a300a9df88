"""Import service for bulk transaction CSV imports.

Runs the pipeline parse -> map -> open job -> commit in chunks -> close job,
always on behalf of one authenticated user.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from sqlalchemy import select

from fintrack.lib.csv_models import ColumnMapping, ParsedTable, RowRejection
from fintrack.lib.db import db_session
from fintrack.lib.errors import AccountNotFoundError, ChunkCommitError
from fintrack.lib.identity import IdentityProvider, require_user
from fintrack.models import Account
from fintrack.services.batch_committer import BatchCommitter, DuplicatePolicy
from fintrack.services.column_mapper import ColumnMapper
from fintrack.services.csv_parser import TabularParser
from fintrack.services.import_job_registry import ImportJobRegistry

logger = logging.getLogger(__name__)


@dataclass
class ImportSummary:
    """Summary of import operation results."""

    job_id: Optional[str]  # None for dry runs
    total_rows: int
    record_count: int
    committed_count: int
    rejected: list[RowRejection] = field(default_factory=list)
    processing_duration: float = 0.0  # seconds
    dry_run: bool = False

    @property
    def rejected_count(self) -> int:
        return len(self.rejected)

    @property
    def skipped_count(self) -> int:
        """Records the store dropped as duplicates."""
        return 0 if self.dry_run else self.record_count - self.committed_count


@dataclass
class ImportJobInfo:
    """Summary information about an import job."""

    job_id: str
    source_name: str
    status: str
    total_rows: int
    record_count: int
    rejected_count: int
    committed_count: int
    error_message: Optional[str]
    created_at: datetime
    completed_at: Optional[datetime]


class ImportService:
    """Service for importing transactions from delimited text files."""

    def __init__(
        self,
        identity: Optional[IdentityProvider],
        parser: Optional[TabularParser] = None,
        registry: Optional[ImportJobRegistry] = None,
        committer: Optional[BatchCommitter] = None,
        duplicate_policy: DuplicatePolicy = DuplicatePolicy.ALLOW,
    ):
        """Initialize import service.

        Args:
            identity: Caller identity; every operation requires one
            parser: Tabular parser (default: comma-delimited)
            registry: Import job registry
            committer: Batch committer (default: 300-row chunks with ``duplicate_policy``)
            duplicate_policy: Duplicate handling for the default committer
        """
        self.identity = identity
        self.parser = parser or TabularParser()
        self.registry = registry or ImportJobRegistry()
        self.committer = committer or BatchCommitter(duplicate_policy=duplicate_policy)

    def import_text(
        self,
        text: str,
        mapping: ColumnMapping,
        account_id: str,
        source_name: str = "csv",
        dry_run: bool = False,
    ) -> ImportSummary:
        """Import transactions from raw file text.

        Args:
            text: File contents
            mapping: Header names chosen for each field
            account_id: Account every imported row is posted to
            source_name: Label stored on the job (usually the file name)
            dry_run: If True, validate but don't commit to database

        Returns:
            ImportSummary with counts and row rejections

        Raises:
            UnauthenticatedError: No caller identity (nothing is read or written)
            CSVParseError: File has no header row
            MappingError: A required field is unmapped (no job is created)
            AccountNotFoundError: Account doesn't exist or belongs to someone else
            ChunkCommitError: A chunk failed; the job is marked failed first
        """
        require_user(self.identity)
        start_time = time.monotonic()

        table = self.parser.parse(text)
        return self.import_table(
            table,
            mapping,
            account_id,
            source_name=source_name,
            dry_run=dry_run,
            start_time=start_time,
        )

    def import_file(
        self,
        filepath: Path,
        mapping: ColumnMapping,
        account_id: str,
        dry_run: bool = False,
    ) -> ImportSummary:
        """Import transactions from a UTF-8 CSV file.

        Raises:
            FileNotFoundError: CSV file doesn't exist
            CSVParseError: File is not UTF-8 text or has no header row
        """
        # Identity is checked before the file is touched
        require_user(self.identity)
        start_time = time.monotonic()

        if not filepath.exists():
            raise FileNotFoundError(f"CSV file not found: {filepath}")

        table = self.parser.parse_file(filepath)
        return self.import_table(
            table,
            mapping,
            account_id,
            source_name=filepath.name,
            dry_run=dry_run,
            start_time=start_time,
        )

    def import_table(
        self,
        table: ParsedTable,
        mapping: ColumnMapping,
        account_id: str,
        source_name: str = "csv",
        dry_run: bool = False,
        start_time: Optional[float] = None,
    ) -> ImportSummary:
        """Map, validate and commit an already parsed table.

        ``start_time`` is a ``time.monotonic()`` reading used for the summary's
        duration; it defaults to now.
        """
        user_id = require_user(self.identity)
        if start_time is None:
            start_time = time.monotonic()

        result = ColumnMapper(mapping).map_table(table, account_id)

        if dry_run:
            return ImportSummary(
                job_id=None,
                total_rows=table.total_rows,
                record_count=len(result.records),
                committed_count=0,
                rejected=result.rejected,
                processing_duration=time.monotonic() - start_time,
                dry_run=True,
            )

        self._require_account(user_id, account_id)

        job_id = self.registry.open(
            user_id,
            source_name,
            total_rows=table.total_rows,
            record_count=len(result.records),
            rejected_count=len(result.rejected),
        )
        self.registry.record_rejections(job_id, user_id, result.rejected)

        try:
            commit = self.committer.commit(job_id, user_id, result.records)
        except ChunkCommitError as e:
            self.registry.mark_failed(job_id, user_id, e.message, committed_count=e.committed_rows)
            raise

        self.registry.mark_committed(job_id, user_id, commit.committed_count)

        return ImportSummary(
            job_id=job_id,
            total_rows=table.total_rows,
            record_count=len(result.records),
            committed_count=commit.committed_count,
            rejected=result.rejected,
            processing_duration=time.monotonic() - start_time,
        )

    def get_import_history(self, limit: int = 10) -> list[ImportJobInfo]:
        """Get recent import jobs, newest first."""
        user_id = require_user(self.identity)
        return [
            ImportJobInfo(
                job_id=job.id,
                source_name=job.source_name,
                status=job.status.value,
                total_rows=job.total_rows,
                record_count=job.record_count,
                rejected_count=job.rejected_count,
                committed_count=job.committed_count,
                error_message=job.error_message,
                created_at=job.created_at,
                completed_at=job.completed_at,
            )
            for job in self.registry.history(user_id, limit=limit)
        ]

    def get_import_errors(self, job_id: str) -> list[RowRejection]:
        """Get the rows dropped from an import job.

        Raises:
            ImportJobNotFoundError: job_id doesn't exist for this user
        """
        user_id = require_user(self.identity)
        return self.registry.rejections(job_id, user_id)

    def _require_account(self, user_id: str, account_id: str) -> None:
        with db_session() as session:
            found = session.execute(
                select(Account.id).where(Account.id == account_id, Account.user_id == user_id)
            ).scalar_one_or_none()
        if found is None:
            raise AccountNotFoundError(account_id)
