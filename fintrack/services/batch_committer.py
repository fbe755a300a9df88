"""Batch committer: writes validated records in fixed-size chunks.

Each chunk is one bulk insert in its own database transaction. Chunks run in
input order and the first failing chunk stops the commit; chunks written before
it stay committed (there is no cross-chunk rollback unless ``atomic`` is set).
There is no retry; callers decide whether to resubmit.
"""

import enum
import logging
import time
from dataclasses import dataclass
from typing import Iterator, Sequence

from sqlalchemy import func, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from fintrack.lib.config import IMPORT_CHUNK_SIZE
from fintrack.lib.csv_models import TransactionRecord
from fintrack.lib.db import db_session
from fintrack.lib.errors import (
    ChunkCommitError,
    CommitDeadlineExceededError,
    DuplicateTransactionError,
)
from fintrack.models import Transaction

logger = logging.getLogger(__name__)


class DuplicatePolicy(str, enum.Enum):
    """What to do with records whose external id the user already imported.

    ALLOW keeps every row (re-importing a file duplicates it). SKIP and REJECT
    copy the external id into ``dedup_key``, which is unique per user in the
    store: SKIP drops colliding rows, REJECT fails the chunk.
    """

    ALLOW = "allow"
    SKIP = "skip"
    REJECT = "reject"


@dataclass
class CommitResult:
    """Outcome of a successful commit."""

    job_id: str
    total_records: int
    committed_count: int
    chunk_count: int

    @property
    def skipped_count(self) -> int:
        return self.total_records - self.committed_count


def chunked(records: Sequence[TransactionRecord], size: int) -> Iterator[Sequence[TransactionRecord]]:
    """Yield consecutive slices of at most ``size`` records."""
    for start in range(0, len(records), size):
        yield records[start : start + size]


class BatchCommitter:
    """Persist transaction records for one import job."""

    def __init__(
        self,
        chunk_size: int = IMPORT_CHUNK_SIZE,
        duplicate_policy: DuplicatePolicy = DuplicatePolicy.ALLOW,
        atomic: bool = False,
        deadline: float | None = None,
    ):
        """
        Initialize committer.

        Args:
            chunk_size: Records per bulk insert
            duplicate_policy: Handling of repeated external ids
            atomic: Write all chunks in one transaction so a failure leaves nothing
            deadline: Seconds allowed for the whole commit; checked before each chunk
        """
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.chunk_size = chunk_size
        self.duplicate_policy = DuplicatePolicy(duplicate_policy)
        self.atomic = atomic
        self.deadline = deadline

    def commit(
        self, job_id: str, user_id: str, records: Sequence[TransactionRecord]
    ) -> CommitResult:
        """
        Write records tagged with ``user_id`` and ``job_id``.

        Args:
            job_id: Import job the rows belong to
            user_id: Owning user
            records: Validated records in input order

        Returns:
            CommitResult with the number of rows stored under the job

        Raises:
            ChunkCommitError: A chunk insert failed; earlier chunks stay committed
            DuplicateTransactionError: An external id collided under REJECT
            CommitDeadlineExceededError: The deadline passed between chunks
        """
        chunks = list(chunked(records, self.chunk_size))
        started = time.monotonic()

        if self.atomic:
            with db_session() as session:
                for index, chunk in enumerate(chunks):
                    self._check_deadline(started, index, committed=0)
                    self._write_chunk(session, index, chunk, job_id, user_id, committed=0)
                committed = self._count_job_rows(session, job_id, user_id)
        else:
            committed = 0
            for index, chunk in enumerate(chunks):
                self._check_deadline(started, index, committed)
                with db_session() as session:
                    self._write_chunk(session, index, chunk, job_id, user_id, committed)
                    committed = self._count_job_rows(session, job_id, user_id)
                logger.debug(f"Chunk {index + 1}/{len(chunks)} committed for job {job_id}")

        logger.info(
            f"Committed {committed}/{len(records)} record(s) in {len(chunks)} chunk(s) "
            f"for job {job_id}"
        )
        return CommitResult(
            job_id=job_id,
            total_records=len(records),
            committed_count=committed,
            chunk_count=len(chunks),
        )

    def _check_deadline(self, started: float, index: int, committed: int) -> None:
        if self.deadline is not None and time.monotonic() - started > self.deadline:
            raise CommitDeadlineExceededError(
                index, committed, f"deadline of {self.deadline}s exceeded"
            )

    def _write_chunk(
        self,
        session: Session,
        index: int,
        chunk: Sequence[TransactionRecord],
        job_id: str,
        user_id: str,
        committed: int,
    ) -> None:
        rows = [self._to_row(record, user_id, job_id) for record in chunk]
        try:
            self._insert_chunk(session, rows)
        except IntegrityError as e:
            details = str(e.orig)
            logger.error(f"Chunk {index + 1} failed for job {job_id}: {details}")
            if self.duplicate_policy is DuplicatePolicy.REJECT and "dedup_key" in details:
                raise DuplicateTransactionError(index, committed, details) from e
            raise ChunkCommitError(index, committed, details) from e
        except SQLAlchemyError as e:
            logger.error(f"Chunk {index + 1} failed for job {job_id}: {e}")
            raise ChunkCommitError(index, committed, str(e)) from e

    def _insert_chunk(self, session: Session, rows: list[dict]) -> None:
        """One bulk INSERT for the whole chunk."""
        stmt = sqlite_insert(Transaction.__table__)
        if self.duplicate_policy is DuplicatePolicy.SKIP:
            stmt = stmt.on_conflict_do_nothing(index_elements=["user_id", "dedup_key"])
        session.execute(stmt, rows)
        session.flush()

    def _to_row(self, record: TransactionRecord, user_id: str, job_id: str) -> dict:
        row = record.to_row(user_id, job_id)
        enforce = self.duplicate_policy is not DuplicatePolicy.ALLOW
        row["dedup_key"] = record.external_id if enforce and record.external_id else None
        return row

    def _count_job_rows(self, session: Session, job_id: str, user_id: str) -> int:
        return session.execute(
            select(func.count())
            .select_from(Transaction)
            .where(Transaction.import_job_id == job_id, Transaction.user_id == user_id)
        ).scalar_one()
