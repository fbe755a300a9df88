"""Import job registry: opens import jobs and records how they end."""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from fintrack.lib.csv_models import RowRejection
from fintrack.lib.db import db_session
from fintrack.lib.errors import ImportJobNotFoundError, InvalidJobTransitionError
from fintrack.models import ImportJob, ImportJobStatus, ImportRowError

logger = logging.getLogger(__name__)


class ImportJobRegistry:
    """Creates and tracks import jobs, always scoped to the owning user."""

    def open(
        self,
        user_id: str,
        source_name: str,
        total_rows: int = 0,
        record_count: int = 0,
        rejected_count: int = 0,
    ) -> str:
        """
        Persist a new job with status ``pending``.

        Args:
            user_id: Owning user
            source_name: Label of the source, usually the file name
            total_rows: Data rows in the source
            record_count: Rows that passed validation
            rejected_count: Rows dropped by validation

        Returns:
            The new job id
        """
        with db_session() as session:
            job = ImportJob(
                user_id=user_id,
                source_name=source_name or "csv",
                status=ImportJobStatus.PENDING,
                total_rows=total_rows,
                record_count=record_count,
                rejected_count=rejected_count,
            )
            session.add(job)
            session.flush()
            job_id = job.id

        logger.info(f"Opened import job {job_id} for {source_name!r}")
        return job_id

    def mark_committed(self, job_id: str, user_id: str, committed_count: int) -> None:
        """Transition a pending job to ``committed``."""
        with db_session() as session:
            job = self._get_pending(session, job_id, user_id)
            job.status = ImportJobStatus.COMMITTED
            job.committed_count = committed_count
            job.completed_at = datetime.now(timezone.utc)

        logger.info(f"Import job {job_id} committed {committed_count} row(s)")

    def mark_failed(
        self, job_id: str, user_id: str, reason: str, committed_count: int = 0
    ) -> None:
        """
        Transition a pending job to ``failed``.

        Args:
            job_id: Job to close
            user_id: Owning user
            reason: Failure reason shown to the user
            committed_count: Rows that were durably written before the failure
        """
        with db_session() as session:
            job = self._get_pending(session, job_id, user_id)
            job.status = ImportJobStatus.FAILED
            job.error_message = reason
            job.committed_count = committed_count
            job.completed_at = datetime.now(timezone.utc)

        logger.error(f"Import job {job_id} failed: {reason}")

    def record_rejections(
        self, job_id: str, user_id: str, rejections: list[RowRejection]
    ) -> None:
        """Persist row rejections for later review."""
        if not rejections:
            return

        with db_session() as session:
            self._get(session, job_id, user_id)
            session.add_all(
                ImportRowError(
                    job_id=job_id,
                    row_number=rejection.row_index,
                    field=rejection.field,
                    reason=rejection.reason,
                    original_data=rejection.cells,
                )
                for rejection in rejections
            )

    def get(self, job_id: str, user_id: str) -> ImportJob:
        """Load a job (detached) for the owning user."""
        with db_session() as session:
            job = self._get(session, job_id, user_id)
            session.expunge(job)
            return job

    def history(self, user_id: str, limit: int = 10) -> list[ImportJob]:
        """Return the user's most recent jobs, newest first."""
        with db_session() as session:
            jobs = (
                session.execute(
                    select(ImportJob)
                    .where(ImportJob.user_id == user_id)
                    .order_by(ImportJob.created_at.desc())
                    .limit(limit)
                )
                .scalars()
                .all()
            )
            session.expunge_all()
            return list(jobs)

    def rejections(self, job_id: str, user_id: str) -> list[RowRejection]:
        """Return the stored row rejections of a job in row order."""
        with db_session() as session:
            job = self._get(session, job_id, user_id)
            return [
                RowRejection(
                    row_index=error.row_number,
                    field=error.field,
                    reason=error.reason,
                    cells=list(error.original_data or []),
                )
                for error in job.row_errors
            ]

    def _get(self, session: Session, job_id: str, user_id: str) -> ImportJob:
        job = session.execute(
            select(ImportJob).where(ImportJob.id == job_id, ImportJob.user_id == user_id)
        ).scalar_one_or_none()
        if job is None:
            raise ImportJobNotFoundError(job_id)
        return job

    def _get_pending(self, session: Session, job_id: str, user_id: str) -> ImportJob:
        job = self._get(session, job_id, user_id)
        if job.status.is_terminal:
            raise InvalidJobTransitionError(job_id, job.status.value)
        return job
