"""Duplicate check job queue backed by PostgreSQL rows."""

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.job import DuplicateCheckJob, JobStatus

logger = logging.getLogger(__name__)


class JobQueue:
    """
    Writes duplicate check requests for the worker to poll.

    Enqueuing joins the caller's transaction, so a job only becomes
    visible once the script change that caused it is committed.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    def enqueue_duplicate_check(self, script_id: int) -> DuplicateCheckJob:
        job = DuplicateCheckJob(script_id=script_id, status=JobStatus.PENDING)
        self.db.add(job)
        logger.info(f"Queued duplicate check for script {script_id}")
        return job

    async def pending_jobs(self, limit: int = 10) -> List[DuplicateCheckJob]:
        result = await self.db.execute(
            select(DuplicateCheckJob)
            .where(DuplicateCheckJob.status == JobStatus.PENDING)
            .order_by(DuplicateCheckJob.created_at.asc(), DuplicateCheckJob.id.asc())
            .limit(limit)
        )
        return list(result.scalars().all())
