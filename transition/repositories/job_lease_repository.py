"""Repository for job run leases (the run guard's coordination store).

Lease times come from the database clock (``now()``), never from the calling
worker, so replicas with skewed clocks still agree on when a window ends.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import and_, delete, func, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from transition.models.job_run_lease import JobRunLease


class JobLeaseRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def claim(self, *, job_name: str, holder: str, lease_for: timedelta) -> Optional[datetime]:
        """
        Insert the lease, or take it over if the previous one has expired.

        One statement: the conflict branch only fires when the stored lease is
        expired, so at most one concurrent caller gets a row back. Returns the
        new expiry, or None when the lease is held.
        """
        stmt = (
            insert(JobRunLease)
            .values(job_name=job_name, holder=holder, acquired_at=func.now(), expires_at=func.now() + lease_for)
            .on_conflict_do_update(
                index_elements=[JobRunLease.job_name],
                set_={
                    "holder": holder,
                    "acquired_at": func.now(),
                    "expires_at": func.now() + lease_for,
                },
                where=JobRunLease.expires_at <= func.now(),
            )
            .returning(JobRunLease.expires_at)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def extend(self, *, job_name: str, holder: str, lease_for: timedelta) -> bool:
        stmt = (
            update(JobRunLease)
            .where(
                and_(
                    JobRunLease.job_name == job_name,
                    JobRunLease.holder == holder,
                    JobRunLease.expires_at > func.now(),
                )
            )
            .values(expires_at=func.now() + lease_for)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return bool(result.rowcount)

    async def release(self, *, job_name: str, holder: str) -> bool:
        stmt = delete(JobRunLease).where(
            and_(JobRunLease.job_name == job_name, JobRunLease.holder == holder)
        )
        result = await self.db.execute(stmt)
        return bool(result.rowcount)
