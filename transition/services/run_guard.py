"""
Distributed run guard.

A time-boxed lease per job name, stored in the shared database. Whoever claims
the lease first in a window runs the job; everybody else skips. Any failure to
reach the store denies the run: a missed run is picked up by the next tick, a
duplicate run is not undone.
"""

import asyncio
import logging
import os
import socket
from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from transition.db.session import async_session_maker
from transition.repositories.job_lease_repository import JobLeaseRepository

logger = logging.getLogger(__name__)

# Connection refused/reset surface as OSError, connect timeouts as asyncio.TimeoutError
STORE_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)


class RunGuard:
    """Acquire / renew / release a job lease on behalf of one worker process."""

    def __init__(
        self,
        session_factory=async_session_maker,
        holder: Optional[str] = None,
        repository_factory=JobLeaseRepository,
    ) -> None:
        self.session_factory = session_factory
        self.holder = holder or f"{socket.gethostname()}-{os.getpid()}"
        self._repository_factory = repository_factory

    async def try_acquire(self, job_name: str, window_minutes: int) -> bool:
        """Return True if this holder now owns the lease for the next window_minutes."""
        try:
            async with self.session_factory() as session:
                repo = self._repository_factory(session)
                expires_at = await repo.claim(
                    job_name=job_name, holder=self.holder, lease_for=timedelta(minutes=window_minutes)
                )
                await session.commit()
        except STORE_ERRORS as exc:
            logger.error("Run guard store unavailable for %s, denying run: %s", job_name, exc)
            return False

        if expires_at is not None:
            logger.info("Run guard granted %s to %s until %s", job_name, self.holder, expires_at.isoformat())
            return True
        logger.info("Run guard denied %s to %s; lease held for this window", job_name, self.holder)
        return False

    async def renew(self, job_name: str, window_minutes: int) -> bool:
        """Extend a lease this holder still owns. Expired or foreign leases are not renewed."""
        try:
            async with self.session_factory() as session:
                repo = self._repository_factory(session)
                renewed = await repo.extend(
                    job_name=job_name, holder=self.holder, lease_for=timedelta(minutes=window_minutes)
                )
                await session.commit()
        except STORE_ERRORS as exc:
            logger.error("Run guard store unavailable renewing %s: %s", job_name, exc)
            return False
        return renewed

    async def release(self, job_name: str) -> bool:
        """Drop the lease early if this holder owns it."""
        try:
            async with self.session_factory() as session:
                repo = self._repository_factory(session)
                released = await repo.release(job_name=job_name, holder=self.holder)
                await session.commit()
        except STORE_ERRORS as exc:
            logger.error("Run guard store unavailable releasing %s: %s", job_name, exc)
            return False
        return released
