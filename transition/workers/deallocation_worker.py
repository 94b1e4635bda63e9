"""
Daily de-allocation worker.

Every worker process in the fleet runs this on its own schedule; the run guard
makes sure only one of them does the work per window. A run resolves every due
pair up front and then revokes them one by one, each in its own session.
"""

import argparse
import asyncio
import logging
import os
import signal
import socket
import sys
from datetime import date, datetime, timedelta
from typing import Optional

from transition.clients.community_client import CommunityServiceClient
from transition.clients.user_service_client import UserServiceClient
from transition.core.config import settings
from transition.db.session import async_session_maker
from transition.repositories.user_repository import UserRepository
from transition.schemas.deallocation import DeallocationRunSummary, DueUnitUserPair, RevocationReport
from transition.services.deallocation_service import DeallocationService
from transition.services.eligibility_service import EligibilityService
from transition.services.run_guard import RunGuard
from transition.utils.time import today

logger = logging.getLogger(__name__)


class DeallocationRunner:
    """One guarded pass over all due pairs."""

    def __init__(
        self,
        session_factory=async_session_maker,
        guard: Optional[RunGuard] = None,
        community_client: Optional[CommunityServiceClient] = None,
        user_service_client: Optional[UserServiceClient] = None,
        resolver_factory=EligibilityService,
        service_factory=DeallocationService,
        user_repository_factory=UserRepository,
        job_name: Optional[str] = None,
        window_minutes: Optional[int] = None,
        integration_name: Optional[str] = None,
        integration_token: Optional[str] = None,
    ) -> None:
        self.session_factory = session_factory
        self.guard = guard or RunGuard(session_factory=session_factory)
        self.community_client = community_client or CommunityServiceClient()
        self.user_service_client = user_service_client or UserServiceClient()
        self.resolver_factory = resolver_factory
        self.service_factory = service_factory
        self.user_repository_factory = user_repository_factory
        self.job_name = job_name or settings.DEALLOCATION_JOB_NAME
        self.window_minutes = window_minutes or settings.DEALLOCATION_WINDOW_MINUTES
        self.integration_name = integration_name or settings.TRANSITION_INTEGRATION_NAME
        self.integration_token = integration_token if integration_token is not None else settings.TRANSITION_INTEGRATION_TOKEN

    async def run(self, as_of: Optional[date] = None) -> DeallocationRunSummary:
        as_of = as_of or today()
        summary = DeallocationRunSummary(as_of=as_of)

        if not await self.guard.try_acquire(self.job_name, self.window_minutes):
            return summary
        summary.granted = True

        try:
            async with self.session_factory() as session:
                integration = await self.user_repository_factory(session).get_integration(self.integration_name)
        except Exception as exc:
            logger.error("Integration lookup failed; skipping de-allocation: %s", exc, exc_info=True)
            summary.aborted_reason = "integration_lookup_failed"
            return summary
        if integration is None:
            logger.warning("Integration user %r not found; skipping de-allocation", self.integration_name)
            summary.aborted_reason = "integration_user_missing"
            return summary
        acting_user_id = integration.user_id

        try:
            async with self.session_factory() as session:
                resolver = self.resolver_factory(session)
                pairs = [pair async for pair in resolver.find_due_pairs(as_of)]
        except Exception as exc:
            logger.error("De-allocation aborted before touching any unit: %s", exc, exc_info=True)
            summary.aborted_reason = "resolver_failed"
            return summary

        summary.pairs_found = len(pairs)
        logger.info("De-allocation run for %s: %d due pair(s)", as_of, len(pairs))

        for pair in pairs:
            report = await self._revoke_pair(pair, acting_user_id)
            if report is None:
                summary.needs_followup += 1
                continue
            if report.already_revoked:
                summary.already_revoked += 1
                continue
            if report.unit_vacated:
                summary.revoked += 1
            if report.requires_manual_followup:
                summary.needs_followup += 1
            if report.failed_steps:
                summary.pairs_with_failed_steps += 1

        logger.info(
            "De-allocation run for %s finished: found=%d revoked=%d already_revoked=%d followup=%d partial=%d",
            as_of,
            summary.pairs_found,
            summary.revoked,
            summary.already_revoked,
            summary.needs_followup,
            summary.pairs_with_failed_steps,
        )
        return summary

    async def _revoke_pair(self, pair: DueUnitUserPair, acting_user_id: int) -> Optional[RevocationReport]:
        try:
            async with self.session_factory() as session:
                service = self.service_factory(
                    session,
                    community_client=self.community_client,
                    user_service_client=self.user_service_client,
                )
                report = await service.revoke(
                    pair.unit_id,
                    pair.user_id,
                    acting_user_id,
                    self.integration_token,
                    source_kind=pair.source_kind,
                )
        except Exception as exc:
            logger.error(
                "De-allocation of unit %s user %s (%s) crashed: %s",
                pair.unit_id,
                pair.user_id,
                pair.source_kind.value,
                exc,
                exc_info=True,
            )
            return None

        for failed in report.failed_steps:
            logger.warning(
                "Unit %s user %s: step %s failed: %s",
                pair.unit_id,
                pair.user_id,
                failed.name,
                failed.reason,
            )
        return report


async def run_daily_deallocation() -> None:
    """Entry point for the scheduling trigger. Reports through logs only."""
    await DeallocationRunner().run()


class DeallocationScheduler:
    """Fire the daily run at a fixed local time until asked to stop."""

    def __init__(
        self,
        runner: Optional[DeallocationRunner] = None,
        run_hour: Optional[int] = None,
        run_minute: Optional[int] = None,
        worker_id: Optional[str] = None,
    ) -> None:
        self.runner = runner or DeallocationRunner()
        self.run_hour = settings.DEALLOCATION_RUN_HOUR if run_hour is None else run_hour
        self.run_minute = settings.DEALLOCATION_RUN_MINUTE if run_minute is None else run_minute
        self.worker_id = worker_id or f"dealloc-{socket.gethostname()}-{os.getpid()}"
        self._stop_event = asyncio.Event()

    def request_stop(self) -> None:
        self._stop_event.set()

    def setup_signal_handlers(self) -> None:
        """Setup graceful shutdown on SIGTERM/SIGINT. Must run inside the event loop."""
        loop = asyncio.get_running_loop()

        def signal_handler(signum):
            logger.info("Worker %s received signal %s, shutting down gracefully...", self.worker_id, signum)
            self._stop_event.set()

        for signum in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(signum, signal_handler, signum)
            except NotImplementedError:
                # No loop signal support (Windows); hand the wake-up to the loop thread-safely
                signal.signal(signum, lambda num, frame: loop.call_soon_threadsafe(signal_handler, num))

    def remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.remove_signal_handler(signum)
            except NotImplementedError:
                signal.signal(signum, signal.SIG_DFL)

    def next_run_at(self, now: datetime) -> datetime:
        candidate = now.replace(hour=self.run_hour, minute=self.run_minute, second=0, microsecond=0)
        if candidate <= now:
            candidate += timedelta(days=1)
        return candidate

    async def run_once(self) -> DeallocationRunSummary:
        return await self.runner.run()

    async def run_forever(self) -> None:
        logger.info("Worker %s scheduling de-allocation daily at %02d:%02d", self.worker_id, self.run_hour, self.run_minute)
        while not self._stop_event.is_set():
            now = datetime.now()
            next_run = self.next_run_at(now)
            logger.debug("Next de-allocation run scheduled at %s", next_run.isoformat())
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=(next_run - now).total_seconds())
                break  # Shutdown requested
            except asyncio.TimeoutError:
                pass

            try:
                await self.run_once()
            except Exception as exc:
                logger.error("Worker %s de-allocation run crashed: %s", self.worker_id, exc, exc_info=True)

        logger.info("Worker %s stopped", self.worker_id)


def configure_logging() -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.LOG_FILE:
        handlers.append(logging.FileHandler(settings.LOG_FILE))
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


async def _main(once: bool) -> None:
    if once:
        await run_daily_deallocation()
        return
    scheduler = DeallocationScheduler()
    scheduler.setup_signal_handlers()
    try:
        await scheduler.run_forever()
    finally:
        scheduler.remove_signal_handlers()


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Daily unit de-allocation worker")
    parser.add_argument("--once", action="store_true", help="run a single guarded pass and exit")
    args = parser.parse_args(argv)

    configure_logging()
    logger.info("=== De-allocation Worker Starting ===")
    asyncio.run(_main(args.once))
    return 0


if __name__ == "__main__":
    sys.exit(main())
