import asyncio
import os
import signal
from datetime import date, datetime
from types import SimpleNamespace

import pytest

from transition.schemas.deallocation import DueUnitUserPair, RevocationReport, SourceKind
from transition.workers.deallocation_worker import DeallocationRunner, DeallocationScheduler

from conftest import FakeCommunityClient, FakeSession, FakeUserServiceClient

AS_OF = date(2026, 10, 18)
INTEGRATION = SimpleNamespace(user_id=4242, name="transition")


class FakeGuard:
    def __init__(self, grant=True):
        self.grant = grant
        self.calls = []

    async def try_acquire(self, job_name, window_minutes):
        self.calls.append((job_name, window_minutes))
        return self.grant


class FakeUsers:
    def __init__(self, session, integration=INTEGRATION):
        self.integration = integration

    async def get_integration(self, name):
        return self.integration


class BrokenUsers:
    def __init__(self, session):
        pass

    async def get_integration(self, name):
        raise ConnectionResetError("connection reset by peer")


class FakeResolver:
    def __init__(self, pairs, fail_after=None):
        self.pairs = pairs
        self.fail_after = fail_after

    async def find_due_pairs(self, as_of):
        for index, pair in enumerate(self.pairs):
            if self.fail_after is not None and index == self.fail_after:
                raise RuntimeError("connection reset during eligibility scan")
            yield pair


class FakeServiceFactory:
    """Builds per-pair services whose outcome is picked by unit id."""

    def __init__(self, outcomes):
        self.outcomes = outcomes
        self.calls = []

    def __call__(self, session, community_client=None, user_service_client=None):
        factory = self

        class _Service:
            async def revoke(self, unit_id, user_id, acting_user_id, integration_token, source_kind=None):
                factory.calls.append((unit_id, user_id, acting_user_id, integration_token, source_kind))
                outcome = factory.outcomes[unit_id]
                if isinstance(outcome, Exception):
                    raise outcome
                return RevocationReport(unit_id=unit_id, user_id=user_id, source_kind=source_kind, **outcome)

        return _Service()


def pair(unit_id, user_id=9, kind=SourceKind.TENANT_LEASE):
    return DueUnitUserPair(unit_id=unit_id, user_id=user_id, source_kind=kind)


def make_runner(guard=None, resolver=None, services=None, users=FakeUsers):
    return DeallocationRunner(
        session_factory=FakeSession,
        guard=guard or FakeGuard(),
        community_client=FakeCommunityClient(),
        user_service_client=FakeUserServiceClient(),
        resolver_factory=lambda session: resolver or FakeResolver([]),
        service_factory=services or FakeServiceFactory({}),
        user_repository_factory=users,
        job_name="deallocate-unit-for-user",
        window_minutes=60,
        integration_name="transition",
        integration_token="tok",
    )


@pytest.mark.unit
@pytest.mark.asyncio
async def test_denied_guard_skips_run():
    services = FakeServiceFactory({55: {"unit_vacated": True}})
    guard = FakeGuard(grant=False)
    runner = make_runner(guard=guard, resolver=FakeResolver([pair(55)]), services=services)

    summary = await runner.run(AS_OF)

    assert summary.granted is False
    assert summary.pairs_found == 0
    assert services.calls == []
    assert guard.calls == [("deallocate-unit-for-user", 60)]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_missing_integration_user_aborts():
    services = FakeServiceFactory({55: {"unit_vacated": True}})
    runner = make_runner(
        resolver=FakeResolver([pair(55)]),
        services=services,
        users=lambda session: FakeUsers(session, integration=None),
    )

    summary = await runner.run(AS_OF)

    assert summary.granted is True
    assert summary.aborted_reason == "integration_user_missing"
    assert services.calls == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_integration_lookup_failure_is_reported_separately():
    services = FakeServiceFactory({55: {"unit_vacated": True}})
    runner = make_runner(resolver=FakeResolver([pair(55)]), services=services, users=BrokenUsers)

    summary = await runner.run(AS_OF)

    assert summary.granted is True
    assert summary.aborted_reason == "integration_lookup_failed"
    assert summary.pairs_found == 0
    assert services.calls == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_resolver_failure_aborts_before_any_revocation():
    services = FakeServiceFactory({55: {"unit_vacated": True}, 56: {"unit_vacated": True}})
    runner = make_runner(resolver=FakeResolver([pair(55), pair(56)], fail_after=1), services=services)

    summary = await runner.run(AS_OF)

    assert summary.aborted_reason == "resolver_failed"
    assert summary.pairs_found == 0
    assert services.calls == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_each_pair_is_isolated_and_counted():
    services = FakeServiceFactory(
        {
            55: {"unit_vacated": True},
            56: {"already_revoked": True},
            57: RuntimeError("deadlock detected"),
            58: {"requires_manual_followup": True},
            59: {"unit_vacated": True},
        }
    )
    pairs = [pair(55), pair(56), pair(57), pair(58), pair(59, kind=SourceKind.OWNER_MOVE_OUT)]
    runner = make_runner(resolver=FakeResolver(pairs), services=services)

    summary = await runner.run(AS_OF)

    assert summary.granted is True
    assert summary.aborted_reason is None
    assert summary.pairs_found == 5
    assert summary.revoked == 2
    assert summary.already_revoked == 1
    assert summary.needs_followup == 2
    assert [call[0] for call in services.calls] == [55, 56, 57, 58, 59]
    # Acting identity and token come from the integration, source kind from the pair
    assert services.calls[0][2:4] == (4242, "tok")
    assert services.calls[-1][4] is SourceKind.OWNER_MOVE_OUT


@pytest.mark.unit
@pytest.mark.asyncio
async def test_empty_run_finishes_cleanly():
    summary = await make_runner().run(AS_OF)

    assert summary.granted is True
    assert summary.pairs_found == 0
    assert summary.aborted_reason is None


@pytest.mark.unit
@pytest.mark.parametrize(
    "now, expected",
    [
        (datetime(2026, 10, 18, 10, 30), datetime(2026, 10, 19, 0, 0)),
        (datetime(2026, 10, 18, 0, 0), datetime(2026, 10, 19, 0, 0)),
        (datetime(2026, 10, 17, 23, 59, 59), datetime(2026, 10, 18, 0, 0)),
    ],
)
def test_next_run_is_next_midnight(now, expected):
    scheduler = DeallocationScheduler(runner=make_runner(), run_hour=0, run_minute=0, worker_id="w-1")

    assert scheduler.next_run_at(now) == expected


@pytest.mark.unit
def test_next_run_same_day_when_time_not_reached():
    scheduler = DeallocationScheduler(runner=make_runner(), run_hour=2, run_minute=15, worker_id="w-1")

    assert scheduler.next_run_at(datetime(2026, 10, 18, 1, 0)) == datetime(2026, 10, 18, 2, 15)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stop_request_ends_scheduler_loop():
    scheduler = DeallocationScheduler(runner=make_runner(), run_hour=0, run_minute=0, worker_id="w-1")

    task = asyncio.create_task(scheduler.run_forever())
    await asyncio.sleep(0)
    scheduler.request_stop()
    await asyncio.wait_for(task, timeout=1)

    assert task.done()


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.skipif(not hasattr(signal, "SIGTERM") or os.name == "nt", reason="needs POSIX signals")
async def test_sigterm_wakes_idle_scheduler():
    # Next run is at least eleven hours away, so only the signal can end the wait
    run_hour = (datetime.now().hour + 12) % 24
    scheduler = DeallocationScheduler(runner=make_runner(), run_hour=run_hour, run_minute=0, worker_id="w-1")
    scheduler.setup_signal_handlers()
    try:
        task = asyncio.create_task(scheduler.run_forever())
        await asyncio.sleep(0.05)
        assert not task.done()

        os.kill(os.getpid(), signal.SIGTERM)
        await asyncio.wait_for(task, timeout=1)
    finally:
        scheduler.remove_signal_handlers()

    assert task.done()
    assert task.exception() is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_run_daily_deallocation_reports_nothing(monkeypatch):
    from transition.workers import deallocation_worker

    runs = []

    class StubRunner:
        async def run(self, as_of=None):
            runs.append(as_of)

    monkeypatch.setattr(deallocation_worker, "DeallocationRunner", StubRunner)

    assert await deallocation_worker.run_daily_deallocation() is None
    assert runs == [None]


@pytest.mark.unit
def test_main_once_runs_a_single_pass(monkeypatch):
    from transition.workers import deallocation_worker

    runs = []

    async def fake_daily():
        runs.append("run")

    monkeypatch.setattr(deallocation_worker, "run_daily_deallocation", fake_daily)
    monkeypatch.setattr(deallocation_worker, "configure_logging", lambda: None)

    assert deallocation_worker.main(["--once"]) == 0
    assert runs == ["run"]
