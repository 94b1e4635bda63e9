import asyncio
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError

from transition.services.run_guard import RunGuard

from conftest import FakeSession

JOB = "deallocate-unit-for-user"
START = datetime(2026, 10, 18, 0, 0, tzinfo=timezone.utc)


class FakeLeaseStore:
    """Shared lease table with its own clock, like the database's now()."""

    def __init__(self, now=START):
        self.leases = {}
        self.now = now
        self.down = False
        self.calls = []


class FakeLeaseRepository:
    """Claim semantics mirror the conditional upsert; all times come from the store."""

    def __init__(self, store):
        self.store = store

    def _check(self, name, kwargs):
        self.store.calls.append((name, kwargs))
        if self.store.down:
            raise OperationalError("INSERT INTO job_run_leases", {}, ConnectionError("connection refused"))

    async def claim(self, **kwargs):
        self._check("claim", kwargs)
        job_name, holder, lease_for = kwargs["job_name"], kwargs["holder"], kwargs["lease_for"]
        current = self.store.leases.get(job_name)
        if current is not None and current.expires_at > self.store.now:
            return None
        expires_at = self.store.now + lease_for
        self.store.leases[job_name] = SimpleNamespace(holder=holder, expires_at=expires_at)
        return expires_at

    async def extend(self, **kwargs):
        self._check("extend", kwargs)
        current = self.store.leases.get(kwargs["job_name"])
        if current is None or current.holder != kwargs["holder"] or current.expires_at <= self.store.now:
            return False
        current.expires_at = self.store.now + kwargs["lease_for"]
        return True

    async def release(self, **kwargs):
        self._check("release", kwargs)
        current = self.store.leases.get(kwargs["job_name"])
        if current is None or current.holder != kwargs["holder"]:
            return False
        del self.store.leases[kwargs["job_name"]]
        return True


@pytest.fixture
def lease_store():
    return FakeLeaseStore()


@pytest.fixture
def make_guard(lease_store):
    def _make(holder, session_factory=FakeSession):
        return RunGuard(
            session_factory=session_factory,
            holder=holder,
            repository_factory=lambda session: FakeLeaseRepository(lease_store),
        )

    return _make


@pytest.mark.unit
@pytest.mark.asyncio
async def test_only_first_worker_in_window_is_granted(make_guard):
    first = make_guard("worker-a")
    second = make_guard("worker-b")

    assert await first.try_acquire(JOB, 60) is True
    assert await second.try_acquire(JOB, 60) is False
    # The holder itself cannot double-claim inside its window either
    assert await first.try_acquire(JOB, 60) is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_concurrent_workers_get_exactly_one_grant(make_guard):
    guards = [make_guard(f"worker-{i}") for i in range(8)]

    results = await asyncio.gather(*(guard.try_acquire(JOB, 60) for guard in guards))

    assert results.count(True) == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_expired_lease_can_be_taken_over(make_guard, lease_store):
    first = make_guard("worker-a")
    second = make_guard("worker-b")
    assert await first.try_acquire(JOB, 60) is True

    lease_store.now = START + timedelta(minutes=59)
    assert await second.try_acquire(JOB, 60) is False

    lease_store.now = START + timedelta(minutes=60)
    assert await second.try_acquire(JOB, 60) is True
    assert lease_store.leases[JOB].holder == "worker-b"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_guard_sends_durations_not_worker_timestamps(make_guard, lease_store):
    guard = make_guard("worker-a")

    await guard.try_acquire(JOB, 60)
    await guard.renew(JOB, 45)
    await guard.release(JOB)

    # Expiry is always computed by the store, so a skewed worker clock cannot end a window early
    assert lease_store.calls == [
        ("claim", {"job_name": JOB, "holder": "worker-a", "lease_for": timedelta(minutes=60)}),
        ("extend", {"job_name": JOB, "holder": "worker-a", "lease_for": timedelta(minutes=45)}),
        ("release", {"job_name": JOB, "holder": "worker-a"}),
    ]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_other_job_names_are_independent(make_guard):
    guard = make_guard("worker-a")

    assert await guard.try_acquire(JOB, 60) is True
    assert await guard.try_acquire("another-job", 60) is True


@pytest.mark.unit
@pytest.mark.asyncio
async def test_store_failure_denies_run(make_guard, lease_store):
    lease_store.down = True
    guard = make_guard("worker-a")

    assert await guard.try_acquire(JOB, 60) is False
    assert await guard.renew(JOB, 60) is False
    assert await guard.release(JOB) is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unreachable_store_denies_run(make_guard):
    class UnreachableSession(FakeSession):
        async def __aenter__(self):
            raise ConnectionRefusedError("could not connect to server")

    guard = make_guard("worker-a", session_factory=UnreachableSession)

    assert await guard.try_acquire(JOB, 60) is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_connect_timeout_denies_run(make_guard):
    class TimingOutSession(FakeSession):
        async def __aenter__(self):
            raise asyncio.TimeoutError()

    guard = make_guard("worker-a", session_factory=TimingOutSession)

    assert await guard.try_acquire(JOB, 60) is False
    assert await guard.renew(JOB, 60) is False
    assert await guard.release(JOB) is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_renew_and_release_only_for_holder(make_guard, lease_store):
    owner = make_guard("worker-a")
    other = make_guard("worker-b")
    assert await owner.try_acquire(JOB, 60) is True

    assert await other.renew(JOB, 60) is False
    lease_store.now = START + timedelta(minutes=30)
    assert await owner.renew(JOB, 60) is True
    assert lease_store.leases[JOB].expires_at == START + timedelta(minutes=90)

    assert await other.release(JOB) is False
    assert await owner.release(JOB) is True
    assert await other.try_acquire(JOB, 60) is True
