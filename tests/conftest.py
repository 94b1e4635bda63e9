"""
Pytest configuration and shared fixtures.

Unit tests run against in-memory fakes of the repositories and downstream
clients. Tests marked `db` need a throwaway PostgreSQL database (see
TEST_DATABASE_URL) and are skipped unless RUN_DB_TESTS=1.
"""

import os
from datetime import date
from types import SimpleNamespace

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from transition.core.config import settings
from transition.db.base import Base
import transition.models  # noqa: F401
from transition.errors import DownstreamServiceError
from transition.services.deallocation_service import DeallocationService

TODAY = date(2026, 10, 18)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests, no external deps")
    config.addinivalue_line("markers", "db: requires database")


def pytest_collection_modifyitems(config, items):
    run_db = os.environ.get("RUN_DB_TESTS") == "1"

    skip_db = pytest.mark.skip(reason="db tests skipped by default; set RUN_DB_TESTS=1 to enable")

    for item in items:
        if "db" in item.keywords and not run_db:
            item.add_marker(skip_db)


class FakeSession:
    """Stands in for AsyncSession where only transaction control is observed."""

    def __init__(self):
        self.commits = 0
        self.rollbacks = 0
        self.closed = False

    async def commit(self):
        self.commits += 1

    async def rollback(self):
        self.rollbacks += 1

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.closed = True
        return False


class FakeResidentStore:
    """
    In-memory replacement for the unit, role, delegated-access and user
    repositories used by DeallocationService.

    Method names listed in `failing` raise instead of doing their work.
    """

    def __init__(self):
        self.units: dict[int, str] = {}
        self.roles: dict[tuple[int, int], SimpleNamespace] = {}
        self.access_cards: dict[tuple[int, int], int] = {}
        self.poa_requests: dict[tuple[int, int], int] = {}
        self.poa_grants: dict[tuple[int, int], int] = {}
        self.visitors: dict[tuple[int, int], int] = {}
        self.amenities: dict[tuple[int, int], int] = {}
        self.emails: dict[int, str] = {}
        self.bookings: list[tuple[str, int]] = []
        self.pending_updates: dict[int, list] = {}
        self.failing: set[str] = set()
        self._next_role_id = 1

    # -- seeding -------------------------------------------------------
    def add_unit(self, unit_id: int, status: str = "tenant"):
        self.units[unit_id] = status

    def add_role(self, unit_id: int, user_id: int, slug: str = "tenant"):
        self.roles[(unit_id, user_id)] = SimpleNamespace(id=self._next_role_id, slug=slug)
        self._next_role_id += 1

    def _maybe_fail(self, name: str):
        if name in self.failing:
            raise RuntimeError(f"{name} unavailable")

    def _clear(self, records: dict, unit_id: int, user_id: int) -> int:
        return records.pop((unit_id, user_id), 0)

    # -- UnitRepository ------------------------------------------------
    async def set_occupancy_status(self, unit_id, status, updated_by):
        self._maybe_fail("set_occupancy_status")
        if unit_id not in self.units:
            return 0
        self.units[unit_id] = status
        return 1

    # -- UserRoleRepository --------------------------------------------
    async def get_active_for_unit(self, unit_id, user_id):
        self._maybe_fail("get_active_for_unit")
        return self.roles.get((unit_id, user_id))

    async def deactivate_for_unit(self, unit_id, user_id, updated_by, end_date):
        self._maybe_fail("deactivate_for_unit")
        return 1 if self.roles.pop((unit_id, user_id), None) else 0

    async def deactivate_family_member_access(self, unit_id, user_role_id, updated_by):
        self._maybe_fail("deactivate_family_member_access")
        return 0

    async def deactivate_family_service_mappings(self, unit_id, user_id, updated_by):
        self._maybe_fail("deactivate_family_service_mappings")
        return 0

    async def has_active_role_elsewhere(self, user_id, exclude_unit_id, role_slug):
        return any(
            unit_id != exclude_unit_id and holder == user_id and role.slug == role_slug
            for (unit_id, holder), role in self.roles.items()
        )

    # -- DelegatedAccessRepository -------------------------------------
    async def cancel_open_access_card_requests(self, unit_id, user_id, updated_by, comments):
        self._maybe_fail("cancel_open_access_card_requests")
        return self._clear(self.access_cards, unit_id, user_id)

    async def cancel_poa_requests(self, unit_id, user_id, updated_by):
        self._maybe_fail("cancel_poa_requests")
        return self._clear(self.poa_requests, unit_id, user_id)

    async def deactivate_poa_grants(self, unit_id, user_id, updated_by):
        self._maybe_fail("deactivate_poa_grants")
        return self._clear(self.poa_grants, unit_id, user_id)

    async def deactivate_visitor_requests(self, unit_id, user_id, updated_by):
        self._maybe_fail("deactivate_visitor_requests")
        return self._clear(self.visitors, unit_id, user_id)

    async def cancel_amenity_bookings(self, unit_id, user_id, updated_by, reason, cancelled_at):
        self._maybe_fail("cancel_amenity_bookings")
        return self._clear(self.amenities, unit_id, user_id)

    # -- UserRepository ------------------------------------------------
    async def get_email(self, user_id):
        return self.emails.get(user_id)

    async def has_booking_elsewhere(self, email, exclude_unit_id):
        return any(booked == email and unit_id != exclude_unit_id for booked, unit_id in self.bookings)

    async def list_pending_update_requests(self, user_id):
        self._maybe_fail("list_pending_update_requests")
        return list(self.pending_updates.get(user_id, []))


class FakeCommunityClient:
    def __init__(self, grouped=None, fail_lookup=False, fail_kinds=()):
        self.grouped = grouped or {}
        self.fail_lookup = fail_lookup
        self.fail_kinds = set(fail_kinds)
        self.lookups = []
        self.created = []

    async def get_access_card_requests_by_unit(self, unit_id, user_id, integration_token):
        self.lookups.append((unit_id, user_id, integration_token))
        if self.fail_lookup:
            raise DownstreamServiceError("community-service", "http://community.test", "timeout after 1.0s")
        return self.grouped

    async def create_access_card_request(self, card_kind, unit_id, actions, integration_token):
        if card_kind in self.fail_kinds:
            raise DownstreamServiceError("community-service", "http://community.test", "HTTP 502", status_code=502)
        self.created.append((card_kind, unit_id, actions))
        return {}


class FakeUserServiceClient:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    async def update_profile_on_resale(self, user_id, payload, integration_token):
        return self._record("profile", user_id, payload)

    async def update_communication_details_on_resale(self, user_id, payload, integration_token):
        return self._record("communication", user_id, payload)

    def _record(self, endpoint, user_id, payload):
        if self.fail:
            raise DownstreamServiceError("user-service", "http://users.test", "HTTP 500", status_code=500)
        self.calls.append((endpoint, user_id, payload))
        return {}


@pytest.fixture
def store():
    return FakeResidentStore()


@pytest.fixture
def community():
    return FakeCommunityClient()


@pytest.fixture
def user_service():
    return FakeUserServiceClient()


@pytest.fixture
def build_service(store, community, user_service):
    """Factory for a DeallocationService wired to the in-memory store."""

    def _build(cancellers=None, community_client=None, user_service_client=None):
        session = FakeSession()
        service = DeallocationService(
            session,
            community_client=community_client or community,
            user_service_client=user_service_client or user_service,
            service_request_cancellers=cancellers,
            today_fn=lambda: TODAY,
        )
        service.units = store
        service.roles = store
        service.access = store
        service.users = store
        return service, session

    return _build


@pytest_asyncio.fixture
async def db_session_factory():
    """Fresh schema on the test database; yields a session factory bound to it."""
    url = os.environ.get("TEST_DATABASE_URL", settings.DATABASE_URL)
    engine = create_async_engine(url, poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()
