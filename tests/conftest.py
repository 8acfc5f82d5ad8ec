"""
Shared fixtures for the Complaint Desk test suite.

Services run against the in-memory store with a controllable clock; the
SQL adapter tests get an aiosqlite engine of their own.
"""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from complaintdesk.access.domain import AdminActor, ExecutiveActor, UserAccount
from complaintdesk.access.infrastructure import InMemoryUserDirectory
from complaintdesk.complaints.application import (
    ComplaintLifecycleService, CallLogRecorder, ComplaintQueryService
)
from complaintdesk.complaints.domain import Farmer
from complaintdesk.complaints.infrastructure import InMemoryComplaintStore
from complaintdesk.config import (
    ComplaintCategory, Permission, Priority, Role, COMPLAINT_PERMISSIONS
)

T0 = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)

ALL_PERMISSIONS = frozenset(COMPLAINT_PERMISSIONS)

# Farmers: two in zone 5 (different branches), one in zone 6
RAVI = Farmer(id=100, name="Ravi Kumar", phone="9876500001", zone_id=5, branch_id=51, line_id=511)
SITA = Farmer(id=101, name="Sita Devi", phone="9876500002", zone_id=5, branch_id=52, line_id=521)
MOHAN = Farmer(id=200, name="Mohan Lal", phone="9876500003", zone_id=6, branch_id=61, line_id=611)

# Users
ADMIN_ID = 1
ZONE5_EXEC_ID = 10
ORG_WIDE_EXEC_ID = 11
BRANCH51_EXEC_ID = 12
VIEW_ONLY_EXEC_ID = 13
INACTIVE_EXEC_ID = 14
ZONE6_EXEC_ID = 15
EDIT_ONLY_EXEC_ID = 16


class FakeClock:
    """Callable clock the tests move forward explicitly."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def seed_users() -> InMemoryUserDirectory:
    return InMemoryUserDirectory([
        UserAccount(id=ADMIN_ID, name="Admin", role=Role.ADMIN),
        UserAccount(
            id=ZONE5_EXEC_ID, name="Zone 5 Executive", role=Role.EXECUTIVE,
            zone_id=5, permissions=ALL_PERMISSIONS
        ),
        UserAccount(
            id=ORG_WIDE_EXEC_ID, name="Org-wide Executive", role=Role.EXECUTIVE,
            permissions=ALL_PERMISSIONS
        ),
        UserAccount(
            id=BRANCH51_EXEC_ID, name="Branch 51 Executive", role=Role.EXECUTIVE,
            zone_id=5, branch_id=51, permissions=ALL_PERMISSIONS
        ),
        UserAccount(
            id=VIEW_ONLY_EXEC_ID, name="Viewer", role=Role.EXECUTIVE,
            zone_id=5, permissions=frozenset({Permission.COMPLAINT_VIEW})
        ),
        UserAccount(
            id=INACTIVE_EXEC_ID, name="Former Executive", role=Role.EXECUTIVE,
            zone_id=5, permissions=ALL_PERMISSIONS, is_active=False
        ),
        UserAccount(
            id=ZONE6_EXEC_ID, name="Zone 6 Executive", role=Role.EXECUTIVE,
            zone_id=6, permissions=ALL_PERMISSIONS
        ),
        UserAccount(
            id=EDIT_ONLY_EXEC_ID, name="Caller", role=Role.EXECUTIVE,
            zone_id=5, permissions=frozenset({Permission.COMPLAINT_VIEW, Permission.COMPLAINT_EDIT})
        ),
    ])


# ========== Store and services ==========

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    store = InMemoryComplaintStore()
    for farmer in (RAVI, SITA, MOHAN):
        store.add_farmer(farmer)
    return store


@pytest.fixture
def users():
    return seed_users()


@pytest.fixture
def lifecycle(store, users, clock):
    return ComplaintLifecycleService(store.unit_of_work, users, clock=clock)


@pytest.fixture
def recorder(store, lifecycle, clock):
    return CallLogRecorder(store.unit_of_work, lifecycle, clock=clock)


@pytest.fixture
def queries(store, clock):
    return ComplaintQueryService(store.unit_of_work, clock=clock)


# ========== Actors ==========

@pytest.fixture
def admin():
    return AdminActor(user_id=ADMIN_ID)


@pytest.fixture
def zone5_exec():
    return ExecutiveActor(user_id=ZONE5_EXEC_ID, permissions=ALL_PERMISSIONS, zone_id=5)


@pytest.fixture
def org_wide_exec():
    return ExecutiveActor(user_id=ORG_WIDE_EXEC_ID, permissions=ALL_PERMISSIONS)


@pytest.fixture
def branch51_exec():
    return ExecutiveActor(user_id=BRANCH51_EXEC_ID, permissions=ALL_PERMISSIONS, zone_id=5, branch_id=51)


@pytest.fixture
def view_only_exec():
    return ExecutiveActor(
        user_id=VIEW_ONLY_EXEC_ID, permissions=frozenset({Permission.COMPLAINT_VIEW}), zone_id=5
    )


@pytest.fixture
def edit_only_exec():
    return ExecutiveActor(
        user_id=EDIT_ONLY_EXEC_ID,
        permissions=frozenset({Permission.COMPLAINT_VIEW, Permission.COMPLAINT_EDIT}),
        zone_id=5
    )


@pytest.fixture
def zone6_exec():
    return ExecutiveActor(user_id=ZONE6_EXEC_ID, permissions=ALL_PERMISSIONS, zone_id=6)


# ========== Complaint factory ==========

@pytest.fixture
def make_complaint(lifecycle, admin):
    """Create a complaint for one of the seeded farmers."""

    async def _make(farmer: Farmer = RAVI, priority: str = Priority.NORMAL, actor=None, **overrides):
        fields = dict(
            title="Milking machine not starting",
            description="Motor hums but the pump does not engage.",
            category=ComplaintCategory.EQUIPMENT,
            priority=priority,
            farmer_id=farmer.id,
            zone_id=farmer.zone_id,
            branch_id=farmer.branch_id,
            line_id=farmer.line_id,
        )
        fields.update(overrides)
        return await lifecycle.create_complaint(actor or admin, **fields)

    return _make


# ========== SQL engine ==========

@pytest_asyncio.fixture
async def sql_session():
    """aiosqlite session with every table created."""
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
    from sqlalchemy.pool import StaticPool

    from complaintdesk.infrastructure.database import Base
    # Register models on Base.metadata
    import complaintdesk.access.infrastructure.models  # noqa: F401
    import complaintdesk.complaints.infrastructure.models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session

    await engine.dispose()
