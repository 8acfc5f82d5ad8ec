"""
Tests for scoped complaint listings and SLA summaries.
"""

from dataclasses import replace
from datetime import timedelta

import pytest

from complaintdesk.access.domain import ExecutiveActor
from complaintdesk.complaints.domain import ComplaintFilters
from complaintdesk.config import ComplaintStatus, Priority

from conftest import MOHAN, RAVI, SITA, T0


@pytest.fixture
async def seeded(make_complaint, clock):
    """One complaint per farmer, created ten minutes apart (Ravi oldest)."""
    ravi = await make_complaint(farmer=RAVI, priority=Priority.CRITICAL)
    clock.advance(minutes=10)
    sita = await make_complaint(farmer=SITA, priority=Priority.URGENT)
    clock.advance(minutes=10)
    mohan = await make_complaint(farmer=MOHAN, priority=Priority.NORMAL)
    return {"ravi": ravi, "sita": sita, "mohan": mohan}


def ids(complaints):
    return [c.id for c in complaints]


class TestNarrowFilters:

    def test_admin_filters_unchanged(self, admin):
        filters = ComplaintFilters(zone_id=6)
        assert filters.narrow_to(admin) is filters

    def test_executive_zone_applied(self, zone5_exec):
        assert ComplaintFilters().narrow_to(zone5_exec).zone_id == 5

    def test_conflicting_zone_is_empty(self, zone5_exec):
        assert ComplaintFilters(zone_id=6).narrow_to(zone5_exec) is None

    def test_conflicting_branch_is_empty(self, branch51_exec):
        assert ComplaintFilters(branch_id=52).narrow_to(branch51_exec) is None

    def test_offset(self):
        assert ComplaintFilters(page=3, limit=20).offset == 40
        assert ComplaintFilters(page=3).offset == 0


class TestListComplaints:

    @pytest.mark.asyncio
    async def test_admin_sees_everything_newest_first(self, seeded, queries, admin):
        result = await queries.list_complaints(admin, ComplaintFilters())
        assert ids(result) == [seeded["mohan"].id, seeded["sita"].id, seeded["ravi"].id]

    @pytest.mark.asyncio
    async def test_zone_executive_sees_own_zone(self, seeded, queries, zone5_exec):
        result = await queries.list_complaints(zone5_exec, ComplaintFilters())
        assert ids(result) == [seeded["sita"].id, seeded["ravi"].id]

    @pytest.mark.asyncio
    async def test_filter_outside_scope_returns_empty(self, seeded, queries, zone5_exec):
        assert await queries.list_complaints(zone5_exec, ComplaintFilters(zone_id=6)) == []

    @pytest.mark.asyncio
    async def test_branch_executive(self, seeded, queries, branch51_exec):
        result = await queries.list_complaints(branch51_exec, ComplaintFilters())
        assert ids(result) == [seeded["ravi"].id]

    @pytest.mark.asyncio
    async def test_zoneless_executive_sees_every_zone(self, seeded, queries, org_wide_exec):
        result = await queries.list_complaints(org_wide_exec, ComplaintFilters())
        assert len(result) == 3

    @pytest.mark.asyncio
    async def test_executive_without_view_permission(self, seeded, queries):
        actor = ExecutiveActor(user_id=30, permissions=frozenset({"complaint.create"}), zone_id=5)
        assert await queries.list_complaints(actor, ComplaintFilters()) == []

    @pytest.mark.asyncio
    async def test_search_by_farmer_name_or_phone(self, seeded, queries, admin):
        by_name = await queries.list_complaints(admin, ComplaintFilters(search="sita"))
        assert ids(by_name) == [seeded["sita"].id]

        by_phone = await queries.list_complaints(admin, ComplaintFilters(search="500003"))
        assert ids(by_phone) == [seeded["mohan"].id]

    @pytest.mark.asyncio
    async def test_search_respects_scope(self, seeded, queries, zone5_exec):
        assert await queries.list_complaints(zone5_exec, ComplaintFilters(search="Mohan")) == []

    @pytest.mark.asyncio
    async def test_status_and_priority_filters(self, seeded, queries, lifecycle, admin):
        await lifecycle.transition_status(admin, seeded["sita"].id, ComplaintStatus.CLOSED)

        closed = await queries.list_complaints(admin, ComplaintFilters(status=ComplaintStatus.CLOSED))
        assert ids(closed) == [seeded["sita"].id]

        critical = await queries.list_complaints(admin, ComplaintFilters(priority=Priority.CRITICAL))
        assert ids(critical) == [seeded["ravi"].id]

    @pytest.mark.asyncio
    async def test_created_date_range(self, seeded, queries, admin):
        filters = ComplaintFilters(created_from=T0 + timedelta(minutes=5), created_to=T0 + timedelta(minutes=15))
        assert ids(await queries.list_complaints(admin, filters)) == [seeded["sita"].id]

    @pytest.mark.asyncio
    async def test_naive_date_bounds_read_as_utc(self, seeded, queries, admin):
        naive_t0 = T0.replace(tzinfo=None)
        filters = ComplaintFilters(created_from=naive_t0 + timedelta(minutes=5), created_to=naive_t0 + timedelta(minutes=15))

        assert filters.created_from.tzinfo is not None
        assert ids(await queries.list_complaints(admin, filters)) == [seeded["sita"].id]

    @pytest.mark.asyncio
    async def test_pagination(self, seeded, queries, admin):
        first = await queries.list_complaints(admin, ComplaintFilters(page=1, limit=2))
        second = await queries.list_complaints(admin, ComplaintFilters(page=2, limit=2))
        assert ids(first) == [seeded["mohan"].id, seeded["sita"].id]
        assert ids(second) == [seeded["ravi"].id]


class TestSLASummary:

    @pytest.mark.asyncio
    async def test_summary_counts_breaches(self, seeded, queries, lifecycle, admin, clock):
        # T0+65m: critical (deadline T0+30m) breached, urgent and normal not yet
        clock.advance(minutes=45)
        summary = await queries.sla_summary(admin)

        assert summary.total == 3
        assert summary.unresolved == 3
        assert summary.breached == 1
        assert summary.by_priority[Priority.CRITICAL].breached == 1
        assert summary.breach_rate == pytest.approx(33.33)

        await lifecycle.transition_status(admin, seeded["ravi"].id, ComplaintStatus.CLOSED)
        summary = await queries.sla_summary(admin)
        assert summary.breached == 0
        assert summary.by_priority[Priority.CRITICAL].closed == 1

    @pytest.mark.asyncio
    async def test_summary_scoped_and_unpaginated(self, seeded, queries, zone5_exec):
        summary = await queries.sla_summary(zone5_exec, replace(ComplaintFilters(), limit=1))
        assert summary.total == 2
        assert summary.by_priority[Priority.NORMAL].total == 0

    @pytest.mark.asyncio
    async def test_empty_summary(self, queries, admin):
        summary = await queries.sla_summary(admin)
        assert summary.total == 0
        assert summary.breach_rate == 0.0
        assert set(summary.by_priority) == {Priority.NORMAL, Priority.URGENT, Priority.CRITICAL}
