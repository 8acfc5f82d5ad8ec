"""
SQLAlchemy adapter tests on aiosqlite.
"""

import json
from datetime import timedelta

import pytest
import pytest_asyncio

from complaintdesk.access.infrastructure import SQLAlchemyUserDirectory, UserModel
from complaintdesk.complaints.application import (
    ComplaintLifecycleService, CallLogRecorder, ComplaintQueryService
)
from complaintdesk.complaints.domain import ComplaintFilters
from complaintdesk.complaints.infrastructure import FarmerModel, SQLAlchemyUnitOfWork
from complaintdesk.config import CallOutcome, ComplaintCategory, ComplaintStatus, Priority, Role
from complaintdesk.core import ConflictException, ResourceNotFoundException

from conftest import RAVI, MOHAN, T0, FakeClock, ALL_PERMISSIONS


@pytest_asyncio.fixture
async def sql_services(sql_session):
    for farmer in (RAVI, MOHAN):
        sql_session.add(FarmerModel(
            id=farmer.id, name=farmer.name, phone=farmer.phone,
            zone_id=farmer.zone_id, branch_id=farmer.branch_id, line_id=farmer.line_id
        ))
    sql_session.add(UserModel(id=1, name="Admin", email="admin@example.com", role=Role.ADMIN))
    sql_session.add(UserModel(
        id=10, name="Zone 5 Executive", email="zone5@example.com", role=Role.EXECUTIVE,
        zone_id=5, permissions=json.dumps(sorted(ALL_PERMISSIONS))
    ))
    await sql_session.commit()

    clock = FakeClock()
    uow_factory = lambda: SQLAlchemyUnitOfWork(sql_session)
    directory = SQLAlchemyUserDirectory(sql_session)
    lifecycle = ComplaintLifecycleService(uow_factory, directory, clock=clock)
    return {
        "session": sql_session,
        "clock": clock,
        "directory": directory,
        "uow_factory": uow_factory,
        "lifecycle": lifecycle,
        "recorder": CallLogRecorder(uow_factory, lifecycle, clock=clock),
        "queries": ComplaintQueryService(uow_factory, clock=clock),
    }


async def create(services, actor, farmer=RAVI, priority=Priority.CRITICAL):
    return await services["lifecycle"].create_complaint(
        actor,
        title="Feed quality",
        description="Pellets are mouldy",
        category=ComplaintCategory.FEED,
        priority=priority,
        farmer_id=farmer.id,
        zone_id=farmer.zone_id,
        branch_id=farmer.branch_id,
        line_id=farmer.line_id
    )


class TestSQLAlchemyLifecycle:

    @pytest.mark.asyncio
    async def test_create_and_read_back(self, sql_services, admin):
        created = await create(sql_services, admin)

        loaded = await sql_services["lifecycle"].get_complaint(admin, created.id)
        assert loaded.ticket_number == created.ticket_number
        assert loaded.sla_deadline == T0 + timedelta(minutes=30)
        assert loaded.version == 1
        assert loaded.status == ComplaintStatus.OPEN

    @pytest.mark.asyncio
    async def test_call_cascades_status_in_one_commit(self, sql_services, admin, zone5_exec):
        complaint = await create(sql_services, admin)
        sql_services["clock"].advance(minutes=45)

        call_log = await sql_services["recorder"].record_call(
            zone5_exec, complaint.id,
            outcome=CallOutcome.CONNECTED,
            remarks="Replaced feed batch",
            duration_minutes=6,
            next_follow_up_date=None,
            asserted_status=ComplaintStatus.CLOSED
        )

        lifecycle = sql_services["lifecycle"]
        closed = await lifecycle.get_complaint(admin, complaint.id)
        assert closed.status == ComplaintStatus.CLOSED
        assert closed.closed_at == T0 + timedelta(minutes=45)
        assert closed.version == 2
        assert not lifecycle.is_breached(closed)

        history = await lifecycle.status_history(admin, complaint.id)
        assert [(h.from_status, h.to_status, h.call_log_id) for h in history] == [
            (ComplaintStatus.OPEN, ComplaintStatus.CLOSED, call_log.id)
        ]
        assert await sql_services["recorder"].default_status_for(admin, complaint.id) == ComplaintStatus.CLOSED

    @pytest.mark.asyncio
    async def test_assign_through_sql_directory(self, sql_services, admin):
        complaint = await create(sql_services, admin)
        assigned = await sql_services["lifecycle"].assign_complaint(admin, complaint.id, 10)
        assert assigned.assigned_to == 10

    @pytest.mark.asyncio
    async def test_edit_persists_priority_and_rederived_deadline(self, sql_services, admin):
        complaint = await create(sql_services, admin, priority=Priority.NORMAL)
        lifecycle = sql_services["lifecycle"]

        await lifecycle.update_complaint(admin, complaint.id, title="Feed smells sour", priority=Priority.URGENT)
        loaded = await lifecycle.get_complaint(admin, complaint.id)
        assert (loaded.title, loaded.priority) == ("Feed smells sour", Priority.URGENT)
        assert loaded.sla_deadline == T0 + timedelta(hours=8)
        assert loaded.version == 2

        await lifecycle.update_complaint(admin, complaint.id, rederive_sla=True)
        loaded = await lifecycle.get_complaint(admin, complaint.id)
        assert loaded.sla_deadline == T0 + timedelta(hours=2)
        assert loaded.version == 3

    @pytest.mark.asyncio
    async def test_unknown_farmer(self, sql_services, admin):
        with pytest.raises(ResourceNotFoundException):
            await sql_services["lifecycle"].create_complaint(
                admin, title="t", description="d", category=ComplaintCategory.OTHER,
                priority=None, farmer_id=999, zone_id=5, branch_id=51, line_id=511
            )

    @pytest.mark.asyncio
    async def test_scoped_listing_and_search(self, sql_services, admin, zone5_exec):
        ravi = await create(sql_services, admin, RAVI)
        sql_services["clock"].advance(minutes=1)
        mohan = await create(sql_services, admin, MOHAN, Priority.NORMAL)

        queries = sql_services["queries"]
        assert [c.id for c in await queries.list_complaints(admin, ComplaintFilters())] == [mohan.id, ravi.id]
        assert [c.id for c in await queries.list_complaints(zone5_exec, ComplaintFilters())] == [ravi.id]
        assert [c.id for c in await queries.list_complaints(admin, ComplaintFilters(search="mohan"))] == [mohan.id]
        assert await queries.list_complaints(zone5_exec, ComplaintFilters(zone_id=6)) == []

        recent = await sql_services["recorder"].recent_call_logs(admin)
        assert recent == []

    @pytest.mark.asyncio
    async def test_stale_update_conflicts(self, sql_services, admin):
        complaint = await create(sql_services, admin)
        await sql_services["lifecycle"].transition_status(admin, complaint.id, ComplaintStatus.PROGRESS)

        # ``complaint`` still carries version 1
        complaint.apply_status(ComplaintStatus.CLOSED, sql_services["clock"]())
        async with sql_services["uow_factory"]() as uow:
            with pytest.raises(ConflictException):
                await uow.complaints.update(complaint)

        current = await sql_services["lifecycle"].get_complaint(admin, complaint.id)
        assert current.status == ComplaintStatus.PROGRESS
