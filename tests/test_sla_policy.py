"""
Tests for ticket identity and SLA rules.
"""

import re
from datetime import timedelta

import pytest

from complaintdesk.complaints.domain import SLAPolicy, generate_ticket_number
from complaintdesk.config import ComplaintStatus, Priority

from conftest import T0

TICKET_PATTERN = re.compile(r"^SHC\d{8}[0-9A-Z]{8}$")


class TestComputeDeadline:

    @pytest.mark.parametrize("priority, minutes", [
        (Priority.CRITICAL, 30),
        (Priority.URGENT, 120),
        (Priority.NORMAL, 480),
    ])
    def test_deadline_per_priority(self, priority, minutes):
        assert SLAPolicy.compute_deadline(priority, T0) == T0 + timedelta(minutes=minutes)

    @pytest.mark.parametrize("priority", ["low", "", None])
    def test_unknown_priority_gets_normal_window(self, priority):
        assert SLAPolicy.compute_deadline(priority, T0) == T0 + timedelta(hours=8)

    def test_deadline_keeps_timezone(self):
        assert SLAPolicy.compute_deadline(Priority.CRITICAL, T0).tzinfo is not None


class TestTicketNumber:

    def test_format(self):
        ticket = generate_ticket_number(T0)
        assert TICKET_PATTERN.match(ticket), ticket

    def test_timestamp_segment_is_last_eight_epoch_millis(self):
        millis = str(int(T0.timestamp() * 1000))
        assert generate_ticket_number(T0)[3:11] == millis[-8:]

    def test_unique_within_one_millisecond(self):
        tickets = {generate_ticket_number(T0) for _ in range(100_000)}
        assert len(tickets) == 100_000


class TestBreach:

    @pytest.mark.asyncio
    async def test_not_breached_at_deadline(self, make_complaint):
        complaint = await make_complaint(priority=Priority.CRITICAL)
        assert not SLAPolicy.is_breached(complaint, complaint.sla_deadline)
        assert SLAPolicy.is_breached(complaint, complaint.sla_deadline + timedelta(seconds=1))

    @pytest.mark.asyncio
    async def test_minutes_remaining_goes_negative(self, make_complaint):
        complaint = await make_complaint(priority=Priority.URGENT)
        assert SLAPolicy.minutes_remaining(complaint, T0) == 120
        assert SLAPolicy.minutes_remaining(complaint, T0 + timedelta(hours=3)) == -60

    @pytest.mark.asyncio
    async def test_closed_complaint_is_never_breached(self, make_complaint):
        complaint = await make_complaint(priority=Priority.CRITICAL)
        complaint.apply_status(ComplaintStatus.CLOSED, T0 + timedelta(hours=5))
        assert not SLAPolicy.is_breached(complaint, T0 + timedelta(days=3))
