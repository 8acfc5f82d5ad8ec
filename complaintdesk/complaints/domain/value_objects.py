"""
Complaint Value Objects
========================

Immutable value objects and stateless policies for the complaint domain:

- Ticket identity generation
- SLA deadline and breach rules
- Listing filters and their intersection with an actor's scope
- SLA compliance summary
"""

import secrets
import string
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, Optional

from complaintdesk.access.domain import Actor, ExecutiveActor
from complaintdesk.complaints.domain.entities import Complaint, Farmer
from complaintdesk.config import (
    Priority, SLA_WINDOW_MINUTES, TICKET_NUMBER_PREFIX, VALID_PRIORITIES
)


_SUFFIX_ALPHABET = string.digits + string.ascii_uppercase
_SUFFIX_LENGTH = 8
_TIMESTAMP_DIGITS = 8


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Read naive datetimes as UTC; aware ones pass through unchanged."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def generate_ticket_number(now: Optional[datetime] = None) -> str:
    """
    Generate a ticket number such as ``SHC48213377K2M9QX0B``.

    Layout: prefix, the last eight digits of the creation time in epoch
    milliseconds, and an eight character base-36 random suffix. Uniqueness
    comes from the suffix entropy (36^8 per millisecond), not from a lookup.
    """
    now = now or datetime.now(timezone.utc)
    millis = int(now.timestamp() * 1000)
    timestamp = str(millis)[-_TIMESTAMP_DIGITS:].zfill(_TIMESTAMP_DIGITS)
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(_SUFFIX_LENGTH))
    return f"{TICKET_NUMBER_PREFIX}{timestamp}{suffix}"


class SLAPolicy:
    """
    Pure functions for SLA calculations.

    Stateless utility class - all SLA timing rules in one place.
    """

    @staticmethod
    def window_minutes(priority: Optional[str]) -> int:
        """SLA window for a priority; anything unrecognized gets the normal window."""
        return SLA_WINDOW_MINUTES.get(priority, SLA_WINDOW_MINUTES[Priority.NORMAL])

    @staticmethod
    def compute_deadline(priority: Optional[str], created_at: datetime) -> datetime:
        """
        Calculate the SLA deadline for a complaint.

        critical -> +30 minutes, urgent -> +2 hours, normal or unknown -> +8 hours.
        """
        return created_at + timedelta(minutes=SLAPolicy.window_minutes(priority))

    @staticmethod
    def is_breached(complaint: Complaint, now: datetime) -> bool:
        """Derived at read time; never stored."""
        return complaint.is_breached(now)

    @staticmethod
    def minutes_remaining(complaint: Complaint, now: datetime) -> float:
        """Minutes until the deadline (negative once past it)."""
        return (complaint.sla_deadline - now).total_seconds() / 60


@dataclass(frozen=True)
class ComplaintFilters:
    """
    Listing filters.

    ``limit`` of None means unpaginated.
    """

    status: Optional[str] = None
    priority: Optional[str] = None
    category: Optional[str] = None
    search: Optional[str] = None
    zone_id: Optional[int] = None
    branch_id: Optional[int] = None
    line_id: Optional[int] = None
    farmer_id: Optional[int] = None
    assigned_to: Optional[int] = None
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None
    page: int = 1
    limit: Optional[int] = None

    def __post_init__(self):
        # Stored timestamps are UTC-aware; naive bounds are taken as UTC
        object.__setattr__(self, "created_from", as_utc(self.created_from))
        object.__setattr__(self, "created_to", as_utc(self.created_to))

    @property
    def offset(self) -> int:
        if self.limit is None:
            return 0
        return (max(self.page, 1) - 1) * self.limit

    def unpaginated(self) -> "ComplaintFilters":
        return replace(self, page=1, limit=None)

    def narrow_to(self, actor: Actor) -> Optional["ComplaintFilters"]:
        """
        Intersect these filters with the actor's zone/branch scope.

        Returns None when the intersection is empty, e.g. a zone-5
        executive asking for zone 6.
        """
        if not isinstance(actor, ExecutiveActor):
            return self

        narrowed = self
        if actor.zone_id is not None:
            if self.zone_id is not None and self.zone_id != actor.zone_id:
                return None
            narrowed = replace(narrowed, zone_id=actor.zone_id)

        if actor.branch_id is not None:
            if self.branch_id is not None and self.branch_id != actor.branch_id:
                return None
            narrowed = replace(narrowed, branch_id=actor.branch_id)

        return narrowed

    def matches(self, complaint: Complaint, farmer: Optional[Farmer] = None) -> bool:
        """Evaluate the filters against one complaint (pagination excluded)."""
        exact = (
            (self.status, complaint.status),
            (self.priority, complaint.priority),
            (self.category, complaint.category),
            (self.zone_id, complaint.zone_id),
            (self.branch_id, complaint.branch_id),
            (self.line_id, complaint.line_id),
            (self.farmer_id, complaint.farmer_id),
            (self.assigned_to, complaint.assigned_to),
        )
        for wanted, actual in exact:
            if wanted is not None and wanted != actual:
                return False

        if self.created_from is not None and complaint.created_at < self.created_from:
            return False
        if self.created_to is not None and complaint.created_at > self.created_to:
            return False

        if self.search:
            if farmer is None:
                return False
            needle = self.search.strip().lower()
            if needle not in farmer.name.lower() and needle not in farmer.phone:
                return False

        return True


@dataclass
class PrioritySLAStats:
    """SLA counters for one priority."""

    total: int = 0
    unresolved: int = 0
    breached: int = 0
    closed: int = 0


@dataclass
class SLASummary:
    """
    SLA compliance summary over a set of complaints.

    breach_rate is the percentage of unresolved complaints that are breached.
    """

    generated_at: datetime
    by_priority: Dict[str, PrioritySLAStats] = field(
        default_factory=lambda: {p: PrioritySLAStats() for p in VALID_PRIORITIES}
    )

    @classmethod
    def from_complaints(cls, complaints: Iterable[Complaint], now: datetime) -> "SLASummary":
        summary = cls(generated_at=now)
        for complaint in complaints:
            stats = summary.by_priority.setdefault(complaint.priority, PrioritySLAStats())
            stats.total += 1
            if complaint.is_unresolved:
                stats.unresolved += 1
            else:
                stats.closed += 1
            if complaint.is_breached(now):
                stats.breached += 1
        return summary

    @property
    def total(self) -> int:
        return sum(s.total for s in self.by_priority.values())

    @property
    def unresolved(self) -> int:
        return sum(s.unresolved for s in self.by_priority.values())

    @property
    def breached(self) -> int:
        return sum(s.breached for s in self.by_priority.values())

    @property
    def breach_rate(self) -> float:
        if self.unresolved == 0:
            return 0.0
        return round(self.breached / self.unresolved * 100, 2)
