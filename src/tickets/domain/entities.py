"""
Ticket Domain Entities
=======================

Pure Python domain entities for ticket tracking.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List
from uuid import uuid4

from src.config import (
    TicketStatus, TicketPriority,
    TERMINAL_STATUSES, STATUS_ORDER, PRIORITY_ORDER,
    DEFAULT_SLA_MINUTES, DEFAULT_SLA_WARNING_PERCENT,
)
from src.core import InvalidStatusTransitionException


def as_utc(value: datetime) -> datetime:
    """Read naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class Ticket:
    """
    Ticket entity representing an IT support ticket.

    SLA status is not stored here. It is derived on read from
    ``created_at`` and an observation instant, see ``SLACalculator``.
    """

    # Core attributes
    title: str
    description: str
    created_by_id: str
    created_at: datetime

    id: str = field(default_factory=lambda: str(uuid4()))
    status: TicketStatus = TicketStatus.OPEN
    priority: TicketPriority = TicketPriority.MEDIUM
    category: Optional[str] = None
    assigned_to_id: Optional[str] = None
    customer_email: Optional[str] = None

    # SLA configuration
    sla_minutes: int = DEFAULT_SLA_MINUTES
    sla_warning_percent: int = DEFAULT_SLA_WARNING_PERCENT

    # Timestamps
    updated_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    # Follow-up
    satisfaction_score: Optional[float] = None
    is_escalated: bool = False
    escalation_reason: Optional[str] = None
    notes: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Normalize timestamps and validate ticket on initialization."""
        if not self.title:
            raise ValueError("title cannot be empty")

        self.status = TicketStatus(self.status)
        self.priority = TicketPriority(self.priority)
        self.created_at = as_utc(self.created_at)
        self.updated_at = as_utc(self.updated_at) if self.updated_at else self.created_at

        if self.resolved_at:
            self.resolved_at = as_utc(self.resolved_at)
            if self.resolved_at < self.created_at:
                raise ValueError("resolved_at cannot be before created_at")
        if self.closed_at:
            self.closed_at = as_utc(self.closed_at)

    def can_transition_to(self, status: TicketStatus) -> bool:
        """Status only moves forward through the lifecycle."""
        return STATUS_ORDER[TicketStatus(status)] >= STATUS_ORDER[self.status]

    def transition_to(self, status: TicketStatus, timestamp: datetime) -> None:
        """
        Move the ticket to ``status``.

        ``resolved_at`` is stamped the first time the ticket enters a
        terminal state and is never overwritten afterwards.

        Raises:
            InvalidStatusTransitionException: If the move goes backwards
        """
        status = TicketStatus(status)
        if status == self.status:
            return
        if not self.can_transition_to(status):
            raise InvalidStatusTransitionException(
                self.id, self.status.value, status.value
            )

        timestamp = as_utc(timestamp)
        if status in TERMINAL_STATUSES and self.resolved_at is None:
            self.resolved_at = timestamp
        if status == TicketStatus.CLOSED and self.closed_at is None:
            self.closed_at = timestamp

        self.status = status
        self.updated_at = timestamp

    def assign(self, user_id: Optional[str], timestamp: datetime) -> None:
        """Reassign the ticket (``None`` unassigns)."""
        self.assigned_to_id = user_id
        self.updated_at = as_utc(timestamp)

    def escalate(self, reason: str, timestamp: datetime) -> None:
        """Flag the ticket as escalated and raise priority to at least HIGH."""
        self.is_escalated = True
        self.escalation_reason = reason
        if PRIORITY_ORDER[self.priority] < PRIORITY_ORDER[TicketPriority.HIGH]:
            self.priority = TicketPriority.HIGH
        self.updated_at = as_utc(timestamp)

    def add_note(self, note: str, timestamp: datetime) -> None:
        """Append a note."""
        self.notes.append(note)
        self.updated_at = as_utc(timestamp)


@dataclass(frozen=True)
class UserProfile:
    """
    Directory entry for a user referenced by tickets.

    Tickets only hold user ids; team and country filters resolve
    them through a mapping of these profiles.
    """

    id: str
    email: str
    country: Optional[str] = None
    team_id: Optional[str] = None
