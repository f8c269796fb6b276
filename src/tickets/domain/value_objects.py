"""
Ticket Value Objects
=====================

Immutable value objects for the ticket domain.

Value objects are defined by their attributes rather than an identity.
They are immutable and can be freely shared.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field, field_validator

from src.config import (
    SLAStatus, SortDirection,
    TERMINAL_STATUSES, VALID_PRIORITIES,
    DEFAULT_SLA_MINUTES, DEFAULT_SLA_WARNING_PERCENT,
)
from src.tickets.domain.entities import Ticket, as_utc


@dataclass(frozen=True)
class SLASnapshot:
    """SLA state of one ticket at one observation instant."""
    status: SLAStatus
    remaining_minutes: int


class SLACalculator:
    """
    Pure functions for SLA calculations.

    Stateless utility class - all SLA timer logic in one place.
    The observation instant is always passed in, never read from the clock.
    """

    @staticmethod
    def elapsed_minutes(created_at: datetime, now: datetime) -> int:
        """Whole minutes since ``created_at``, floored."""
        return (as_utc(now) - as_utc(created_at)) // timedelta(minutes=1)

    @staticmethod
    def calculate_status(ticket: Ticket, now: datetime) -> SLAStatus:
        """
        Calculate the traffic-light SLA state.

        Resolved and closed tickets are always GREEN, however late they
        were resolved.

        Args:
            ticket: Ticket to evaluate
            now: Observation instant

        Returns:
            SLAStatus: GREEN, YELLOW or RED
        """
        if ticket.status in TERMINAL_STATUSES:
            return SLAStatus.GREEN

        elapsed = SLACalculator.elapsed_minutes(ticket.created_at, now)
        # Fractional thresholds are compared as-is
        warning_threshold = ticket.sla_minutes * ticket.sla_warning_percent / 100

        if elapsed >= ticket.sla_minutes:
            return SLAStatus.RED
        elif elapsed >= warning_threshold:
            return SLAStatus.YELLOW
        else:
            return SLAStatus.GREEN

    @staticmethod
    def calculate_remaining(ticket: Ticket, now: datetime) -> int:
        """Minutes left on the SLA budget (0 once terminal or breached)."""
        if ticket.status in TERMINAL_STATUSES:
            return 0

        elapsed = SLACalculator.elapsed_minutes(ticket.created_at, now)
        return max(0, ticket.sla_minutes - elapsed)

    @staticmethod
    def calculate(ticket: Ticket, now: datetime) -> SLASnapshot:
        """Status and remaining time against the same instant."""
        return SLASnapshot(
            status=SLACalculator.calculate_status(ticket, now),
            remaining_minutes=SLACalculator.calculate_remaining(ticket, now),
        )


@dataclass(frozen=True)
class AnnotatedTicket:
    """A ticket together with its SLA fields derived at query time."""
    ticket: Ticket
    sla_status: SLAStatus
    sla_time_remaining: int

    @classmethod
    def from_ticket(cls, ticket: Ticket, now: datetime) -> "AnnotatedTicket":
        snapshot = SLACalculator.calculate(ticket, now)
        return cls(
            ticket=ticket,
            sla_status=snapshot.status,
            sla_time_remaining=snapshot.remaining_minutes,
        )


DateLike = Union[datetime, date, str]


@dataclass(frozen=True)
class TicketFilter:
    """
    Optional, conjunctive ticket filters.

    Values are kept loose on purpose: strings straight from a query
    string are accepted, and anything that cannot match simply doesn't.
    """
    status: Optional[Any] = None
    priority: Optional[Any] = None
    assigned_to_id: Optional[str] = None
    created_by_id: Optional[str] = None
    team_id: Optional[str] = None
    country: Optional[str] = None
    category: Optional[str] = None
    start_date: Optional[DateLike] = None
    end_date: Optional[DateLike] = None
    search: Optional[str] = None
    sla_status: Optional[Any] = None

    def active(self) -> Dict[str, Any]:
        """Filters that actually constrain the result (empty strings don't)."""
        return {
            name: value
            for name, value in self.__dict__.items()
            if value is not None and value != ""
        }


# camelCase names accepted from the HTTP layer
SORT_FIELD_ALIASES = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "resolvedAt": "resolved_at",
    "slaMinutes": "sla_minutes",
    "slaStatus": "sla_status",
    "slaTimeRemaining": "sla_time_remaining",
}
SORTABLE_FIELDS = (
    "created_at", "updated_at", "resolved_at", "title", "category",
    "status", "priority", "sla_minutes", "sla_status", "sla_time_remaining",
)


@dataclass(frozen=True)
class TicketSort:
    """Ordering for query results. Defaults to newest first."""
    field: str = "created_at"
    direction: SortDirection = SortDirection.DESC

    @classmethod
    def parse(
        cls,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None
    ) -> "TicketSort":
        """
        Build a sort from raw request values.

        Unknown fields fall back to ``created_at``, unknown directions
        to descending.
        """
        name = SORT_FIELD_ALIASES.get(sort_by or "", sort_by or "")
        if name not in SORTABLE_FIELDS:
            name = "created_at"

        try:
            direction = SortDirection((sort_order or "").upper())
        except ValueError:
            direction = SortDirection.DESC

        return cls(field=name, direction=direction)


@dataclass(frozen=True)
class SLAHistogram:
    """Ticket counts per SLA state."""
    green: int = 0
    yellow: int = 0
    red: int = 0


@dataclass(frozen=True)
class TicketStats:
    """Summary counts and rates over a ticket collection."""
    total: int
    open: int
    in_progress: int
    resolved: int
    closed: int
    overdue: int
    critical_open: int
    sla: SLAHistogram = field(default_factory=SLAHistogram)
    avg_satisfaction_score: float = 0.0
    resolution_rate: float = 100.0
    sla_compliance: float = 100.0


class SLAPolicy(BaseModel):
    """
    SLA defaults applied to newly created tickets, loaded from YAML.

    A ticket created without explicit SLA settings gets the per-priority
    minutes if configured, otherwise the defaults.

    This is a value object - immutable and defined by its attributes.
    """
    default_sla_minutes: int = Field(
        default=DEFAULT_SLA_MINUTES,
        gt=0,
        description="SLA budget in minutes when no priority override applies"
    )
    default_sla_warning_percent: int = Field(
        default=DEFAULT_SLA_WARNING_PERCENT,
        ge=0,
        le=100,
        description="Percent of the budget at which tickets turn YELLOW"
    )
    priority_sla_minutes: Dict[str, int] = Field(
        default_factory=dict,
        description="SLA budget in minutes by priority"
    )

    @field_validator("priority_sla_minutes")
    @classmethod
    def validate_priority_sla_minutes(cls, v: Dict[str, int]) -> Dict[str, int]:
        """Validate priority keys and budgets."""
        normalized = {}
        for priority, minutes in v.items():
            key = str(priority).lower()
            if key not in VALID_PRIORITIES:
                raise ValueError(f"unknown priority '{priority}'")
            if minutes <= 0:
                raise ValueError(f"SLA minutes for '{priority}' must be positive")
            normalized[key] = minutes
        return normalized

    def get_sla_minutes(self, priority: str) -> int:
        """SLA budget for a priority."""
        key = getattr(priority, "value", priority)
        return self.priority_sla_minutes.get(key, self.default_sla_minutes)

    def get_warning_percent(self) -> int:
        return self.default_sla_warning_percent
