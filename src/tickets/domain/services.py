"""
Ticket Domain Services
=======================

Stateless business logic over ticket collections:

- TicketQueryEngine: filter, annotate with SLA state and order tickets
- StatsAggregator: reduce a collection to summary counts and rates

Both operate on already-loaded tickets and never mutate their input.
"""

from datetime import date, datetime
from typing import Any, Callable, Iterable, List, Mapping, Optional

from src.config import (
    TicketStatus, TicketPriority, SLAStatus, SortDirection,
    ACTIVE_STATUSES, TERMINAL_STATUSES, STATUS_ORDER, PRIORITY_ORDER,
)
from src.tickets.domain.entities import Ticket, UserProfile, as_utc
from src.tickets.domain.value_objects import (
    AnnotatedTicket, SLACalculator, SLASnapshot, SLAHistogram,
    TicketFilter, TicketSort, TicketStats,
)

Directory = Mapping[str, UserProfile]
Predicate = Callable[[AnnotatedTicket], bool]


def _enum_value(value: Any) -> str:
    return getattr(value, "value", value)


def _parse_datetime(value: Any) -> Optional[datetime]:
    """Coerce a filter bound to an aware datetime; ``None`` if unparseable."""
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return as_utc(datetime(value.year, value.month, value.day))
    if isinstance(value, str):
        try:
            return as_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
        except ValueError:
            return None
    return None


def _equals(getter: Callable[[AnnotatedTicket], Any], wanted: Any) -> Predicate:
    return lambda a: _enum_value(getter(a)) == wanted


def _within(start: Optional[datetime], end: Optional[datetime]) -> Predicate:
    """Inclusive creation-date bound; an unparseable bound matches nothing."""
    if start is None and end is None:
        return lambda a: False
    return lambda a: (
        (start is None or a.ticket.created_at >= start)
        and (end is None or a.ticket.created_at <= end)
    )


_EQUALITY_FILTERS = {
    "status": lambda a: a.ticket.status,
    "priority": lambda a: a.ticket.priority,
    "sla_status": lambda a: a.sla_status,
    "assigned_to_id": lambda a: a.ticket.assigned_to_id,
    "created_by_id": lambda a: a.ticket.created_by_id,
    "category": lambda a: a.ticket.category,
}


class TicketQueryEngine:
    """
    Applies ``TicketFilter`` / ``TicketSort`` to a ticket collection.

    Team and country filters look at both the assignee and the creator,
    resolved through the ``directory`` mapping supplied by the caller.
    Malformed filter values match nothing instead of raising.
    """

    def __init__(self, directory: Optional[Directory] = None):
        self._directory = directory or {}

    def query(
        self,
        tickets: Iterable[Ticket],
        filters: Optional[TicketFilter],
        sort: Optional[TicketSort],
        now: datetime
    ) -> List[AnnotatedTicket]:
        """
        Filter, annotate and order tickets.

        Args:
            tickets: Ticket collection (any order)
            filters: Conjunctive filters; ``None`` or empty matches everything
            sort: Ordering; defaults to ``created_at`` descending
            now: Observation instant for SLA fields

        Returns:
            List of annotated tickets
        """
        filters = filters or TicketFilter()
        sort = sort or TicketSort()

        annotated = [AnnotatedTicket.from_ticket(t, now) for t in tickets]
        predicates = self._build_predicates(filters)
        matches = [
            item for item in annotated
            if all(predicate(item) for predicate in predicates)
        ]
        return self.sort(matches, sort)

    # ========== Filtering ==========

    def _build_predicates(self, filters: TicketFilter) -> List[Predicate]:
        active = filters.active()
        predicates: List[Predicate] = []

        for name, getter in _EQUALITY_FILTERS.items():
            if name in active:
                predicates.append(_equals(getter, _enum_value(active[name])))

        for name in ("team_id", "country"):
            if name in active:
                predicates.append(self._related_to(name, active[name]))

        if "start_date" in active:
            predicates.append(_within(_parse_datetime(active["start_date"]), None))

        if "end_date" in active:
            predicates.append(_within(None, _parse_datetime(active["end_date"])))

        if "search" in active:
            needle = str(active["search"]).lower()
            predicates.append(lambda a: self._matches_search(a.ticket, needle))

        return predicates

    def _related_to(self, attribute: str, wanted: Any) -> Predicate:
        """Match when the assignee's or the creator's profile has ``wanted``."""
        def predicate(item: AnnotatedTicket) -> bool:
            return any(
                value == wanted
                for value in self._related_values(item.ticket, attribute)
            )
        return predicate

    def _related_values(self, ticket: Ticket, attribute: str) -> List[Any]:
        """Attribute values of the assignee and creator known to the directory."""
        values = []
        for user_id in (ticket.assigned_to_id, ticket.created_by_id):
            profile = self._directory.get(user_id) if user_id else None
            value = getattr(profile, attribute, None) if profile else None
            if value is not None:
                values.append(value)
        return values

    def _matches_search(self, ticket: Ticket, needle: str) -> bool:
        creator = self._directory.get(ticket.created_by_id)
        haystacks = (
            ticket.title,
            ticket.description,
            ticket.customer_email,
            creator.email if creator else None,
        )
        return any(needle in h.lower() for h in haystacks if h)

    # ========== Ordering ==========

    @staticmethod
    def sort(items: List[AnnotatedTicket], sort: TicketSort) -> List[AnnotatedTicket]:
        """Stable sort; missing values always go last."""
        key = _SORT_KEYS[sort.field]
        reverse = sort.direction == SortDirection.DESC

        present = [item for item in items if key(item) is not None]
        missing = [item for item in items if key(item) is None]
        return sorted(present, key=key, reverse=reverse) + missing


_SORT_KEYS = {
    "created_at": lambda a: a.ticket.created_at,
    "updated_at": lambda a: a.ticket.updated_at,
    "resolved_at": lambda a: a.ticket.resolved_at,
    "title": lambda a: a.ticket.title.lower(),
    "category": lambda a: a.ticket.category,
    "status": lambda a: STATUS_ORDER[a.ticket.status],
    "priority": lambda a: PRIORITY_ORDER[a.ticket.priority],
    "sla_minutes": lambda a: a.ticket.sla_minutes,
    "sla_status": lambda a: a.sla_status.severity,
    "sla_time_remaining": lambda a: a.sla_time_remaining,
}


class StatsAggregator:
    """
    Reduces a ticket collection to a ``TicketStats`` summary.

    Every SLA state is computed against the single ``now`` passed in.
    """

    @staticmethod
    def aggregate(tickets: Iterable[Ticket], now: datetime) -> TicketStats:
        annotated = [AnnotatedTicket.from_ticket(t, now) for t in tickets]
        total = len(annotated)

        by_status = {status: 0 for status in TicketStatus}
        by_sla = {state: 0 for state in SLAStatus}
        overdue = 0
        critical_open = 0
        scores = []

        for item in annotated:
            ticket = item.ticket
            by_status[ticket.status] += 1
            by_sla[item.sla_status] += 1

            if item.sla_status == SLAStatus.RED and ticket.status in ACTIVE_STATUSES:
                overdue += 1
            if ticket.priority == TicketPriority.URGENT and ticket.status not in TERMINAL_STATUSES:
                critical_open += 1
            if ticket.satisfaction_score is not None:
                scores.append(ticket.satisfaction_score)

        terminal = by_status[TicketStatus.RESOLVED] + by_status[TicketStatus.CLOSED]

        return TicketStats(
            total=total,
            open=by_status[TicketStatus.OPEN],
            in_progress=by_status[TicketStatus.IN_PROGRESS],
            resolved=by_status[TicketStatus.RESOLVED],
            closed=by_status[TicketStatus.CLOSED],
            overdue=overdue,
            critical_open=critical_open,
            sla=SLAHistogram(
                green=by_sla[SLAStatus.GREEN],
                yellow=by_sla[SLAStatus.YELLOW],
                red=by_sla[SLAStatus.RED],
            ),
            avg_satisfaction_score=round(sum(scores) / len(scores), 1) if scores else 0.0,
            resolution_rate=_percentage(terminal, total),
            sla_compliance=_percentage(total - overdue, total),
        )


def _percentage(part: int, total: int) -> float:
    # Empty collections count as fully compliant
    if total == 0:
        return 100.0
    return round(part / total * 100, 1)


# ========== Library entry points ==========

def compute_sla_status(ticket: Ticket, now: datetime) -> SLASnapshot:
    """SLA state and remaining minutes of one ticket at ``now``."""
    return SLACalculator.calculate(ticket, now)


def query_tickets(
    tickets: Iterable[Ticket],
    filters: Optional[TicketFilter] = None,
    sort: Optional[TicketSort] = None,
    *,
    now: datetime,
    directory: Optional[Directory] = None
) -> List[AnnotatedTicket]:
    """Filter, annotate and order ``tickets``."""
    return TicketQueryEngine(directory).query(tickets, filters, sort, now)


def aggregate_stats(tickets: Iterable[Ticket], now: datetime) -> TicketStats:
    """Summary counts and rates over ``tickets``."""
    return StatsAggregator.aggregate(tickets, now)
