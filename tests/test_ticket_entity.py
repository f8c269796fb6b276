# tests/test_ticket_entity.py
from datetime import datetime, timedelta, timezone

import pytest

from src.config import TicketPriority, TicketStatus
from src.core import InvalidStatusTransitionException

from tests.conftest import NOW, make_ticket


def test_new_ticket_defaults():
    ticket = make_ticket()

    assert ticket.status == TicketStatus.OPEN
    assert ticket.priority == TicketPriority.MEDIUM
    assert ticket.sla_minutes == 240
    assert ticket.sla_warning_percent == 75
    assert ticket.updated_at == ticket.created_at
    assert ticket.resolved_at is None
    assert ticket.id


def test_empty_title_rejected():
    with pytest.raises(ValueError):
        make_ticket(title="")


def test_string_enums_and_naive_timestamps_are_normalized():
    ticket = make_ticket(
        status="in_progress",
        priority="urgent",
        created_at=datetime(2024, 10, 1, 9, 0),
    )

    assert ticket.status == TicketStatus.IN_PROGRESS
    assert ticket.priority == TicketPriority.URGENT
    assert ticket.created_at.tzinfo == timezone.utc


def test_resolving_stamps_resolved_at_once():
    ticket = make_ticket(minutes_ago=30)
    resolved = NOW - timedelta(minutes=10)

    ticket.transition_to(TicketStatus.RESOLVED, resolved)
    ticket.transition_to(TicketStatus.CLOSED, NOW)

    assert ticket.status == TicketStatus.CLOSED
    assert ticket.resolved_at == resolved
    assert ticket.closed_at == NOW
    assert ticket.updated_at == NOW


def test_closing_directly_also_stamps_resolved_at():
    ticket = make_ticket(minutes_ago=30)

    ticket.transition_to(TicketStatus.CLOSED, NOW)

    assert ticket.resolved_at == NOW
    assert ticket.closed_at == NOW


def test_same_status_is_a_no_op():
    ticket = make_ticket(minutes_ago=30)
    ticket.transition_to(TicketStatus.RESOLVED, NOW - timedelta(minutes=5))

    ticket.transition_to(TicketStatus.RESOLVED, NOW)

    assert ticket.resolved_at == NOW - timedelta(minutes=5)


@pytest.mark.parametrize("start, target", [
    (TicketStatus.IN_PROGRESS, TicketStatus.OPEN),
    (TicketStatus.RESOLVED, TicketStatus.IN_PROGRESS),
    (TicketStatus.CLOSED, TicketStatus.RESOLVED),
])
def test_backward_transitions_rejected(start, target):
    ticket = make_ticket(status=start)

    with pytest.raises(InvalidStatusTransitionException):
        ticket.transition_to(target, NOW)

    assert ticket.status == start


def test_escalation_raises_low_priority_to_high():
    ticket = make_ticket(priority=TicketPriority.LOW)

    ticket.escalate("Customer is a key account", NOW)

    assert ticket.is_escalated
    assert ticket.escalation_reason == "Customer is a key account"
    assert ticket.priority == TicketPriority.HIGH


def test_escalation_keeps_urgent_priority():
    ticket = make_ticket(priority=TicketPriority.URGENT)

    ticket.escalate("Outage", NOW)

    assert ticket.priority == TicketPriority.URGENT


def test_assign_and_notes_touch_updated_at():
    ticket = make_ticket(minutes_ago=30)

    ticket.assign("u-bob", NOW - timedelta(minutes=1))
    ticket.add_note("Called the customer", NOW)

    assert ticket.assigned_to_id == "u-bob"
    assert ticket.notes == ["Called the customer"]
    assert ticket.updated_at == NOW
