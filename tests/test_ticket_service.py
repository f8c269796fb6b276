# tests/test_ticket_service.py
import asyncio
from datetime import timedelta

import pytest

from src.config import SLAStatus, TicketPriority, TicketStatus
from src.core import (
    InvalidStatusTransitionException, ResourceNotFoundException, ValidationException,
)
from src.tickets.application import TicketCreateDTO, TicketService, TicketUpdateDTO
from src.tickets.domain import SLAPolicy, TicketFilter
from src.tickets.infrastructure import InMemoryTicketRepository, StaticSLAPolicyProvider

from tests.conftest import NOW, make_ticket


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def seeded_repository():
    return InMemoryTicketRepository([
        make_ticket(id="t-old", minutes_ago=300, assigned_to_id="u-carol"),
        make_ticket(id="t-new", minutes_ago=5, created_by_id="u-bob"),
        make_ticket(id="t-done", minutes_ago=400, status=TicketStatus.RESOLVED),
    ])


@pytest.fixture
def seeded_service(seeded_repository, user_directory):
    return TicketService(seeded_repository, user_directory, StaticSLAPolicyProvider())


def test_create_applies_policy_defaults(ticket_repository, user_directory):
    policy = SLAPolicy(default_sla_minutes=480, default_sla_warning_percent=50,
                       priority_sla_minutes={"urgent": 60})
    service = TicketService(ticket_repository, user_directory, StaticSLAPolicyProvider(policy))

    urgent = run(service.create_ticket(
        TicketCreateDTO(title="Site down", createdById="u-alice", priority="urgent"), NOW
    ))
    normal = run(service.create_ticket(
        TicketCreateDTO(title="Slow wifi", created_by_id="u-alice"), NOW
    ))

    assert urgent.ticket.sla_minutes == 60
    assert urgent.ticket.sla_warning_percent == 50
    assert normal.ticket.sla_minutes == 480
    assert normal.sla_status == SLAStatus.GREEN
    assert normal.sla_time_remaining == 480


def test_create_keeps_explicit_sla_settings(service):
    created = run(service.create_ticket(
        TicketCreateDTO(
            title="Badge reader", created_by_id="u-alice",
            sla_minutes=30, sla_warning_percent=0,
        ),
        NOW,
    ))

    assert created.ticket.sla_minutes == 30
    assert created.ticket.sla_warning_percent == 0
    # zero warning percent is YELLOW from the first minute
    assert created.sla_status == SLAStatus.YELLOW


def test_create_with_resolved_status_stamps_resolved_at(service):
    created_at = NOW - timedelta(hours=2)

    created = run(service.create_ticket(
        TicketCreateDTO(
            title="Imported", created_by_id="u-alice",
            status="resolved", created_at=created_at,
        ),
        NOW,
    ))

    assert created.ticket.resolved_at == created_at
    assert created.sla_status == SLAStatus.GREEN


def test_created_ticket_is_listed(service):
    created = run(service.create_ticket(
        TicketCreateDTO(title="Printer jam", created_by_id="u-alice"), NOW
    ))

    listed = run(service.list_tickets(None, None, NOW))

    assert [item.ticket.id for item in listed] == [created.ticket.id]


def test_update_ignores_null_for_required_fields(seeded_service):
    dto = TicketUpdateDTO(title=None, category="network", satisfaction_score=4)

    updated = run(seeded_service.update_ticket("t-new", dto, NOW))

    assert updated.ticket.title == "Printer offline"
    assert updated.ticket.category == "network"
    assert updated.ticket.satisfaction_score == 4
    assert updated.ticket.updated_at == NOW


def test_update_status_goes_through_lifecycle(seeded_service):
    updated = run(seeded_service.update_ticket("t-old", TicketUpdateDTO(status="resolved"), NOW))

    assert updated.ticket.status == TicketStatus.RESOLVED
    assert updated.ticket.resolved_at == NOW
    assert updated.sla_status == SLAStatus.GREEN

    with pytest.raises(InvalidStatusTransitionException):
        run(seeded_service.update_ticket("t-old", TicketUpdateDTO(status="open"), NOW))


def test_update_changes_priority(seeded_service):
    updated = run(seeded_service.update_ticket("t-new", TicketUpdateDTO(priority="high"), NOW))

    assert updated.ticket.priority == TicketPriority.HIGH


def test_missing_ticket_raises_not_found(service):
    with pytest.raises(ResourceNotFoundException):
        run(service.get_ticket("nope", NOW))
    with pytest.raises(ResourceNotFoundException):
        run(service.update_ticket("nope", TicketUpdateDTO(category="x"), NOW))
    with pytest.raises(ResourceNotFoundException):
        run(service.delete_ticket("nope"))


def test_delete_removes_ticket(seeded_service):
    run(seeded_service.delete_ticket("t-new"))

    with pytest.raises(ResourceNotFoundException):
        run(seeded_service.get_ticket("t-new", NOW))


def test_overdue_excludes_resolved(seeded_service):
    overdue = run(seeded_service.get_overdue_tickets(NOW))

    assert [item.ticket.id for item in overdue] == ["t-old"]


def test_stats_respect_filters(seeded_service):
    stats = run(seeded_service.get_stats(TicketFilter(created_by_id="u-alice"), NOW))

    assert stats.total == 2
    assert stats.resolved == 1
    assert stats.overdue == 1


def test_tickets_by_user_and_team(seeded_service):
    by_user = run(seeded_service.get_tickets_by_user("u-carol", NOW))
    by_team = run(seeded_service.get_tickets_by_team("t-product", NOW))

    assert [item.ticket.id for item in by_user] == ["t-old"]
    assert [item.ticket.id for item in by_team] == ["t-new"]


def test_assign_escalate_and_note(seeded_service):
    run(seeded_service.assign_ticket("t-new", "u-bob", NOW))
    run(seeded_service.escalate_ticket("t-new", "VIP customer", NOW))
    result = run(seeded_service.add_note("t-new", "Waiting on vendor", NOW))

    assert result.ticket.assigned_to_id == "u-bob"
    assert result.ticket.is_escalated
    assert result.ticket.priority == TicketPriority.HIGH
    assert result.ticket.notes == ["Waiting on vendor"]


def test_bulk_update_reports_failures(seeded_service):
    updated, errors = run(seeded_service.bulk_update_status(
        ["t-old", "t-done", "missing"], TicketStatus.IN_PROGRESS, NOW
    ))

    assert [item.ticket.id for item in updated] == ["t-old"]
    assert len(errors) == 2
    assert errors[0].startswith("t-done:")
    assert errors[1] == "missing: not found"


def test_repository_returns_copies(seeded_repository):
    ticket = run(seeded_repository.get_by_id("t-new"))
    ticket.title = "Changed locally"

    assert run(seeded_repository.get_by_id("t-new")).title == "Printer offline"


def test_create_rejects_created_at_after_now(service):
    dto = TicketCreateDTO(
        title="Scheduled work", created_by_id="u-alice",
        created_at=NOW + timedelta(days=1),
    )

    with pytest.raises(ValidationException):
        run(service.create_ticket(dto, NOW))

    assert run(service.list_tickets(None, None, NOW)) == []


def test_create_accepts_created_at_equal_to_now(service):
    created = run(service.create_ticket(
        TicketCreateDTO(title="Now", created_by_id="u-alice", created_at=NOW), NOW
    ))

    assert created.sla_time_remaining == created.ticket.sla_minutes


@pytest.mark.parametrize("dto", [
    TicketCreateDTO(title="Ghost", created_by_id="u-ghost"),
    TicketCreateDTO(title="Ghost", created_by_id="u-alice", assigned_to_id="u-ghost"),
])
def test_create_rejects_unknown_users(service, dto):
    with pytest.raises(ValidationException) as exc_info:
        run(service.create_ticket(dto, NOW))

    assert exc_info.value.details == {"user_ids": ["u-ghost"]}


def test_assign_and_update_reject_unknown_assignee(seeded_service):
    with pytest.raises(ValidationException):
        run(seeded_service.assign_ticket("t-new", "u-ghost", NOW))
    with pytest.raises(ValidationException):
        run(seeded_service.update_ticket("t-new", TicketUpdateDTO(assigned_to_id="u-ghost"), NOW))

    assert run(seeded_service.get_ticket("t-new", NOW)).ticket.assigned_to_id is None


def test_unassign_needs_no_directory_entry(seeded_service):
    result = run(seeded_service.assign_ticket("t-old", None, NOW))

    assert result.ticket.assigned_to_id is None


def test_bulk_update_reassigns_and_reprioritizes(seeded_service):
    dto = TicketUpdateDTO(assigned_to_id="u-bob", priority="urgent", category="network")

    updated, errors = run(seeded_service.bulk_update(["t-old", "t-new", "missing"], dto, NOW))

    assert [item.ticket.id for item in updated] == ["t-old", "t-new"]
    assert errors == ["missing: not found"]
    for ticket_id in ("t-old", "t-new"):
        ticket = run(seeded_service.get_ticket(ticket_id, NOW)).ticket
        assert ticket.assigned_to_id == "u-bob"
        assert ticket.priority == TicketPriority.URGENT
        assert ticket.category == "network"


def test_bulk_update_refused_transition_leaves_ticket_untouched(seeded_service):
    dto = TicketUpdateDTO(status="open", category="network")

    updated, errors = run(seeded_service.bulk_update(["t-done"], dto, NOW))

    assert updated == []
    assert errors[0].startswith("t-done:")
    assert run(seeded_service.get_ticket("t-done", NOW)).ticket.category is None


def test_bulk_update_with_unknown_assignee_changes_nothing(seeded_service):
    with pytest.raises(ValidationException):
        run(seeded_service.bulk_update(["t-new"], TicketUpdateDTO(assigned_to_id="u-ghost"), NOW))
