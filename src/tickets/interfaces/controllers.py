"""
Ticket Controllers (API Routes)
================================

FastAPI routes for ticket endpoints.

Controllers are thin - they delegate to application services. The
observation instant is captured once per request by ``get_now`` so that
every SLA field in a response agrees.
"""

from datetime import datetime, timezone
from typing import AsyncGenerator, List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status

from src.config import settings, TicketStatus
from src.infrastructure.database import get_session_context
from src.tickets.application import (
    TicketService,
    TicketCreateDTO, TicketUpdateDTO,
    TicketAssignDTO, TicketEscalateDTO, TicketNoteDTO,
    BulkStatusUpdateDTO, BulkUpdateDTO,
    TicketResponse, TicketStatsResponse, BulkUpdateResponse,
)
from src.tickets.domain import TicketFilter, TicketSort
from src.tickets.infrastructure import (
    SQLAlchemyTicketRepository,
    SQLAlchemyUserDirectory,
)
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/tickets", tags=["Tickets"])


# ========== Example payloads for Swagger ==========

TICKET_RESPONSE_EXAMPLE = {
    "id": "3f0c8a9e-7a51-4a8e-9a43-0b1c2d3e4f50",
    "title": "Login Issue with Multi-Factor Authentication",
    "description": "User unable to complete 2FA login process.",
    "status": "in_progress",
    "priority": "high",
    "category": "technical",
    "createdById": "u-2",
    "assignedToId": "u-5",
    "customerEmail": "alex.smith@techcorp.com",
    "createdAt": "2024-10-01T10:00:00Z",
    "updatedAt": "2024-10-01T10:30:00Z",
    "resolvedAt": None,
    "closedAt": None,
    "slaMinutes": 240,
    "slaWarningPercent": 75,
    "satisfactionScore": None,
    "isEscalated": False,
    "escalationReason": None,
    "notes": [],
    "slaStatus": "YELLOW",
    "slaTimeRemaining": 45
}

STATS_RESPONSE_EXAMPLE = {
    "totalTickets": 5,
    "openTickets": 1,
    "inProgressTickets": 1,
    "resolvedTickets": 2,
    "closedTickets": 1,
    "overdueTickets": 1,
    "criticalTickets": 0,
    "slaStats": {"green": 3, "yellow": 1, "red": 1},
    "avgSatisfactionScore": 4.5,
    "resolutionRate": 60.0,
    "slaCompliance": 80.0
}


# ========== Dependencies ==========

def get_now() -> datetime:
    """Observation instant for the current request."""
    return datetime.now(timezone.utc)


async def get_ticket_service(request: Request) -> AsyncGenerator[TicketService, None]:
    """Get ticket service instance for the configured store."""
    policy_provider = request.app.state.sla_policy

    if settings.ticket_store == "database":
        async with get_session_context() as session:
            yield TicketService(
                SQLAlchemyTicketRepository(session),
                SQLAlchemyUserDirectory(session),
                policy_provider
            )
    else:
        yield TicketService(
            request.app.state.ticket_repository,
            request.app.state.user_directory,
            policy_provider
        )


def get_ticket_filter(
    ticket_status: Optional[str] = Query(None, alias="status", description="open, in_progress, resolved, closed"),
    priority: Optional[str] = Query(None, description="low, medium, high, urgent"),
    assigned_to_id: Optional[str] = Query(None, alias="assignedToId"),
    created_by_id: Optional[str] = Query(None, alias="createdById"),
    team_id: Optional[str] = Query(None, alias="teamId", description="Assignee's or creator's team"),
    country: Optional[str] = Query(None, description="Assignee's or creator's country"),
    category: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None, alias="startDate", description="ISO date, inclusive"),
    end_date: Optional[str] = Query(None, alias="endDate", description="ISO date, inclusive"),
    search: Optional[str] = Query(None, description="Title, description or email substring"),
    sla_status: Optional[str] = Query(None, alias="slaStatus", description="GREEN, YELLOW or RED"),
) -> TicketFilter:
    """Build a ticket filter from query parameters (taken as-is)."""
    return TicketFilter(
        status=ticket_status,
        priority=priority,
        assigned_to_id=assigned_to_id,
        created_by_id=created_by_id,
        team_id=team_id,
        country=country,
        category=category,
        start_date=start_date,
        end_date=end_date,
        search=search,
        sla_status=sla_status,
    )


def get_ticket_sort(
    sort_by: Optional[str] = Query(None, alias="sortBy", description="Field to order by (default createdAt)"),
    sort_order: Optional[str] = Query(None, alias="sortOrder", description="ASC or DESC (default DESC)"),
) -> TicketSort:
    return TicketSort.parse(sort_by, sort_order)


# ========== Route Handlers ==========

@router.get(
    "",
    response_model=List[TicketResponse],
    summary="List tickets",
    description="""
    List tickets with their SLA status.

    All filters are optional and combined with AND. Values that can't
    match (unknown status, unparseable date) yield an empty list.

    **SLA Status**:
    - `GREEN`: within budget, or ticket resolved/closed
    - `YELLOW`: warning threshold reached (`slaWarningPercent` of `slaMinutes`)
    - `RED`: SLA budget used up
    """,
    responses={
        200: {
            "description": "Matching tickets",
            "content": {"application/json": {"example": [TICKET_RESPONSE_EXAMPLE]}}
        }
    }
)
async def list_tickets(
    filters: TicketFilter = Depends(get_ticket_filter),
    sort: TicketSort = Depends(get_ticket_sort),
    now: datetime = Depends(get_now),
    service: TicketService = Depends(get_ticket_service)
):
    items = await service.list_tickets(filters, sort, now)
    return [TicketResponse.from_annotated(item) for item in items]


@router.get(
    "/stats",
    response_model=TicketStatsResponse,
    summary="Get ticket statistics",
    description="Counts, SLA histogram and rates over the tickets matching the filters.",
    responses={
        200: {
            "description": "Ticket statistics",
            "content": {"application/json": {"example": STATS_RESPONSE_EXAMPLE}}
        }
    }
)
async def get_ticket_stats(
    filters: TicketFilter = Depends(get_ticket_filter),
    now: datetime = Depends(get_now),
    service: TicketService = Depends(get_ticket_service)
):
    stats = await service.get_stats(filters, now)
    return TicketStatsResponse.from_domain(stats)


@router.get(
    "/overdue",
    response_model=List[TicketResponse],
    summary="List overdue tickets",
    description="RED tickets that are still open or in progress."
)
async def list_overdue_tickets(
    now: datetime = Depends(get_now),
    service: TicketService = Depends(get_ticket_service)
):
    items = await service.get_overdue_tickets(now)
    return [TicketResponse.from_annotated(item) for item in items]


@router.post(
    "/bulk-status",
    response_model=BulkUpdateResponse,
    summary="Change the status of several tickets"
)
async def bulk_update_status(
    request: BulkStatusUpdateDTO,
    now: datetime = Depends(get_now),
    service: TicketService = Depends(get_ticket_service)
):
    updated, errors = await service.bulk_update_status(
        request.ticket_ids, TicketStatus(request.status), now
    )
    return BulkUpdateResponse(
        tickets=[TicketResponse.from_annotated(item) for item in updated],
        updated=len(updated),
        failed=len(errors),
        errors=errors
    )


@router.post(
    "/bulk-update",
    response_model=BulkUpdateResponse,
    summary="Apply one update to several tickets",
    description="""
    Applies `updateData` (same fields as `PATCH /tickets/{id}`) to every
    ticket in `ticketIds`. Use it for bulk reassignment or priority and
    category changes. Missing tickets and refused status changes are
    reported in `errors`; an unknown `assignedToId` rejects the request.
    """
)
async def bulk_update_tickets(
    request: BulkUpdateDTO,
    now: datetime = Depends(get_now),
    service: TicketService = Depends(get_ticket_service)
):
    updated, errors = await service.bulk_update(request.ticket_ids, request.update_data, now)
    return BulkUpdateResponse(
        tickets=[TicketResponse.from_annotated(item) for item in updated],
        updated=len(updated),
        failed=len(errors),
        errors=errors
    )


@router.get(
    "/{ticket_id}",
    response_model=TicketResponse,
    summary="Get ticket",
    responses={
        200: {
            "description": "Ticket with SLA status",
            "content": {"application/json": {"example": TICKET_RESPONSE_EXAMPLE}}
        },
        404: {"description": "Ticket not found"}
    }
)
async def get_ticket(
    ticket_id: str,
    now: datetime = Depends(get_now),
    service: TicketService = Depends(get_ticket_service)
):
    item = await service.get_ticket(ticket_id, now)
    return TicketResponse.from_annotated(item)


@router.post(
    "",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create ticket",
    description="""
    Create a ticket.

    `slaMinutes` / `slaWarningPercent` default to the SLA policy
    (per-priority budget if configured, otherwise 240 minutes / 75%).
    """
)
async def create_ticket(
    request: TicketCreateDTO,
    now: datetime = Depends(get_now),
    service: TicketService = Depends(get_ticket_service)
):
    item = await service.create_ticket(request, now)
    return TicketResponse.from_annotated(item)


@router.patch(
    "/{ticket_id}",
    response_model=TicketResponse,
    summary="Update ticket",
    description="Status may only move forward: open → in_progress → resolved → closed.",
    responses={
        404: {"description": "Ticket not found"},
        409: {"description": "Status would move backwards"}
    }
)
async def update_ticket(
    ticket_id: str,
    request: TicketUpdateDTO,
    now: datetime = Depends(get_now),
    service: TicketService = Depends(get_ticket_service)
):
    item = await service.update_ticket(ticket_id, request, now)
    return TicketResponse.from_annotated(item)


@router.delete(
    "/{ticket_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete ticket",
    responses={404: {"description": "Ticket not found"}}
)
async def delete_ticket(
    ticket_id: str,
    service: TicketService = Depends(get_ticket_service)
):
    await service.delete_ticket(ticket_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch(
    "/{ticket_id}/assign",
    response_model=TicketResponse,
    summary="Assign ticket"
)
async def assign_ticket(
    ticket_id: str,
    request: TicketAssignDTO,
    now: datetime = Depends(get_now),
    service: TicketService = Depends(get_ticket_service)
):
    item = await service.assign_ticket(ticket_id, request.assigned_to_id, now)
    return TicketResponse.from_annotated(item)


@router.patch(
    "/{ticket_id}/escalate",
    response_model=TicketResponse,
    summary="Escalate ticket",
    description="Marks the ticket escalated and raises its priority to at least `high`."
)
async def escalate_ticket(
    ticket_id: str,
    request: TicketEscalateDTO,
    now: datetime = Depends(get_now),
    service: TicketService = Depends(get_ticket_service)
):
    item = await service.escalate_ticket(ticket_id, request.reason, now)
    return TicketResponse.from_annotated(item)


@router.post(
    "/{ticket_id}/notes",
    response_model=TicketResponse,
    summary="Add note to ticket"
)
async def add_ticket_note(
    ticket_id: str,
    request: TicketNoteDTO,
    now: datetime = Depends(get_now),
    service: TicketService = Depends(get_ticket_service)
):
    item = await service.add_note(ticket_id, request.note, now)
    return TicketResponse.from_annotated(item)


# Export router for inclusion in main app
tickets_router = router
