"""
Ticket Application DTOs
========================

Data Transfer Objects for the ticket API layer.

These Pydantic models handle serialization/deserialization and validation
for API requests and responses. Field names go over the wire in camelCase
(``slaStatus``, ``slaTimeRemaining``, ...) to match existing consumers.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.tickets.domain import AnnotatedTicket, TicketStats


# ========== Type Aliases for Literals ==========
TicketStatusStr = Literal["open", "in_progress", "resolved", "closed"]
TicketPriorityStr = Literal["low", "medium", "high", "urgent"]
SLAStatusStr = Literal["GREEN", "YELLOW", "RED"]


class CamelModel(BaseModel):
    """Base model serializing to camelCase and accepting either case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ========== Request DTOs ==========

class TicketCreateDTO(CamelModel):
    """DTO for creating a single ticket."""
    title: str = Field(..., min_length=1, description="Ticket title")
    description: str = Field(default="", description="Ticket description")
    status: TicketStatusStr = Field(default="open", description="Ticket status")
    priority: TicketPriorityStr = Field(default="medium", description="Ticket priority")
    category: Optional[str] = Field(None, description="Free-form category")
    created_by_id: str = Field(..., min_length=1, description="Creating user")
    assigned_to_id: Optional[str] = Field(None, description="Assigned user")
    customer_email: Optional[str] = Field(None, description="Customer contact email")
    sla_minutes: Optional[int] = Field(None, gt=0, description="SLA budget in minutes")
    sla_warning_percent: Optional[int] = Field(
        None, ge=0, le=100, description="Percent of the budget at which the ticket turns YELLOW"
    )
    created_at: Optional[datetime] = Field(
        None, description="Creation timestamp (defaults to the request time)"
    )


class TicketUpdateDTO(CamelModel):
    """DTO for updating a ticket. Unset fields are left untouched."""
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    status: Optional[TicketStatusStr] = None
    priority: Optional[TicketPriorityStr] = None
    category: Optional[str] = None
    assigned_to_id: Optional[str] = None
    customer_email: Optional[str] = None
    sla_minutes: Optional[int] = Field(None, gt=0)
    sla_warning_percent: Optional[int] = Field(None, ge=0, le=100)
    satisfaction_score: Optional[float] = Field(None, ge=1, le=5)


class TicketAssignDTO(CamelModel):
    """DTO for (re)assigning a ticket."""
    assigned_to_id: Optional[str] = Field(..., description="User id, null to unassign")


class TicketEscalateDTO(CamelModel):
    """DTO for escalating a ticket."""
    reason: str = Field(..., min_length=1, description="Why the ticket is escalated")


class TicketNoteDTO(CamelModel):
    """DTO for appending a note."""
    note: str = Field(..., min_length=1)


class BulkStatusUpdateDTO(CamelModel):
    """DTO for moving several tickets to one status."""
    ticket_ids: List[str] = Field(..., min_length=1)
    status: TicketStatusStr


class BulkUpdateDTO(CamelModel):
    """DTO for applying one update to several tickets."""
    ticket_ids: List[str] = Field(..., min_length=1)
    update_data: TicketUpdateDTO


# ========== Response DTOs ==========

class TicketResponse(CamelModel):
    """Ticket with its derived SLA fields."""
    id: str
    title: str
    description: str
    status: TicketStatusStr
    priority: TicketPriorityStr
    category: Optional[str] = None
    created_by_id: str
    assigned_to_id: Optional[str] = None
    customer_email: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    sla_minutes: int
    sla_warning_percent: int
    satisfaction_score: Optional[float] = None
    is_escalated: bool = False
    escalation_reason: Optional[str] = None
    notes: List[str] = Field(default_factory=list)

    # Derived at read time
    sla_status: SLAStatusStr = Field(..., description="GREEN, YELLOW or RED")
    sla_time_remaining: int = Field(..., description="Minutes left on the SLA budget")

    @classmethod
    def from_annotated(cls, item: AnnotatedTicket) -> "TicketResponse":
        """Create from an annotated domain ticket."""
        ticket = item.ticket
        return cls(
            id=ticket.id,
            title=ticket.title,
            description=ticket.description,
            status=ticket.status.value,
            priority=ticket.priority.value,
            category=ticket.category,
            created_by_id=ticket.created_by_id,
            assigned_to_id=ticket.assigned_to_id,
            customer_email=ticket.customer_email,
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
            resolved_at=ticket.resolved_at,
            closed_at=ticket.closed_at,
            sla_minutes=ticket.sla_minutes,
            sla_warning_percent=ticket.sla_warning_percent,
            satisfaction_score=ticket.satisfaction_score,
            is_escalated=ticket.is_escalated,
            escalation_reason=ticket.escalation_reason,
            notes=list(ticket.notes),
            sla_status=item.sla_status.value,
            sla_time_remaining=item.sla_time_remaining,
        )


class SLAStatsResponse(BaseModel):
    """SLA histogram."""
    green: int
    yellow: int
    red: int


class TicketStatsResponse(CamelModel):
    """Summary statistics for the dashboard."""
    total_tickets: int
    open_tickets: int
    in_progress_tickets: int
    resolved_tickets: int
    closed_tickets: int
    overdue_tickets: int
    critical_tickets: int = Field(..., description="Urgent tickets not yet resolved")
    sla_stats: SLAStatsResponse
    avg_satisfaction_score: float
    resolution_rate: float = Field(..., description="Percentage of tickets resolved or closed")
    sla_compliance: float = Field(..., description="Percentage of tickets not overdue")

    @classmethod
    def from_domain(cls, stats: TicketStats) -> "TicketStatsResponse":
        """Create from domain stats."""
        return cls(
            total_tickets=stats.total,
            open_tickets=stats.open,
            in_progress_tickets=stats.in_progress,
            resolved_tickets=stats.resolved,
            closed_tickets=stats.closed,
            overdue_tickets=stats.overdue,
            critical_tickets=stats.critical_open,
            sla_stats=SLAStatsResponse(
                green=stats.sla.green,
                yellow=stats.sla.yellow,
                red=stats.sla.red,
            ),
            avg_satisfaction_score=stats.avg_satisfaction_score,
            resolution_rate=stats.resolution_rate,
            sla_compliance=stats.sla_compliance,
        )


class BulkUpdateResponse(CamelModel):
    """Response model for bulk operations."""
    tickets: List[TicketResponse] = Field(default_factory=list, description="Updated tickets")
    updated: int = Field(..., description="Number of tickets updated")
    failed: int = Field(default=0, description="Number of tickets not updated")
    errors: List[str] = Field(default_factory=list, description="Error messages")
