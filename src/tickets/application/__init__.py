"""
Ticket Application Layer
=========================

Application layer for the ticket tracking module.

Contains:
- Services: Orchestrate business logic and coordinate with repositories
- DTOs: Data transfer objects for API serialization

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from src.tickets.application.dto import (
    TicketCreateDTO,
    TicketUpdateDTO,
    TicketAssignDTO,
    TicketEscalateDTO,
    TicketNoteDTO,
    BulkStatusUpdateDTO,
    BulkUpdateDTO,
    TicketResponse,
    SLAStatsResponse,
    TicketStatsResponse,
    BulkUpdateResponse,
)
from src.tickets.application.services import (
    TicketService,
    ITicketRepository,
    IUserDirectory,
    ISLAPolicyProvider,
)

__all__ = [
    # DTOs
    "TicketCreateDTO",
    "TicketUpdateDTO",
    "TicketAssignDTO",
    "TicketEscalateDTO",
    "TicketNoteDTO",
    "BulkStatusUpdateDTO",
    "BulkUpdateDTO",
    "TicketResponse",
    "SLAStatsResponse",
    "TicketStatsResponse",
    "BulkUpdateResponse",
    # Services
    "TicketService",
    # Repository Interfaces
    "ITicketRepository",
    "IUserDirectory",
    "ISLAPolicyProvider",
]
