"""
Ticket Domain Layer
===================

Domain layer for the ticket tracking module.

Contains:
- Entities: Core business objects with identity (Ticket, UserProfile)
- Value Objects: Immutable objects defined by attributes (SLASnapshot,
  TicketFilter, TicketSort, TicketStats, SLAPolicy)
- Domain Services: Stateless business logic (SLACalculator,
  TicketQueryEngine, StatsAggregator)

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from src.tickets.domain.entities import Ticket, UserProfile
from src.tickets.domain.value_objects import (
    SLACalculator,
    SLASnapshot,
    AnnotatedTicket,
    TicketFilter,
    TicketSort,
    SLAHistogram,
    TicketStats,
    SLAPolicy,
)
from src.tickets.domain.services import (
    TicketQueryEngine,
    StatsAggregator,
    compute_sla_status,
    query_tickets,
    aggregate_stats,
)

__all__ = [
    # Entities
    "Ticket",
    "UserProfile",
    # Value Objects
    "SLASnapshot",
    "AnnotatedTicket",
    "TicketFilter",
    "TicketSort",
    "SLAHistogram",
    "TicketStats",
    "SLAPolicy",
    # Domain Services
    "SLACalculator",
    "TicketQueryEngine",
    "StatsAggregator",
    "compute_sla_status",
    "query_tickets",
    "aggregate_stats",
]
