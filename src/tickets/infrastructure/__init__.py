"""
Ticket Infrastructure Layer
============================

Infrastructure implementations for the ticket module:
- Models: SQLAlchemy ORM models
- Repositories: Data access layer (SQLAlchemy and in-memory)
- External: SLA policy file loader and watcher, user directory file loader
"""

from src.tickets.infrastructure.models import TicketModel, UserModel, TeamModel
from src.tickets.infrastructure.repositories import (
    SQLAlchemyTicketRepository,
    SQLAlchemyUserDirectory,
    InMemoryTicketRepository,
    InMemoryUserDirectory,
    StaticSLAPolicyProvider,
)
from src.tickets.infrastructure.external import SLAPolicyManager, load_user_profiles

__all__ = [
    "TicketModel",
    "UserModel",
    "TeamModel",
    "SQLAlchemyTicketRepository",
    "SQLAlchemyUserDirectory",
    "InMemoryTicketRepository",
    "InMemoryUserDirectory",
    "StaticSLAPolicyProvider",
    "SLAPolicyManager",
    "load_user_profiles",
]
