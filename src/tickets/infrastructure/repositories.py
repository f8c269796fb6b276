"""
Ticket Infrastructure Repositories
====================================

Concrete implementations of repository interfaces.

- SQLAlchemy: async PostgreSQL-backed ticket store and user directory
- In-memory: dictionary-backed store for development and tests

This layer contains the data access logic - how we store and retrieve
entities.
"""

import copy
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core import RepositoryException
from src.tickets.application import (
    ITicketRepository, IUserDirectory, ISLAPolicyProvider,
)
from src.tickets.domain import Ticket, UserProfile, SLAPolicy
from src.tickets.infrastructure.models import TicketModel, UserModel


# ========== Mapping ==========

def ticket_to_domain(model: TicketModel) -> Ticket:
    """Convert ORM model to domain entity."""
    return Ticket(
        id=model.id,
        title=model.title,
        description=model.description,
        status=model.status,
        priority=model.priority,
        category=model.category,
        created_by_id=model.created_by_id,
        assigned_to_id=model.assigned_to_id,
        customer_email=model.customer_email,
        sla_minutes=model.sla_minutes,
        sla_warning_percent=model.sla_warning_percent,
        created_at=model.created_at,
        updated_at=model.updated_at,
        resolved_at=model.resolved_at,
        closed_at=model.closed_at,
        satisfaction_score=model.satisfaction_score,
        is_escalated=model.is_escalated,
        escalation_reason=model.escalation_reason,
        notes=list(model.notes or []),
    )


def _copy_onto(model: TicketModel, ticket: Ticket) -> TicketModel:
    model.title = ticket.title
    model.description = ticket.description
    model.status = ticket.status.value
    model.priority = ticket.priority.value
    model.category = ticket.category
    model.created_by_id = ticket.created_by_id
    model.assigned_to_id = ticket.assigned_to_id
    model.customer_email = ticket.customer_email
    model.sla_minutes = ticket.sla_minutes
    model.sla_warning_percent = ticket.sla_warning_percent
    model.created_at = ticket.created_at
    model.updated_at = ticket.updated_at
    model.resolved_at = ticket.resolved_at
    model.closed_at = ticket.closed_at
    model.satisfaction_score = ticket.satisfaction_score
    model.is_escalated = ticket.is_escalated
    model.escalation_reason = ticket.escalation_reason
    model.notes = list(ticket.notes)
    return model


# ========== SQLAlchemy ==========

class SQLAlchemyTicketRepository(ITicketRepository):
    """
    SQLAlchemy implementation of ticket repository.

    Handles persistence of Ticket entities using async SQLAlchemy.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        """Get ticket by ID."""
        model = await self._session.get(TicketModel, ticket_id)
        return ticket_to_domain(model) if model else None

    async def list_all(self) -> List[Ticket]:
        """Get every ticket."""
        result = await self._session.execute(select(TicketModel))
        return [ticket_to_domain(model) for model in result.scalars().all()]

    async def add(self, ticket: Ticket) -> Ticket:
        """Create new ticket."""
        model = _copy_onto(TicketModel(id=ticket.id), ticket)
        self._session.add(model)
        await self._session.flush()
        return ticket_to_domain(model)

    async def save(self, ticket: Ticket) -> Ticket:
        """Update existing ticket."""
        model = await self._session.get(TicketModel, ticket.id)
        if not model:
            raise RepositoryException(f"Ticket {ticket.id} not found")

        _copy_onto(model, ticket)
        await self._session.flush()
        return ticket_to_domain(model)

    async def delete(self, ticket_id: str) -> bool:
        """Delete ticket."""
        model = await self._session.get(TicketModel, ticket_id)
        if not model:
            return False

        await self._session.delete(model)
        await self._session.flush()
        return True


class SQLAlchemyUserDirectory(IUserDirectory):
    """User directory backed by the 'users' table."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_profiles(self, user_ids: Iterable[str]) -> Dict[str, UserProfile]:
        """Profiles for the given user ids."""
        ids = [user_id for user_id in user_ids if user_id]
        if not ids:
            return {}

        stmt = select(UserModel).where(UserModel.id.in_(ids))
        result = await self._session.execute(stmt)
        return {
            model.id: UserProfile(
                id=model.id,
                email=model.email,
                country=model.country,
                team_id=model.team_id,
            )
            for model in result.scalars().all()
        }


# ========== In-memory ==========

class InMemoryTicketRepository(ITicketRepository):
    """
    Dictionary-backed ticket store.

    Returns copies so that callers only change stored state through ``save``.
    """

    def __init__(self, tickets: Optional[Iterable[Ticket]] = None):
        self._tickets: Dict[str, Ticket] = {}
        for ticket in tickets or []:
            self._tickets[ticket.id] = copy.deepcopy(ticket)

    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        ticket = self._tickets.get(ticket_id)
        return copy.deepcopy(ticket) if ticket else None

    async def list_all(self) -> List[Ticket]:
        return [copy.deepcopy(ticket) for ticket in self._tickets.values()]

    async def add(self, ticket: Ticket) -> Ticket:
        if ticket.id in self._tickets:
            raise RepositoryException(f"Ticket {ticket.id} already exists")
        self._tickets[ticket.id] = copy.deepcopy(ticket)
        return copy.deepcopy(ticket)

    async def save(self, ticket: Ticket) -> Ticket:
        if ticket.id not in self._tickets:
            raise RepositoryException(f"Ticket {ticket.id} not found")
        self._tickets[ticket.id] = copy.deepcopy(ticket)
        return copy.deepcopy(ticket)

    async def delete(self, ticket_id: str) -> bool:
        return self._tickets.pop(ticket_id, None) is not None


class InMemoryUserDirectory(IUserDirectory):
    """Directory over a fixed set of profiles."""

    def __init__(self, profiles: Optional[Iterable[UserProfile]] = None):
        self._profiles = {profile.id: profile for profile in profiles or []}

    def register(self, profile: UserProfile) -> None:
        self._profiles[profile.id] = profile

    async def get_profiles(self, user_ids: Iterable[str]) -> Dict[str, UserProfile]:
        return {
            user_id: self._profiles[user_id]
            for user_id in user_ids
            if user_id in self._profiles
        }


class StaticSLAPolicyProvider(ISLAPolicyProvider):
    """SLA policy that never changes."""

    def __init__(self, policy: Optional[SLAPolicy] = None):
        self._policy = policy or SLAPolicy()

    def get_policy(self) -> SLAPolicy:
        return self._policy
