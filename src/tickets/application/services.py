"""
Ticket Application Services
============================

Application services orchestrate business logic and coordinate between
domain entities and repositories.

Following SOLID principles:
- Single Responsibility: Each service has one clear purpose
- Dependency Inversion: Depend on abstractions (repositories), not concrete implementations

The observation instant ``now`` is always supplied by the caller, once per
request, so that every SLA field in a response is computed against the
same instant.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from src.config import TicketStatus, TicketPriority, SLAStatus, ACTIVE_STATUSES
from src.core import ResourceNotFoundException, DomainException, ValidationException
from src.shared.infrastructure.logging import get_logger, log_latency
from src.tickets.application.dto import TicketCreateDTO, TicketUpdateDTO
from src.tickets.domain import (
    Ticket, UserProfile, AnnotatedTicket,
    TicketFilter, TicketSort, TicketStats, SLAPolicy,
    TicketQueryEngine, StatsAggregator,
)
from src.tickets.domain.entities import as_utc

logger = get_logger(__name__)

# Explicit nulls on these are ignored rather than stored
_REQUIRED_FIELDS = {"title", "description", "priority", "sla_minutes", "sla_warning_percent"}


# ========== Repository Interfaces (Dependency Inversion) ==========

class ITicketRepository(ABC):
    """Interface for ticket data access."""

    @abstractmethod
    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        """Get ticket by ID."""

    @abstractmethod
    async def list_all(self) -> List[Ticket]:
        """Get every ticket."""

    @abstractmethod
    async def add(self, ticket: Ticket) -> Ticket:
        """Persist a new ticket."""

    @abstractmethod
    async def save(self, ticket: Ticket) -> Ticket:
        """Persist changes to an existing ticket."""

    @abstractmethod
    async def delete(self, ticket_id: str) -> bool:
        """Delete a ticket; False if it did not exist."""


class IUserDirectory(ABC):
    """Interface for user/team lookups."""

    @abstractmethod
    async def get_profiles(self, user_ids: Iterable[str]) -> Dict[str, UserProfile]:
        """Profiles for the given user ids (unknown ids are omitted)."""


class ISLAPolicyProvider(ABC):
    """Interface for SLA policy access."""

    @abstractmethod
    def get_policy(self) -> SLAPolicy:
        """Get current SLA policy."""


# ========== Application Services ==========

class TicketService:
    """
    Service for ticket queries, statistics and lifecycle changes.

    Coordinates between domain logic and data access.
    """

    def __init__(
        self,
        ticket_repository: ITicketRepository,
        user_directory: IUserDirectory,
        policy_provider: ISLAPolicyProvider
    ):
        self._ticket_repo = ticket_repository
        self._directory = user_directory
        self._policy_provider = policy_provider

    # ========== Queries ==========

    async def list_tickets(
        self,
        filters: Optional[TicketFilter],
        sort: Optional[TicketSort],
        now: datetime
    ) -> List[AnnotatedTicket]:
        """
        List tickets matching ``filters``, annotated with SLA fields.

        Args:
            filters: Conjunctive filters (None for all tickets)
            sort: Result ordering (None for newest first)
            now: Observation instant

        Returns:
            List of annotated tickets
        """
        tickets = await self._ticket_repo.list_all()
        engine = TicketQueryEngine(await self._directory_for(tickets))

        with log_latency(logger, "ticket_query", ticket_count=len(tickets)):
            return engine.query(tickets, filters, sort, now)

    async def get_ticket(self, ticket_id: str, now: datetime) -> AnnotatedTicket:
        """Get one ticket, raising if it does not exist."""
        ticket = await self._require(ticket_id)
        return AnnotatedTicket.from_ticket(ticket, now)

    async def get_stats(
        self,
        filters: Optional[TicketFilter],
        now: datetime
    ) -> TicketStats:
        """Aggregate statistics over the tickets matching ``filters``."""
        matching = await self.list_tickets(filters, None, now)

        with log_latency(logger, "ticket_stats", ticket_count=len(matching)):
            return StatsAggregator.aggregate([item.ticket for item in matching], now)

    async def get_overdue_tickets(self, now: datetime) -> List[AnnotatedTicket]:
        """RED tickets still open or in progress."""
        items = await self.list_tickets(
            TicketFilter(sla_status=SLAStatus.RED), None, now
        )
        return [item for item in items if item.ticket.status in ACTIVE_STATUSES]

    async def get_tickets_by_user(self, user_id: str, now: datetime) -> List[AnnotatedTicket]:
        """Tickets assigned to a user."""
        return await self.list_tickets(TicketFilter(assigned_to_id=user_id), None, now)

    async def get_tickets_by_team(self, team_id: str, now: datetime) -> List[AnnotatedTicket]:
        """Tickets whose assignee or creator is on a team."""
        return await self.list_tickets(TicketFilter(team_id=team_id), None, now)

    # ========== Commands ==========

    async def create_ticket(self, dto: TicketCreateDTO, now: datetime) -> AnnotatedTicket:
        """
        Create a ticket.

        SLA settings not given in the request come from the SLA policy.
        """
        if dto.created_at is not None and as_utc(dto.created_at) > as_utc(now):
            raise ValidationException(
                "createdAt cannot be in the future",
                {"created_at": dto.created_at.isoformat(), "now": as_utc(now).isoformat()}
            )
        await self._require_known_users(dto.created_by_id, dto.assigned_to_id)

        policy = self._policy_provider.get_policy()
        priority = TicketPriority(dto.priority)

        ticket = Ticket(
            title=dto.title,
            description=dto.description,
            created_by_id=dto.created_by_id,
            created_at=dto.created_at or now,
            priority=priority,
            category=dto.category,
            assigned_to_id=dto.assigned_to_id,
            customer_email=dto.customer_email,
            sla_minutes=dto.sla_minutes or policy.get_sla_minutes(priority),
            sla_warning_percent=(
                dto.sla_warning_percent
                if dto.sla_warning_percent is not None
                else policy.get_warning_percent()
            ),
        )
        # Tickets may be imported already in progress or resolved
        ticket.transition_to(TicketStatus(dto.status), ticket.created_at)

        ticket = await self._ticket_repo.add(ticket)
        logger.info(
            "Ticket created",
            extra={
                "ticket_id": ticket.id,
                "priority": ticket.priority.value,
                "sla_minutes": ticket.sla_minutes,
            }
        )
        return AnnotatedTicket.from_ticket(ticket, now)

    async def update_ticket(
        self,
        ticket_id: str,
        dto: TicketUpdateDTO,
        now: datetime
    ) -> AnnotatedTicket:
        """Apply the fields set on ``dto``; status changes go through the lifecycle."""
        ticket = await self._require(ticket_id)
        await self._require_known_users(dto.assigned_to_id)

        ticket = await self._apply_update(ticket, dto, now)
        logger.info(
            "Ticket updated",
            extra={"ticket_id": ticket.id, "fields": sorted(dto.model_fields_set)}
        )
        return AnnotatedTicket.from_ticket(ticket, now)

    async def delete_ticket(self, ticket_id: str) -> None:
        """Delete a ticket, raising if it does not exist."""
        if not await self._ticket_repo.delete(ticket_id):
            raise ResourceNotFoundException("Ticket", ticket_id)
        logger.info("Ticket deleted", extra={"ticket_id": ticket_id})

    async def assign_ticket(
        self,
        ticket_id: str,
        assigned_to_id: Optional[str],
        now: datetime
    ) -> AnnotatedTicket:
        """Reassign a ticket."""
        ticket = await self._require(ticket_id)
        await self._require_known_users(assigned_to_id)
        ticket.assign(assigned_to_id, now)
        ticket = await self._ticket_repo.save(ticket)
        return AnnotatedTicket.from_ticket(ticket, now)

    async def escalate_ticket(
        self,
        ticket_id: str,
        reason: str,
        now: datetime
    ) -> AnnotatedTicket:
        """Escalate a ticket."""
        ticket = await self._require(ticket_id)
        ticket.escalate(reason, now)
        ticket = await self._ticket_repo.save(ticket)
        logger.warning(
            "Ticket escalated",
            extra={"ticket_id": ticket.id, "reason": reason}
        )
        return AnnotatedTicket.from_ticket(ticket, now)

    async def add_note(self, ticket_id: str, note: str, now: datetime) -> AnnotatedTicket:
        """Append a note to a ticket."""
        ticket = await self._require(ticket_id)
        ticket.add_note(note, now)
        ticket = await self._ticket_repo.save(ticket)
        return AnnotatedTicket.from_ticket(ticket, now)

    async def bulk_update(
        self,
        ticket_ids: List[str],
        dto: TicketUpdateDTO,
        now: datetime
    ) -> Tuple[List[AnnotatedTicket], List[str]]:
        """
        Apply the same update to several tickets.

        Tickets that are missing or refuse the change are skipped and
        reported; the rest are updated.

        Raises:
            ValidationException: If the new assignee is unknown

        Returns:
            Tuple of (updated tickets, error messages for the ones skipped)
        """
        await self._require_known_users(dto.assigned_to_id)

        updated = []
        errors = []

        for ticket_id in ticket_ids:
            ticket = await self._ticket_repo.get_by_id(ticket_id)
            if ticket is None:
                errors.append(f"{ticket_id}: not found")
                continue
            try:
                ticket = await self._apply_update(ticket, dto, now)
            except DomainException as e:
                errors.append(f"{ticket_id}: {e.message}")
                continue
            updated.append(AnnotatedTicket.from_ticket(ticket, now))

        logger.info(
            "Bulk update complete",
            extra={
                "fields": sorted(dto.model_fields_set),
                "tickets_updated": len(updated),
                "tickets_failed": len(errors),
            }
        )
        return updated, errors

    async def bulk_update_status(
        self,
        ticket_ids: List[str],
        status: TicketStatus,
        now: datetime
    ) -> Tuple[List[AnnotatedTicket], List[str]]:
        """Move several tickets to ``status``."""
        dto = TicketUpdateDTO(status=TicketStatus(status).value)
        return await self.bulk_update(ticket_ids, dto, now)

    # ========== Helpers ==========

    async def _apply_update(
        self,
        ticket: Ticket,
        dto: TicketUpdateDTO,
        now: datetime
    ) -> Ticket:
        changes = dto.model_dump(exclude_unset=True)

        status = changes.pop("status", None)
        if status is not None:
            # Refuse the whole change before touching any field
            ticket.transition_to(TicketStatus(status), now)

        for name, value in changes.items():
            if value is None and name in _REQUIRED_FIELDS:
                continue
            if name == "priority":
                value = TicketPriority(value)
            setattr(ticket, name, value)
        ticket.updated_at = as_utc(now)

        return await self._ticket_repo.save(ticket)

    async def _require_known_users(self, *user_ids: Optional[str]) -> None:
        """Raise if any given user id is missing from the directory."""
        wanted = {user_id for user_id in user_ids if user_id}
        if not wanted:
            return

        known = await self._directory.get_profiles(wanted)
        unknown = sorted(wanted - set(known))
        if unknown:
            raise ValidationException(
                f"Unknown user id(s): {', '.join(unknown)}",
                {"user_ids": unknown}
            )

    async def _require(self, ticket_id: str) -> Ticket:
        ticket = await self._ticket_repo.get_by_id(ticket_id)
        if ticket is None:
            raise ResourceNotFoundException("Ticket", ticket_id)
        return ticket

    async def _directory_for(self, tickets: List[Ticket]) -> Dict[str, UserProfile]:
        """Resolve every user referenced by ``tickets`` in one lookup."""
        user_ids = set()
        for ticket in tickets:
            user_ids.add(ticket.created_by_id)
            if ticket.assigned_to_id:
                user_ids.add(ticket.assigned_to_id)
        return await self._directory.get_profiles(user_ids)
