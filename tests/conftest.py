# tests/conftest.py
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from src.main import app
from src.tickets.application import TicketService
from src.tickets.domain import Ticket, UserProfile
from src.tickets.infrastructure import (
    InMemoryTicketRepository,
    InMemoryUserDirectory,
    StaticSLAPolicyProvider,
)
from src.tickets.interfaces import get_now, get_ticket_service

NOW = datetime(2024, 10, 1, 12, 0, tzinfo=timezone.utc)


def make_ticket(minutes_ago: float = 0, **overrides) -> Ticket:
    fields = {
        "title": "Printer offline",
        "description": "Third floor printer does not respond",
        "created_by_id": "u-alice",
        "created_at": NOW - timedelta(minutes=minutes_ago),
    }
    fields.update(overrides)
    return Ticket(**fields)


@pytest.fixture
def profiles():
    return [
        UserProfile(id="u-alice", email="alice@acme.io", country="US", team_id="t-support"),
        UserProfile(id="u-bob", email="bob@acme.io", country="CA", team_id="t-product"),
        UserProfile(id="u-carol", email="carol@acme.io", country="UK", team_id="t-support"),
    ]


@pytest.fixture
def directory(profiles):
    return {profile.id: profile for profile in profiles}


@pytest.fixture
def ticket_repository():
    return InMemoryTicketRepository()


@pytest.fixture
def user_directory(profiles):
    return InMemoryUserDirectory(profiles)


@pytest.fixture
def service(ticket_repository, user_directory):
    return TicketService(ticket_repository, user_directory, StaticSLAPolicyProvider())


@pytest.fixture
def client(service):
    app.dependency_overrides[get_ticket_service] = lambda: service
    app.dependency_overrides[get_now] = lambda: NOW
    yield TestClient(app)
    app.dependency_overrides.clear()
