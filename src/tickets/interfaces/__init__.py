"""
Ticket Interfaces Layer
=======================

Interface adapters (controllers) for the ticket module.

Contains:
- Controllers: FastAPI route handlers

This is the outermost layer - handles HTTP requests/responses and
delegates to application services.
"""

from src.tickets.interfaces.controllers import (
    tickets_router,
    get_now,
    get_ticket_service,
)

__all__ = ["tickets_router", "get_now", "get_ticket_service"]
