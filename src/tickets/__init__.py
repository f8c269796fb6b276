"""
Ticket Tracking Module
======================

Bounded Context for IT tickets and their service level agreements.

Responsibilities:
- Derive SLA status (GREEN/YELLOW/RED) and remaining time per ticket
- Filter, sort and annotate ticket listings
- Aggregate ticket statistics for the admin dashboard
- Ticket lifecycle: status transitions, assignment, escalation, notes
"""

__version__ = "1.0.0"
