"""
Shared Kernel Module
====================

Shared infrastructure used across bounded contexts (currently the
ticket module).

Architecture Pattern: Modular Monolith
- Each module (tickets) is a bounded context
- Shared kernel contains only generic infrastructure

DO NOT add ticket business logic to the shared kernel.
"""

__version__ = "1.0.0"
