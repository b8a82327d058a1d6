"""Multi-tenant kanban board service."""

__version__ = "0.1.0"
