"""Public exports for registrations background tasks."""

from services.registrations_service.tasks.absence import mark_absent_registrations

__all__ = [
    "mark_absent_registrations",
]
