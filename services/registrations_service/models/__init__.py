"""Registrations Service models package."""

from services.registrations_service.models.catalog import (
    Category,
    Course,
    Group,
    GymClass,
    Subscription,
    SubscriptionGroupSession,
)
from services.registrations_service.models.core import (
    Checkin,
    Registration,
    SessionLedgerEntry,
)
from services.registrations_service.models.enums import (
    LIVE_REGISTRATION_STATUSES,
    CourseStatus,
    LedgerDirection,
    LedgerReason,
    RegistrationStatus,
    SubscriptionStatus,
)

__all__ = [
    "Category",
    "Checkin",
    "Course",
    "CourseStatus",
    "Group",
    "GymClass",
    "LIVE_REGISTRATION_STATUSES",
    "LedgerDirection",
    "LedgerReason",
    "Registration",
    "RegistrationStatus",
    "SessionLedgerEntry",
    "Subscription",
    "SubscriptionGroupSession",
    "SubscriptionStatus",
]
