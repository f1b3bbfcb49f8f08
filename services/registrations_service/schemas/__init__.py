"""Registrations Service schemas package."""

from services.registrations_service.schemas.main import (
    AdminRegistrationCreate,
    BulkRegistrationCreate,
    BulkRegistrationResponse,
    CancellationResponse,
    CheckinResponse,
    CheckoutResponse,
    MemberSessionsResponse,
    RegistrationCancel,
    RegistrationCreate,
    RegistrationListResponse,
    RegistrationResponse,
    SweepResponse,
)

__all__ = [
    "AdminRegistrationCreate",
    "BulkRegistrationCreate",
    "BulkRegistrationResponse",
    "CancellationResponse",
    "CheckinResponse",
    "CheckoutResponse",
    "MemberSessionsResponse",
    "RegistrationCancel",
    "RegistrationCreate",
    "RegistrationListResponse",
    "RegistrationResponse",
    "SweepResponse",
]
