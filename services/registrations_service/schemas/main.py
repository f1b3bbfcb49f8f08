import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from services.registrations_service.models.enums import RegistrationStatus


class RegistrationCreate(BaseModel):
    course_id: uuid.UUID


class AdminRegistrationCreate(RegistrationCreate):
    member_id: uuid.UUID
    force: bool = False  # Skip the schedule-overlap check
    notes: Optional[str] = Field(None, max_length=500)


class BulkRegistrationCreate(RegistrationCreate):
    member_ids: List[uuid.UUID] = Field(..., min_length=1)
    force: bool = False
    notes: Optional[str] = Field(None, max_length=500)


class RegistrationCancel(BaseModel):
    # Admin only: None applies the 24h policy, True/False overrides it
    force_refund: Optional[bool] = None


class RegistrationResponse(BaseModel):
    id: uuid.UUID
    member_id: uuid.UUID
    course_id: uuid.UUID
    subscription_id: uuid.UUID
    group_id: uuid.UUID
    status: RegistrationStatus
    qr_code: str
    notes: Optional[str] = None
    registration_date: datetime

    model_config = ConfigDict(from_attributes=True)


class RegistrationListResponse(BaseModel):
    items: List[RegistrationResponse]
    total: int


class BulkRegistrationResponse(BaseModel):
    registrations: List[RegistrationResponse]
    skipped_member_ids: List[uuid.UUID]


class CancellationResponse(BaseModel):
    registration: RegistrationResponse
    refunded: bool
    is_within_refund_window: bool
    sessions_credited: int
    forced: bool = False

    model_config = ConfigDict(from_attributes=True)


class CheckinResponse(BaseModel):
    id: uuid.UUID
    registration_id: uuid.UUID
    member_id: uuid.UUID
    checkin_time: datetime
    session_consumed: bool

    model_config = ConfigDict(from_attributes=True)


class CheckoutResponse(BaseModel):
    registration_id: uuid.UUID
    removed_checkin_id: uuid.UUID
    new_status: RegistrationStatus
    course_finished: bool


class SweepResponse(BaseModel):
    updated_count: int


class MemberSessionsResponse(BaseModel):
    """Entitlement preview shown before booking on a member's behalf."""

    can_register: bool
    remaining_sessions: int
    total_sessions: int
    group_id: Optional[uuid.UUID] = None
    group_name: Optional[str] = None
    subscription_id: Optional[uuid.UUID] = None
    reason: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
