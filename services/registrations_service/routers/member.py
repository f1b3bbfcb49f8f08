"""Member-facing registration endpoints."""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from libs.auth.dependencies import get_current_user, require_member
from libs.auth.models import AuthUser
from libs.common.rate_limit import booking_limit
from libs.db.session import get_async_db
from services.registrations_service.models import RegistrationStatus
from services.registrations_service.routers._shared import (
    caller_from_user,
    cancellation_response,
)
from services.registrations_service.schemas import (
    CancellationResponse,
    RegistrationCancel,
    RegistrationCreate,
    RegistrationResponse,
)
from services.registrations_service.services.listings import list_member_registrations
from services.registrations_service.services.registration_ops import (
    cancel_registration,
    create_registration,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/registrations", tags=["registrations"])


@router.post(
    "/", response_model=RegistrationResponse, status_code=status.HTTP_201_CREATED
)
@booking_limit
async def register_for_course(
    request: Request,
    body: RegistrationCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Book a seat on a course, charging one session from the member's group."""
    return await create_registration(
        db, caller=caller_from_user(current_user), course_id=body.course_id
    )


@router.get("/me", response_model=List[RegistrationResponse])
async def my_registrations(
    status_filter: Optional[RegistrationStatus] = Query(None, alias="status"),
    member_id: uuid.UUID = Depends(require_member),
    db: AsyncSession = Depends(get_async_db),
):
    return await list_member_registrations(db, member_id, status=status_filter)


@router.post("/{registration_id}/cancel", response_model=CancellationResponse)
async def cancel_my_registration(
    registration_id: uuid.UUID,
    body: Optional[RegistrationCancel] = None,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Cancel a booking. Sessions are refunded when cancelling more than 24h ahead."""
    result = await cancel_registration(
        db,
        caller=caller_from_user(current_user),
        registration_id=registration_id,
        force_refund=body.force_refund if body else None,
    )
    return cancellation_response(result)
