"""Admin registration management endpoints."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.datetime_utils import local_now
from libs.common.logging import get_logger
from libs.common.rate_limit import admin_limit
from libs.db.session import get_async_db
from services.registrations_service.models import RegistrationStatus
from services.registrations_service.routers._shared import (
    caller_from_user,
    cancellation_response,
    checkout_response,
)
from services.registrations_service.schemas import (
    AdminRegistrationCreate,
    BulkRegistrationCreate,
    BulkRegistrationResponse,
    CancellationResponse,
    CheckinResponse,
    CheckoutResponse,
    MemberSessionsResponse,
    RegistrationCancel,
    RegistrationListResponse,
    RegistrationResponse,
    SweepResponse,
)
from services.registrations_service.services.absence_sweep import run_absence_sweep
from services.registrations_service.services.entitlements import check_member_sessions
from services.registrations_service.services.listings import (
    get_registration,
    list_registrations,
)
from services.registrations_service.services.registration_ops import (
    approve_registration,
    bulk_create_registrations,
    cancel_registration,
    check_in,
    check_out,
    create_registration,
    disapprove_registration,
)
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
router = APIRouter(prefix="/admin/registrations", tags=["admin-registrations"])


@router.get("/", response_model=RegistrationListResponse)
async def admin_list_registrations(
    status_filter: Optional[RegistrationStatus] = Query(None, alias="status"),
    course_id: Optional[uuid.UUID] = None,
    member_id: Optional[uuid.UUID] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    items, total = await list_registrations(
        db,
        status=status_filter,
        course_id=course_id,
        member_id=member_id,
        skip=skip,
        limit=limit,
    )
    return RegistrationListResponse(
        items=[RegistrationResponse.model_validate(r) for r in items], total=total
    )


@router.get("/check-member-sessions", response_model=MemberSessionsResponse)
async def admin_check_member_sessions(
    member_id: uuid.UUID,
    course_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Preview whether a member has a session to spend on this course."""
    preview = await check_member_sessions(
        db, member_id=member_id, course_id=course_id, today=local_now().date()
    )
    return MemberSessionsResponse.model_validate(preview)


@router.get("/{registration_id}", response_model=RegistrationResponse)
async def admin_get_registration(
    registration_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await get_registration(db, registration_id)


@router.post(
    "/", response_model=RegistrationResponse, status_code=status.HTTP_201_CREATED
)
@admin_limit
async def admin_register_member(
    request: Request,
    body: AdminRegistrationCreate,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Book a course on a member's behalf.

    ``force`` skips the schedule-overlap check only; capacity and session
    balance are still enforced.
    """
    return await create_registration(
        db,
        caller=caller_from_user(admin),
        member_id=body.member_id,
        course_id=body.course_id,
        force=body.force,
        notes=body.notes,
    )


@router.post(
    "/bulk",
    response_model=BulkRegistrationResponse,
    status_code=status.HTTP_201_CREATED,
)
@admin_limit
async def admin_bulk_register(
    request: Request,
    body: BulkRegistrationCreate,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Book several members onto one course in a single transaction.

    Members already booked are reported in ``skipped_member_ids``; any other
    failure books nobody.
    """
    result = await bulk_create_registrations(
        db,
        caller=caller_from_user(admin),
        course_id=body.course_id,
        member_ids=body.member_ids,
        force=body.force,
        notes=body.notes,
    )
    return BulkRegistrationResponse(
        registrations=[
            RegistrationResponse.model_validate(r) for r in result.registrations
        ],
        skipped_member_ids=result.skipped_member_ids,
    )


@router.post("/{registration_id}/cancel", response_model=CancellationResponse)
async def admin_cancel_registration(
    registration_id: uuid.UUID,
    body: Optional[RegistrationCancel] = None,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    result = await cancel_registration(
        db,
        caller=caller_from_user(admin),
        registration_id=registration_id,
        force_refund=body.force_refund if body else None,
    )
    return cancellation_response(result)


@router.post("/{registration_id}/approve", response_model=RegistrationResponse)
async def admin_approve_registration(
    registration_id: uuid.UUID,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await approve_registration(
        db, caller=caller_from_user(admin), registration_id=registration_id
    )


@router.post("/{registration_id}/disapprove", response_model=RegistrationResponse)
async def admin_disapprove_registration(
    registration_id: uuid.UUID,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Reject a booking. Frees the seat; the session is not refunded."""
    return await disapprove_registration(
        db, caller=caller_from_user(admin), registration_id=registration_id
    )


@router.post(
    "/{registration_id}/check-in",
    response_model=CheckinResponse,
    status_code=status.HTTP_201_CREATED,
)
async def admin_check_in(
    registration_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await check_in(db, registration_id=registration_id)


@router.post("/{registration_id}/check-out", response_model=CheckoutResponse)
async def admin_check_out(
    registration_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    result = await check_out(db, registration_id=registration_id)
    return checkout_response(result)


@router.post("/mark-absent", response_model=SweepResponse)
async def admin_mark_absent(
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Run the absence sweep now instead of waiting for the cron."""
    result = await run_absence_sweep(db)
    logger.info(
        "Manual absence sweep by %s updated %d registration(s)",
        admin.user_id,
        result.updated_count,
    )
    return SweepResponse(updated_count=result.updated_count)
