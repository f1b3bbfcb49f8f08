"""QR check-in endpoints used by the front-desk scanner."""

from fastapi import APIRouter, Depends, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.registrations_service.routers._shared import checkout_response
from services.registrations_service.schemas import (
    CheckinResponse,
    CheckoutResponse,
    RegistrationResponse,
)
from services.registrations_service.services.checkin_ops import (
    check_in_by_qr,
    check_out_by_qr,
    get_registration_by_qr,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/checkins", tags=["checkins"])


@router.get("/qr/{qr_code}", response_model=RegistrationResponse)
async def lookup_qr(
    qr_code: str,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await get_registration_by_qr(db, qr_code)


@router.post(
    "/qr/{qr_code}", response_model=CheckinResponse, status_code=status.HTTP_201_CREATED
)
async def check_in_qr(
    qr_code: str,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Check in the member holding this QR code."""
    return await check_in_by_qr(db, qr_code)


@router.post("/qr/{qr_code}/check-out", response_model=CheckoutResponse)
async def check_out_qr(
    qr_code: str,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    result = await check_out_by_qr(db, qr_code)
    return checkout_response(result)
