"""QR check-in recorder: resolves the opaque QR token, then delegates."""

from datetime import datetime
from typing import Optional

from services.registrations_service.errors import NotFoundError
from services.registrations_service.models import Checkin, Registration
from services.registrations_service.services.registration_ops import (
    CheckoutResult,
    check_in,
    check_out,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


async def get_registration_by_qr(db: AsyncSession, qr_code: str) -> Registration:
    result = await db.execute(select(Registration).where(Registration.qr_code == qr_code))
    registration = result.scalar_one_or_none()
    if registration is None:
        raise NotFoundError("Invalid QR code")
    return registration


async def check_in_by_qr(
    db: AsyncSession, qr_code: str, *, now: Optional[datetime] = None
) -> Checkin:
    registration = await get_registration_by_qr(db, qr_code)
    return await check_in(db, registration_id=registration.id, now=now)


async def check_out_by_qr(
    db: AsyncSession, qr_code: str, *, now: Optional[datetime] = None
) -> CheckoutResult:
    registration = await get_registration_by_qr(db, qr_code)
    return await check_out(db, registration_id=registration.id, now=now)
