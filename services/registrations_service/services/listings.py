"""Read-only registration listings for members and admins."""

import uuid
from typing import Optional

from services.registrations_service.errors import NotFoundError
from services.registrations_service.models import Registration, RegistrationStatus
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession


async def list_member_registrations(
    db: AsyncSession,
    member_id: uuid.UUID,
    *,
    status: Optional[RegistrationStatus] = None,
) -> list[Registration]:
    """A member's bookings, newest first."""
    query = select(Registration).where(Registration.member_id == member_id)
    if status is not None:
        query = query.where(Registration.status == status)
    result = await db.execute(query.order_by(Registration.registration_date.desc()))
    return list(result.scalars().all())


async def list_registrations(
    db: AsyncSession,
    *,
    status: Optional[RegistrationStatus] = None,
    course_id: Optional[uuid.UUID] = None,
    member_id: Optional[uuid.UUID] = None,
    skip: int = 0,
    limit: int = 50,
) -> tuple[list[Registration], int]:
    filters = []
    if status is not None:
        filters.append(Registration.status == status)
    if course_id is not None:
        filters.append(Registration.course_id == course_id)
    if member_id is not None:
        filters.append(Registration.member_id == member_id)

    total = await db.scalar(
        select(func.count()).select_from(Registration).where(*filters)
    )
    result = await db.execute(
        select(Registration)
        .where(*filters)
        .order_by(Registration.registration_date.desc())
        .offset(skip)
        .limit(limit)
    )
    return list(result.scalars().all()), total or 0


async def get_registration(db: AsyncSession, registration_id: uuid.UUID) -> Registration:
    registration = await db.get(Registration, registration_id)
    if registration is None:
        raise NotFoundError("Registration not found", registration_id=registration_id)
    return registration
