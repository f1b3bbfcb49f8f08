"""Read-only eligibility lookups: course group, chargeable entitlement, overlaps."""

import uuid
from dataclasses import dataclass
from datetime import date
from typing import Optional

from services.registrations_service.errors import NotFoundError
from services.registrations_service.models import (
    Category,
    Course,
    Group,
    GymClass,
    Registration,
    RegistrationStatus,
    Subscription,
    SubscriptionGroupSession,
    SubscriptionStatus,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


@dataclass
class SessionsPreview:
    can_register: bool
    remaining_sessions: int = 0
    total_sessions: int = 0
    group_id: Optional[uuid.UUID] = None
    group_name: Optional[str] = None
    subscription_id: Optional[uuid.UUID] = None
    reason: Optional[str] = None


async def resolve_course_group(db: AsyncSession, course: Course) -> Group:
    """Course → Class → Category → Group."""
    result = await db.execute(
        select(Group)
        .join(Category, Category.group_id == Group.id)
        .join(GymClass, GymClass.category_id == Category.id)
        .where(GymClass.id == course.class_id)
    )
    group = result.scalar_one_or_none()
    if group is None:
        raise NotFoundError("Course group not found", course_id=course.id)
    return group


async def list_group_entitlements(
    db: AsyncSession,
    member_id: uuid.UUID,
    group_id: uuid.UUID,
    today: date,
    *,
    for_update: bool = False,
) -> list[SubscriptionGroupSession]:
    """Entitlements for a group on the member's active, unexpired subscriptions.

    Ordered latest-ending subscription first (ties by id, so concurrent
    lockers queue in the same order). ``for_update`` row-locks the
    entitlement rows and reloads their counters.
    """
    stmt = (
        select(SubscriptionGroupSession)
        .join(Subscription, Subscription.id == SubscriptionGroupSession.subscription_id)
        .where(
            Subscription.member_id == member_id,
            Subscription.status == SubscriptionStatus.ACTIVE,
            Subscription.end_date >= today,
            SubscriptionGroupSession.group_id == group_id,
        )
        .order_by(Subscription.end_date.desc(), SubscriptionGroupSession.id)
    )
    if for_update:
        stmt = stmt.with_for_update(of=SubscriptionGroupSession).execution_options(
            populate_existing=True
        )
    result = await db.execute(stmt)
    return list(result.scalars().all())


def pick_chargeable(
    entitlements: list[SubscriptionGroupSession],
) -> Optional[SubscriptionGroupSession]:
    for group_session in entitlements:
        if group_session.sessions_remaining > 0:
            return group_session
    return None


async def find_overlapping_registration(
    db: AsyncSession, member_id: uuid.UUID, course: Course
) -> Optional[Course]:
    """Another course the member holds a ``registered`` seat on at the same time."""
    result = await db.execute(
        select(Course)
        .join(Registration, Registration.course_id == Course.id)
        .where(
            Registration.member_id == member_id,
            Registration.status == RegistrationStatus.REGISTERED,
            Course.id != course.id,
            Course.course_date == course.course_date,
            Course.start_time < course.end_time,
            Course.end_time > course.start_time,
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def check_member_sessions(
    db: AsyncSession, *, member_id: uuid.UUID, course_id: uuid.UUID, today: date
) -> SessionsPreview:
    """Whether the member could be charged for this course right now."""
    course = await db.get(Course, course_id)
    if course is None:
        raise NotFoundError("Course not found", course_id=course_id)

    group = await resolve_course_group(db, course)
    entitlements = await list_group_entitlements(db, member_id, group.id, today)
    if not entitlements:
        return SessionsPreview(
            can_register=False,
            group_id=group.id,
            group_name=group.name,
            reason="No active subscription with sessions for this group",
        )

    chosen = pick_chargeable(entitlements) or entitlements[0]
    remaining = sum(e.sessions_remaining for e in entitlements)
    return SessionsPreview(
        can_register=remaining > 0,
        remaining_sessions=remaining,
        total_sessions=sum(e.total_sessions for e in entitlements),
        group_id=group.id,
        group_name=group.name,
        subscription_id=chosen.subscription_id,
        reason=None if remaining > 0 else "No remaining sessions for this group",
    )
