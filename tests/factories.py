"""
Model factories for creating valid test data.

Every factory produces a valid, insertable SQLAlchemy model instance.
Override any field via kwargs.

Usage:
    course = CourseFactory.create(class_id=gym_class.id, max_participants=1)
    db_session.add(course)
    await db_session.commit()

``seed_bookable_course`` builds the whole Group → Category → Class → Course
chain plus a member subscription with credits for that group.
"""

import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _uuid() -> uuid.UUID:
    return uuid.uuid4()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _today() -> date:
    return _now().date()


def course_start(course) -> datetime:
    """Aware UTC start of a course (tests run with TIMEZONE=UTC)."""
    return datetime.combine(course.course_date, course.start_time, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class GroupFactory:
    @staticmethod
    def create(**overrides):
        from services.registrations_service.models import Group

        defaults = {
            "id": _uuid(),
            "name": f"Pole {uuid.uuid4().hex[:6]}",
            "color": "#aa00ff",
        }
        defaults.update(overrides)
        return Group(**defaults)


class CategoryFactory:
    @staticmethod
    def create(group_id=None, **overrides):
        from services.registrations_service.models import Category

        defaults = {
            "id": _uuid(),
            "name": "Pole Fitness",
            "group_id": group_id or _uuid(),
        }
        defaults.update(overrides)
        return Category(**defaults)


class GymClassFactory:
    @staticmethod
    def create(category_id=None, **overrides):
        from services.registrations_service.models import GymClass

        defaults = {
            "id": _uuid(),
            "name": "Pole Beginners",
            "category_id": category_id or _uuid(),
        }
        defaults.update(overrides)
        return GymClass(**defaults)


class CourseFactory:
    @staticmethod
    def create(class_id=None, **overrides):
        """Defaults to 10:00-11:00 UTC three days from today."""
        from services.registrations_service.models import Course, CourseStatus

        defaults = {
            "id": _uuid(),
            "class_id": class_id or _uuid(),
            "course_date": _today() + timedelta(days=3),
            "start_time": time(10, 0),
            "end_time": time(11, 0),
            "max_participants": 10,
            "current_participants": 0,
            "status": CourseStatus.SCHEDULED,
            "is_active": True,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Course(**defaults)


# ---------------------------------------------------------------------------
# Billing
# ---------------------------------------------------------------------------


class SubscriptionFactory:
    @staticmethod
    def create(member_id=None, **overrides):
        from services.registrations_service.models import (
            Subscription,
            SubscriptionStatus,
        )

        defaults = {
            "id": _uuid(),
            "member_id": member_id or _uuid(),
            "plan_id": _uuid(),
            "status": SubscriptionStatus.ACTIVE,
            "start_date": _today() - timedelta(days=10),
            "end_date": _today() + timedelta(days=30),
            "created_at": _now(),
        }
        defaults.update(overrides)
        return Subscription(**defaults)


class GroupSessionFactory:
    @staticmethod
    def create(subscription_id=None, group_id=None, **overrides):
        from services.registrations_service.models import SubscriptionGroupSession

        total = overrides.pop("total_sessions", 8)
        defaults = {
            "id": _uuid(),
            "subscription_id": subscription_id or _uuid(),
            "group_id": group_id or _uuid(),
            "total_sessions": total,
            "sessions_remaining": total,
        }
        defaults.update(overrides)
        return SubscriptionGroupSession(**defaults)


# ---------------------------------------------------------------------------
# Registrations
# ---------------------------------------------------------------------------


class RegistrationFactory:
    @staticmethod
    def create(member_id=None, course_id=None, **overrides):
        from services.registrations_service.models import (
            Registration,
            RegistrationStatus,
        )

        defaults = {
            "id": _uuid(),
            "member_id": member_id or _uuid(),
            "course_id": course_id or _uuid(),
            "subscription_id": _uuid(),
            "group_id": _uuid(),
            "status": RegistrationStatus.REGISTERED,
            "qr_code": f"REG-{uuid.uuid4().hex}",
            "registration_date": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Registration(**defaults)


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


@dataclass
class BookableCourse:
    """Plain ids, safe to read after the seeding session rolls back."""

    member_id: uuid.UUID
    group_id: uuid.UUID
    class_id: uuid.UUID
    course_id: uuid.UUID
    subscription_id: uuid.UUID
    group_session_id: uuid.UUID
    starts_at: datetime


async def seed_bookable_course(
    db,
    *,
    member_id=None,
    max_participants=10,
    total_sessions=8,
    sessions_remaining=None,
    **course_overrides,
) -> BookableCourse:
    """Course plus an active subscription whose group matches the course."""
    member_id = member_id or _uuid()
    group = GroupFactory.create()
    category = CategoryFactory.create(group_id=group.id)
    gym_class = GymClassFactory.create(category_id=category.id)
    course = CourseFactory.create(
        class_id=gym_class.id, max_participants=max_participants, **course_overrides
    )
    subscription = SubscriptionFactory.create(member_id=member_id)
    group_session = GroupSessionFactory.create(
        subscription_id=subscription.id,
        group_id=group.id,
        total_sessions=total_sessions,
        sessions_remaining=(
            total_sessions if sessions_remaining is None else sessions_remaining
        ),
    )
    db.add_all([group, category, gym_class, course, subscription, group_session])
    await db.commit()
    return BookableCourse(
        member_id=member_id,
        group_id=group.id,
        class_id=gym_class.id,
        course_id=course.id,
        subscription_id=subscription.id,
        group_session_id=group_session.id,
        starts_at=course_start(course),
    )


async def add_member_entitlement(
    db, setup: BookableCourse, *, member_id=None, total_sessions=8, **overrides
):
    """Give another member credits for the same group. Returns (member_id, group_session_id)."""
    member_id = member_id or _uuid()
    subscription = SubscriptionFactory.create(member_id=member_id, **overrides)
    group_session = GroupSessionFactory.create(
        subscription_id=subscription.id,
        group_id=setup.group_id,
        total_sessions=total_sessions,
    )
    db.add_all([subscription, group_session])
    await db.commit()
    return member_id, group_session.id


async def add_course(db, setup: BookableCourse, **overrides) -> uuid.UUID:
    """Another course of the same class (same group)."""
    course = CourseFactory.create(class_id=setup.class_id, **overrides)
    db.add(course)
    await db.commit()
    return course.id


async def read_counters(session_factory, course_id, group_session_id) -> tuple[int, int]:
    """(current_participants, sessions_remaining) as committed."""
    from services.registrations_service.models import (
        Course,
        SubscriptionGroupSession,
    )

    async with session_factory() as session:
        course = await session.get(Course, course_id)
        group_session = await session.get(SubscriptionGroupSession, group_session_id)
        return course.current_participants, group_session.sessions_remaining


async def read_registration(session_factory, registration_id):
    from services.registrations_service.models import Registration

    async with session_factory() as session:
        return await session.get(Registration, registration_id)
