"""Catalog and billing rows the registrations core reads.

Groups, categories, classes, courses and subscriptions are provisioned by the
scheduling and billing services. The core only mutates the counters it owns:
``Course.current_participants`` and ``SubscriptionGroupSession.sessions_remaining``.
"""

import uuid
from datetime import date, datetime, time
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.registrations_service.models.enums import (
    CourseStatus,
    SubscriptionStatus,
    enum_values,
)
from sqlalchemy import Boolean, CheckConstraint, Date, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, String, Time, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column


class Group(Base):
    """Entitlement bucket shared by one or more class categories."""

    __tablename__ = "groups"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    color: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    def __repr__(self):
        return f"<Group {self.name}>"


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    group_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("groups.id"), nullable=False, index=True
    )


class GymClass(Base):
    """A class offering (e.g. "Pole Beginners") that courses are scheduled from."""

    __tablename__ = "classes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    category_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("categories.id"), nullable=False, index=True
    )


class Course(Base):
    """One scheduled occurrence of a class."""

    __tablename__ = "courses"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    class_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("classes.id"), nullable=False, index=True
    )

    # === Timing (local wall-clock, see settings.TIMEZONE) ===
    course_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)

    # === Capacity (owned by the capacity tracker) ===
    max_participants: Mapped[int] = mapped_column(Integer, nullable=False)
    current_participants: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )

    status: Mapped[CourseStatus] = mapped_column(
        SAEnum(
            CourseStatus,
            name="course_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
        default=CourseStatus.SCHEDULED,
        server_default="scheduled",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint(
            "current_participants >= 0", name="ck_course_participants_non_negative"
        ),
        CheckConstraint(
            "current_participants <= max_participants",
            name="ck_course_participants_within_max",
        ),
    )

    def __repr__(self):
        return (
            f"<Course {self.id} {self.course_date} {self.start_time} "
            f"{self.current_participants}/{self.max_participants}>"
        )


class Subscription(Base):
    """A member's purchased plan instance. Owned by billing."""

    __tablename__ = "subscriptions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    member_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True
    )
    plan_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )
    status: Mapped[SubscriptionStatus] = mapped_column(
        SAEnum(
            SubscriptionStatus,
            name="subscription_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
        default=SubscriptionStatus.PENDING,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )


class SubscriptionGroupSession(Base):
    """Per (subscription, group) session credit balance."""

    __tablename__ = "subscription_group_sessions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    subscription_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("subscriptions.id"), nullable=False, index=True
    )
    group_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("groups.id"), nullable=False, index=True
    )
    total_sessions: Mapped[int] = mapped_column(Integer, nullable=False)
    sessions_remaining: Mapped[int] = mapped_column(Integer, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        UniqueConstraint(
            "subscription_id", "group_id", name="uq_subscription_group_session"
        ),
        CheckConstraint(
            "sessions_remaining >= 0", name="ck_group_sessions_non_negative"
        ),
        CheckConstraint(
            "sessions_remaining <= total_sessions",
            name="ck_group_sessions_within_total",
        ),
    )

    def __repr__(self):
        return (
            f"<SubscriptionGroupSession sub={self.subscription_id} "
            f"group={self.group_id} {self.sessions_remaining}/{self.total_sessions}>"
        )
