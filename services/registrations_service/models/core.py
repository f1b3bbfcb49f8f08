import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.registrations_service.models.enums import (
    LedgerDirection,
    LedgerReason,
    RegistrationStatus,
    enum_values,
)
from sqlalchemy import Boolean, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

_LIVE_ONLY = text("status <> 'cancelled'")


class Registration(Base):
    """A member's booking of one course occurrence."""

    __tablename__ = "registrations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    member_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True
    )
    course_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("courses.id"), nullable=False, index=True
    )

    # Entitlement charged at booking time
    subscription_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("subscriptions.id"), nullable=False
    )
    group_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("groups.id"), nullable=False
    )

    status: Mapped[RegistrationStatus] = mapped_column(
        SAEnum(
            RegistrationStatus,
            name="registration_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
        default=RegistrationStatus.REGISTERED,
        index=True,
    )
    qr_code: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    registration_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        # One live booking per member per course; cancelled rows don't count.
        Index(
            "uq_registrations_live_member_course",
            "member_id",
            "course_id",
            unique=True,
            postgresql_where=_LIVE_ONLY,
            sqlite_where=_LIVE_ONLY,
        ),
    )

    def __repr__(self):
        return (
            f"<Registration {self.id} member={self.member_id} "
            f"course={self.course_id} {self.status.value}>"
        )


class Checkin(Base):
    """Proof of attendance for a registration."""

    __tablename__ = "checkins"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    registration_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("registrations.id"),
        nullable=False,
        unique=True,
    )
    member_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True
    )
    checkin_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    # The credit was charged at booking; this only records that fact.
    session_consumed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )

    def __repr__(self):
        return f"<Checkin registration={self.registration_id} at {self.checkin_time}>"


class SessionLedgerEntry(Base):
    """Append-only journal of every session credit movement."""

    __tablename__ = "session_ledger_entries"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    group_session_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("subscription_group_sessions.id"),
        nullable=False,
        index=True,
    )
    registration_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("registrations.id"), nullable=True, index=True
    )
    direction: Mapped[LedgerDirection] = mapped_column(
        SAEnum(
            LedgerDirection,
            name="ledger_direction_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    reason: Mapped[LedgerReason] = mapped_column(
        SAEnum(
            LedgerReason,
            name="ledger_reason_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    requested_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_before: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)

    # Set when an admin overrode the refund policy
    forced: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    initiated_by: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_ledger_amount_non_negative"),
    )
