"""Registration state machine.

    registered ──check-in──▶ attended ──check-out──▶ registered | absent
        │  ▲                     ▲
        │  └──── check-out ──────┤
        ├──cancel/disapprove──▶ cancelled
        ├──approve────────────▶ attended (no check-in record)
        └──sweep──────────────▶ absent ──late check-in──▶ attended

Every public function here is one transaction: seat, credit and registration
changes commit together or not at all.
"""

import secrets
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from libs.common.config import get_settings
from libs.common.datetime_utils import local_now, utc_now
from libs.common.logging import get_logger
from services.registrations_service.errors import (
    AlreadyCheckedInError,
    AlreadyRegisteredError,
    AlreadyStartedError,
    BookingError,
    CourseUnavailableError,
    ForbiddenError,
    InsufficientSessionsError,
    InvalidTransitionError,
    NotFoundError,
    ScheduleOverlapError,
)
from services.registrations_service.models import (
    LIVE_REGISTRATION_STATUSES,
    Checkin,
    Course,
    CourseStatus,
    Group,
    LedgerReason,
    Registration,
    RegistrationStatus,
)
from services.registrations_service.services import course_timing
from services.registrations_service.services.capacity import release_seat, reserve_seat
from services.registrations_service.services.entitlements import (
    find_overlapping_registration,
    list_group_entitlements,
    pick_chargeable,
    resolve_course_group,
)
from services.registrations_service.services.session_ledger import (
    credit_sessions,
    debit_sessions,
)
from services.registrations_service.services.transactions import atomic
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass(frozen=True)
class Caller:
    """Identity resolved by the auth layer; trusted as-is."""

    member_id: Optional[uuid.UUID]
    is_admin: bool = False
    actor: Optional[str] = None


@dataclass
class CancellationResult:
    registration: Registration
    refunded: bool
    is_within_refund_window: bool
    sessions_credited: int
    forced: bool


@dataclass
class CheckoutResult:
    registration: Registration
    removed_checkin_id: uuid.UUID
    new_status: RegistrationStatus
    course_finished: bool


@dataclass
class BulkBookingResult:
    registrations: list[Registration]
    skipped_member_ids: list[uuid.UUID]


def new_qr_code() -> str:
    return f"REG-{secrets.token_urlsafe(18)}"


def _require_admin(caller: Caller, action: str) -> None:
    if not caller.is_admin:
        raise ForbiddenError(f"Admin access required to {action}")


async def _lock_registration(
    db: AsyncSession,
    registration_id: uuid.UUID,
    statuses: tuple[RegistrationStatus, ...],
) -> Optional[Registration]:
    result = await db.execute(
        select(Registration)
        .where(Registration.id == registration_id, Registration.status.in_(statuses))
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _get_course(db: AsyncSession, course_id: uuid.UUID) -> Course:
    course = await db.get(Course, course_id)
    if course is None:
        raise NotFoundError("Course not found", course_id=course_id)
    return course


async def _get_checkin(db: AsyncSession, registration_id: uuid.UUID) -> Optional[Checkin]:
    result = await db.execute(
        select(Checkin).where(Checkin.registration_id == registration_id)
    )
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


async def _get_bookable_course(
    db: AsyncSession, course_id: uuid.UUID, current: datetime
) -> Course:
    course = await db.get(Course, course_id)
    if course is None or not course.is_active or course.status != CourseStatus.SCHEDULED:
        raise CourseUnavailableError(
            "Course not found or not available for registration",
            course_id=course_id,
        )
    if course_timing.has_started(course, current):
        raise AlreadyStartedError("Course has already started", course_id=course_id)
    return course


async def _book_member(
    db: AsyncSession,
    *,
    caller: Caller,
    course: Course,
    group: Group,
    member_id: uuid.UUID,
    force: bool,
    today: date,
    notes: Optional[str] = None,
) -> Registration:
    """Seat, debit and insert for one member. Caller owns the transaction."""
    if not force and get_settings().ENFORCE_OVERLAP_CHECK:
        clash = await find_overlapping_registration(db, member_id, course)
        if clash is not None:
            raise ScheduleOverlapError(
                "You have a conflicting course registration at this time",
                conflicting_course_id=clash.id,
                member_id=member_id,
            )

    entitlements = await list_group_entitlements(db, member_id, group.id, today)
    if not entitlements:
        raise InsufficientSessionsError(
            f"No active subscription with sessions for {group.name}",
            member_id=member_id,
        )
    if pick_chargeable(entitlements) is None:
        raise InsufficientSessionsError(
            f"No remaining sessions for {group.name}", member_id=member_id
        )

    await reserve_seat(db, course.id)

    # Re-pick under lock: a concurrent booking may have drained the first
    # choice since the unlocked read above.
    locked = await list_group_entitlements(
        db, member_id, group.id, today, for_update=True
    )
    chargeable = pick_chargeable(locked)
    if chargeable is None:
        raise InsufficientSessionsError(
            f"No remaining sessions for {group.name}", member_id=member_id
        )

    registration = Registration(
        member_id=member_id,
        course_id=course.id,
        subscription_id=chargeable.subscription_id,
        group_id=group.id,
        status=RegistrationStatus.REGISTERED,
        qr_code=new_qr_code(),
        notes=notes,
        registration_date=utc_now(),
    )
    db.add(registration)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise AlreadyRegisteredError(
            "Already registered for this course", member_id=member_id
        ) from exc

    await debit_sessions(
        db,
        subscription_id=chargeable.subscription_id,
        group_id=group.id,
        amount=1,
        reason=LedgerReason.BOOKING,
        registration_id=registration.id,
        initiated_by=caller.actor,
    )
    return registration


async def _live_members(
    db: AsyncSession, course_id: uuid.UUID, member_ids: list[uuid.UUID]
) -> set[uuid.UUID]:
    result = await db.execute(
        select(Registration.member_id).where(
            Registration.course_id == course_id,
            Registration.member_id.in_(member_ids),
            Registration.status.in_(LIVE_REGISTRATION_STATUSES),
        )
    )
    return set(result.scalars().all())


async def create_registration(
    db: AsyncSession,
    *,
    caller: Caller,
    course_id: uuid.UUID,
    member_id: Optional[uuid.UUID] = None,
    force: bool = False,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Registration:
    """Book a seat and charge one session credit.

    ``member_id`` defaults to the caller; booking for someone else and
    ``force`` (skip the overlap pre-check) are admin-only. Capacity and
    ledger checks are never skipped.
    """
    member_id = member_id or caller.member_id
    if member_id is None:
        raise ForbiddenError("Member access required")
    if member_id != caller.member_id or force:
        _require_admin(caller, "book on behalf of a member")

    current = local_now(now)

    async with atomic(db):
        course = await _get_bookable_course(db, course_id, current)
        if await _live_members(db, course.id, [member_id]):
            raise AlreadyRegisteredError("Already registered for this course")

        group = await resolve_course_group(db, course)
        registration = await _book_member(
            db,
            caller=caller,
            course=course,
            group=group,
            member_id=member_id,
            force=force,
            today=current.date(),
            notes=notes,
        )

    logger.info(
        "Registration %s created: member=%s course=%s forced=%s",
        registration.id,
        member_id,
        course_id,
        force,
    )
    return registration


async def bulk_create_registrations(
    db: AsyncSession,
    *,
    caller: Caller,
    course_id: uuid.UUID,
    member_ids: list[uuid.UUID],
    force: bool = False,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> BulkBookingResult:
    """Admin: book several members onto one course, all or none.

    Members already holding a live booking on the course are skipped.
    Any other failure (seat, credit, overlap) rolls back the whole batch.
    """
    _require_admin(caller, "book on behalf of members")
    if not member_ids:
        raise BookingError("At least one member is required")

    requested = list(dict.fromkeys(member_ids))
    current = local_now(now)

    async with atomic(db):
        course = await _get_bookable_course(db, course_id, current)
        already = await _live_members(db, course.id, requested)
        pending = [m for m in requested if m not in already]
        if not pending:
            raise AlreadyRegisteredError(
                "All selected members are already registered for this course"
            )

        group = await resolve_course_group(db, course)
        registrations = []
        for member_id in pending:
            registrations.append(
                await _book_member(
                    db,
                    caller=caller,
                    course=course,
                    group=group,
                    member_id=member_id,
                    force=force,
                    today=current.date(),
                    notes=notes,
                )
            )

    skipped = [m for m in requested if m in already]
    logger.info(
        "Bulk booking on course %s by %s: booked=%d skipped=%d",
        course_id,
        caller.actor,
        len(registrations),
        len(skipped),
    )
    return BulkBookingResult(registrations=registrations, skipped_member_ids=skipped)


# ---------------------------------------------------------------------------
# Cancel
# ---------------------------------------------------------------------------


async def cancel_registration(
    db: AsyncSession,
    *,
    caller: Caller,
    registration_id: uuid.UUID,
    force_refund: Optional[bool] = None,
    now: Optional[datetime] = None,
) -> CancellationResult:
    """Cancel a ``registered`` booking before the course starts.

    Early cancellations are refunded; from 24h before start the credit is
    forfeited. The seat is released either way. Only admins may override
    the refund decision with ``force_refund``.
    """
    if force_refund is not None:
        _require_admin(caller, "override the refund policy")

    current = local_now(now)

    async with atomic(db):
        registration = await _lock_registration(
            db, registration_id, (RegistrationStatus.REGISTERED,)
        )
        if registration is None:
            raise NotFoundError(
                "Registration not found or cannot be cancelled",
                registration_id=registration_id,
            )
        if not caller.is_admin and registration.member_id != caller.member_id:
            raise ForbiddenError("You can only cancel your own registrations")

        course = await _get_course(db, registration.course_id)
        if course_timing.has_started(course, current):
            raise AlreadyStartedError(
                "Cannot cancel registration for a course that has already started"
            )

        late = course_timing.is_late_cancellation(course, current)
        refund = not late if force_refund is None else force_refund

        registration.status = RegistrationStatus.CANCELLED
        await db.flush()
        await release_seat(db, course.id)

        credited = 0
        if refund:
            credit = await credit_sessions(
                db,
                subscription_id=registration.subscription_id,
                group_id=registration.group_id,
                amount=1,
                reason=LedgerReason.CANCELLATION_REFUND,
                registration_id=registration.id,
                initiated_by=caller.actor,
                forced=force_refund is not None,
            )
            credited = credit.credited

    if force_refund is not None:
        logger.warning(
            "Refund policy overridden by %s on registration %s: "
            "late=%s force_refund=%s credited=%d",
            caller.actor,
            registration.id,
            late,
            force_refund,
            credited,
        )
    logger.info(
        "Registration %s cancelled: late=%s refunded=%s",
        registration.id,
        late,
        credited > 0,
    )
    return CancellationResult(
        registration=registration,
        refunded=credited > 0,
        is_within_refund_window=late,
        sessions_credited=credited,
        forced=force_refund is not None,
    )


# ---------------------------------------------------------------------------
# Check-in / check-out
# ---------------------------------------------------------------------------


async def check_in(
    db: AsyncSession,
    *,
    registration_id: uuid.UUID,
    now: Optional[datetime] = None,
) -> Checkin:
    """Record attendance. Never touches the ledger or capacity."""
    async with atomic(db):
        registration = await _lock_registration(
            db, registration_id, tuple(RegistrationStatus)
        )
        if registration is None or registration.status == RegistrationStatus.CANCELLED:
            raise NotFoundError(
                "Registration not found or not valid for check-in",
                registration_id=registration_id,
            )
        if (
            registration.status == RegistrationStatus.ATTENDED
            or await _get_checkin(db, registration.id) is not None
        ):
            raise AlreadyCheckedInError("Member is already checked in")

        checkin = Checkin(
            registration_id=registration.id,
            member_id=registration.member_id,
            checkin_time=now or utc_now(),
            session_consumed=True,
        )
        db.add(checkin)
        try:
            await db.flush()
        except IntegrityError as exc:
            raise AlreadyCheckedInError("Member is already checked in") from exc

        previous = registration.status
        registration.status = RegistrationStatus.ATTENDED

    logger.info(
        "Registration %s checked in (%s → attended)", registration.id, previous.value
    )
    return checkin


async def check_out(
    db: AsyncSession,
    *,
    registration_id: uuid.UUID,
    now: Optional[datetime] = None,
) -> CheckoutResult:
    """Remove the check-in; status follows course timing, not the prior status."""
    async with atomic(db):
        registration = await _lock_registration(
            db,
            registration_id,
            (RegistrationStatus.ATTENDED, RegistrationStatus.REGISTERED),
        )
        if registration is None:
            raise NotFoundError(
                "Registration not found or not valid for check-out",
                registration_id=registration_id,
            )
        checkin = await _get_checkin(db, registration.id)
        if checkin is None:
            raise NotFoundError("No check-in found to check out")

        course = await _get_course(db, registration.course_id)
        finished = course_timing.has_finished(course, now)
        new_status = (
            RegistrationStatus.ABSENT if finished else RegistrationStatus.REGISTERED
        )

        checkin_id = checkin.id
        await db.delete(checkin)
        registration.status = new_status

    logger.info(
        "Registration %s checked out: course_finished=%s status=%s",
        registration.id,
        finished,
        new_status.value,
    )
    return CheckoutResult(
        registration=registration,
        removed_checkin_id=checkin_id,
        new_status=new_status,
        course_finished=finished,
    )


# ---------------------------------------------------------------------------
# Admin review
# ---------------------------------------------------------------------------


async def approve_registration(
    db: AsyncSession, *, caller: Caller, registration_id: uuid.UUID
) -> Registration:
    """Mark a ``registered`` booking attended without a check-in record."""
    _require_admin(caller, "approve registrations")

    async with atomic(db):
        registration = await _lock_registration(
            db, registration_id, tuple(RegistrationStatus)
        )
        if registration is None:
            raise NotFoundError("Registration not found", registration_id=registration_id)
        if registration.status != RegistrationStatus.REGISTERED:
            raise InvalidTransitionError(
                "Registration cannot be approved. "
                f"Current status: {registration.status.value}"
            )
        registration.status = RegistrationStatus.ATTENDED

    logger.info("Registration %s approved by %s", registration.id, caller.actor)
    return registration


async def disapprove_registration(
    db: AsyncSession, *, caller: Caller, registration_id: uuid.UUID
) -> Registration:
    """Cancel a ``registered`` booking without any refund decision.

    The seat is released; the session credit stays spent.
    """
    _require_admin(caller, "disapprove registrations")

    async with atomic(db):
        registration = await _lock_registration(
            db, registration_id, tuple(RegistrationStatus)
        )
        if registration is None:
            raise NotFoundError("Registration not found", registration_id=registration_id)
        if registration.status != RegistrationStatus.REGISTERED:
            raise InvalidTransitionError(
                "Registration cannot be disapproved. "
                f"Current status: {registration.status.value}"
            )
        registration.status = RegistrationStatus.CANCELLED
        await db.flush()
        await release_seat(db, registration.course_id)

    logger.info("Registration %s disapproved by %s", registration.id, caller.actor)
    return registration
