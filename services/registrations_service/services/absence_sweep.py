"""Absence reconciliation sweep.

Moves ``registered`` bookings on finished courses with no check-in to
``absent``. No ledger or capacity effects: a no-show's credit stays spent.
Re-running is harmless; the status filter is repeated in the UPDATE so rows
changed by a concurrent check-in are skipped.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from libs.common.config import get_settings
from libs.common.datetime_utils import local_now, utc_now
from libs.common.logging import get_logger
from services.registrations_service.models import (
    Checkin,
    Course,
    Registration,
    RegistrationStatus,
)
from services.registrations_service.services.transactions import atomic
from sqlalchemy import and_, exists, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass
class SweepResult:
    updated_count: int
    batches: int = 0


def _course_finished(now: datetime):
    today = now.date()
    return or_(
        Course.course_date < today,
        and_(Course.course_date == today, Course.end_time < now.time()),
    )


async def run_absence_sweep(
    db: AsyncSession,
    *,
    now: Optional[datetime] = None,
    batch_size: Optional[int] = None,
) -> SweepResult:
    current = local_now(now)
    batch_size = batch_size or get_settings().ABSENCE_SWEEP_BATCH_SIZE

    no_checkin = ~exists().where(Checkin.registration_id == Registration.id)
    eligible = (
        select(Registration.id)
        .join(Course, Course.id == Registration.course_id)
        .where(
            Registration.status == RegistrationStatus.REGISTERED,
            _course_finished(current.replace(tzinfo=None)),
            no_checkin,
        )
        .order_by(Registration.id)
        .limit(batch_size)
    )

    updated = 0
    batches = 0
    while True:
        async with atomic(db):
            ids = list((await db.execute(eligible)).scalars().all())
            if not ids:
                break
            result = await db.execute(
                update(Registration)
                .where(
                    Registration.id.in_(ids),
                    Registration.status == RegistrationStatus.REGISTERED,
                )
                .values(status=RegistrationStatus.ABSENT, updated_at=utc_now())
                .execution_options(synchronize_session=False)
            )
        updated += result.rowcount or 0
        batches += 1
        if len(ids) < batch_size:
            break

    logger.info("Absence sweep marked %d registration(s) absent", updated)
    return SweepResult(updated_count=updated, batches=batches)
