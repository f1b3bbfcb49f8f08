"""Course capacity tracker: locked check-and-increment of course seats."""

import uuid

from libs.common.logging import get_logger
from services.registrations_service.errors import CourseFullError, NotFoundError
from services.registrations_service.models import Course
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


async def _lock_course(db: AsyncSession, course_id: uuid.UUID) -> Course:
    result = await db.execute(
        select(Course)
        .where(Course.id == course_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    course = result.scalar_one_or_none()
    if course is None:
        raise NotFoundError("Course not found", course_id=course_id)
    return course


async def reserve_seat(db: AsyncSession, course_id: uuid.UUID) -> Course:
    """Take one seat, failing with ``CourseFullError`` at ``max_participants``."""
    course = await _lock_course(db, course_id)
    if course.current_participants >= course.max_participants:
        raise CourseFullError("Course is at full capacity", course_id=course_id)

    course.current_participants += 1
    await db.flush()

    logger.info(
        "Reserved seat on course %s (%d/%d)",
        course.id,
        course.current_participants,
        course.max_participants,
    )
    return course


async def release_seat(db: AsyncSession, course_id: uuid.UUID) -> Course:
    """Give one seat back, floored at zero."""
    course = await _lock_course(db, course_id)
    if course.current_participants > 0:
        course.current_participants -= 1
        await db.flush()
    else:
        logger.warning("Release on course %s with no seats taken", course.id)

    logger.info(
        "Released seat on course %s (%d/%d)",
        course.id,
        course.current_participants,
        course.max_participants,
    )
    return course
