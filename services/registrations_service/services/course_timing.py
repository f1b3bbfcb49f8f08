"""Wall-clock rules for course start, finish and the refund cutoff."""

from datetime import datetime, timedelta
from typing import Optional

from libs.common.config import get_settings
from libs.common.datetime_utils import combine_local, local_now
from services.registrations_service.models import Course


def course_starts_at(course: Course) -> datetime:
    return combine_local(course.course_date, course.start_time)


def has_started(course: Course, now: Optional[datetime] = None) -> bool:
    return local_now(now) >= course_starts_at(course)


def has_finished(course: Course, now: Optional[datetime] = None) -> bool:
    """True once the course date is past, or it is today and the end time has passed."""
    current = local_now(now)
    today = current.date()
    if course.course_date < today:
        return True
    return course.course_date == today and course.end_time < current.time()


def refund_cutoff(course: Course) -> datetime:
    hours = get_settings().CANCELLATION_REFUND_WINDOW_HOURS
    return course_starts_at(course) - timedelta(hours=hours)


def is_late_cancellation(course: Course, now: Optional[datetime] = None) -> bool:
    """Cancelling at or after the cutoff forfeits the session."""
    return local_now(now) >= refund_cutoff(course)
