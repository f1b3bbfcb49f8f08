"""ARQ worker for registrations service background tasks.

Schedules periodic tasks via ARQ cron jobs backed by Redis.
Run with: arq services.registrations_service.worker.WorkerSettings
"""

from arq import cron
from libs.common.arq_config import get_redis_settings
from libs.common.config import get_settings
from libs.common.logging import configure_logging, get_logger

logger = get_logger(__name__)


def sweep_minutes(interval: int) -> set[int]:
    """Minutes of the hour on which a job every ``interval`` minutes fires."""
    interval = min(max(interval, 1), 60)
    return set(range(0, 60, interval))


# ── Wrapper functions (ARQ requires top-level async callables) ──


async def task_mark_absent_registrations(ctx: dict):
    """Mark no-shows on finished courses as absent."""
    from services.registrations_service.tasks import mark_absent_registrations

    logger.info("Running: mark_absent_registrations")
    result = await mark_absent_registrations()
    return result.updated_count


async def startup(ctx: dict):
    configure_logging()


# ── Worker configuration ──


class WorkerSettings:
    """ARQ worker settings with cron job schedules."""

    redis_settings = get_redis_settings()
    on_startup = startup

    functions = [task_mark_absent_registrations]

    cron_jobs = [
        cron(
            task_mark_absent_registrations,
            minute=sweep_minutes(get_settings().ABSENCE_SWEEP_INTERVAL_MINUTES),
            run_at_startup=True,
            unique=True,
        ),
    ]
