"""Scheduled no-show reconciliation."""

from libs.common.logging import get_logger
from libs.db.session import session_scope
from services.registrations_service.services.absence_sweep import (
    SweepResult,
    run_absence_sweep,
)

logger = get_logger(__name__)


async def mark_absent_registrations() -> SweepResult:
    """Mark every finished, un-checked-in registration absent."""
    async with session_scope() as db:
        result = await run_absence_sweep(db)

    if result.updated_count:
        logger.info(
            "Scheduled sweep marked %d registration(s) absent in %d batch(es)",
            result.updated_count,
            result.batches,
        )
    return result
