"""Transaction boundary shared by every mutating registration operation."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from libs.common.logging import get_logger
from services.registrations_service.errors import BookingError, InternalError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit the block as one unit; roll back everything on any failure.

    Domain errors propagate unchanged. Storage errors are logged and
    surfaced as ``InternalError``.
    """
    try:
        yield db
        await db.commit()
    except BookingError:
        await db.rollback()
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Transaction aborted by storage error")
        raise InternalError(cause=exc) from exc
