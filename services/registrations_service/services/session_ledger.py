"""Session ledger: locked debit/credit of per-group session credits.

Neither operation commits: both run inside the caller's transaction so the
balance change lands together with the registration change that caused it.
"""

import uuid
from dataclasses import dataclass
from typing import Optional

from libs.common.logging import get_logger
from services.registrations_service.errors import (
    InsufficientSessionsError,
    NotFoundError,
    SessionCapExceededError,
)
from services.registrations_service.models import (
    LedgerDirection,
    LedgerReason,
    SessionLedgerEntry,
    SubscriptionGroupSession,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass(frozen=True)
class DebitResult:
    group_session_id: uuid.UUID
    amount: int
    balance_before: int
    balance_after: int


@dataclass(frozen=True)
class CreditResult:
    group_session_id: uuid.UUID
    requested: int
    credited: int
    balance_before: int
    balance_after: int

    @property
    def fully_applied(self) -> bool:
        return self.credited == self.requested


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _lock_group_session(
    db: AsyncSession, subscription_id: uuid.UUID, group_id: uuid.UUID
) -> Optional[SubscriptionGroupSession]:
    result = await db.execute(
        select(SubscriptionGroupSession)
        .where(
            SubscriptionGroupSession.subscription_id == subscription_id,
            SubscriptionGroupSession.group_id == group_id,
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _journal(
    db: AsyncSession,
    group_session: SubscriptionGroupSession,
    *,
    direction: LedgerDirection,
    reason: LedgerReason,
    requested: int,
    applied: int,
    balance_before: int,
    registration_id: Optional[uuid.UUID],
    initiated_by: Optional[str],
    forced: bool,
) -> SessionLedgerEntry:
    entry = SessionLedgerEntry(
        group_session_id=group_session.id,
        registration_id=registration_id,
        direction=direction,
        reason=reason,
        requested_amount=requested,
        amount=applied,
        balance_before=balance_before,
        balance_after=group_session.sessions_remaining,
        forced=forced,
        initiated_by=initiated_by,
    )
    db.add(entry)
    return entry


# ---------------------------------------------------------------------------
# Debit (atomic)
# ---------------------------------------------------------------------------


async def debit_sessions(
    db: AsyncSession,
    *,
    subscription_id: uuid.UUID,
    group_id: uuid.UUID,
    amount: int = 1,
    reason: LedgerReason = LedgerReason.BOOKING,
    registration_id: Optional[uuid.UUID] = None,
    initiated_by: Optional[str] = None,
) -> DebitResult:
    """Check ``sessions_remaining >= amount`` and decrement under a row lock.

    Raises ``InsufficientSessionsError`` without side effects when the
    entitlement is missing or short.
    """
    if amount <= 0:
        raise ValueError("Debit amount must be positive")

    group_session = await _lock_group_session(db, subscription_id, group_id)
    if group_session is None:
        raise InsufficientSessionsError(
            "No session entitlement for this group",
            subscription_id=subscription_id,
            group_id=group_id,
        )
    if group_session.sessions_remaining < amount:
        raise InsufficientSessionsError(
            f"Not enough sessions left. You need {amount} but have "
            f"{group_session.sessions_remaining}.",
            subscription_id=subscription_id,
            group_id=group_id,
        )

    balance_before = group_session.sessions_remaining
    group_session.sessions_remaining = balance_before - amount
    _journal(
        db,
        group_session,
        direction=LedgerDirection.DEBIT,
        reason=reason,
        requested=amount,
        applied=amount,
        balance_before=balance_before,
        registration_id=registration_id,
        initiated_by=initiated_by,
        forced=False,
    )
    await db.flush()

    logger.info(
        "Debit %d session(s) from %s, balance %d→%d",
        amount,
        group_session.id,
        balance_before,
        group_session.sessions_remaining,
    )
    return DebitResult(
        group_session_id=group_session.id,
        amount=amount,
        balance_before=balance_before,
        balance_after=group_session.sessions_remaining,
    )


# ---------------------------------------------------------------------------
# Credit (atomic, clamped)
# ---------------------------------------------------------------------------


async def credit_sessions(
    db: AsyncSession,
    *,
    subscription_id: uuid.UUID,
    group_id: uuid.UUID,
    amount: int = 1,
    reason: LedgerReason = LedgerReason.CANCELLATION_REFUND,
    allow_partial: bool = True,
    registration_id: Optional[uuid.UUID] = None,
    initiated_by: Optional[str] = None,
    forced: bool = False,
) -> CreditResult:
    """Increment ``sessions_remaining`` without ever exceeding ``total_sessions``.

    The applied amount is clamped to the headroom left under the total and
    reported in ``CreditResult.credited``. With ``allow_partial=False`` a
    clamp raises ``SessionCapExceededError`` instead.
    """
    if amount <= 0:
        raise ValueError("Credit amount must be positive")

    group_session = await _lock_group_session(db, subscription_id, group_id)
    if group_session is None:
        raise NotFoundError(
            "Session entitlement not found",
            subscription_id=subscription_id,
            group_id=group_id,
        )

    balance_before = group_session.sessions_remaining
    headroom = max(group_session.total_sessions - balance_before, 0)
    credited = min(amount, headroom)
    if credited < amount and not allow_partial:
        raise SessionCapExceededError(
            f"Cannot credit {amount} session(s); only {headroom} below the total.",
            subscription_id=subscription_id,
            group_id=group_id,
        )

    group_session.sessions_remaining = balance_before + credited
    _journal(
        db,
        group_session,
        direction=LedgerDirection.CREDIT,
        reason=reason,
        requested=amount,
        applied=credited,
        balance_before=balance_before,
        registration_id=registration_id,
        initiated_by=initiated_by,
        forced=forced,
    )
    await db.flush()

    if credited < amount:
        logger.warning(
            "Credit to %s clamped at total: requested %d, applied %d",
            group_session.id,
            amount,
            credited,
        )
    logger.info(
        "Credit %d session(s) to %s, balance %d→%d",
        credited,
        group_session.id,
        balance_before,
        group_session.sessions_remaining,
    )
    return CreditResult(
        group_session_id=group_session.id,
        requested=amount,
        credited=credited,
        balance_before=balance_before,
        balance_after=group_session.sessions_remaining,
    )


# ---------------------------------------------------------------------------
# Balance (read-only)
# ---------------------------------------------------------------------------


async def get_group_session(
    db: AsyncSession, subscription_id: uuid.UUID, group_id: uuid.UUID
) -> SubscriptionGroupSession:
    """Get an entitlement row. Raises ``NotFoundError`` if missing."""
    result = await db.execute(
        select(SubscriptionGroupSession).where(
            SubscriptionGroupSession.subscription_id == subscription_id,
            SubscriptionGroupSession.group_id == group_id,
        )
    )
    group_session = result.scalar_one_or_none()
    if group_session is None:
        raise NotFoundError("Session entitlement not found")
    return group_session
