"""Unit tests for the session ledger (debit/credit of group session credits)."""

import uuid

import pytest
from services.registrations_service.errors import (
    InsufficientSessionsError,
    NotFoundError,
    SessionCapExceededError,
)
from services.registrations_service.models import (
    LedgerDirection,
    LedgerReason,
    SessionLedgerEntry,
)
from services.registrations_service.services.session_ledger import (
    credit_sessions,
    debit_sessions,
    get_group_session,
)
from sqlalchemy import select
from tests.factories import seed_bookable_course


async def _balance(db, setup) -> int:
    group_session = await get_group_session(db, setup.subscription_id, setup.group_id)
    await db.refresh(group_session)
    return group_session.sessions_remaining


async def _entries(db) -> list[SessionLedgerEntry]:
    result = await db.execute(
        select(SessionLedgerEntry).order_by(SessionLedgerEntry.created_at)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# debit_sessions
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_debit_decrements_and_journals(db_session):
    setup = await seed_bookable_course(db_session, total_sessions=4)

    result = await debit_sessions(
        db_session, subscription_id=setup.subscription_id, group_id=setup.group_id
    )
    await db_session.commit()

    assert result.balance_before == 4
    assert result.balance_after == 3
    assert await _balance(db_session, setup) == 3

    [entry] = await _entries(db_session)
    assert entry.direction == LedgerDirection.DEBIT
    assert entry.reason == LedgerReason.BOOKING
    assert entry.amount == 1
    assert entry.balance_after == 3


@pytest.mark.asyncio
@pytest.mark.unit
async def test_debit_insufficient_has_no_side_effect(db_session):
    setup = await seed_bookable_course(
        db_session, total_sessions=4, sessions_remaining=1
    )

    with pytest.raises(InsufficientSessionsError):
        await debit_sessions(
            db_session,
            subscription_id=setup.subscription_id,
            group_id=setup.group_id,
            amount=2,
        )
    await db_session.rollback()

    assert await _balance(db_session, setup) == 1
    assert await _entries(db_session) == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_debit_without_entitlement_row(db_session):
    setup = await seed_bookable_course(db_session)

    with pytest.raises(InsufficientSessionsError):
        await debit_sessions(
            db_session, subscription_id=setup.subscription_id, group_id=uuid.uuid4()
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_debit_rejects_non_positive_amount(db_session):
    setup = await seed_bookable_course(db_session)

    with pytest.raises(ValueError):
        await debit_sessions(
            db_session,
            subscription_id=setup.subscription_id,
            group_id=setup.group_id,
            amount=0,
        )


# ---------------------------------------------------------------------------
# credit_sessions
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_credit_restores_balance(db_session):
    setup = await seed_bookable_course(
        db_session, total_sessions=4, sessions_remaining=2
    )

    result = await credit_sessions(
        db_session, subscription_id=setup.subscription_id, group_id=setup.group_id
    )
    await db_session.commit()

    assert result.credited == 1
    assert result.fully_applied
    assert await _balance(db_session, setup) == 3


@pytest.mark.asyncio
@pytest.mark.unit
async def test_credit_clamps_at_total(db_session):
    """Never refunds above total_sessions; reports what was applied."""
    setup = await seed_bookable_course(
        db_session, total_sessions=4, sessions_remaining=3
    )

    result = await credit_sessions(
        db_session,
        subscription_id=setup.subscription_id,
        group_id=setup.group_id,
        amount=3,
    )
    await db_session.commit()

    assert result.requested == 3
    assert result.credited == 1
    assert not result.fully_applied
    assert await _balance(db_session, setup) == 4

    [entry] = await _entries(db_session)
    assert entry.direction == LedgerDirection.CREDIT
    assert entry.requested_amount == 3
    assert entry.amount == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_credit_at_cap_applies_nothing(db_session):
    setup = await seed_bookable_course(db_session, total_sessions=4)

    result = await credit_sessions(
        db_session, subscription_id=setup.subscription_id, group_id=setup.group_id
    )
    await db_session.commit()

    assert result.credited == 0
    assert await _balance(db_session, setup) == 4


@pytest.mark.asyncio
@pytest.mark.unit
async def test_credit_strict_mode_raises_on_clamp(db_session):
    setup = await seed_bookable_course(
        db_session, total_sessions=4, sessions_remaining=4
    )

    with pytest.raises(SessionCapExceededError):
        await credit_sessions(
            db_session,
            subscription_id=setup.subscription_id,
            group_id=setup.group_id,
            allow_partial=False,
        )
    await db_session.rollback()

    assert await _entries(db_session) == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_credit_missing_entitlement_is_not_found(db_session):
    setup = await seed_bookable_course(db_session)

    with pytest.raises(NotFoundError):
        await credit_sessions(
            db_session, subscription_id=uuid.uuid4(), group_id=setup.group_id
        )
