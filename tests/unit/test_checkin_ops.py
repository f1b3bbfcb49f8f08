"""Unit tests for check-in / check-out and the QR recorder."""

import uuid
from datetime import timedelta

import pytest
from services.registrations_service.errors import (
    AlreadyCheckedInError,
    NotFoundError,
)
from services.registrations_service.models import Checkin, RegistrationStatus
from services.registrations_service.services.checkin_ops import (
    check_in_by_qr,
    check_out_by_qr,
    get_registration_by_qr,
)
from services.registrations_service.services.registration_ops import (
    Caller,
    approve_registration,
    cancel_registration,
    check_in,
    check_out,
    create_registration,
)
from sqlalchemy import func, select
from tests.factories import (
    RegistrationFactory,
    read_counters,
    read_registration,
    seed_bookable_course,
)


async def _booked(db):
    setup = await seed_bookable_course(db)
    registration = await create_registration(
        db, caller=Caller(member_id=setup.member_id), course_id=setup.course_id
    )
    return setup, registration.id


async def _checkin_count(db) -> int:
    return await db.scalar(select(func.count()).select_from(Checkin))


# ---------------------------------------------------------------------------
# check_in
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_check_in_marks_attended(db_session, session_factory):
    setup, registration_id = await _booked(db_session)

    checkin = await check_in(db_session, registration_id=registration_id)

    assert checkin.registration_id == registration_id
    assert checkin.member_id == setup.member_id
    assert checkin.session_consumed is True
    stored = await read_registration(session_factory, registration_id)
    assert stored.status == RegistrationStatus.ATTENDED


@pytest.mark.asyncio
@pytest.mark.unit
async def test_second_check_in_conflicts_and_changes_nothing(
    db_session, session_factory
):
    setup, registration_id = await _booked(db_session)
    await check_in(db_session, registration_id=registration_id)
    counters = await read_counters(
        session_factory, setup.course_id, setup.group_session_id
    )

    with pytest.raises(AlreadyCheckedInError):
        await check_in(db_session, registration_id=registration_id)

    assert await read_counters(
        session_factory, setup.course_id, setup.group_session_id
    ) == counters == (1, 7)
    assert await _checkin_count(db_session) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_check_in_after_approval_conflicts(db_session):
    _, registration_id = await _booked(db_session)
    await approve_registration(
        db_session,
        caller=Caller(member_id=None, is_admin=True),
        registration_id=registration_id,
    )

    with pytest.raises(AlreadyCheckedInError):
        await check_in(db_session, registration_id=registration_id)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_late_check_in_from_absent(db_session, session_factory):
    setup = await seed_bookable_course(db_session)
    registration = RegistrationFactory.create(
        member_id=setup.member_id,
        course_id=setup.course_id,
        subscription_id=setup.subscription_id,
        group_id=setup.group_id,
        status=RegistrationStatus.ABSENT,
    )
    db_session.add(registration)
    await db_session.commit()

    await check_in(db_session, registration_id=registration.id)

    stored = await read_registration(session_factory, registration.id)
    assert stored.status == RegistrationStatus.ATTENDED


@pytest.mark.asyncio
@pytest.mark.unit
async def test_check_in_cancelled_registration_is_not_found(db_session):
    setup, registration_id = await _booked(db_session)
    await cancel_registration(
        db_session, caller=Caller(member_id=setup.member_id), registration_id=registration_id
    )

    with pytest.raises(NotFoundError, match="not valid for check-in"):
        await check_in(db_session, registration_id=registration_id)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_check_in_unknown_registration(db_session):
    with pytest.raises(NotFoundError):
        await check_in(db_session, registration_id=uuid.uuid4())


# ---------------------------------------------------------------------------
# check_out
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_check_out_before_course_ends_reverts_to_registered(db_session):
    setup, registration_id = await _booked(db_session)
    await check_in(db_session, registration_id=registration_id)

    result = await check_out(
        db_session,
        registration_id=registration_id,
        now=setup.starts_at + timedelta(minutes=30),
    )

    assert result.course_finished is False
    assert result.new_status == RegistrationStatus.REGISTERED
    assert await _checkin_count(db_session) == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_check_out_after_course_finished_marks_absent(db_session):
    setup, registration_id = await _booked(db_session)
    await check_in(db_session, registration_id=registration_id)

    result = await check_out(
        db_session,
        registration_id=registration_id,
        now=setup.starts_at + timedelta(hours=2),
    )

    assert result.course_finished is True
    assert result.new_status == RegistrationStatus.ABSENT
    assert result.registration.status == RegistrationStatus.ABSENT


@pytest.mark.asyncio
@pytest.mark.unit
async def test_check_out_on_a_later_day_marks_absent(db_session):
    setup, registration_id = await _booked(db_session)
    await check_in(db_session, registration_id=registration_id)

    result = await check_out(
        db_session,
        registration_id=registration_id,
        now=setup.starts_at + timedelta(days=1, hours=-9),
    )

    assert result.new_status == RegistrationStatus.ABSENT


@pytest.mark.asyncio
@pytest.mark.unit
async def test_check_out_without_checkin(db_session):
    _, registration_id = await _booked(db_session)

    with pytest.raises(NotFoundError):
        await check_out(db_session, registration_id=registration_id)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_check_in_again_after_check_out(db_session):
    _, registration_id = await _booked(db_session)
    await check_in(db_session, registration_id=registration_id)
    await check_out(db_session, registration_id=registration_id)

    checkin = await check_in(db_session, registration_id=registration_id)

    assert checkin.registration_id == registration_id
    assert await _checkin_count(db_session) == 1


# ---------------------------------------------------------------------------
# QR recorder
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_qr_lookup_and_check_in(db_session, session_factory):
    _, registration_id = await _booked(db_session)
    stored = await read_registration(session_factory, registration_id)

    found = await get_registration_by_qr(db_session, stored.qr_code)
    assert found.id == registration_id

    checkin = await check_in_by_qr(db_session, stored.qr_code)
    assert checkin.registration_id == registration_id

    result = await check_out_by_qr(db_session, stored.qr_code)
    assert result.new_status == RegistrationStatus.REGISTERED


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unknown_qr_code(db_session):
    with pytest.raises(NotFoundError):
        await check_in_by_qr(db_session, "REG-not-a-real-code")
