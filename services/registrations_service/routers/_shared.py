"""Helpers shared by the registrations routers."""

from libs.auth.models import AuthUser
from services.registrations_service.schemas import (
    CancellationResponse,
    CheckoutResponse,
    RegistrationResponse,
)
from services.registrations_service.services.registration_ops import (
    CancellationResult,
    Caller,
    CheckoutResult,
)


def caller_from_user(user: AuthUser) -> Caller:
    return Caller(member_id=user.member_id, is_admin=user.is_admin, actor=user.user_id)


def cancellation_response(result: CancellationResult) -> CancellationResponse:
    return CancellationResponse(
        registration=RegistrationResponse.model_validate(result.registration),
        refunded=result.refunded,
        is_within_refund_window=result.is_within_refund_window,
        sessions_credited=result.sessions_credited,
        forced=result.forced,
    )


def checkout_response(result: CheckoutResult) -> CheckoutResponse:
    return CheckoutResponse(
        registration_id=result.registration.id,
        removed_checkin_id=result.removed_checkin_id,
        new_status=result.new_status,
        course_finished=result.course_finished,
    )
