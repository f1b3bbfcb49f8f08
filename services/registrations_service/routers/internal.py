"""Internal endpoints for schedulers and other backend services.

Not proxied by the gateway. Callers authenticate with either the shared
``CRON_SECRET`` or a service-role JWT.
"""

import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from libs.auth.dependencies import get_current_user
from libs.common.config import get_settings
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.registrations_service.schemas import SweepResponse
from services.registrations_service.services.absence_sweep import run_absence_sweep
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
router = APIRouter(prefix="/internal", tags=["internal-registrations"])


async def verify_cron_caller(
    authorization: Optional[str] = Header(None),
) -> str:
    """Accept the cron secret or a service-role token; return the caller label."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    cron_secret = get_settings().CRON_SECRET
    if cron_secret and secrets.compare_digest(token, cron_secret):
        return "cron"

    user = await get_current_user(
        HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)
    )
    if not user.is_service_role:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Service role required",
        )
    return user.user_id


@router.post("/cron/mark-absent", response_model=SweepResponse)
async def cron_mark_absent(
    caller: str = Depends(verify_cron_caller),
    db: AsyncSession = Depends(get_async_db),
):
    result = await run_absence_sweep(db)
    logger.info(
        "Cron absence sweep (%s) updated %d registration(s)",
        caller,
        result.updated_count,
    )
    return SweepResponse(updated_count=result.updated_count)
