"""Registrations service routers."""

from services.registrations_service.routers.admin import router as admin_router
from services.registrations_service.routers.checkins import router as checkins_router
from services.registrations_service.routers.internal import router as internal_router
from services.registrations_service.routers.member import router as member_router

__all__ = [
    "admin_router",
    "checkins_router",
    "internal_router",
    "member_router",
]
