"""FastAPI application for the Registrations Service."""

from dotenv import load_dotenv
from fastapi import FastAPI

load_dotenv()

from libs.common.middleware import add_observability_middleware  # noqa: E402
from libs.common.rate_limit import (  # noqa: E402
    limiter,
    rate_limit_exceeded_handler,
)
from services.registrations_service.errors import register_error_handlers  # noqa: E402
from services.registrations_service.routers import (  # noqa: E402
    admin_router,
    checkins_router,
    internal_router,
    member_router,
)
from slowapi.errors import RateLimitExceeded  # noqa: E402


def create_app() -> FastAPI:
    """Create and configure the Registrations Service FastAPI app."""
    app = FastAPI(
        title="Gym Portal Registrations Service",
        version="0.1.0",
        description="Class registrations, session credits and check-ins.",
    )

    add_observability_middleware(app)
    register_error_handlers(app)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "registrations"}

    # Member-facing routes
    app.include_router(member_router)

    # Admin routes
    app.include_router(admin_router)
    app.include_router(checkins_router)

    # Scheduler / service-to-service routes (not proxied by gateway)
    app.include_router(internal_router)

    return app


app = create_app()
