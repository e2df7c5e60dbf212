from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.trustedhost import TrustedHostMiddleware

from subtracker.core.config import settings
from subtracker.core.database import Database
from subtracker.core.errors import register_error_handlers
from subtracker.core.logging_config import setup_logging
from subtracker.core.middleware import CSRFMiddleware, RequestContextMiddleware, SecurityHeadersMiddleware
from subtracker.domain.categories.models import Category  # noqa: F401
from subtracker.domain.subscriptions.cancellation import CancellationScheduler
from subtracker.domain.subscriptions.models import Subscription  # noqa: F401
from subtracker.domain.users.models import User  # noqa: F401
from subtracker.web.routes import api, health

setup_logging()


def create_app(
    database: Optional[Database] = None,
    cancellations: Optional[CancellationScheduler] = None,
) -> FastAPI:
    """Build the application around an explicitly constructed storage client."""
    database = database or Database(settings.DATABASE_URL, echo=settings.DEBUG)
    cancellations = cancellations or CancellationScheduler(
        database,
        grace_seconds=settings.CANCELLATION_GRACE_SECONDS,
        secret_key=settings.SECRET_KEY,
        confirm_max_age=settings.CANCELLATION_CONFIRM_MAX_AGE_SECONDS,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open storage on startup; drop pending timers and close it on shutdown."""
        await database.connect()
        await database.create_all()
        try:
            yield
        finally:
            await cancellations.shutdown()
            await database.disconnect()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Personal subscription tracker",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.database = database
    app.state.cancellations = cancellations

    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=settings.ALLOWED_HOSTS,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(CSRFMiddleware)
    app.add_middleware(RequestContextMiddleware)

    register_error_handlers(app)

    # Include routers
    app.include_router(api.router, prefix="/api")
    app.include_router(health.router, tags=["health"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
