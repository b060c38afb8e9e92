"""
FastAPI application with application context lifecycle management.
"""

import time
from collections.abc import Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from nexus_crm.config import settings
from nexus_crm.context import AppContext
from nexus_crm.infrastructure.observability.logging import get_logger, log_request, setup_logging
from nexus_crm.routes import auth, contacts, dashboard, health
from nexus_crm.routes.errors import register_exception_handlers

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


def create_app(context_factory: Callable[[], AppContext] = AppContext.from_settings) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build the context on startup, tear it down on shutdown."""
        logger.info(
            "Application starting",
            environment=settings.environment,
            debug=settings.debug,
            store_mode=settings.STORE_MODE,
        )

        context = context_factory()
        try:
            await context.start()
        except Exception as e:
            logger.error("Failed to start application context", error=str(e))
            await context.close()
            raise

        app.state.context = context
        yield

        logger.info("Application shutting down")
        app.state.context = None
        await context.close()

    app = FastAPI(
        title="Nexus CRM",
        description="Contacts, interactions, financial records and billing alerts",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(dashboard.router)
    app.include_router(contacts.router)
    register_exception_handlers(app)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log HTTP requests with timing."""
        start_time = time.time()
        response = await call_next(request)
        process_time = (time.time() - start_time) * 1000

        context = getattr(request.app.state, "context", None)
        session = context.session if context is not None else None
        log_request(
            request.method,
            request.url.path,
            response.status_code,
            round(process_time, 2),
            user_id=session.user_id if session else None,
        )
        return response

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
