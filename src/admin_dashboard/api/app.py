"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from admin_dashboard.api.admin import router as admin_router
from admin_dashboard.app_logging import configure_logging
from admin_dashboard.containers import AppContainer
from admin_dashboard.domain.errors import DashboardError


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.exception_handler(DashboardError)
    async def dashboard_error_handler(
        request: Request, exc: DashboardError
    ) -> JSONResponse:
        logger.warning(
            "%s %s failed (%s): %s",
            request.method,
            request.url.path,
            exc.kind,
            exc.message,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "errorKind": exc.kind, "message": exc.message},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app
