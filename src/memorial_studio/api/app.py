"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from memorial_studio.api.assist import ai_router, uploads_router
from memorial_studio.api.memorials import router as memorials_router
from memorial_studio.api.payments import router as payments_router
from memorial_studio.app_logging import configure_logging
from memorial_studio.containers import AppContainer
from memorial_studio.domain.errors import MemorialError


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

    app.include_router(memorials_router)
    app.include_router(payments_router)
    app.include_router(ai_router)
    app.include_router(uploads_router)

    @app.exception_handler(MemorialError)
    async def memorial_error_handler(
        request: Request, exc: MemorialError
    ) -> JSONResponse:
        if exc.status_code >= 500:
            logger.warning(
                "Request failed: path=%s code=%s", request.url.path, exc.code
            )
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(Exception)
    async def unexpected_error_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.exception(
            "Unhandled error",
            extra={"path": request.url.path, "method": request.method},
        )
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "code": "internal_error"},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app
