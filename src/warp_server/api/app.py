"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from warp_server.api.classes import router as classes_router
from warp_server.api.functions import router as functions_router
from warp_server.api.users import router as users_router
from warp_server.app_logging import configure_logging
from warp_server.containers import AppContainer
from warp_server.domain.errors import DatabaseError, ErrorCode, WarpError


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

    prefix = container.settings.api_prefix
    app.include_router(classes_router, prefix=prefix)
    app.include_router(users_router, prefix=prefix)
    app.include_router(functions_router, prefix=prefix)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.exception_handler(WarpError)
    async def handle_warp_error(request: Request, exc: WarpError) -> JSONResponse:
        if isinstance(exc, DatabaseError):
            logger.error(
                "Database error on %s %s: %s",
                request.method,
                request.url.path,
                exc.message,
                exc_info=exc,
            )
        else:
            logger.info(
                "Request failed on %s %s: %s",
                request.method,
                request.url.path,
                exc.message,
            )
        return JSONResponse(
            status_code=exc.status,
            content={"code": int(exc.code), "message": exc.public_message},
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        error = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in error.get("loc", ()))
        return JSONResponse(
            status_code=400,
            content={
                "code": int(ErrorCode.VALIDATION_ERROR),
                "message": f"Invalid `{location}`: {error.get('msg', 'invalid')}",
            },
        )

    return app
