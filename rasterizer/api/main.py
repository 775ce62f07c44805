"""
FastAPI Application
==================

Main FastAPI application with REST endpoints for HTML to PNG rendering.
"""

from contextlib import asynccontextmanager
import uuid
from typing import AsyncGenerator, Any, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from rasterizer.api.routes.health import router as health_router
from rasterizer.api.routes.render import router as render_router
from rasterizer.config.settings import get_settings
from rasterizer.config.logging import get_logger
from rasterizer.core.errors import RasterizerError
from rasterizer.core.pipeline import Rasterizer
from rasterizer.models.schemas import ErrorResponse

logger = get_logger(__name__)


def create_app(rasterizer: Optional[Rasterizer] = None) -> FastAPI:
    """
    Application factory.

    Args:
        rasterizer: Pipeline to serve; a default one is created and closed with
            the application when omitted

    Returns:
        FastAPI application instance
    """
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan manager."""
        logger.info("Starting FastAPI application")
        owned = rasterizer is None
        app.state.rasterizer = rasterizer if rasterizer is not None else Rasterizer()

        try:
            yield
        finally:
            logger.info("Shutting down FastAPI application")
            if owned:
                try:
                    await app.state.rasterizer.close()
                    logger.info("Rasterizer closed")
                except Exception as e:
                    logger.error("Error closing rasterizer", error=str(e))

    app = FastAPI(
        title=settings.app_name,
        description="Render HTML documents and remote pages to PNG images",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.enable_docs else None,
        redoc_url="/redoc" if settings.enable_docs else None,
    )

    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.include_router(health_router)
    app.include_router(render_router)

    # Request ID middleware
    @app.middleware("http")
    async def add_request_id(request: Request, call_next) -> JSONResponse:  # type: ignore
        """Add request ID to all requests."""
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)  # type: ignore
        response.headers["X-Request-ID"] = request_id  # type: ignore

        return response  # type: ignore

    @app.exception_handler(HTTPException)
    async def custom_http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        """Custom HTTP exception handler with structured error response."""
        error_response = ErrorResponse(
            error=exc.detail,
            error_code=str(exc.status_code),
            request_id=getattr(request.state, "request_id", None),
        )

        logger.error(
            "HTTP exception",
            status_code=exc.status_code,
            detail=exc.detail,
            request_id=error_response.request_id,
        )

        return JSONResponse(status_code=exc.status_code, content=error_response.model_dump(mode="json"))

    @app.exception_handler(RasterizerError)
    async def rasterizer_exception_handler(request: Request, exc: RasterizerError) -> JSONResponse:
        """Handle rasterizer errors escaping the routes."""
        error_response = ErrorResponse(
            error="Rendering failed due to an internal error.",
            error_code="RASTERIZER_ERROR",
            details={"message": str(exc)} if settings.debug else None,
            request_id=getattr(request.state, "request_id", None),
        )

        logger.error(
            "Rasterizer error",
            error_message=str(exc),
            request_id=error_response.request_id,
        )

        return JSONResponse(status_code=500, content=error_response.model_dump(mode="json"))

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Root endpoint with basic API information."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "endpoints": {"render": "/api/v1/render", "health": "/api/v1/health"},
        }

    return app


app = create_app()


def run_development_server() -> None:
    """Run development server with auto-reload."""
    settings = get_settings()
    uvicorn.run(
        "rasterizer.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    run_development_server()
