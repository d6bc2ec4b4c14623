"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from fusiondonate.config import get_settings
from fusiondonate.store.database import close_db, init_db
from fusiondonate.web.services.errors import OrderServiceError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    await init_db()
    yield
    # Shutdown
    await close_db()


def register_exception_handlers(app: FastAPI) -> None:
    """Render every failure as ``{"error": message}``."""

    @app.exception_handler(OrderServiceError)
    async def order_service_error(request: Request, exc: OrderServiceError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        return JSONResponse(status_code=400, content={"error": f"Invalid request: {problems}"})

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"error": str(exc) or "Internal server error"})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="FusionDonate API",
        description="Cross-chain donation backend on 1inch Fusion+",
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.debug,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Register routes
    from fusiondonate.api.routes import health
    from fusiondonate.web.controllers import (
        balances_router,
        fusion_orders_router,
        order_processing_router,
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(fusion_orders_router)
    app.include_router(order_processing_router)
    app.include_router(balances_router)

    return app


# Default app instance
app = create_app()
