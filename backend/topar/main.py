"""
Topar marketplace API application
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, get_settings
from .core.exceptions import MarketplaceError
from .core.logging import get_logger, setup_logging
from .core.middleware import RequestLoggingMiddleware
from .database import build_engine, build_session_factory, init_db
from .routes import deals, listings, users

logger = get_logger(__name__)


async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


def create_app(settings: Optional[Settings] = None, create_tables: bool = True) -> FastAPI:
    """
    Build the FastAPI application.

    Everything that needs configuration receives it from here; pass an
    explicit Settings in tests, otherwise it is read from the environment.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    engine = build_engine(settings)
    if create_tables:
        init_db(engine)

    app = FastAPI(title=settings.app_name, version=settings.app_version, debug=settings.debug)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(MarketplaceError, marketplace_error_handler)

    app.include_router(deals.router, prefix="/api/deals", tags=["deals"])
    app.include_router(listings.router, prefix="/api/listings", tags=["listings"])
    app.include_router(users.router, prefix="/api/users", tags=["users"])

    @app.get("/")
    def root():
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/health")
    def health():
        return {"status": "ok"}

    logger.info(f"{settings.app_name} {settings.app_version} initialised")
    return app


def run() -> None:
    """Console entry point"""
    import uvicorn

    uvicorn.run("topar.main:create_app", factory=True, host="0.0.0.0", port=3001)
