from __future__ import annotations

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from transport_admin.api.v1.router import router as api_v1_router
from transport_admin.config.settings import settings
from transport_admin.core.exception_handlers import register_exception_handlers
from transport_admin.core.logging import setup_logging
from transport_admin.core.middleware import register_middlewares
from transport_admin.db.init_db import init_db
from transport_admin.services.gps.vendor_source import VendorLocationSource


def create_app(initialize_database: bool = True) -> FastAPI:
    """
    Application factory for the FastAPI app.

    - Configures logging, title, version and debug mode from Settings.
    - Registers CORS, core middleware and exception handlers.
    - Includes the versioned API router under API_V1_STR (default /api).
    - Holds the GPS vendor source and the SMS HTTP client for the app's
      lifetime and closes them on shutdown.
    """
    setup_logging()

    app = FastAPI(
        title=settings.APP_NAME,
        debug=settings.DEBUG,
        version=settings.API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Wildcard origins cannot be combined with credentials
    allow_all = not settings.CORS_ORIGINS or settings.CORS_ORIGINS == ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.CORS_ORIGINS,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middlewares(app)
    register_exception_handlers(app)

    app.include_router(api_v1_router, prefix=settings.API_V1_STR)

    app.state.vendor_source = VendorLocationSource.from_settings()
    app.state.sms_client = httpx.Client(timeout=settings.SMS_HTTP_TIMEOUT_SECONDS)

    @app.on_event("shutdown")
    def close_http_clients() -> None:
        app.state.vendor_source.close()
        app.state.sms_client.close()

    @app.get("/health", tags=["Health"])
    def health_check() -> dict:
        return {
            "status": "healthy",
            "app_name": settings.APP_NAME,
            "version": settings.API_VERSION,
            "database_configured": settings.is_database_configured(),
        }

    if initialize_database:
        @app.on_event("startup")
        async def on_startup() -> None:
            # Development convenience; production schemas are managed externally
            if not settings.is_production():
                init_db()

    return app


app = create_app()
