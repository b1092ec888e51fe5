from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fmx_pm.api.errors import register_error_handlers
from fmx_pm.api.middleware import AuthEnforcementMiddleware, RequestSizeLimitMiddleware, SecurityHeadersMiddleware
from fmx_pm.api.routers import (
    assignments,
    buildings,
    equipment,
    export,
    health,
    instructions,
    logs,
    pm_templates,
    request_types,
    task_templates,
)
from fmx_pm.api.security import StaticTokenAuthenticator
from fmx_pm.core.settings import Settings
from fmx_pm.db.base import Base
from fmx_pm.db.session import create_engine_and_sessionmaker
from fmx_pm.services.db_log_handler import DBLogHandler

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting FMX PM builder...")

        app.state.settings = settings

        # --- Auth ---
        if not settings.admin_token:
            raise RuntimeError("ADMIN_TOKEN is required")
        app.state.authenticator = StaticTokenAuthenticator(settings.admin_token)

        # --- DB ---
        db_rt = create_engine_and_sessionmaker(settings.database_url, echo=settings.db_echo)
        app.state.db_engine = db_rt.engine
        app.state.db_sessionmaker = db_rt.SessionLocal
        if settings.auto_create_db:
            Base.metadata.create_all(bind=db_rt.engine)

        # --- Logging ---
        pkg_logger = logging.getLogger("fmx_pm")
        pkg_logger.setLevel(settings.log_level)
        db_handler = None
        if settings.persist_server_logs:
            db_handler = DBLogHandler(db_rt.SessionLocal)
            pkg_logger.addHandler(db_handler)

        try:
            yield
        finally:
            logger.info("Shutting down FMX PM builder...")
            if db_handler is not None:
                pkg_logger.removeHandler(db_handler)
            app.state.db_engine.dispose()
            logger.info("FMX PM builder shutdown complete.")

    is_dev = settings.env.lower() in ("dev", "development", "local")
    app = FastAPI(
        title="FMX PM Builder",
        lifespan=lifespan,
        docs_url="/docs" if is_dev else None,
        redoc_url="/redoc" if is_dev else None,
        openapi_url="/openapi.json" if is_dev else None,
    )

    # Middleware
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_size_bytes)
    app.add_middleware(AuthEnforcementMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins or [],
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(buildings.router)
    app.include_router(equipment.router)
    app.include_router(instructions.router)
    app.include_router(request_types.router)
    app.include_router(task_templates.router)
    app.include_router(pm_templates.router)
    app.include_router(assignments.router)
    app.include_router(export.router)
    app.include_router(logs.router)

    return app
