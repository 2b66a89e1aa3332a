# studio_booking/main.py
from __future__ import annotations

# Load .env early so settings and os.getenv agree
from dotenv import load_dotenv
load_dotenv()

from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from studio_booking.core.config import Settings
from studio_booking.core.errors import error_response, register_exception_handlers
from studio_booking.core.logging import LoggingMiddleware, get_logger, setup_logging
from studio_booking.db.session import Database
from studio_booking.services.notifications import NotificationDispatcher
from studio_booking.services.providers import build_dispatcher

# Routers
from studio_booking.api.routes.appointments import router as appointments_router
from studio_booking.api.routes.services import router as services_router

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> FastAPI:
    settings = settings or Settings()
    setup_logging(
        debug=settings.is_development,
        max_log_length=settings.MAX_LOG_LENGTH,
        level=settings.LOG_LEVEL,
    )
    database = database or Database(settings.async_db_uri)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database.connect()
        if settings.DB_CREATE_ALL:
            await database.create_all()
        async with httpx.AsyncClient(timeout=settings.PROVIDER_TIMEOUT_SECONDS) as http:
            if dispatcher is None:
                app.state.dispatcher = build_dispatcher(settings, http)
            logger.info("application_startup", env=settings.APP_ENV)
            yield
        logger.info("application_shutdown")
        await database.dispose()

    app = FastAPI(
        title="Studio Booking",
        description="Consultation booking backend for a freelance studio",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database
    if dispatcher is not None:
        app.state.dispatcher = dispatcher

    # Request logging with correlation ids
    app.middleware("http")(
        LoggingMiddleware(
            log_requests=settings.LOG_REQUESTS,
            log_responses=settings.LOG_RESPONSES,
            slow_threshold=settings.SLOW_REQUEST_THRESHOLD,
        )
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-API-Key"],
    )

    register_exception_handlers(app)

    # -------- Health / readiness (public) --------
    @app.get("/healthz", include_in_schema=False)
    async def healthz():
        return {"ok": True}

    @app.get("/readyz", include_in_schema=False)
    async def readyz(request: Request):
        try:
            await request.app.state.database.ping()
        except Exception as e:
            logger.warning("readiness_failed", error=str(e))
            return error_response(503, "Base de données indisponible")
        return {"db": "ok"}

    # -------- Include routers --------
    app.include_router(services_router)
    app.include_router(appointments_router)
    return app


app = create_app()
