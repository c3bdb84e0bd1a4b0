"""
NIRA Registry — Application entry point.

This is the **only** file that assembles the app.  All business logic
lives in the `api/`, `services/`, `models/`, and `core/` packages.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.api import api_router
from app.api.v1.endpoints.auth import limiter
from app.core.config import settings
from app.core.exceptions import register_exception_handlers
from app.db.base import Base
from app.db.init_db import init_db, verify_schema
from app.db.session import async_session_factory, engine

# Ensure all models are imported so metadata.create_all can see them
from app.models.activity import SystemActivity  # noqa: F401
from app.models.citizen import Citizen, CitizenStatusChange  # noqa: F401
from app.models.notice import SystemNotice  # noqa: F401
from app.models.rbac import Menu, Permission, Role  # noqa: F401
from app.models.user import User  # noqa: F401
from app.services.session_store import InMemorySessionStore, SessionManager

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Create missing tables, then make sure nothing mapped is absent
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await verify_schema(conn)
    logger.info("Database tables initialised")

    # Seed roles, permissions, menus and default users on first run
    async with async_session_factory() as session:
        await init_db(session)

    logger.info("%s v%s started", settings.PROJECT_NAME, settings.VERSION)
    yield
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="National identity registry back office",
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Server-side sessions and login throttling
    application.state.session_manager = SessionManager(
        InMemorySessionStore(),
        timeout_seconds=settings.SESSION_TIMEOUT_SECONDS,
    )
    application.state.limiter = limiter

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    # Mount API v1
    application.include_router(api_router, prefix=settings.API_V1_PREFIX)

    @application.get(f"{settings.API_V1_PREFIX}/health", tags=["health"])
    async def health() -> dict:
        return {"success": True, "status": "ok", "version": settings.VERSION}

    return application


app = create_app()
