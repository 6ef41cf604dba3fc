"""FastAPI application for the ACS Energy lead CRM."""
from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from .core.config import settings
from .db.session import dispose_engine
from .jobs.scheduler import create_scheduler, start_scheduler, stop_scheduler
from .routers import auth as auth_router
from .routers import leads as leads_router
from .routers import reports as reports_router
from .routers import users as users_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    """Run the reminder scheduler for the lifetime of the app and release the pool on exit."""

    if settings.reminder_job_enabled:
        create_scheduler()
        start_scheduler()
    else:
        logger.info("Reminder job disabled")
    try:
        yield
    finally:
        stop_scheduler()
        await dispose_engine()


app = FastAPI(title="ACS Energy CRM API", version="0.1.0", lifespan=lifespan)

if settings.cors_allow_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(auth_router.router, prefix="/api/auth", tags=["auth"])
app.include_router(leads_router.router, prefix="/api/leads", tags=["leads"])
app.include_router(reports_router.router, prefix="/api/reports", tags=["reports"])
app.include_router(users_router.router, prefix="/api/users", tags=["users"])


@app.get("/", tags=["meta"])
async def root() -> dict[str, str]:
    """Identify the service."""

    return {"message": "ACS Energy CRM API is running"}


@app.get("/api/health", tags=["meta"])
async def health() -> dict[str, str]:
    """Liveness probe."""

    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@app.get("/robots.txt", response_class=PlainTextResponse, include_in_schema=False)
async def robots() -> str:
    """Keep crawlers off the API."""

    return "User-agent: *\nDisallow: /\n"
