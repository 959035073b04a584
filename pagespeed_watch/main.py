"""PageSpeed Watch — FastAPI application that audits pages on cron or deploy.

Serves the audit trigger endpoint and, when URLs are configured, runs
scheduled audits in-process.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from pagespeed_watch.config import get_settings
from pagespeed_watch.exceptions import AuditError
from pagespeed_watch.models.database import dispose_engine, get_engine, init_db
from pagespeed_watch.models.schemas import HealthResponse
from pagespeed_watch.routers import webhook_router
from pagespeed_watch.services.auditor import scheduled_audit_job

VERSION = "1.0.0"

# ─── LOGGING ─────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s | %(name)-25s | %(levelname)-7s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("pagespeed")

# ─── SCHEDULER ───────────────────────────────────────────────────────────────

scheduler = AsyncIOScheduler()


# ─── APP LIFECYCLE ───────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    settings = get_settings()

    if settings.create_tables:
        logger.info("Ensuring audit table exists...")
        init_db(get_engine())

    if settings.scheduled_urls:
        scheduler.add_job(
            scheduled_audit_job,
            trigger=IntervalTrigger(hours=settings.schedule_interval_hours),
            id="scheduled_audit",
            name="Scheduled PageSpeed audit",
            replace_existing=True,
        )
        scheduler.start()
        logger.info(
            f"Scheduler started — auditing {len(settings.scheduled_urls)} urls "
            f"every {settings.schedule_interval_hours} hours"
        )

    yield

    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
    dispose_engine()


# ─── APP ─────────────────────────────────────────────────────────────────────

app = FastAPI(
    title="PageSpeed Watch API",
    description=(
        "Runs PageSpeed Insights audits on a schedule or after each deployment "
        "and stores the performance, best-practices, accessibility and SEO scores."
    ),
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(webhook_router)


@app.exception_handler(AuditError)
async def audit_error_handler(request: Request, exc: AuditError):
    if exc.status_code >= 500:
        logger.error(
            f"Error fetching PageSpeed Insights data or saving to database: {exc.detail}",
            exc_info=exc,
        )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


# ─── HEALTH CHECK ────────────────────────────────────────────────────────────

@app.get("/health", response_model=HealthResponse)
async def health():
    db = get_settings().sqlalchemy_url
    return HealthResponse(
        status="ok",
        service="pagespeed-watch",
        version=VERSION,
        db_type="turso" if "libsql" in db else db.split(":", 1)[0],
    )
