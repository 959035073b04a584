"""SQLAlchemy model, engine factory, and the audit sink."""

import logging
from datetime import datetime, timezone
from functools import lru_cache

from fastapi import Depends
from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, create_engine, insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base
from starlette.concurrency import run_in_threadpool

from pagespeed_watch.config import get_settings
from pagespeed_watch.exceptions import PersistenceFailure
from pagespeed_watch.models.schemas import AuditResult, Category

logger = logging.getLogger("pagespeed.database")

Base = declarative_base()


def _utcnow():
    return datetime.now(timezone.utc)


# ─── MODELS ──────────────────────────────────────────────────────────────────

class AuditRecord(Base):
    """One PageSpeed audit run, written once and never updated."""
    __tablename__ = "pagespeed_audits"

    id = Column(Integer, primary_key=True, autoincrement=True)
    url = Column(String(2048), nullable=False)
    deployment_id = Column(String(255), nullable=False, default="")  # "" for scheduled runs
    live = Column(Boolean, nullable=False)

    performance = Column(Float, nullable=True)
    best_practices = Column(Float, nullable=True)
    accessibility = Column(Float, nullable=True)
    seo = Column(Float, nullable=True)

    created_at = Column(DateTime, default=_utcnow)


# ─── DATABASE ENGINE ─────────────────────────────────────────────────────────

@lru_cache
def get_engine() -> Engine:
    settings = get_settings()
    url = settings.sqlalchemy_url
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(
        url,
        connect_args=connect_args,
        echo=settings.app_env == "development",
    )


def init_db(engine: Engine) -> None:
    """Create the audit table if it does not exist yet."""
    Base.metadata.create_all(engine, tables=[AuditRecord.__table__])


def dispose_engine() -> None:
    if get_engine.cache_info().currsize:
        get_engine().dispose()
        get_engine.cache_clear()


# ─── SINK ────────────────────────────────────────────────────────────────────

class AuditStore:
    """Writes audit results to the `pagespeed_audits` table."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def _insert(self, result: AuditResult) -> None:
        stmt = insert(AuditRecord).values(
            url=result.url,
            deployment_id=result.deployment_id,
            live=result.is_live,
            performance=result.score(Category.PERFORMANCE),
            best_practices=result.score(Category.BEST_PRACTICES),
            accessibility=result.score(Category.ACCESSIBILITY),
            seo=result.score(Category.SEO),
        )
        with self.engine.begin() as conn:
            conn.execute(stmt)

    async def save(self, result: AuditResult) -> None:
        try:
            await run_in_threadpool(self._insert, result)
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Insert for {result.url} failed: {e}") from e
        logger.info(f"Saved audit for {result.url} (live={result.is_live})")


def get_audit_store(engine: Engine = Depends(get_engine)) -> AuditStore:
    """FastAPI dependency for the audit sink."""
    return AuditStore(engine)
