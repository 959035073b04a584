from pagespeed_watch.models.database import (
    Base, AuditRecord, AuditStore,
    get_engine, get_audit_store, init_db, dispose_engine,
)
from pagespeed_watch.models.schemas import (
    Category, CATEGORIES, TriggerKind,
    AuditRequest, CategoryScore, AuditResult,
    AuditResponse, ErrorResponse, HealthResponse,
)
