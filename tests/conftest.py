import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.pool import StaticPool

from pagespeed_watch.config import Settings, get_settings
from pagespeed_watch.main import app
from pagespeed_watch.models.database import AuditRecord, AuditStore, get_audit_store, init_db
from pagespeed_watch.models.schemas import Category
from pagespeed_watch.services.pagespeed import PageSpeedClient, get_pagespeed_client

PSI_ENDPOINT = "https://psi.test/pagespeedonline/v5/runPagespeed"
WEBHOOK_SECRET = "whsec_test"
SECURE_KEY = "s3cret"


class FakePSI:
    """Stands in for the PageSpeed Insights API behind an httpx.MockTransport."""

    def __init__(self):
        self.scores = {
            Category.PERFORMANCE: 0.91,
            Category.BEST_PRACTICES: 0.85,
            Category.ACCESSIBILITY: 1.0,
            Category.SEO: 0.77,
        }
        self.statuses = {}
        self.payload = None  # replaces the Lighthouse body when set
        self.calls = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        category = Category[request.url.params["category"]]
        self.calls.append(request)
        status = self.statuses.get(category, 200)
        if status != 200:
            return httpx.Response(status, json={"error": {"code": status}})
        if self.payload is not None:
            return httpx.Response(200, json=self.payload)
        score = self.scores.get(category)
        cat_body = {"id": category.lighthouse_key}
        if score is not None:
            cat_body["score"] = score
        return httpx.Response(
            200,
            json={"lighthouseResult": {"categories": {category.lighthouse_key: cat_body}}},
        )

    def transport(self):
        return httpx.MockTransport(self)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        webhook_secret=WEBHOOK_SECRET,
        secure_key=SECURE_KEY,
        psi_api_key="psi-key",
        psi_endpoint=PSI_ENDPOINT,
        database_url="sqlite://",
    )


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def store(engine):
    return AuditStore(engine)


@pytest.fixture
def fake_psi():
    return FakePSI()


@pytest.fixture
def psi_client(fake_psi):
    return PageSpeedClient(
        httpx.AsyncClient(transport=fake_psi.transport()),
        api_key="psi-key",
        endpoint=PSI_ENDPOINT,
    )


@pytest.fixture
def client(settings, store, fake_psi):
    async def _pagespeed_client():
        async with httpx.AsyncClient(transport=fake_psi.transport()) as http:
            yield PageSpeedClient(http, api_key="psi-key", endpoint=PSI_ENDPOINT)

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_audit_store] = lambda: store
    app.dependency_overrides[get_pagespeed_client] = _pagespeed_client
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def rows(engine):
    def _rows():
        with engine.connect() as conn:
            return conn.execute(
                select(
                    AuditRecord.url,
                    AuditRecord.deployment_id,
                    AuditRecord.live,
                    AuditRecord.performance,
                    AuditRecord.best_practices,
                    AuditRecord.accessibility,
                    AuditRecord.seo,
                )
            ).all()
    return _rows
