import httpx
import pytest

from pagespeed_watch.exceptions import PersistenceFailure, UpstreamFailure
from pagespeed_watch.models.schemas import AuditRequest, Category
from pagespeed_watch.services import auditor
from pagespeed_watch.services.auditor import run_audit, scheduled_audit_job


async def test_run_audit_returns_persisted_result(psi_client, store, rows):
    result = await run_audit(AuditRequest.webhook("https://example.com", "dep123", "k"), psi_client, store)

    assert result.deployment_id == "dep123"
    assert result.score(Category.ACCESSIBILITY) == 100
    assert rows() == [("https://example.com", "dep123", False, 91, 85, 100, 77)]


async def test_run_audit_writes_nothing_on_upstream_failure(psi_client, fake_psi, store, rows):
    fake_psi.statuses[Category.SEO] = 500

    with pytest.raises(UpstreamFailure):
        await run_audit(AuditRequest.scheduled("https://example.com"), psi_client, store)
    assert rows() == []


@pytest.fixture
def scheduled_env(monkeypatch, settings, engine, fake_psi):
    real_client = httpx.AsyncClient
    settings.scheduled_urls = ["https://a.example", "https://b.example", "https://c.example"]
    monkeypatch.setattr(auditor, "get_settings", lambda: settings)
    monkeypatch.setattr(auditor, "get_engine", lambda: engine)
    monkeypatch.setattr(
        auditor.httpx, "AsyncClient",
        lambda **kw: real_client(transport=fake_psi.transport()),
    )


async def test_scheduled_job_audits_every_url_as_live(scheduled_env, rows):
    await scheduled_audit_job()

    assert [(r.url, r.deployment_id, r.live) for r in rows()] == [
        ("https://a.example", "", True),
        ("https://b.example", "", True),
        ("https://c.example", "", True),
    ]


async def test_scheduled_job_continues_after_a_failure(scheduled_env, fake_psi, rows):
    original = fake_psi.__call__

    def flaky(request):
        if request.url.params["url"] == "https://b.example":
            return httpx.Response(500)
        return original(request)

    fake_psi.transport = lambda: httpx.MockTransport(flaky)

    await scheduled_audit_job()

    assert [r.url for r in rows()] == ["https://a.example", "https://c.example"]


async def test_run_audit_wraps_unexpected_scoring_errors(psi_client, store, rows, monkeypatch):
    async def explode(url):
        raise KeyError("lighthouseResult")

    monkeypatch.setattr(psi_client, "fetch_scores", explode)

    with pytest.raises(UpstreamFailure) as excinfo:
        await run_audit(AuditRequest.scheduled("https://example.com"), psi_client, store)
    assert isinstance(excinfo.value.__cause__, KeyError)
    assert rows() == []


async def test_run_audit_wraps_driver_errors(psi_client, store, monkeypatch):
    def stream_closed(result):
        raise RuntimeError("libsql: stream closed")

    monkeypatch.setattr(store, "_insert", stream_closed)

    with pytest.raises(PersistenceFailure, match="stream closed"):
        await run_audit(AuditRequest.scheduled("https://example.com"), psi_client, store)
