"""Audit runner: score a page and store the result; also the scheduled job."""

import logging

import httpx

from pagespeed_watch.config import get_settings
from pagespeed_watch.exceptions import AuditError, PersistenceFailure, UpstreamFailure
from pagespeed_watch.models.database import AuditStore, get_engine
from pagespeed_watch.models.schemas import AuditRequest, AuditResult
from pagespeed_watch.services.pagespeed import PageSpeedClient

logger = logging.getLogger("pagespeed.auditor")


async def run_audit(
    request: AuditRequest,
    client: PageSpeedClient,
    store: AuditStore,
) -> AuditResult:
    """Score the target URL and write exactly one row.

    Nothing is written unless all four categories were fetched.
    """
    logger.info(
        f"Auditing {request.target_url} "
        f"({request.trigger_kind.value}, deployment={request.deployment_id or '-'})"
    )
    try:
        scores = await client.fetch_scores(request.target_url)
    except AuditError:
        raise
    except Exception as e:
        raise UpstreamFailure(f"Scoring {request.target_url} failed: {e!r}") from e

    result = AuditResult.from_request(request, scores)
    try:
        await store.save(result)
    except AuditError:
        raise
    except Exception as e:
        raise PersistenceFailure(f"Saving audit for {request.target_url} failed: {e!r}") from e
    return result


async def scheduled_audit_job():
    """Called by APScheduler on an interval for each configured URL."""
    settings = get_settings()
    urls = settings.scheduled_urls
    logger.info(f"=== Scheduled audit starting ({len(urls)} urls) ===")

    store = AuditStore(get_engine())
    failed = 0
    async with httpx.AsyncClient(timeout=settings.psi_timeout_seconds) as http:
        client = PageSpeedClient(
            http,
            api_key=settings.psi_api_key,
            endpoint=settings.psi_endpoint,
            strategy=settings.psi_strategy,
        )
        for url in urls:
            try:
                await run_audit(AuditRequest.scheduled(url), client, store)
            except AuditError as e:
                failed += 1
                logger.error(f"Scheduled audit for {url} failed: {e.detail}")

    logger.info(f"=== Scheduled audit complete: {len(urls) - failed} ok, {failed} failed ===")
