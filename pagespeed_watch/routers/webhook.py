"""Audit trigger endpoint — hit by the platform cron and by deployment webhooks."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from pagespeed_watch.auth import authorize_request
from pagespeed_watch.config import Settings, get_settings
from pagespeed_watch.models.database import AuditStore, get_audit_store
from pagespeed_watch.models.schemas import AuditResponse, ErrorResponse
from pagespeed_watch.services.auditor import run_audit
from pagespeed_watch.services.pagespeed import PageSpeedClient, get_pagespeed_client

router = APIRouter(tags=["audit"])


@router.api_route(
    "/api/webhook",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD"],
    response_model=AuditResponse,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def trigger_audit(
    request: Request,
    url: Optional[str] = Query(None, description="Page to audit"),
    key: Optional[str] = Query(None, description="Shared access key (webhook calls only)"),
    settings: Settings = Depends(get_settings),
    client: PageSpeedClient = Depends(get_pagespeed_client),
    store: AuditStore = Depends(get_audit_store),
):
    """Run a PageSpeed audit for `url` and store the four category scores.

    Requests carrying the deployment header are webhooks and must pass the
    key and signature checks; everything else is a scheduled run.
    """
    # Hash the body exactly as received, before anything parses it.
    body = await request.body()
    audit_request = authorize_request(request.headers, body, url, key, settings)
    result = await run_audit(audit_request, client, store)
    return result.to_response()
