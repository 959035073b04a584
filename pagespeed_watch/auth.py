"""Request classification, webhook signature checks, and access-key checks."""

import hashlib
import hmac
import json
import logging
from typing import Mapping, Optional

from pagespeed_watch.config import Settings
from pagespeed_watch.exceptions import (
    AuthenticationFailure, AuthorizationFailure, ValidationFailure,
)
from pagespeed_watch.models.schemas import AuditRequest, TriggerKind

logger = logging.getLogger("pagespeed.auth")


def classify_trigger(headers: Mapping[str, str], deployment_header: str) -> TriggerKind:
    """Requests without the deployment header are treated as scheduled (trusted).

    `headers` should be case-insensitive, as Starlette's are.
    """
    if headers.get(deployment_header) is None:
        return TriggerKind.SCHEDULED
    return TriggerKind.WEBHOOK


def compute_signature(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha1).hexdigest()


def verify_signature(body: bytes, secret: str, signature: Optional[str]) -> bool:
    if not secret or not signature:
        return False
    return hmac.compare_digest(compute_signature(body, secret).encode(), signature.encode("utf-8"))


def _deployment_id(body: bytes) -> str:
    try:
        payload = json.loads(body)
    except ValueError:
        return ""
    deployment = payload.get("deployment") if isinstance(payload, dict) else None
    if not isinstance(deployment, dict):
        return ""
    dep_id = deployment.get("id")
    return str(dep_id) if dep_id else ""


def authorize_request(
    headers: Mapping[str, str],
    body: bytes,
    url: Optional[str],
    key: Optional[str],
    settings: Settings,
) -> AuditRequest:
    """Classify the request and, for webhooks, run every check in order.

    Webhooks are checked for the access key first, then the signature over
    the raw body, then the deployment id. Scheduled requests only need a url.
    Raises an AuditError subclass on rejection.
    """
    kind = classify_trigger(headers, settings.deployment_header)

    if kind is TriggerKind.SCHEDULED:
        if not url:
            logger.warning("Scheduled request rejected: no url")
            raise ValidationFailure()
        return AuditRequest.scheduled(url)

    if not key or not hmac.compare_digest(key.encode("utf-8"), settings.secure_key.encode("utf-8")):
        logger.warning("Webhook rejected: access key mismatch")
        raise AuthorizationFailure()

    if not verify_signature(body, settings.webhook_secret, headers.get(settings.signature_header)):
        logger.warning("Webhook rejected: invalid signature")
        raise AuthenticationFailure()

    deployment_id = _deployment_id(body)
    if not deployment_id or not url:
        logger.warning(f"Webhook rejected: deployment_id={deployment_id!r} url={url!r}")
        raise ValidationFailure()

    return AuditRequest.webhook(url, deployment_id, key)
