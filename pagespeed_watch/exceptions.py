"""Audit request failures and the HTTP status each one maps to."""

GENERIC_FAILURE = "Failed to fetch PageSpeed Insights data or save to database"


class AuditError(Exception):
    status_code = 500
    message = GENERIC_FAILURE

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.message)
        self.detail = detail or self.message


class AuthenticationFailure(AuditError):
    """Webhook body does not match its signature header."""
    status_code = 403
    message = "Invalid webhook signature"


class AuthorizationFailure(AuditError):
    """The `key` query parameter does not match SECURE_KEY."""
    status_code = 403
    message = "Unauthorized access"


class ValidationFailure(AuditError):
    status_code = 400
    message = "Deployment ID or URL is missing"


class UpstreamFailure(AuditError):
    """A PageSpeed Insights call failed; `detail` is logged, never returned."""


class PersistenceFailure(AuditError):
    """The audit row could not be written."""
