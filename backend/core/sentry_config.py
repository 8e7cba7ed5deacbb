"""
Sentry SDK configuration with privacy-compliant settings.

Implements:
- Environment-based initialization
- PII scrubbing (this service handles erasure requests, so events must
  never become a second copy of the data being erased)
- Loguru and SQLAlchemy integrations
"""

from typing import Any, Optional

import sentry_sdk
from sentry_sdk.integrations.loguru import LoguruIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.types import Event, Hint

from core.correlation import get_correlation_id
from models.config import settings

# Keys that may carry personal data inside `extra` payloads
_PII_EXTRA_KEYS = {"email", "confirm_email", "username", "ip_address", "user_agent"}


def _before_send(event: Event, hint: Hint) -> Event | None:
    """
    Scrub PII before sending to Sentry.

    Keeps only the user ID for traceability and drops identifying fields
    from the user block and from `extra`.

    Args:
        event: Sentry event.
        hint: Additional context about the event.

    Returns:
        Modified event with PII removed.
    """
    user = event.get("user")
    if user:
        user.pop("email", None)
        user.pop("username", None)
        if "ip_address" in user:
            user["ip_address"] = "{{auto}}"

    extra = event.get("extra")
    if isinstance(extra, dict):
        for key in _PII_EXTRA_KEYS & set(extra):
            extra[key] = "[Filtered]"

    return event


def init_sentry(dsn: Optional[str] = None) -> bool:
    """
    Initialize Sentry SDK.

    Sentry is disabled when no DSN is configured.

    Args:
        dsn: Override for settings.SENTRY_DSN.

    Returns:
        True if Sentry was initialized.
    """
    dsn = dsn or settings.SENTRY_DSN
    if not dsn:
        return False

    sentry_sdk.init(
        dsn=dsn,
        environment=settings.ENVIRONMENT,
        release=settings.SENTRY_RELEASE,
        send_default_pii=False,
        integrations=[
            SqlalchemyIntegration(),
            LoguruIntegration(),
        ],
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        sample_rate=1.0,
        before_send=_before_send,
        attach_stacktrace=True,
        max_breadcrumbs=50,
        ignore_errors=[KeyboardInterrupt, SystemExit],
    )
    return True


def capture_service_error(
    exc: BaseException, service: str, method: str, **extra: Any
) -> None:
    """
    Report an unexpected failure raised inside a service method.

    Args:
        exc: The exception to report.
        service: Service class name (Sentry tag).
        method: Method name (Sentry tag).
        **extra: Identifiers attached to the event (ids only).
    """
    with sentry_sdk.new_scope() as scope:
        scope.set_tag("service", service)
        scope.set_tag("method", method)
        correlation_id = get_correlation_id()
        if correlation_id:
            scope.set_tag("correlation_id", correlation_id)
        for key, value in extra.items():
            scope.set_extra(key, value)
        sentry_sdk.capture_exception(exc)
