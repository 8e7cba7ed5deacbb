"""Core infrastructure: correlation IDs, logging, Sentry, best-effort telemetry."""

from core.correlation import (
    correlation_context,
    correlation_id_var,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from core.logging_config import configure_logging
from core.sentry_config import capture_service_error, init_sentry
from core.telemetry import best_effort

__all__ = [
    "best_effort",
    "capture_service_error",
    "configure_logging",
    "correlation_context",
    "correlation_id_var",
    "generate_correlation_id",
    "get_correlation_id",
    "init_sentry",
    "set_correlation_id",
]
