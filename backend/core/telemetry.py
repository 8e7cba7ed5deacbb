"""
Best-effort side effects.

A best-effort block may fail silently: the failure is logged, never retried,
and never propagated to the primary operation. Only non-critical counters
belong here; anything that must stay consistent with account state goes
through repositories.database.transaction instead.
"""

from contextlib import contextmanager
from typing import Iterator

from loguru import logger


@contextmanager
def best_effort(name: str, **context: object) -> Iterator[None]:
    """
    Run a non-critical side effect, logging and swallowing any failure.

    Args:
        name: Short label for the side effect (used in the log line).
        **context: Identifiers to include in the log record.
    """
    try:
        yield
    except Exception as exc:  # noqa: BLE001
        logger.bind(side_effect=name, **context).warning(
            f"Best-effort side effect '{name}' failed: {exc}"
        )
