"""Process-wide error-reporting channel.

Errors that the controller gives up on, and exceptions caught at a worker
boundary, are funnelled through here so that they are logged and counted
in one place.  Extra handlers (e.g. forwarding to an error tracker) can be
appended to ``error_handlers``.
"""

from __future__ import annotations

from collections.abc import Callable

import structlog

from kubealert.observability.metrics import errors_total

_log = structlog.get_logger(component="errors")

ErrorHandler = Callable[[BaseException], None]

error_handlers: list[ErrorHandler] = []


def handle_error(exc: BaseException) -> None:
    """Report an error that was handled but could not be recovered from."""
    errors_total.labels(type="error").inc()
    _log.error("error_reported", error=str(exc), error_type=type(exc).__name__)
    _dispatch(exc)


def handle_crash(exc: BaseException) -> None:
    """Report an unexpected exception caught at a task boundary."""
    errors_total.labels(type="crash").inc()
    _log.error(
        "unexpected_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    _dispatch(exc)


def _dispatch(exc: BaseException) -> None:
    for handler in list(error_handlers):
        try:
            handler(exc)
        except Exception as handler_exc:  # noqa: BLE001
            _log.warning("error_handler_failed", error=str(handler_exc))
