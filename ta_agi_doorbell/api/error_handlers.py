"""Error Handlers — converts per-request failures into caller-visible AGI diagnostics.

Invariants:
    - DoorbellError → VERBOSE "<code>: <message>" on the caller's session
    - Exception (catch-all) → generic INTERNAL_ERROR message, never leaks internal details
    - Reporting failures (caller already gone) are logged, never re-raised
    - No per-request error propagates past this boundary
"""

import logging

from ta_agi_doorbell.core.boundary_protocols import AgiSession
from ta_agi_doorbell.core.errors import (
    AgiConnectionClosedError,
    DoorbellError,
    ErrorSeverity,
)

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "INTERNAL_ERROR: An unexpected error occurred"

_LOG_LEVELS = {
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


async def report_request_error(session: AgiSession, exc: Exception) -> str:
    """Log `exc` and send its diagnostic to the caller. Returns the message sent."""
    if isinstance(exc, DoorbellError):
        message = _log_doorbell_error(exc)
    else:
        logger.error(f"Unhandled exception during request: {exc}", exc_info=True)
        message = INTERNAL_ERROR_MESSAGE

    try:
        await session.verbose(message)
    except AgiConnectionClosedError:
        logger.info(f"Caller disconnected before error could be reported: {message}")
    except DoorbellError as e:
        logger.warning(f"Could not report error to caller: {e.message}")
    return message


def _log_doorbell_error(exc: DoorbellError) -> str:
    level = logging.WARNING if exc.client_side else _LOG_LEVELS[exc.severity]
    logger.log(
        level, f"{type(exc).__name__}: {exc.message}", extra=exc.to_log_extra(),
    )
    return exc.to_agi_message()
