"""
One-time diagnostics raised by emitters.

Diagnostics go to the process-level ``warnings`` channel when it is
available, and to this module's logger otherwise.
"""
from __future__ import annotations

import logging
import warnings
from types import ModuleType

from .types import MaxListenersExceededWarning

logger = logging.getLogger(__name__)

# Process-level warning facility. Set to None on hosts that route warnings
# elsewhere; diagnostics then fall back to the logger.
process_warnings: ModuleType | None = warnings

_CATEGORIES: dict[str, type[Warning]] = {
    "MaxListenersExceededWarning": MaxListenersExceededWarning,
}


def warning_category(warning_id: str) -> type[Warning]:
    """Map a diagnostic id to its Warning subclass (UserWarning if unknown)."""
    return _CATEGORIES.get(warning_id, UserWarning)


def emit_warning(message: str, warning_id: str) -> None:
    """Deliver a diagnostic *message* tagged with *warning_id*."""
    if process_warnings is not None:
        # stacklevel 4: emit_warning <- _check_max_listeners <- on/prepend <- caller
        process_warnings.warn(message, warning_category(warning_id), stacklevel=4)
        return

    logger.warning("%s", {"id": warning_id, "message": message})
