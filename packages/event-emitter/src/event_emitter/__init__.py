"""
event_emitter: synchronous, generically-typed publish/subscribe.
"""

from .emitter import ERROR_EVENT, MAX_LISTENERS_WARNING_ID, EventEmitter
from .types import (
    EventEmitterOptions,
    Listener,
    MaxListenersExceededWarning,
    MaxListenersRangeError,
    OnceListenerWrapper,
)

__all__ = [
    # Emitter
    "EventEmitter",
    "ERROR_EVENT",
    "MAX_LISTENERS_WARNING_ID",
    # Types
    "EventEmitterOptions",
    "Listener",
    "OnceListenerWrapper",
    # Errors & warnings
    "MaxListenersExceededWarning",
    "MaxListenersRangeError",
]
