"""
Event emitter types.

Options model, listener aliases, the once-wrapper and the error/warning classes.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Hashable, TypeVar

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from .emitter import EventEmitter

# ─── Event names & listeners ──────────────────────────────────────────────────

K = TypeVar("K", bound=Hashable)  # event name type; EventEmitter[str] when unmapped

# Return value is ignored unless awaitable
Listener = Callable[..., Any]


# ─── Options ──────────────────────────────────────────────────────────────────

class EventEmitterOptions(BaseModel):
    """Options for constructing an EventEmitter."""

    # Reroute listener failures into the "error" event instead of raising
    capture_rejections: bool = False

    model_config = ConfigDict(extra="forbid")


# ─── Once wrapper ─────────────────────────────────────────────────────────────

class OnceListenerWrapper:
    """
    Self-removing adapter around a listener registered with ``once``.

    Calling the wrapper removes this exact wrapper from its emitter first and
    then calls the original listener, returning its result. ``listener`` is the
    original callable, which is what ``EventEmitter.listeners()`` reports.
    """

    __slots__ = ("_emitter", "event", "listener")

    def __init__(self, emitter: EventEmitter, event: Hashable, listener: Listener) -> None:
        self._emitter = emitter
        self.event = event
        self.listener = listener

    def __call__(self, *args: Any) -> Any:
        self._emitter._remove_entry(self.event, self)
        return self.listener(*args)

    def __repr__(self) -> str:
        return f"<OnceListenerWrapper event={self.event!r} listener={self.listener!r}>"


# ─── Errors & warnings ────────────────────────────────────────────────────────

class MaxListenersRangeError(ValueError):
    """Raised when an emitter is built with a negative default ceiling."""

    def __init__(self, received: float) -> None:
        super().__init__(
            'The value of "defaultMaxListeners" is out of range. '
            f"It must be >= 0. Received {received}"
        )
        self.received = received


class MaxListenersExceededWarning(RuntimeWarning):
    """More listeners were added to one event than the emitter's ceiling."""
