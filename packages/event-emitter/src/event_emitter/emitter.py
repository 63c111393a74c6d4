"""
EventEmitter: synchronous in-process publish/subscribe.

Listeners are registered per event name and invoked in registration order by
``emit``. Coroutine listeners are scheduled, not awaited. With
``capture_rejections`` enabled, listener failures are rerouted into the
``"error"`` event instead of being raised out of ``emit``.
"""
from __future__ import annotations

import asyncio
import functools
import inspect
import logging
import math
from collections import deque
from typing import Any, Awaitable, Generic

from . import diagnostics
from .types import (
    EventEmitterOptions,
    K,
    Listener,
    MaxListenersRangeError,
    OnceListenerWrapper,
)

logger = logging.getLogger(__name__)

ERROR_EVENT = "error"
MAX_LISTENERS_WARNING_ID = "MaxListenersExceededWarning"


class _Dispatch:
    """Entries one in-progress ``emit`` has yet to call, in order."""

    __slots__ = ("pending",)

    def __init__(self, entries: list[Listener]) -> None:
        self.pending: deque[Listener] = deque(entries)

    def discard(self, entry: Listener) -> None:
        for index, candidate in enumerate(self.pending):
            if candidate == entry:
                del self.pending[index]
                return


async def _drive(awaitable: Awaitable[Any]) -> Any:
    """Await *awaitable*, then every task it spawned on this loop."""
    try:
        return await awaitable
    finally:
        current = asyncio.current_task()
        while True:
            spawned = [task for task in asyncio.all_tasks() if task is not current]
            if not spawned:
                break
            await asyncio.wait(spawned)
            # let done-callbacks run before the loop goes away
            await asyncio.sleep(0)


class EventEmitter(Generic[K]):
    """
    Registry of listeners keyed by event name.

    Each event maps to an ordered list whose entries are either plain
    listeners or ``OnceListenerWrapper`` instances. Lists are never kept
    empty: removing the last entry drops the event name entirely, so
    ``event_names()`` only reports events that still have listeners.

    Emission calls the entries registered when ``emit`` starts. Entries
    removed before ``emit`` reaches them are skipped. Entries registered
    while it runs, including re-registered ones, wait for the next emission.

    ``default_max_listeners`` is read once per instance, at construction.
    Changing it later only affects emitters created afterwards.
    """

    default_max_listeners: int | float = 10

    def __init__(
        self,
        options: EventEmitterOptions | None = None,
        *,
        capture_rejections: bool | None = None,
    ) -> None:
        opts = options or EventEmitterOptions()

        self._max_listeners: int | float = type(self).default_max_listeners
        if self._max_listeners < 0:
            raise MaxListenersRangeError(self._max_listeners)

        self._capture_rejections: bool = (
            opts.capture_rejections if capture_rejections is None else capture_rejections
        )

        self._events: dict[K, list[Listener]] = {}
        self._once_listeners: dict[K, list[OnceListenerWrapper]] = {}
        self._warning_emitted: dict[K, bool] = {}
        self._dispatches: dict[K, list[_Dispatch]] = {}
        self._pending: set[asyncio.Future] = set()

    @property
    def capture_rejections(self) -> bool:
        return self._capture_rejections

    # ── Emission ──────────────────────────────────────────────────────────────

    def emit(self, event: K, *args: Any) -> bool:
        """
        Call every listener registered for *event* with *args*, in order.

        Returns True if the event had listeners, False otherwise.

        A listener that raises aborts the emission and the exception
        propagates, unless rejections are captured and *event* is not
        ``"error"``: then ``emit("error", exc)`` is called and the remaining
        listeners still run. Awaitables returned by listeners are scheduled
        on the running loop and their failures handled the same way once
        they settle. With no loop running they are run to completion first.
        """
        entries = self._events.get(event)
        if not entries:
            return False

        dispatch = _Dispatch(entries)
        dispatches = self._dispatches.setdefault(event, [])
        dispatches.append(dispatch)
        try:
            while dispatch.pending:
                self._invoke(event, dispatch.pending.popleft(), args)
        finally:
            dispatches.remove(dispatch)
            if not dispatches:
                self._dispatches.pop(event, None)

        return True

    def _invoke(self, event: K, listener: Listener, args: tuple[Any, ...]) -> None:
        try:
            result = listener(*args)
        except Exception as exc:
            if self._capture_rejections and event != ERROR_EVENT:
                self._emit_error(exc)
                return
            raise

        if inspect.isawaitable(result):
            self._track(event, result)

    def _emit_error(self, error: BaseException) -> None:
        if not self.emit(ERROR_EVENT, error):
            logger.warning(
                "Captured listener failure on %s but no %r listener is registered",
                type(self).__name__, ERROR_EVENT, exc_info=error,
            )

    def _track(self, event: K, awaitable: Awaitable[Any]) -> None:
        """Schedule an awaitable returned by a listener and observe its outcome."""
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # No later turn to hand it to: run it, and whatever it schedules,
            # to completion on a private loop before emit continues.
            try:
                asyncio.run(_drive(awaitable))
            except Exception as exc:
                self._handle_rejection(event, exc)
            return

        task = asyncio.ensure_future(awaitable)
        self._pending.add(task)
        task.add_done_callback(functools.partial(self._on_settled, event))

    def _on_settled(self, event: K, task: asyncio.Future) -> None:
        self._pending.discard(task)
        if task.cancelled():
            logger.warning("Listener task for %r was cancelled before completing", event)
            return
        error = task.exception()
        if error is not None:
            self._handle_rejection(event, error)

    def _handle_rejection(self, event: K, error: BaseException) -> None:
        if self._capture_rejections and event != ERROR_EVENT:
            self._emit_error(error)
            return
        logger.error("Unhandled rejection in %r listener", event, exc_info=error)

    # ── Registration ──────────────────────────────────────────────────────────

    def on(self, event: K, listener: Listener) -> EventEmitter[K]:
        """
        Add *listener* to the end of the listener list for *event*.

        No check is made for duplicates: adding the same listener twice means
        it is called twice per emission.
        """
        self._events.setdefault(event, []).append(listener)
        return self._check_max_listeners(event)

    def prepend(self, event: K, listener: Listener) -> EventEmitter[K]:
        """Add *listener* to the beginning of the listener list for *event*."""
        self._events.setdefault(event, []).insert(0, listener)
        return self._check_max_listeners(event)

    def once(self, event: K, listener: Listener) -> EventEmitter[K]:
        """Add a one-time *listener*: removed the next time *event* fires, then called."""
        return self.on(event, self._create_once_wrapper(event, listener))

    def prepend_once(self, event: K, listener: Listener) -> EventEmitter[K]:
        """Like ``once`` but adds the listener to the beginning of the list."""
        return self.prepend(event, self._create_once_wrapper(event, listener))

    def _create_once_wrapper(self, event: K, listener: Listener) -> OnceListenerWrapper:
        wrapper = OnceListenerWrapper(self, event, listener)
        self._once_listeners.setdefault(event, []).append(wrapper)
        return wrapper

    # ── Removal ───────────────────────────────────────────────────────────────

    def off(self, event: K, listener: Listener) -> EventEmitter[K]:
        """
        Remove at most one registration of *listener* from *event*.

        A listener added several times must be removed as many times. When
        both ``on`` and ``once`` registrations exist, the most recently added
        ``once`` registration goes first; otherwise the most recently added
        plain registration is removed.
        """
        if event not in self._events:
            return self

        target: Listener = listener
        for wrapper in reversed(self._once_listeners.get(event, [])):
            if wrapper.listener == listener:
                target = wrapper
                break

        self._remove_entry(event, target)
        return self

    def remove_all_listeners(
        self,
        event: K | None = None,
        listener: Listener | None = None,
    ) -> EventEmitter[K]:
        """
        Remove all listeners, all listeners of *event*, or every registration
        of *listener* on *event*.
        """
        if event is None:
            self._events.clear()
            self._once_listeners.clear()
            for dispatches in self._dispatches.values():
                for dispatch in dispatches:
                    dispatch.pending.clear()
            return self

        if listener is None:
            self._events.pop(event, None)
            self._once_listeners.pop(event, None)
            for dispatch in self._dispatches.get(event, ()):
                dispatch.pending.clear()
            return self

        for entry in self.raw_listeners(event):
            if _matches(entry, listener):
                self.off(event, listener)
        return self

    def _remove_entry(self, event: K, entry: Listener) -> None:
        """Remove the last registry entry equal to *entry* and its once-index slot."""
        entries = self._events.get(event)
        if entries is not None:
            for index in range(len(entries) - 1, -1, -1):
                if entries[index] == entry:
                    del entries[index]
                    for dispatch in self._dispatches.get(event, ()):
                        dispatch.discard(entry)
                    break
            if not entries:
                del self._events[event]

        if isinstance(entry, OnceListenerWrapper):
            wrappers = self._once_listeners.get(event)
            if wrappers is not None:
                wrappers[:] = [w for w in wrappers if w is not entry]
                if not wrappers:
                    del self._once_listeners[event]

    # ── Introspection ─────────────────────────────────────────────────────────

    def event_names(self) -> list[K]:
        """Event names that currently have listeners, in first-registration order."""
        return list(self._events)

    def listener_count(self, event: K, listener: Listener | None = None) -> int:
        """
        Number of listeners for *event*, or the number of times *listener*
        is registered for it (``once`` registrations included).
        """
        entries = self._events.get(event)
        if not entries:
            return 0
        if listener is None:
            return len(entries)
        return sum(1 for entry in entries if _matches(entry, listener))

    def listeners(self, event: K) -> list[Listener]:
        """Copy of the listeners for *event*, with once-wrappers unwrapped."""
        return [
            entry.listener if isinstance(entry, OnceListenerWrapper) else entry
            for entry in self.raw_listeners(event)
        ]

    def raw_listeners(self, event: K) -> list[Listener]:
        """Copy of the listeners for *event*, including once-wrappers."""
        return list(self._events.get(event, ()))

    # ── Max listeners ─────────────────────────────────────────────────────────

    def set_max_listeners(self, n: int | float) -> EventEmitter[K]:
        """Set the leak-warning ceiling. ``0`` or ``math.inf`` disables the warning."""
        self._max_listeners = n
        return self

    def get_max_listeners(self) -> int | float:
        return self._max_listeners

    def _check_max_listeners(self, event: K) -> EventEmitter[K]:
        """Warn once per event name when its listener count exceeds the ceiling."""
        limit = self._max_listeners
        if limit == 0 or limit == math.inf:
            return self
        if self._warning_emitted.get(event):
            return self
        entries = self._events.get(event)
        if not entries:
            return self
        count = len(entries)
        if count <= limit:
            return self

        self._warning_emitted[event] = True

        message = (
            "Possible EventEmitter memory leak detected. "
            f"{count} {event} listeners added to [{type(self).__name__}]. "
            f"MaxListeners is {limit}. Use emitter.setMaxListeners() to increase limit"
        )
        diagnostics.emit_warning(message, MAX_LISTENERS_WARNING_ID)
        return self

    # ── Aliases ───────────────────────────────────────────────────────────────

    def add_listener(self, event: K, listener: Listener) -> EventEmitter[K]:
        """Alias for ``on``."""
        return self.on(event, listener)

    def prepend_listener(self, event: K, listener: Listener) -> EventEmitter[K]:
        """Alias for ``prepend``."""
        return self.prepend(event, listener)

    def prepend_once_listener(self, event: K, listener: Listener) -> EventEmitter[K]:
        """Alias for ``prepend_once``."""
        return self.prepend_once(event, listener)

    def remove_listener(self, event: K, listener: Listener) -> EventEmitter[K]:
        """Alias for ``off``."""
        return self.off(event, listener)


def _matches(entry: Listener, listener: Listener) -> bool:
    if entry == listener:
        return True
    return isinstance(entry, OnceListenerWrapper) and entry.listener == listener
