"""Tests for one-time listeners (once / prepend_once) and their wrappers."""
from unittest.mock import MagicMock

from event_emitter import OnceListenerWrapper


class TestOnce:
    def test_called_once_with_first_emission_args(self, emitter):
        listener = MagicMock()
        emitter.once("event", listener)
        emitter.emit("event", "Hello, World!")
        emitter.emit("event", "Hello again!")
        listener.assert_called_once_with("Hello, World!")
        assert emitter.event_names() == []

    def test_returns_emitter_for_chaining(self, emitter):
        assert emitter.once("event", MagicMock()) is emitter

    def test_reemitting_from_listener_does_not_retrigger(self, emitter):
        calls: list[int] = []

        def listener(n):
            calls.append(n)
            emitter.emit("event", n + 1)

        emitter.once("event", listener)
        emitter.emit("event", 0)
        assert calls == [0]

    def test_following_listener_still_runs(self, emitter):
        after = MagicMock()
        emitter.once("event", MagicMock())
        emitter.on("event", after)
        emitter.emit("event")
        emitter.emit("event")
        assert after.call_count == 2
        assert emitter.listener_count("event") == 1


class TestPrependOnce:
    def test_added_on_top(self, emitter):
        order: list[str] = []
        first = MagicMock(side_effect=lambda msg: order.append("first"))
        second = MagicMock(side_effect=lambda msg: order.append("second"))

        emitter.once("event", first)
        emitter.prepend_once("event", second)
        emitter.emit("event", "Hello, World!")
        emitter.emit("event", "Hello, again!")

        assert order == ["second", "first"]
        assert first.call_count == 1
        assert second.call_count == 1

    def test_prepend_once_listener_alias(self, emitter):
        order: list[str] = []
        emitter.on("event", lambda: order.append("on"))
        emitter.prepend_once_listener("event", lambda: order.append("once"))
        emitter.emit("event")
        emitter.emit("event")
        assert order == ["once", "on", "on"]


class TestWrappers:
    def test_listeners_unwraps(self, emitter):
        callback = MagicMock()
        emitter.on("event", callback)
        emitter.once("event", callback)
        assert emitter.listeners("event") == [callback, callback]

    def test_raw_listeners_exposes_wrapper(self, emitter):
        callback = MagicMock()
        emitter.on("event", callback)
        emitter.once("event", callback)

        first, second = emitter.raw_listeners("event")
        assert first is callback
        assert second is not callback
        assert isinstance(second, OnceListenerWrapper)
        assert second.listener is callback

    def test_calling_inner_listener_keeps_registration(self, emitter):
        callback = MagicMock()
        emitter.once("log", callback)
        (wrapper,) = emitter.raw_listeners("log")

        wrapper.listener("direct")
        assert emitter.listener_count("log") == 1

        wrapper("via wrapper")
        assert emitter.listener_count("log") == 0
        assert callback.call_count == 2

    def test_wrapper_returns_listener_result(self, emitter):
        emitter.once("event", lambda value: value * 2)
        (wrapper,) = emitter.raw_listeners("event")
        assert wrapper(21) == 42

    def test_off_with_original_removes_wrapper(self, emitter):
        callback = MagicMock()
        emitter.once("event", callback)
        emitter.off("event", callback)
        emitter.emit("event")
        callback.assert_not_called()
        assert emitter.raw_listeners("event") == []
