"""
Root conftest.py: isolates process-wide emitter state between tests.

EventEmitter.default_max_listeners and the diagnostics channel are shared by
every emitter in the process; tests that change them must not leak.
"""
from __future__ import annotations

import pytest

from event_emitter import EventEmitter, diagnostics


# ---------------------------------------------------------------------------
# Process-wide state
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _restore_emitter_globals():
    default_max_listeners = EventEmitter.default_max_listeners
    process_warnings = diagnostics.process_warnings
    yield
    EventEmitter.default_max_listeners = default_max_listeners
    diagnostics.process_warnings = process_warnings


# ---------------------------------------------------------------------------
# Shared fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def emitter():
    e: EventEmitter[str] = EventEmitter()
    yield e
    e.remove_all_listeners()
