"""
conftest.py - Shared pytest fixtures for flatshare tests

Provides:
- Fresh state and processor
- A helper that replays log lines into a fresh state
- Timestamp helpers (whole days since the epoch)
"""

import pytest

from flatshare import (
    LedgerState, BillingProcessor, ReplayEngine,
    Operation, OpCode,
)


DAY = 86_400


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def state():
    """Fresh state with no participants."""
    return LedgerState()


@pytest.fixture
def processor(state):
    """Quiet processor over the fresh state."""
    return BillingProcessor(state, verbose=False)


@pytest.fixture
def apply(processor):
    """Apply an operation given as (timestamp, opcode, *args)."""
    def _apply(ts, opcode, *args):
        processor.apply(Operation(ts, OpCode(opcode), tuple(args)))
    return _apply


@pytest.fixture
def replay_lines():
    """Replay log lines into a fresh state and return it."""
    def _replay(lines, **kwargs):
        return ReplayEngine(**kwargs).run_lines(lines)
    return _replay


@pytest.fixture
def day():
    """Timestamp of the start of day n (UTC)."""
    return lambda n: n * DAY
