"""
flatshare - Shared Living Expense Settlement

Replays a chronological log of presence events (move-in/out, pause/resume)
and financial events (transfers, purchases, period bills) into a pairwise
"who owes whom" ledger. Period bills are prorated over the exact set of
participants present during each sub-interval of the billing window, with
residency as the fallback wherever nobody is present.

Usage:
    from flatshare import ReplayEngine, render_ledger

    engine = ReplayEngine()
    state = engine.run_lines([
        "START 2024-01-01 alice",
        "START 2024-01-01 bob",
        "PAY 2024-02-01 alice 100.00 2024-01-01 2024-02-01",
    ])
    print("\\n".join(render_ledger(state)))   # bob owes alice 50.01€
"""

# Core types
from .core import (
    Interval,
    Split,
    Operation,
    OpCode,
    Timestamp,
    ParticipantId,
    Cents,
    MINUS_INFINITY,
    PLUS_INFINITY,
    PAYER_TIP,
    CURRENCY_SYMBOL,
    SettlementError,
    MalformedOperation,
    UnknownParticipant,
    DuplicateParticipant,
    ParticipantAlreadyActive,
    NoOpenInterval,
    IntervalAlreadyOpen,
    InvalidInterval,
    InvalidWindow,
    NoCoverage,
    LedgerOverflow,
)

# Building blocks
from .registry import Participant, ParticipantRegistry
from .debts import DebtLedger, edge_key
from .intervals import IntervalStore
from .splitting import (
    split_intervals,
    clip_intervals,
    split_window,
    resident_cover,
    resident_edge,
    fill_gaps,
    cover_window,
)

# Billing
from .billing import LedgerState, BillingProcessor, prorate, ARITY

# Log format
from .oplog import (
    parse_timestamp,
    format_timestamp,
    parse_amount,
    parse_line,
    parse_log,
    read_log,
    insert_operation,
)

# Replay and output
from .replay import ReplayEngine, ValidationIssue, ValidationReport, replay
from .report import settle, render_ledger, render_presence, format_cents

__all__ = [
    # Core
    'Interval', 'Split', 'Operation', 'OpCode',
    'Timestamp', 'ParticipantId', 'Cents',
    'MINUS_INFINITY', 'PLUS_INFINITY', 'PAYER_TIP', 'CURRENCY_SYMBOL',
    'SettlementError', 'MalformedOperation', 'UnknownParticipant', 'DuplicateParticipant',
    'ParticipantAlreadyActive', 'NoOpenInterval', 'IntervalAlreadyOpen',
    'InvalidInterval', 'InvalidWindow', 'NoCoverage', 'LedgerOverflow',
    # Building blocks
    'Participant', 'ParticipantRegistry', 'DebtLedger', 'edge_key', 'IntervalStore',
    'split_intervals', 'clip_intervals', 'split_window', 'resident_cover', 'resident_edge',
    'fill_gaps', 'cover_window',
    # Billing
    'LedgerState', 'BillingProcessor', 'prorate', 'ARITY',
    # Log format
    'parse_timestamp', 'format_timestamp', 'parse_amount', 'parse_line',
    'parse_log', 'read_log', 'insert_operation',
    # Replay and output
    'ReplayEngine', 'ValidationIssue', 'ValidationReport', 'replay',
    'settle', 'render_ledger', 'render_presence', 'format_cents',
]

__version__ = '1.0.0'
