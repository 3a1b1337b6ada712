"""
Core types and constants for the shared-living settlement system.

This module provides the foundational data structures for the settlement engine:
1. Constants: timestamp sentinels, the payer tip, 64-bit currency bounds
2. Immutable data structures: Interval, Split, Operation
3. Enums: OpCode (closed set of operation kinds)
4. Exceptions: SettlementError and domain-specific error types
5. Type aliases: Timestamp, ParticipantId, Cents

Amounts are integers in minor currency units (cents). Timestamps are integer
seconds since the epoch, with two sentinels for "before any record" and
"still open".
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, FrozenSet, Optional, Tuple, Union


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Seconds since the epoch, or one of the two sentinels below.
Timestamp = int

# Dense integer id handed out by the ParticipantRegistry.
ParticipantId = int

# Signed amount in minor currency units.
Cents = int

# A participant can be referenced by name or by registered id.
ParticipantRef = Union[str, int]


# ============================================================================
# CONSTANTS
# ============================================================================

# Sentinels for open-ended intervals (signed 64-bit extremes).
MINUS_INFINITY: Timestamp = -(2 ** 63)
PLUS_INFINITY: Timestamp = 2 ** 63 - 1

# Flat surcharge per charged participant per split/purchase, in cents.
# Absorbs integer truncation in favour of the payer.
PAYER_TIP: Cents = 1

# Minor units per major currency unit.
CENTS_PER_UNIT = 100

# Debt edges are kept within a signed 64-bit range.
CENTS_MIN: Cents = -(2 ** 63)
CENTS_MAX: Cents = 2 ** 63 - 1

CURRENCY_SYMBOL = "€"


# ============================================================================
# ENUMS
# ============================================================================

class OpCode(Enum):
    """
    Closed set of operation kinds found in an operation log.

    Presence operations (START, STOP, PAUSE, RESUME) mutate the interval
    stores. Financial operations (TRANSFER, PAY, BUY) mutate the debt ledger.
    """
    START = "START"
    STOP = "STOP"
    PAUSE = "PAUSE"
    RESUME = "RESUME"
    TRANSFER = "TRANSFER"
    PAY = "PAY"
    BUY = "BUY"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class SettlementError(Exception):
    """Base exception for all settlement errors."""
    pass


class MalformedOperation(SettlementError):
    """Raised when an operation log line cannot be parsed."""

    def __init__(self, message: str, line_number: Optional[int] = None, line: Optional[str] = None):
        self.line_number = line_number
        self.line = line
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class UnknownParticipant(SettlementError):
    """Raised when an operation references a participant that was never registered."""

    def __init__(self, reference: Any):
        self.reference = reference
        super().__init__(f"Unknown participant {reference!r}")


class DuplicateParticipant(SettlementError):
    """Raised when registering a name that is already registered."""
    pass


class ParticipantAlreadyActive(SettlementError):
    """Raised when START is replayed for a participant who never stopped."""
    pass


class NoOpenInterval(SettlementError):
    """Raised when closing an interval for an owner with no open interval."""
    pass


class IntervalAlreadyOpen(SettlementError):
    """Raised when opening a second open interval for the same owner in one store."""
    pass


class InvalidInterval(SettlementError, ValueError):
    """Raised when an interval would end before it starts."""
    pass


class InvalidWindow(SettlementError):
    """Raised when a billing window is empty or reversed."""
    pass


class NoCoverage(SettlementError):
    """Raised when part of a billing window has nobody present or resident to charge."""

    def __init__(self, window: Tuple[Timestamp, Timestamp]):
        self.window = window
        super().__init__(f"Nobody present or resident during [{window[0]}, {window[1]}]")


class LedgerOverflow(SettlementError):
    """Raised when a debt edge leaves the signed 64-bit range."""
    pass


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Interval:
    """
    A span of time owned by one participant.

    Attributes:
        min: Start of the span (MINUS_INFINITY if since before any record).
        max: End of the span (PLUS_INFINITY while still open).
        owner: Participant id this span belongs to.

    Zero-length intervals (min == max) are permitted; they never produce a split.
    """
    min: Timestamp
    max: Timestamp
    owner: ParticipantId

    def __post_init__(self):
        if self.min > self.max:
            raise InvalidInterval(
                f"Interval for {self.owner} ends before it starts: [{self.min}, {self.max}]"
            )

    @property
    def is_open(self) -> bool:
        return self.max == PLUS_INFINITY

    def clip(self, window_min: Timestamp, window_max: Timestamp) -> 'Interval':
        """Clamp this interval to [window_min, window_max]."""
        lo = max(self.min, window_min)
        hi = min(self.max, window_max)
        if hi < lo:
            hi = lo
        return Interval(lo, hi, self.owner)


@dataclass(frozen=True, slots=True)
class Split:
    """
    A maximal sub-interval with a constant set of active owners.

    Query-local; produced by the split engine and never stored.
    """
    min: Timestamp
    max: Timestamp
    present: FrozenSet[ParticipantId] = field(default_factory=frozenset)

    @property
    def length(self) -> int:
        return self.max - self.min

    def __repr__(self) -> str:
        who = ",".join(str(p) for p in sorted(self.present))
        return f"Split([{self.min}, {self.max}] {{{who}}})"


@dataclass(frozen=True, slots=True)
class Operation:
    """
    A single parsed operation, ready for the billing processor.

    Attributes:
        timestamp: When the operation happens.
        opcode: Operation kind.
        args: Argument tuple; shape depends on opcode:
            START/STOP/PAUSE/RESUME: (participant,)
            TRANSFER: (from, to, cents)
            PAY: (payer, cents, window_min, window_max)
            BUY: (buyer, cents, description)
        line_number: 1-based position in the source log, if known.
        source: Raw line text, if known.
    """
    timestamp: Timestamp
    opcode: OpCode
    args: Tuple[Any, ...] = ()
    line_number: Optional[int] = None
    source: Optional[str] = None

    def __repr__(self) -> str:
        where = f" @{self.line_number}" if self.line_number is not None else ""
        return f"Operation({self.opcode.value} {self.timestamp} {self.args!r}{where})"
