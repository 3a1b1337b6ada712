"""
billing.py - Settlement State and Billing Processor

LedgerState owns everything a replay mutates: the participant registry,
the Present and Resident interval stores and the debt ledger. There is no
module-level state; every processor works on the state it is given.

BillingProcessor applies one Operation at a time, dispatching on its
OpCode to a handler:

    START     open Present and Resident intervals (registering the name)
    STOP      close both intervals; for an unseen name record [-inf, ts)
    PAUSE     close the Present interval only
    RESUME    open a new Present interval
    TRANSFER  direct debt between two participants
    BUY       split a purchase among everyone resident at ts
    PAY       prorate a period bill over the present/resident cover

Proration (PAY), per split s of the window [w0, w1]:

    cost = payer_tip + floor(len(s) * amount / (|s.present| * (w1 - w0)))

charged to every participant in s.present except the payer. The tip and the
truncation are per participant, so the payer never under-recovers.
"""

from __future__ import annotations
from typing import Callable, Dict, List, Optional, Tuple

from .core import (
    Operation, OpCode, Split,
    Timestamp, ParticipantId, ParticipantRef, Cents,
    MINUS_INFINITY, PLUS_INFINITY, PAYER_TIP,
    MalformedOperation, ParticipantAlreadyActive,
    InvalidWindow, NoCoverage, NoOpenInterval, InvalidInterval,
)
from .registry import ParticipantRegistry
from .intervals import IntervalStore
from .debts import DebtLedger
from .splitting import cover_window
from .oplog import format_timestamp


# Expected argument count per operation kind.
ARITY: Dict[OpCode, int] = {
    OpCode.START: 1,
    OpCode.STOP: 1,
    OpCode.PAUSE: 1,
    OpCode.RESUME: 1,
    OpCode.TRANSFER: 3,
    OpCode.PAY: 4,
    OpCode.BUY: 3,
}


class LedgerState:
    """
    Everything a replay reads and writes.

    Attributes:
        registry: Participant names and ids
        present: Spans during which participants are physically there
        resident: Spans during which participants hold residency
        debts: Pairwise net debt
    """

    def __init__(self):
        self.registry = ParticipantRegistry()
        self.present = IntervalStore("present")
        self.resident = IntervalStore("resident")
        self.debts = DebtLedger()

    def participant_id(self, ref: ParticipantRef) -> ParticipantId:
        """
        Resolve a name or id to a registered id.

        Names are looked up first; a numeric string that is not a registered
        name is read as an id.

        Raises:
            UnknownParticipant: If ref matches no registered participant
        """
        if isinstance(ref, int):
            self.registry.resolve(ref)
            return ref
        if ref.isdigit() and ref not in self.registry:
            pid = int(ref)
            self.registry.resolve(pid)
            return pid
        return self.registry.require(ref)

    def is_present(self, pid: ParticipantId) -> bool:
        return self.present.has_open(pid)

    def is_resident(self, pid: ParticipantId) -> bool:
        return self.resident.has_open(pid)

    def __repr__(self) -> str:
        return (
            f"LedgerState({len(self.registry)} participants, "
            f"{len(self.present)} present, {len(self.resident)} resident, "
            f"{len(self.debts)} edges)"
        )


def prorate(
    splits: List[Split],
    amount: Cents,
    window_min: Timestamp,
    window_max: Timestamp,
    payer_tip: Cents = PAYER_TIP,
) -> List[Tuple[Split, Cents]]:
    """
    Per-participant cost of each split of a billing window.

    Raises:
        InvalidWindow: If window_max <= window_min
        NoCoverage: If a split has nobody to charge
    """
    bill_interval = window_max - window_min
    if bill_interval <= 0:
        raise InvalidWindow(f"Empty billing window [{window_min}, {window_max}]")
    costs = []
    for split in splits:
        headcount = len(split.present)
        if not headcount:
            raise NoCoverage((split.min, split.max))
        cost = payer_tip + (split.length * amount) // (headcount * bill_interval)
        costs.append((split, cost))
    return costs


class BillingProcessor:
    """
    Applies operations to a LedgerState, one at a time, in log order.

    Not thread-safe; operations are not commutative, so callers must
    serialize application.

    Example:
        state = LedgerState()
        processor = BillingProcessor(state)
        processor.apply(Operation(0, OpCode.START, ("alice",)))
        processor.apply(Operation(0, OpCode.START, ("bob",)))
        processor.apply(Operation(100, OpCode.PAY, ("alice", 1000, 0, 100)))
        assert state.debts.debt(1, 0) == 501
    """

    def __init__(self, state: LedgerState, payer_tip: Cents = PAYER_TIP, verbose: bool = False):
        """
        Args:
            state: State to mutate
            payer_tip: Flat surcharge per charged participant, in cents
            verbose: Print a trace line for every applied operation
        """
        self.state = state
        self.payer_tip = payer_tip
        self.verbose = verbose
        self.applied = 0
        self._handlers: Dict[OpCode, Callable[..., None]] = {
            OpCode.START: self.start,
            OpCode.STOP: self.stop,
            OpCode.PAUSE: self.pause,
            OpCode.RESUME: self.resume,
            OpCode.TRANSFER: self.transfer,
            OpCode.PAY: self.pay,
            OpCode.BUY: self.buy,
        }
        missing = set(OpCode) - set(self._handlers)
        if missing:
            raise TypeError(f"No handler for {sorted(op.value for op in missing)}")

    def apply(self, op: Operation) -> None:
        """
        Apply a single operation.

        Raises:
            MalformedOperation: If the argument tuple has the wrong arity
            SettlementError: Any domain error raised by the handler
        """
        expected = ARITY[op.opcode]
        if len(op.args) != expected:
            raise MalformedOperation(
                f"{op.opcode.value} takes {expected} arguments, got {len(op.args)}",
                op.line_number, op.source,
            )
        self._handlers[op.opcode](op.timestamp, *op.args)
        self.applied += 1

    def _trace(self, ts: Timestamp, message: str) -> None:
        if self.verbose:
            print(f"[{format_timestamp(ts)}] {message}")

    # ========================================================================
    # PRESENCE HANDLERS
    # ========================================================================

    def start(self, ts: Timestamp, name: str) -> None:
        registry = self.state.registry
        pid = registry.find(name)
        if pid is None:
            pid = registry.insert(name)
        elif self.state.resident.has_open(pid):
            raise ParticipantAlreadyActive(f"{name} started again without stopping")
        self.state.present.insert(pid, ts, PLUS_INFINITY)
        self.state.resident.insert(pid, ts, PLUS_INFINITY)
        self._trace(ts, f"START {name} (#{pid})")

    def stop(self, ts: Timestamp, name: str) -> None:
        registry = self.state.registry
        pid = registry.find(name)
        if pid is None:
            # Was here since before the log began.
            pid = registry.insert(name)
            self.state.present.insert(pid, MINUS_INFINITY, ts)
            self.state.resident.insert(pid, MINUS_INFINITY, ts)
            self._trace(ts, f"STOP {name} (#{pid}) since -inf")
            return
        resident = self.state.resident.open_interval(pid)
        if resident is None:
            raise NoOpenInterval(f"resident: participant {pid} has no open interval")
        # A paused participant has no open Present interval left to close.
        present = self.state.present.open_interval(pid)
        for interval in (resident, present):
            if interval is not None and ts < interval.min:
                raise InvalidInterval(
                    f"STOP of {name} at {format_timestamp(ts)} precedes "
                    f"its start at {format_timestamp(interval.min)}"
                )
        self.state.resident.finish_last(pid, ts)
        if present is not None:
            self.state.present.finish_last(pid, ts)
        self._trace(ts, f"STOP {name} (#{pid})")

    def pause(self, ts: Timestamp, who: ParticipantRef) -> None:
        pid = self.state.participant_id(who)
        self.state.present.finish_last(pid, ts)
        self._trace(ts, f"PAUSE #{pid}")

    def resume(self, ts: Timestamp, who: ParticipantRef) -> None:
        pid = self.state.participant_id(who)
        self.state.present.insert(pid, ts, PLUS_INFINITY)
        self._trace(ts, f"RESUME #{pid}")

    # ========================================================================
    # FINANCIAL HANDLERS
    # ========================================================================

    def transfer(self, ts: Timestamp, source: ParticipantRef, dest: ParticipantRef, amount: Cents) -> None:
        source_id = self.state.participant_id(source)
        dest_id = self.state.participant_id(dest)
        if source_id == dest_id:
            self._trace(ts, f"TRANSFER #{source_id} to itself ignored")
            return
        self.state.debts.add_debt(source_id, dest_id, amount)
        self._trace(ts, f"TRANSFER #{source_id} -> #{dest_id} {amount}")

    def buy(self, ts: Timestamp, buyer: ParticipantRef, amount: Cents, description: str = "") -> None:
        pid = self.state.participant_id(buyer)
        owners = sorted({interval.owner for interval in self.state.resident.intersect(ts, ts)})
        if not owners:
            raise NoCoverage((ts, ts))
        cost = amount // len(owners) + self.payer_tip
        self.state.debts.charge(pid, [(owner, cost) for owner in owners])
        label = f" {description}" if description else ""
        self._trace(ts, f"BUY #{pid} {amount}{label}: {cost} x {len(owners)}")

    def pay(
        self,
        ts: Timestamp,
        payer: ParticipantRef,
        amount: Cents,
        window_min: Timestamp,
        window_max: Timestamp,
    ) -> None:
        pid = self.state.participant_id(payer)
        if window_max <= window_min:
            raise InvalidWindow(
                f"Empty billing window [{format_timestamp(window_min)}, {format_timestamp(window_max)}]"
            )
        splits = cover_window(self.state.present, self.state.resident, window_min, window_max)
        costs = prorate(splits, amount, window_min, window_max, self.payer_tip)
        self.state.debts.charge(pid, [
            (owner, cost) for split, cost in costs for owner in split.present
        ])
        for split, cost in costs:
            self._trace(ts, f"PAY #{pid} {split!r}: {cost} each")
