"""
replay.py - Sequential Log Replay

Replays an operation log once, strictly in file order, against a fresh
LedgerState.

Two modes:
1. run(): all-or-nothing. The first error propagates and the replay stops.
2. validate(): every SettlementError is recorded with its line number,
   the offending operation is skipped and the replay continues, so a
   single pass reports all violations.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import timezone, tzinfo
from typing import Iterable, List, Optional

from .core import Operation, Cents, PAYER_TIP, SettlementError
from .billing import LedgerState, BillingProcessor
from .oplog import parse_line, parse_log


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """One rejected line of a validated log."""
    line_number: Optional[int]
    error: SettlementError
    operation: Optional[Operation] = None

    @property
    def message(self) -> str:
        where = f"line {self.line_number}: " if self.line_number is not None else ""
        text = str(self.error)
        # MalformedOperation already carries its line number
        if where and text.startswith(where):
            where = ""
        return f"{where}{type(self.error).__name__}: {text}"


@dataclass
class ValidationReport:
    """Outcome of a validate-only replay."""
    applied: int = 0
    issues: List[ValidationIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues


class ReplayEngine:
    """
    Drives a BillingProcessor over a sequence of operations.

    Example:
        engine = ReplayEngine()
        state = engine.run_lines(open("data.txt"))
        for low, high, cents in state.debts.edges():
            ...
    """

    def __init__(
        self,
        state: Optional[LedgerState] = None,
        payer_tip: Cents = PAYER_TIP,
        verbose: bool = False,
        tz: tzinfo = timezone.utc,
    ):
        self.state = state if state is not None else LedgerState()
        self.processor = BillingProcessor(self.state, payer_tip=payer_tip, verbose=verbose)
        self.verbose = verbose
        self.tz = tz

    def run(self, operations: Iterable[Operation]) -> LedgerState:
        """
        Apply every operation in order.

        Raises:
            SettlementError: The first error encountered, unchanged
        """
        for op in operations:
            self.processor.apply(op)
        return self.state

    def run_lines(self, lines: Iterable[str]) -> LedgerState:
        """Parse and apply log lines; stops at the first malformed or invalid line."""
        return self.run(parse_log(lines, self.tz))

    def validate(self, operations: Iterable[Operation]) -> ValidationReport:
        """Apply every operation, collecting errors instead of stopping."""
        report = ValidationReport()
        for op in operations:
            self._apply_collecting(op, op.line_number, report)
        return report

    def validate_lines(self, lines: Iterable[str]) -> ValidationReport:
        """Parse and apply log lines, collecting parse and domain errors alike."""
        report = ValidationReport()
        for number, line in enumerate(lines, 1):
            try:
                op = parse_line(line, number, self.tz)
            except SettlementError as exc:
                self._record(report, ValidationIssue(number, exc))
                continue
            if op is not None:
                self._apply_collecting(op, number, report)
        return report

    def _apply_collecting(self, op: Operation, line_number: Optional[int], report: ValidationReport) -> None:
        try:
            self.processor.apply(op)
        except SettlementError as exc:
            self._record(report, ValidationIssue(line_number, exc, op))
            return
        report.applied += 1

    def _record(self, report: ValidationReport, issue: ValidationIssue) -> None:
        report.issues.append(issue)
        if self.verbose:
            print(f"✗ REJECTED: {issue.message}")


def replay(operations: Iterable[Operation], payer_tip: Cents = PAYER_TIP, verbose: bool = False) -> LedgerState:
    """Replay operations against a fresh state and return it."""
    return ReplayEngine(payer_tip=payer_tip, verbose=verbose).run(operations)
