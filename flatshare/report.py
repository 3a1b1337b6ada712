"""
report.py - Ledger and Presence Output

Renders a LedgerState for people:

    ledger:    "<debtor> owes <creditor> <amount><currency>" per non-zero pair
    presence:  "P <name>" (present) or "A <name>" (resident but absent)
               for every participant who is still resident
"""

from __future__ import annotations
from decimal import Decimal
from typing import List, Tuple

from .core import Cents, CENTS_PER_UNIT, CURRENCY_SYMBOL
from .billing import LedgerState


def format_cents(cents: Cents) -> str:
    """Render cents as a major-unit amount with two decimals."""
    return f"{Decimal(cents) / CENTS_PER_UNIT:.2f}"


def settle(state: LedgerState) -> List[Tuple[str, str, Cents]]:
    """
    Return (debtor, creditor, cents) for every pair with non-zero net debt.

    Cents are always positive; pairs come out in canonical key order.
    """
    resolve = state.registry.resolve
    settlements = []
    for low, high, value in state.debts.edges():
        if value > 0:
            settlements.append((resolve(high), resolve(low), value))
        elif value < 0:
            settlements.append((resolve(low), resolve(high), -value))
    return settlements


def render_ledger(state: LedgerState, currency: str = CURRENCY_SYMBOL) -> List[str]:
    """One "<debtor> owes <creditor> <amount>" line per non-zero pair."""
    return [
        f"{debtor} owes {creditor} {format_cents(cents)}{currency}"
        for debtor, creditor, cents in settle(state)
    ]


def render_presence(state: LedgerState) -> List[str]:
    """P/A line for every participant with an open residency, in id order."""
    lines = []
    for pid in state.resident.open_owners():
        mark = "P" if state.is_present(pid) else "A"
        lines.append(f"{mark} {state.registry.resolve(pid)}")
    return lines
