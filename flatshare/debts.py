"""
debts.py - Pairwise Net Debt Ledger

Stores one signed value per unordered pair of participants. The pair is
canonicalised as (low, high) = (min(a, b), max(a, b)):

    value > 0  ->  high owes low
    value < 0  ->  low owes high

Every read and write goes through the same canonicalisation, so
debt(x, y) == -debt(y, x) holds for all x != y at all times.
"""

from __future__ import annotations
from typing import Dict, Iterable, Iterator, Set, Tuple

from .core import ParticipantId, Cents, CENTS_MIN, CENTS_MAX, LedgerOverflow


EdgeKey = Tuple[ParticipantId, ParticipantId]


def edge_key(a: ParticipantId, b: ParticipantId) -> EdgeKey:
    """Canonical key for the unordered pair {a, b}."""
    return (a, b) if a <= b else (b, a)


class DebtLedger:
    """
    Directed, weighted "who owes whom" ledger.

    Edges are created lazily on the first debt-affecting operation and are
    accumulated for the life of the ledger, never reset.

    Example:
        debts = DebtLedger()
        debts.add_debt(0, 1, 250)        # 1 now owes 0 2.50
        assert debts.debt(1, 0) == 250
        assert debts.debt(0, 1) == -250
    """

    def __init__(self):
        self._edges: Dict[EdgeKey, Cents] = {}

    def debt(self, debtor: ParticipantId, creditor: ParticipantId) -> Cents:
        """
        Return how much debtor owes creditor (negative if creditor owes debtor).

        Pairs that were never touched owe nothing.
        """
        if debtor == creditor:
            return 0
        value = self._edges.get(edge_key(debtor, creditor), 0)
        # Stored value is "high owes low"
        return value if debtor > creditor else -value

    def add_debt(self, creditor: ParticipantId, debtor: ParticipantId, amount: Cents) -> None:
        """
        Increase what debtor owes creditor by amount.

        Raises:
            ValueError: If creditor and debtor are the same participant
            LedgerOverflow: If the edge would leave the signed 64-bit range
        """
        if creditor == debtor:
            raise ValueError(f"Participant {creditor} cannot owe itself")
        if not amount:
            return
        key = edge_key(creditor, debtor)
        delta = amount if debtor > creditor else -amount
        value = self._edges.get(key, 0) + delta
        if not CENTS_MIN <= value <= CENTS_MAX:
            raise LedgerOverflow(
                f"Debt between {key[0]} and {key[1]} overflows: {value}"
            )
        self._edges[key] = value

    def charge(self, creditor: ParticipantId, charges: Iterable[Tuple[ParticipantId, Cents]]) -> None:
        """
        Apply several debts owed to one creditor, all or nothing.

        Charges to the creditor itself are skipped. Every resulting edge is
        range-checked before any edge is written.

        Raises:
            LedgerOverflow: If any edge would leave the signed 64-bit range
        """
        totals: Dict[ParticipantId, Cents] = {}
        for debtor, amount in charges:
            if debtor != creditor:
                totals[debtor] = totals.get(debtor, 0) + amount
        pending: Dict[EdgeKey, Cents] = {}
        for debtor, amount in totals.items():
            key = edge_key(creditor, debtor)
            delta = amount if debtor > creditor else -amount
            value = self._edges.get(key, 0) + delta
            if not CENTS_MIN <= value <= CENTS_MAX:
                raise LedgerOverflow(
                    f"Debt between {key[0]} and {key[1]} overflows: {value}"
                )
            if amount:
                pending[key] = value
        self._edges.update(pending)

    def edges(self) -> Iterator[Tuple[ParticipantId, ParticipantId, Cents]]:
        """Iterate (low, high, signed_cents) for every touched pair, in key order."""
        for (low, high) in sorted(self._edges):
            yield low, high, self._edges[(low, high)]

    def balance(self, pid: ParticipantId) -> Cents:
        """
        Net position of a participant: positive if others owe them overall.
        """
        total = 0
        for (low, high), value in self._edges.items():
            if low == pid:
                total += value
            elif high == pid:
                total -= value
        return total

    def participants(self) -> Set[ParticipantId]:
        """Set of participants that appear on at least one edge."""
        seen: Set[ParticipantId] = set()
        for low, high in self._edges:
            seen.add(low)
            seen.add(high)
        return seen

    def verify_antisymmetry(self) -> bool:
        """Check debt(x, y) == -debt(y, x) for every touched pair."""
        return all(
            self.debt(low, high) == -self.debt(high, low)
            for low, high in self._edges
        )

    def __len__(self) -> int:
        return len(self._edges)

    def __repr__(self) -> str:
        return f"DebtLedger({len(self._edges)} edges)"
