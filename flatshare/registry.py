"""
registry.py - Participant Identity Registry

Bijection between participant names and dense integer ids. Ids start at 0
and increase by one per registration; names are immutable once assigned and
participants are never removed.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from .core import ParticipantId, DuplicateParticipant, UnknownParticipant


@dataclass(frozen=True, slots=True)
class Participant:
    id: ParticipantId
    name: str


class ParticipantRegistry:
    """
    Name <-> id registry.

    insert() refuses names that are already registered; callers that want
    get-or-create semantics use find() first.

    Example:
        registry = ParticipantRegistry()
        alice = registry.insert("alice")
        assert registry.find("alice") == alice
        assert registry.resolve(alice) == "alice"
    """

    def __init__(self):
        self._ids: Dict[str, ParticipantId] = {}
        self._names: List[str] = []

    def insert(self, name: str) -> ParticipantId:
        """
        Register a new participant and return its id.

        Raises:
            DuplicateParticipant: If the name is already registered
            ValueError: If the name is empty or contains whitespace
        """
        if not name or any(ch.isspace() for ch in name):
            raise ValueError(f"Invalid participant name {name!r}")
        if name in self._ids:
            raise DuplicateParticipant(f"Participant {name!r} already registered")
        pid = len(self._names)
        self._ids[name] = pid
        self._names.append(name)
        return pid

    def find(self, name: str) -> Optional[ParticipantId]:
        """Return the id registered for name, or None."""
        return self._ids.get(name)

    def resolve(self, pid: ParticipantId) -> str:
        """
        Return the name registered for pid.

        Raises:
            UnknownParticipant: If pid was never handed out
        """
        if not isinstance(pid, int) or not 0 <= pid < len(self._names):
            raise UnknownParticipant(pid)
        return self._names[pid]

    def require(self, name: str) -> ParticipantId:
        """Like find(), but raise UnknownParticipant instead of returning None."""
        pid = self._ids.get(name)
        if pid is None:
            raise UnknownParticipant(name)
        return pid

    def __contains__(self, name: object) -> bool:
        return name in self._ids

    def __len__(self) -> int:
        return len(self._names)

    def __iter__(self) -> Iterator[Participant]:
        for pid, name in enumerate(self._names):
            yield Participant(pid, name)

    def __repr__(self) -> str:
        return f"ParticipantRegistry({len(self._names)} participants)"
