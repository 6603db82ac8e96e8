"""Sent-reminder ledger: which (due date, offset) pairs were already delivered.

The ledger is an immutable mapping ``due_date_key -> frozenset[offset]``.
Mutations return a new ledger; the persisted form is a plain JSON object
``{"2026-01-15": [1, 3]}`` with sorted offset lists.
"""
from collections.abc import Iterator, Mapping
from typing import Any


class ReminderLedger(Mapping[str, frozenset[int]]):
    """Immutable ``Map<CalendarDateKey, Set<Offset>>``.

    Within one key the offset set only grows; whole keys are removed only by
    :meth:`prune_before`.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[str, Any] | None = None):
        self._entries: dict[str, frozenset[int]] = {
            key: frozenset(int(o) for o in offsets)
            for key, offsets in (entries or {}).items()
            if offsets
        }

    # ─── Mapping protocol ───

    def __getitem__(self, key: str) -> frozenset[int]:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ReminderLedger):
            return self._entries == other._entries
        return NotImplemented

    def __hash__(self) -> int:
        return hash(frozenset(self._entries.items()))

    def __repr__(self) -> str:
        return f"ReminderLedger({self.to_document()!r})"

    # ─── Queries and mutations ───

    def was_sent(self, due_date_key: str, offset: int) -> bool:
        return offset in self._entries.get(due_date_key, frozenset())

    def mark_sent(self, due_date_key: str, offset: int) -> "ReminderLedger":
        if self.was_sent(due_date_key, offset):
            return self
        entries = dict(self._entries)
        entries[due_date_key] = entries.get(due_date_key, frozenset()) | {offset}
        return ReminderLedger(entries)

    def prune_before(self, cutoff_key: str) -> "ReminderLedger":
        """Drop every key strictly older than ``cutoff_key``.

        ISO date keys compare lexicographically in calendar order, so the
        result does not depend on iteration order.
        """
        kept = {key: offsets for key, offsets in self._entries.items() if key >= cutoff_key}
        if len(kept) == len(self._entries):
            return self
        return ReminderLedger(kept)

    # ─── Serialisation ───

    def to_document(self) -> dict[str, list[int]]:
        return {key: sorted(offsets) for key, offsets in sorted(self._entries.items())}

    @classmethod
    def from_document(cls, document: Mapping[str, Any] | None) -> "ReminderLedger":
        return cls(document or {})
