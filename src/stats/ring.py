"""
Fixed-capacity circular buffer for raw observation history.

Slots are overwritten in place once the ring is full. The ring is an audit
trail only; online statistics never read from it.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterator, List, Optional

from .schema import HistoryEntry


class HistoryRing:
    """
    Ring buffer of HistoryEntry slots.

    Invariants:
    - len(ring) <= capacity
    - write_index always points at the slot the next append overwrites
    - sequence numbers increase by one per append and are never reused
    """

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._slots: List[Optional[HistoryEntry]] = [None] * capacity
        self._write_index = 0
        self._size = 0
        self._next_sequence = 0

    @property
    def write_index(self) -> int:
        return self._write_index

    @property
    def next_sequence(self) -> int:
        return self._next_sequence

    def append(self, value: int, timestamp: datetime) -> HistoryEntry:
        entry = HistoryEntry(value=value, timestamp=timestamp, sequence=self._next_sequence)
        self._slots[self._write_index] = entry
        self._write_index = (self._write_index + 1) % self.capacity
        self._size = min(self._size + 1, self.capacity)
        self._next_sequence += 1
        return entry

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[HistoryEntry]:
        """Iterate oldest to newest."""
        start = (self._write_index - self._size) % self.capacity
        for offset in range(self._size):
            entry = self._slots[(start + offset) % self.capacity]
            if entry is not None:
                yield entry

    def snapshot(self) -> List[HistoryEntry]:
        return list(self)

    def latest(self) -> Optional[HistoryEntry]:
        if self._size == 0:
            return None
        return self._slots[(self._write_index - 1) % self.capacity]
