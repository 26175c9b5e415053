"""Bounded history of accepted chat frames."""

from __future__ import annotations

from collections import deque
from typing import Deque


class HistoryRing:
    """Insertion-ordered FIFO of serialized chat frames.

    Frames are stored already serialized so a replay sends exactly the bytes
    that were broadcast.
    """

    def __init__(self, capacity: int = 1000) -> None:
        if capacity < 0:
            raise ValueError("capacity must be non-negative")
        self._capacity = capacity
        self._entries: Deque[str] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, frame: str) -> None:
        self._entries.append(frame)

    def snapshot(self) -> list[str]:
        """Return entries oldest first as an independent list."""

        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
