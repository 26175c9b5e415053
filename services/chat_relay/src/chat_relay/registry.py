"""Live set of connected sessions."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Set

if TYPE_CHECKING:  # pragma: no cover
    from .session import ChatSession

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Tracks sessions between accept and teardown."""

    def __init__(self) -> None:
        self._sessions: Set["ChatSession"] = set()

    def register(self, session: "ChatSession") -> None:
        self._sessions.add(session)
        logger.debug("Session registered (%d live)", len(self._sessions))

    def unregister(self, session: "ChatSession") -> bool:
        """Remove ``session``; returns False when it was not registered."""

        if session not in self._sessions:
            return False
        self._sessions.discard(session)
        logger.debug("Session unregistered (%d live)", len(self._sessions))
        return True

    def snapshot(self) -> list["ChatSession"]:
        return list(self._sessions)

    def for_each(self, visitor: Callable[["ChatSession"], None]) -> None:
        """Apply ``visitor`` to a copy of the membership.

        Sessions registered or removed while visiting do not affect the
        iteration; a session removed mid-way may or may not be visited.
        """

        for session in self.snapshot():
            visitor(session)

    def clear(self) -> list["ChatSession"]:
        sessions = self.snapshot()
        self._sessions.clear()
        return sessions

    def __contains__(self, session: object) -> bool:
        return session in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
