"""In-memory WebSocket hub: history, membership and ordered fan-out."""

from __future__ import annotations

import asyncio
import logging

from fastapi import WebSocket

from .config import Settings
from .history import HistoryRing
from .models import ChatMessage, DeliveryReport, encode_frame
from .registry import ConnectionRegistry
from .session import ChatSession, Delivery

logger = logging.getLogger(__name__)


class BroadcastHub:
    """Owns the history ring and the connection registry.

    ``join`` and ``publish`` share one lock, so a joining session sees the
    history up to a point and then every later message, and no two publishes
    interleave their fan-out.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._history = HistoryRing(settings.history_limit)
        self._registry = ConnectionRegistry()
        self._lock = asyncio.Lock()
        self._welcome = encode_frame({"system": True, "text": settings.welcome_text})
        self._closing = False

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def history(self) -> HistoryRing:
        return self._history

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    async def handle_connection(self, websocket: WebSocket) -> None:
        """Run a chat session for an incoming WebSocket until it ends."""

        if self._closing:
            await websocket.close(code=1001, reason="Server shutting down")
            return
        session = ChatSession(websocket, self, queue_size=self._settings.session_queue_size)
        await session.run()

    async def join(self, session: ChatSession) -> bool:
        """Send welcome and history replay to ``session`` only, then register it.

        Returns False when shutdown has already started; the session is not
        registered and must close itself.
        """

        async with self._lock:
            if self._closing:
                return False
            session.offer(self._welcome)
            backlog = self._history.snapshot()
            for frame in backlog:
                session.offer(frame)
            self._registry.register(session)
        logger.debug("Session %s joined with %d replayed messages", session.remote, len(backlog))
        return True

    def leave(self, session: ChatSession) -> None:
        self._registry.unregister(session)

    async def publish(self, message: ChatMessage) -> DeliveryReport:
        """Append ``message`` to history and offer it to every live session."""

        frame = message.to_frame()
        report = DeliveryReport()

        def deliver(session: ChatSession) -> None:
            result = session.offer(frame)
            if result is Delivery.DELIVERED:
                report.delivered += 1
            elif result is Delivery.DROPPED:
                report.dropped.append(session)
                self._registry.unregister(session)
                session.evict()
            else:
                report.skipped += 1

        async with self._lock:
            self._history.append(frame)
            self._registry.for_each(deliver)

        for session in report.dropped:
            logger.warning("Evicted slow consumer %s (%d frames pending)", session.remote, session.pending)
        logger.debug(
            "Broadcast message from %s to %d receivers (skipped=%d, dropped=%d)",
            message.sender,
            report.delivered,
            report.skipped,
            len(report.dropped),
        )
        return report

    async def shutdown(self, grace: float | None = None) -> None:
        """Close every session and wait at most ``grace`` seconds for the close frames."""

        if grace is None:
            grace = self._settings.shutdown_grace_seconds
        self._closing = True
        async with self._lock:
            sessions = self._registry.clear()
        if not sessions:
            return
        logger.info("Terminating %d open sessions", len(sessions))
        tasks = [
            asyncio.create_task(session.close(code=1001, reason="Server shutting down"), name="chat-shutdown")
            for session in sessions
        ]
        _, pending = await asyncio.wait(tasks, timeout=grace)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning("%d sessions did not close within %.1fs", len(pending), grace)
