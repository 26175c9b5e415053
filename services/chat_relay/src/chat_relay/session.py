"""Per-connection protocol driver."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING, Any

from fastapi import WebSocket
from fastapi.websockets import WebSocketDisconnect

from .errors import FrameError
from .models import ChatMessage, CookieReport, encode_frame
from .validation import parse_frame

if TYPE_CHECKING:  # pragma: no cover
    from .hub import BroadcastHub

logger = logging.getLogger(__name__)

COOKIE_ACK = {"ok": True, "type": "cookie_received"}


class SessionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class Delivery(str, Enum):
    """Outcome of offering one frame to a session."""

    DELIVERED = "delivered"
    SKIPPED = "skipped"
    DROPPED = "dropped"


def _remote_address(websocket: WebSocket) -> str:
    client = websocket.client
    return client.host if client else "unknown"


class ChatSession:
    """Drives one WebSocket connection from accept to teardown.

    Outbound frames go through a bounded queue drained by a dedicated writer
    task, so fan-out never waits on a slow socket.
    """

    def __init__(self, websocket: WebSocket, hub: "BroadcastHub", *, queue_size: int) -> None:
        self._websocket = websocket
        self._hub = hub
        self.remote = _remote_address(websocket)
        self.state = SessionState.CONNECTING
        self._outbound: asyncio.Queue[str] = asyncio.Queue(maxsize=queue_size)
        self._writer: asyncio.Task[None] | None = None
        self._closer: asyncio.Task[None] | None = None

    @property
    def is_open(self) -> bool:
        return self.state is SessionState.OPEN

    @property
    def pending(self) -> int:
        return self._outbound.qsize()

    def offer(self, frame: str) -> Delivery:
        """Queue a serialized frame without blocking."""

        if self.state is not SessionState.OPEN:
            return Delivery.SKIPPED
        try:
            self._outbound.put_nowait(frame)
        except asyncio.QueueFull:
            return Delivery.DROPPED
        return Delivery.DELIVERED

    def send(self, payload: dict[str, Any]) -> Delivery:
        return self.offer(encode_frame(payload))

    async def run(self) -> None:
        """Main loop for the connection."""

        await self._websocket.accept()
        self.state = SessionState.OPEN
        logger.info("Client connected: %s", self.remote)
        self._writer = asyncio.create_task(self._drain(), name=f"chat-writer-{self.remote}")
        try:
            if not await self._hub.join(self):
                await self.close(code=1001, reason="Server shutting down")
                return
            while True:
                message = await self._websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                if self.state is not SessionState.OPEN:
                    # evicted or failed writer; wait for the transport to finish closing
                    continue
                raw = message.get("text")
                if raw is None:
                    raw = message.get("bytes") or b""
                await self._dispatch(raw)
        except WebSocketDisconnect:
            logger.debug("Client %s went away", self.remote)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Unexpected error in chat session %s: %s", self.remote, exc)
            await self.close(code=1011, reason="Internal error")
        finally:
            await self._teardown()
            logger.info("Client disconnected: %s", self.remote)

    async def close(self, *, code: int = 1000, reason: str | None = None) -> None:
        """Server-initiated close; pending frames are discarded."""

        if self.state is not SessionState.OPEN:
            return
        self._mark_closing()
        await self._close_socket(code=code, reason=reason)

    def evict(self, *, reason: str = "Slow consumer") -> None:
        """Stop accepting frames now and close the socket in the background."""

        if self.state is not SessionState.OPEN:
            return
        self._mark_closing()
        self._closer = asyncio.create_task(
            self._close_socket(code=1008, reason=reason),
            name=f"chat-evict-{self.remote}",
        )

    async def _close_socket(self, *, code: int, reason: str | None) -> None:
        await self._stop_writer()
        try:
            await self._websocket.close(code=code, reason=reason)
        except (RuntimeError, OSError, WebSocketDisconnect):
            logger.debug("Ignored error while closing websocket %s", self.remote, exc_info=True)

    async def _dispatch(self, raw: str | bytes) -> None:
        settings = self._hub.settings
        try:
            envelope = parse_frame(
                raw,
                max_sender_length=settings.max_sender_length,
                max_message_length=settings.max_message_length,
            )
        except FrameError as exc:
            logger.debug("Rejected frame from %s: %s", self.remote, exc)
            self._reply(exc.reply())
            return

        if isinstance(envelope, CookieReport):
            logger.info('[COOKIE][from %s] full="%s"', self.remote, envelope.value)
            self._reply(COOKIE_ACK)
            return

        message = ChatMessage.from_submission(envelope)
        logger.info("[MSG] %s: %s", message.sender, message.body)
        await self._hub.publish(message)

    def _reply(self, payload: dict[str, Any]) -> None:
        if self.send(payload) is Delivery.DROPPED:
            logger.warning("Outbound queue full for %s, evicting", self.remote)
            self.evict()

    async def _drain(self) -> None:
        while True:
            frame = await self._outbound.get()
            try:
                await self._websocket.send_text(frame)
            except (RuntimeError, OSError, WebSocketDisconnect) as exc:
                logger.warning("Failed to send frame to %s: %s", self.remote, exc)
                self._mark_closing()
                return

    def _mark_closing(self) -> None:
        if self.state is SessionState.OPEN:
            self.state = SessionState.CLOSING
        self._hub.leave(self)

    async def _stop_writer(self) -> None:
        writer = self._writer
        if writer is None or writer is asyncio.current_task():
            return
        if not writer.done():
            writer.cancel()
        try:
            await writer
        except asyncio.CancelledError:
            pass

    async def _teardown(self) -> None:
        if self.state is SessionState.CLOSED:
            return
        self._mark_closing()
        await self._stop_writer()
        self.state = SessionState.CLOSED
