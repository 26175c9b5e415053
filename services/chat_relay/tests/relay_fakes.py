"""Test doubles for driving chat sessions without a server."""

from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace
from typing import Any, Callable


class FakeWebSocket:
    """Stand-in for a Starlette WebSocket driven from the test side."""

    def __init__(self, host: str = "127.0.0.1") -> None:
        self.client = SimpleNamespace(host=host, port=50000)
        self.sent: list[str] = []
        self.accepted = False
        self.close_code: int | None = None
        self.fail_sends = False
        self.send_gate: asyncio.Event | None = None
        self.accept_gate: asyncio.Event | None = None
        self._inbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

    async def accept(self) -> None:
        if self.accept_gate is not None:
            await self.accept_gate.wait()
        self.accepted = True

    async def receive(self) -> dict[str, Any]:
        return await self._inbox.get()

    async def send_text(self, data: str) -> None:
        if self.send_gate is not None:
            await self.send_gate.wait()
        if self.fail_sends:
            raise RuntimeError("Cannot call 'send' once a close message has been sent.")
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.close_code = code
        self._inbox.put_nowait({"type": "websocket.disconnect", "code": code})

    def push(self, payload: Any) -> None:
        text = payload if isinstance(payload, str) else json.dumps(payload)
        self._inbox.put_nowait({"type": "websocket.receive", "text": text})

    def push_bytes(self, data: bytes) -> None:
        self._inbox.put_nowait({"type": "websocket.receive", "bytes": data})

    def hang_up(self) -> None:
        self._inbox.put_nowait({"type": "websocket.disconnect", "code": 1000})

    def frames(self) -> list[dict[str, Any]]:
        return [json.loads(item) for item in self.sent]

    def chat_frames(self) -> list[dict[str, Any]]:
        return [frame for frame in self.frames() if "user" in frame]


async def wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.001)


