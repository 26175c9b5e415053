"""Domain models for the chat relay."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field


def encode_frame(payload: dict[str, Any]) -> str:
    """Serialize an outbound frame the way browsers expect it (compact JSON)."""

    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def now_millis() -> int:
    return int(time.time() * 1000)


class CookieReport(BaseModel):
    """Diagnostic cookie report; acknowledged and logged, never relayed."""

    model_config = ConfigDict(frozen=True)

    value: str = ""


class ChatSubmission(BaseModel):
    """Validated chat payload received from a client."""

    model_config = ConfigDict(frozen=True)

    sender: str
    body: str


InboundEnvelope = Union[CookieReport, ChatSubmission]


class ChatMessage(BaseModel):
    """Accepted chat message as stored in history and broadcast to clients."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    sender: str = Field(..., alias="user", description="Trimmed sender name.")
    body: str = Field(..., alias="text", description="Message text.")
    created_at_millis: int = Field(
        default_factory=now_millis,
        alias="ts",
        description="Unix timestamp in milliseconds, assigned on acceptance.",
    )

    @classmethod
    def from_submission(cls, submission: ChatSubmission, *, created_at_millis: int | None = None) -> "ChatMessage":
        if created_at_millis is None:
            created_at_millis = now_millis()
        return cls(sender=submission.sender, body=submission.body, created_at_millis=created_at_millis)

    def to_frame(self) -> str:
        return encode_frame(self.model_dump(by_alias=True))


@dataclass
class DeliveryReport:
    """Per-publish outcome of the fan-out; counted, never raised."""

    delivered: int = 0
    skipped: int = 0
    dropped: list[Any] = field(default_factory=list)

    @property
    def recipients(self) -> int:
        return self.delivered + self.skipped + len(self.dropped)


class FoodSearchResult(BaseModel):
    """Response of the food lookup endpoint."""

    search: str
    count: int = Field(..., ge=0)
    data: list[str]
