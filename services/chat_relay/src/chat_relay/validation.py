"""Parsing and JSON Schema validation of inbound WebSocket frames."""

from __future__ import annotations

import json
from typing import Any

from jsonschema import Draft7Validator

from .errors import InvalidFields, MalformedFrame, MessageTooLong
from .models import ChatSubmission, CookieReport, InboundEnvelope

CHAT_SCHEMA = {
    "type": "object",
    "required": ["user", "text"],
    "properties": {
        "user": {"type": "string"},
        "text": {"type": "string"},
    },
}

_chat_validator = Draft7Validator(CHAT_SCHEMA)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant {name}")


def _decode(raw: str | bytes) -> Any:
    if isinstance(raw, (bytes, bytearray)):
        raw = bytes(raw).decode("utf-8", errors="replace")
    try:
        return json.loads(raw, parse_constant=_reject_constant)
    except ValueError as exc:
        raise MalformedFrame() from exc


def _cookie_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    if not value:
        return ""
    try:
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError):
        return repr(value)


def parse_frame(
    raw: str | bytes,
    *,
    max_sender_length: int = 50,
    max_message_length: int = 2000,
) -> InboundEnvelope:
    """Classify one inbound frame.

    Args:
        raw: Text or binary frame as received from the socket.
        max_sender_length: Sender names are trimmed and cut to this length.
        max_message_length: Longer message bodies are rejected.

    Returns:
        InboundEnvelope: ``CookieReport`` or ``ChatSubmission``.

    Raises:
        MalformedFrame: The frame is not JSON.
        InvalidFields: The JSON does not match a known envelope.
        MessageTooLong: The message body exceeds ``max_message_length``.
    """

    payload = _decode(raw)

    if isinstance(payload, dict) and payload.get("type") == "cookie":
        return CookieReport(value=_cookie_value(payload.get("value")))

    error = next(iter(_chat_validator.iter_errors(payload)), None)
    if error is not None:
        raise InvalidFields(error.message)

    text: str = payload["text"]
    if len(text) > max_message_length:
        raise MessageTooLong(f"Message has {len(text)} characters (limit={max_message_length})")

    return ChatSubmission(
        sender=payload["user"].strip()[:max_sender_length],
        body=text[:max_message_length],
    )
