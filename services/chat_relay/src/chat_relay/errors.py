"""Rejections raised while validating inbound frames."""

from __future__ import annotations


class FrameError(ValueError):
    """Inbound frame was rejected; ``detail`` is what the sender gets back."""

    detail = "Invalid frame"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.detail)

    def reply(self) -> dict[str, str]:
        return {"error": self.detail}


class MalformedFrame(FrameError):
    """Frame is not valid JSON."""

    detail = "Invalid message format. Expect JSON."


class InvalidFields(FrameError):
    """Frame is JSON but not a recognised envelope."""

    detail = "Invalid message fields. Expect { user: string, text: string }"


class MessageTooLong(FrameError):
    detail = "Message too long"
