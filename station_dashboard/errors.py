"""Error taxonomy shared by the provider clients and the pipeline."""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    CONFIG_MISSING = "config_missing"
    NETWORK = "network"
    UPSTREAM_REJECTED = "upstream_rejected"
    DECODE = "decode"


class ProviderError(RuntimeError):
    """Base provider error.

    ``kind`` tells the presentation layer how to surface the failure; the
    concrete subclasses below fix it so callers can also catch by type.
    """

    kind: ErrorKind = ErrorKind.DECODE

    def __init__(self, message: str, *, kind: Optional[ErrorKind] = None) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind

    def notice(self) -> "Notice":
        return Notice.from_error(self)


class ConfigMissing(ProviderError):
    """A required credential or parameter is absent or malformed."""

    kind = ErrorKind.CONFIG_MISSING


class NetworkError(ProviderError):
    """The provider could not be reached (timeout, refused connection)."""

    kind = ErrorKind.NETWORK


class UpstreamRejected(ProviderError):
    """The provider answered with a structured error."""

    kind = ErrorKind.UPSTREAM_REJECTED


class DecodeError(ProviderError):
    """The provider payload did not match the expected structure."""

    kind = ErrorKind.DECODE


_TAG_RE = re.compile(r"<[^>]*>")
_SPACE_RE = re.compile(r"\s+")
MAX_NOTICE_LENGTH = 200


def sanitize_message(message: str, limit: int = MAX_NOTICE_LENGTH) -> str:
    text = _TAG_RE.sub("", str(message))
    text = _SPACE_RE.sub(" ", text).strip()
    if len(text) > limit:
        text = text[: limit - 3].rstrip() + "..."
    return text


@dataclass(frozen=True)
class Notice:
    """Inline message shown in place of a section that failed."""

    level: str
    text: str

    @classmethod
    def from_error(cls, error: ProviderError) -> "Notice":
        if error.kind is ErrorKind.CONFIG_MISSING:
            return cls(level="config", text=f"Missing configuration: {sanitize_message(error.message)}")
        if error.kind is ErrorKind.NETWORK:
            return cls(level="warning", text="Provider temporarily unreachable, try again shortly")
        if error.kind is ErrorKind.UPSTREAM_REJECTED:
            return cls(level="error", text=f"API Error: {sanitize_message(error.message)}")
        return cls(level="error", text="Invalid API response")


__all__ = [
    "ErrorKind",
    "ProviderError",
    "ConfigMissing",
    "NetworkError",
    "UpstreamRejected",
    "DecodeError",
    "Notice",
    "sanitize_message",
]
