"""Codec for the connection-establishment parameter blob.

Clients cannot set arbitrary headers on a browser WebSocket, so connection
parameters travel in ``Sec-WebSocket-Protocol`` as URL-safe base64 of compact
JSON (padding optional).
"""

from __future__ import annotations

import base64
import json
from typing import Any, Protocol

from loguru import logger


class ParamsCodec(Protocol):
    def encode(self, value: Any) -> str:
        ...

    def decode(self, value: str) -> Any:
        ...


class Base64JsonCodec:
    def encode(self, value: Any) -> str:
        raw = json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")

    def decode(self, value: str) -> Any:
        text = value.strip()
        padded = text + "=" * (-len(text) % 4)
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        return json.loads(raw.decode("utf-8"))


def lazy_decode(codec: ParamsCodec, header: str | None) -> Any:
    """Decode a header value, falling back to an empty object when absent or malformed."""
    if not header or not header.strip():
        return {}
    try:
        return codec.decode(header)
    except ValueError as e:
        logger.debug("Ignoring undecodable connection params: {}", e)
        return {}
