"""Duplex text channel interface and its Starlette/FastAPI WebSocket adapter."""

from __future__ import annotations

from typing import Protocol, Union

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

NORMAL_CLOSURE = 1000

Frame = Union[str, bytes]


class ChannelClosed(Exception):
    """The peer went away or the channel was already closed."""

    def __init__(self, code: int = NORMAL_CLOSURE, reason: str = ""):
        super().__init__(f"channel closed ({code}) {reason}".strip())
        self.code = code
        self.reason = reason


class Channel(Protocol):
    async def receive(self) -> Frame:
        """Next inbound frame; raises ChannelClosed when the peer disconnects."""
        ...

    async def send_text(self, text: str) -> None:
        ...

    async def close(self, code: int = NORMAL_CLOSURE) -> None:
        ...


class WebSocketChannel:
    """Channel backed by an ASGI WebSocket."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    @property
    def protocol_header(self) -> str | None:
        return self.websocket.headers.get("sec-websocket-protocol")

    @property
    def is_connected(self) -> bool:
        return (
            self.websocket.application_state == WebSocketState.CONNECTED
            and self.websocket.client_state == WebSocketState.CONNECTED
        )

    async def accept(self, subprotocol: str | None = None) -> None:
        await self.websocket.accept(subprotocol=subprotocol)

    async def receive(self) -> Frame:
        message = await self.websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise ChannelClosed(message.get("code", NORMAL_CLOSURE), message.get("reason") or "")
        text = message.get("text")
        if text is not None:
            return text
        return message.get("bytes") or b""

    async def send_text(self, text: str) -> None:
        if not self.is_connected:
            raise ChannelClosed()
        try:
            await self.websocket.send_text(text)
        except WebSocketDisconnect as e:
            raise ChannelClosed(e.code, e.reason or "") from e
        except RuntimeError as e:
            # Starlette refuses sends once a close message went out
            raise ChannelClosed(reason=str(e)) from e

    async def close(self, code: int = NORMAL_CLOSURE) -> None:
        if not self.is_connected:
            return
        await self.websocket.close(code=code)
