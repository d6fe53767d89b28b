"""Pytest hooks and fixtures."""

import asyncio
import json

import pytest

from emitrpc.config.schema import RpcConfig
from emitrpc.server.app import RpcApp
from emitrpc.server.channel import ChannelClosed

_DISCONNECT = object()


class FakeChannel:
    """In-memory duplex channel: tests feed inbound frames and read sent ones."""

    def __init__(self):
        self.sent: list[str] = []
        self.closed = False
        self.close_codes: list[int] = []
        self._inbox: asyncio.Queue = asyncio.Queue()

    def feed(self, frame):
        self._inbox.put_nowait(frame)

    def fail(self, exc: Exception):
        self._inbox.put_nowait(exc)

    def disconnect(self):
        self.closed = True
        self._inbox.put_nowait(_DISCONNECT)

    async def receive(self):
        item = await self._inbox.get()
        if item is _DISCONNECT:
            raise ChannelClosed()
        if isinstance(item, Exception):
            raise item
        return item

    async def send_text(self, text: str) -> None:
        if self.closed:
            raise ChannelClosed()
        self.sent.append(text)

    async def close(self, code: int = 1000) -> None:
        if self.closed:
            return
        self.closed = True
        self.close_codes.append(code)
        self._inbox.put_nowait(_DISCONNECT)

    @property
    def frames(self) -> list:
        return [json.loads(text) for text in self.sent]


async def _eventually(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def make_channel():
    return FakeChannel


@pytest.fixture
def eventually():
    return _eventually


@pytest.fixture
def rpc_config():
    return RpcConfig(path="/", timeout=60_000)


@pytest.fixture
def rpc_app(rpc_config):
    return RpcApp(rpc_config)
