"""Per-client connection: frame loop, lifetime ceiling, guarded sends, teardown."""

from __future__ import annotations

import asyncio
import inspect
import json
import time
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Coroutine, TypeVar, Union

from fastapi.encoders import jsonable_encoder
from loguru import logger

from emitrpc.server.channel import NORMAL_CLOSURE, Channel, ChannelClosed
from emitrpc.server.connections import ConnectionRegistry

if TYPE_CHECKING:
    from emitrpc.rpc.dispatcher import Dispatcher

T = TypeVar("T")

RemovalHook = Callable[[str], Union[None, Awaitable[None]]]


class ConnectionState(Enum):
    CONNECTING = "connecting"
    ADMITTING = "admitting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class Connection:
    """
    One admitted client and its channel.

    The connection owns the channel exclusively. Sends are only written while
    the connection is open and still registered; afterwards they are no-ops.
    Handler and emitter tasks spawned on the connection are not cancelled on
    close: emitters observe ``wait_closed`` instead.
    """

    def __init__(
        self,
        channel: Channel,
        *,
        registry: ConnectionRegistry,
        dispatcher: "Dispatcher",
        lifetime: float,
        on_removed: RemovalHook | None = None,
    ):
        self.channel = channel
        self.client_id = ""
        self.lifetime = lifetime
        self.created_at = time.time()
        self.state = ConnectionState.CONNECTING
        self._registry = registry
        self._dispatcher = dispatcher
        self._on_removed = on_removed
        self._tasks: set[asyncio.Task[Any]] = set()
        self._send_lock = asyncio.Lock()
        self._closed = asyncio.Event()
        self._removed = asyncio.Event()
        self._timer: asyncio.TimerHandle | None = None
        self._reader: asyncio.Task[None] | None = None
        self._closer: asyncio.Task[None] | None = None
        self._finalized = False

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN and self._registry.is_registered(self)

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    async def open(self, client_id: str) -> None:
        """Register under ``client_id`` and arm the lifetime ceiling."""
        self.client_id = client_id
        await self._registry.register(self)
        self.state = ConnectionState.OPEN
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.lifetime, self._expire)
        logger.info("Client {} connected (lifetime {}s)", client_id, self.lifetime)

    async def run(self) -> None:
        """Process inbound frames until the channel closes, then tear down."""
        reader = asyncio.create_task(self._read_frames(), name=f"emitrpc-reader:{self.client_id}")
        self._reader = reader
        try:
            await asyncio.wait({reader})
        finally:
            if not reader.done():
                reader.cancel()
            await self._finalize()

    async def send(self, payload: Any) -> bool:
        """Serialize and write one frame. Returns False when the frame was dropped."""
        if not self.is_open:
            logger.debug("Dropping frame for closed client {}", self.client_id)
            return False
        try:
            text = json.dumps(jsonable_encoder(payload), ensure_ascii=False, separators=(",", ":"))
        except (TypeError, ValueError) as e:
            logger.error("Frame for client {} is not JSON serializable: {}", self.client_id, e)
            return False
        async with self._send_lock:
            if not self.is_open:
                logger.debug("Dropping frame for closed client {}", self.client_id)
                return False
            try:
                await self.channel.send_text(text)
            except ChannelClosed:
                logger.debug("Client {} went away before send", self.client_id)
                return False
            except Exception as e:
                logger.error("Send to client {} failed: {}", self.client_id, e)
                self._schedule_close()
                return False
        return True

    def spawn(self, coro: Coroutine[Any, Any, T], *, name: str | None = None) -> "asyncio.Task[T]":
        """Run work tied to this connection without awaiting it."""
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for all currently spawned work (including tasks it spawns meanwhile)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def wait_closed(self) -> None:
        await self._closed.wait()

    async def wait_removed(self) -> None:
        """Wait until teardown finished: cleanup hook ran and the entry is gone."""
        await self._removed.wait()

    async def close(self, code: int = NORMAL_CLOSURE) -> None:
        """Force-close the channel; teardown runs once the frame loop stops."""
        if self.state in (ConnectionState.CLOSING, ConnectionState.CLOSED):
            return
        self.state = ConnectionState.CLOSING
        await self._close_channel(code)
        reader = self._reader
        if reader is not None and reader is not asyncio.current_task() and not reader.done():
            reader.cancel()
        elif reader is None:
            await self._finalize()

    async def _read_frames(self) -> None:
        while self.state is ConnectionState.OPEN:
            try:
                frame = await self.channel.receive()
            except ChannelClosed as e:
                logger.debug("Client {} closed the channel ({})", self.client_id, e.code)
                return
            except Exception as e:
                logger.error("Channel error for client {}: {}", self.client_id, e)
                if self.state is ConnectionState.OPEN:
                    self.state = ConnectionState.CLOSING
                    await self._close_channel(NORMAL_CLOSURE)
                return

            if isinstance(frame, str):
                self.spawn(
                    self._dispatcher.handle_frame(frame, self),
                    name=f"emitrpc-frame:{self.client_id}",
                )
            else:
                logger.warning("Client {} sent a non-text frame; skipping", self.client_id)

    async def _close_channel(self, code: int) -> None:
        try:
            await self.channel.close(code)
        except ChannelClosed:
            logger.debug("Channel for client {} was already closed", self.client_id)
        except Exception as e:
            logger.warning("Closing channel for client {} failed: {}", self.client_id, e)

    def _expire(self) -> None:
        logger.info("Client {} reached its lifetime ceiling; closing", self.client_id)
        self._schedule_close()

    def _schedule_close(self) -> None:
        if self._closer is None:
            self._closer = asyncio.get_running_loop().create_task(self.close())

    async def _finalize(self) -> None:
        if self._finalized:
            return
        self._finalized = True
        if self.state is not ConnectionState.CLOSED:
            self.state = ConnectionState.CLOSING
        if self._timer is not None:
            self._timer.cancel()
        self._closed.set()
        await self._close_channel(NORMAL_CLOSURE)
        try:
            if self._on_removed is not None and self.client_id:
                outcome = self._on_removed(self.client_id)
                if inspect.isawaitable(outcome):
                    await outcome
        except Exception:
            logger.exception("client_removed hook failed for {}", self.client_id)
        finally:
            if self.client_id:
                await self._registry.unregister(self.client_id, self)
            self.state = ConnectionState.CLOSED
            self._removed.set()
            logger.info("Client {} disconnected", self.client_id)
