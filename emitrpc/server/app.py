"""RpcApp: handler registration, connection admission and the ASGI/uvicorn surface.

In the overall architecture: one RpcApp owns its handler tables, its live
connection registry and (when served) its uvicorn server. Each WebSocket
accepted on ``config.path`` goes through admission, becomes a Connection and
feeds inbound frames to the Dispatcher.
"""

from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager
from typing import Any, Callable

import uvicorn
from fastapi import FastAPI, WebSocket
from loguru import logger

from emitrpc.config.access import get_config
from emitrpc.config.schema import RpcConfig
from emitrpc.rpc.dispatcher import Dispatcher
from emitrpc.rpc.messages import JSONRPC_VERSION
from emitrpc.rpc.registry import EmitterHandler, HandlerRegistry, MethodHandler
from emitrpc.server.admission import AdmissionHook, Rejection, admit
from emitrpc.server.channel import Channel, ChannelClosed, WebSocketChannel
from emitrpc.server.connection import Connection, ConnectionState, RemovalHook
from emitrpc.server.connections import ConnectionRegistry
from emitrpc.server.params_codec import Base64JsonCodec, ParamsCodec, lazy_decode


class RpcApp:
    """JSON-RPC 2.0 over WebSocket, with emitter requests."""

    def __init__(
        self,
        config: RpcConfig | None = None,
        *,
        client_added: AdmissionHook | None = None,
        client_removed: RemovalHook | None = None,
        codec: ParamsCodec | None = None,
    ):
        self.config = config or get_config()
        self.client_added = client_added
        self.client_removed = client_removed
        self.codec = codec or Base64JsonCodec()
        self.handlers = HandlerRegistry()
        self.clients = ConnectionRegistry()
        self.dispatcher = Dispatcher(self.handlers)
        self._asgi: FastAPI | None = None
        self._server: uvicorn.Server | None = None

    def configure(self, **updates: Any) -> RpcConfig:
        """Apply validated config overrides; the ASGI app is rebuilt on next access."""
        self.config = type(self.config).model_validate({**self.config.model_dump(), **updates})
        self._asgi = None
        return self.config

    def method(self, name: str, handler: MethodHandler | None = None) -> Any:
        """Register a method handler, directly or as a decorator."""
        if handler is None:
            return self.handlers.method(name)
        self.handlers.add_method(name, handler)
        return handler

    def emitter(self, name: str, handler: EmitterHandler | None = None) -> Any:
        """Register an emitter handler, directly or as a decorator."""
        if handler is None:
            return self.handlers.emitter(name)
        self.handlers.add_emitter(name, handler)
        return handler

    async def handle(self, websocket: WebSocket) -> Connection | None:
        """Accept an upgraded WebSocket and run it until it closes."""
        channel = WebSocketChannel(websocket)
        header = channel.protocol_header
        await channel.accept(subprotocol=header.strip() if header and header.strip() else None)
        return await self.serve_channel(channel, header)

    async def serve_channel(self, channel: Channel, protocol_header: str | None = None) -> Connection | None:
        """
        Admit a connected channel, then process its frames until it closes.

        Returns the finished Connection, or None when admission rejected it.
        """
        connection = Connection(
            channel,
            registry=self.clients,
            dispatcher=self.dispatcher,
            lifetime=self.config.timeout_seconds,
            on_removed=self.client_removed,
        )
        connection.state = ConnectionState.ADMITTING
        params = lazy_decode(self.codec, protocol_header)
        outcome = await admit(self.client_added, params, channel)

        if isinstance(outcome, Rejection):
            await self._reject(channel, outcome)
            connection.state = ConnectionState.CLOSED
            return None

        await connection.open(outcome)
        await connection.run()
        return connection

    async def send(self, client_id: str, payload: Any) -> bool:
        """Push a frame to one live client. Returns False when it is gone."""
        connection = self.clients.get(client_id)
        if connection is None:
            return False
        return await connection.send(payload)

    def create_app(self) -> FastAPI:
        """Build a FastAPI app exposing the RPC route and a health check."""

        @asynccontextmanager
        async def lifespan(_app: FastAPI):
            try:
                yield
            finally:
                if len(self.clients):
                    logger.info("Closing {} live connections", len(self.clients))
                await self.clients.close_all()

        app = FastAPI(title=self.config.server.title, lifespan=lifespan)

        @app.websocket(self.config.path)
        async def rpc_endpoint(websocket: WebSocket) -> None:
            await self.handle(websocket)

        @app.get(self.config.server.health_path)
        async def health() -> dict[str, Any]:
            return {"status": "ok", "clients": len(self.clients)}

        return app

    @property
    def asgi(self) -> FastAPI:
        if self._asgi is None:
            self._asgi = self.create_app()
        return self._asgi

    async def listen(
        self,
        host: str | None = None,
        port: int | None = None,
        on_listen: Callable[[tuple[str, int]], Any] | None = None,
    ) -> None:
        """Serve with uvicorn until close() is called."""
        host = host or self.config.host
        port = self.config.port if port is None else port
        server = uvicorn.Server(
            uvicorn.Config(
                self.asgi,
                host=host,
                port=port,
                log_level=self.config.log_level.lower(),
            )
        )
        self._server = server
        watcher = None
        if on_listen is not None:
            watcher = asyncio.create_task(_notify_started(server, on_listen, (host, port)))
        logger.info("Serving emitrpc on ws://{}:{}{}", host, port, self.config.path)
        try:
            await server.serve()
        finally:
            if watcher is not None and not watcher.done():
                watcher.cancel()
            self._server = None

    def close(self) -> None:
        """Ask a running listen() to shut down."""
        if self._server is not None:
            self._server.should_exit = True

    async def _reject(self, channel: Channel, rejection: Rejection) -> None:
        logger.info("Connection rejected: {}", rejection.error)
        frame = {"jsonrpc": JSONRPC_VERSION, "id": None, "error": rejection.error}
        try:
            await channel.send_text(json.dumps(frame, ensure_ascii=False, separators=(",", ":"), default=str))
        except ChannelClosed:
            logger.debug("Rejected client went away before the error frame")
        await channel.close()


async def _notify_started(server: uvicorn.Server, callback: Callable[[tuple[str, int]], Any], addr: tuple[str, int]) -> None:
    while not server.started:
        if server.should_exit:
            return
        await asyncio.sleep(0.05)
    callback(addr)
