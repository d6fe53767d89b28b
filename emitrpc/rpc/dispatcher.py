"""Batch dispatch: concurrent handler execution, ordered replies, emitter streams."""

from __future__ import annotations

import asyncio
import inspect
from typing import TYPE_CHECKING, Any

from fastapi.encoders import jsonable_encoder
from loguru import logger

from emitrpc.errors import (
    EMITTER_NOT_FOUND_MESSAGE,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    ApplicationError,
    InternalError,
    InvalidRequestError,
)
from emitrpc.rpc.messages import (
    Batch,
    InvalidItem,
    ParsedItem,
    ParseFailure,
    Request,
    RequestKind,
    RequestId,
    error_response,
    exception_response,
    result_response,
)
from emitrpc.rpc.parser import parse_frame
from emitrpc.rpc.registry import EmitterHandler, HandlerRegistry

if TYPE_CHECKING:
    from emitrpc.server.connection import Connection


class Emitter:
    """
    The ``emit`` callable handed to emitter handlers.

    Each call schedules one standalone ``{id, result}`` frame on the
    connection and returns the send task, so handlers may either await it
    or fire and forget. Frames are written in call order. Once the
    connection closes every call is a no-op resolving to False. Data that
    cannot be encoded as JSON raises InternalError in the caller.
    """

    def __init__(self, connection: "Connection", request_id: RequestId):
        self._connection = connection
        self._request_id = request_id

    def __call__(self, data: Any) -> "asyncio.Task[bool]":
        try:
            encoded = jsonable_encoder(data)
        except Exception as e:
            logger.error("Emitter {} produced data that is not JSON serializable: {}", self._request_id, e)
            raise InternalError() from e
        return self._connection.spawn(
            self._connection.send(result_response(self._request_id, encoded)),
            name=f"emitrpc-emit:{self._connection.client_id}",
        )

    @property
    def request_id(self) -> RequestId:
        return self._request_id

    @property
    def closed(self) -> bool:
        return not self._connection.is_open

    async def wait_closed(self) -> None:
        await self._connection.wait_closed()


class Dispatcher:
    """Routes parsed items to registered handlers."""

    def __init__(self, registry: HandlerRegistry):
        self.registry = registry

    async def handle_frame(self, text: str, connection: "Connection") -> None:
        """Parse one inbound text frame and send its aggregated reply."""
        batch = parse_frame(text)
        if isinstance(batch, ParseFailure):
            await connection.send([error_response(None, PARSE_ERROR)])
            return
        responses = await self.dispatch(batch, connection)
        await connection.send(responses)

    async def dispatch(self, batch: Batch, connection: "Connection") -> list[dict[str, Any]]:
        """
        Run every item of a batch concurrently and collect the replies.

        Replies are slotted by original position, so handler completion order
        never reorders the output. Emitter items leave no entry.
        """
        slots: list[dict[str, Any] | None] = [None] * len(batch)

        async def _run(index: int, item: ParsedItem) -> None:
            slots[index] = await self.dispatch_item(item, connection)

        await asyncio.gather(*(_run(i, item) for i, item in enumerate(batch)))
        return [response for response in slots if response is not None]

    async def dispatch_item(self, item: ParsedItem, connection: "Connection") -> dict[str, Any] | None:
        if isinstance(item, InvalidItem):
            return exception_response(None, InvalidRequestError())
        if item.kind is RequestKind.EMITTER:
            return self._start_emitter(item, connection)
        return await self._call_method(item, connection)

    async def _call_method(self, request: Request, connection: "Connection") -> dict[str, Any]:
        handler = self.registry.get_method(request.name)
        if handler is None:
            logger.debug("Method not found: {}", request.method)
            return error_response(request.id, METHOD_NOT_FOUND)
        try:
            outcome = handler(list(request.params), connection.client_id)
            result = await outcome if inspect.isawaitable(outcome) else outcome
            encoded = jsonable_encoder(result)
        except ApplicationError as e:
            logger.info("RPC method {} failed with [{}]: {}", request.method, e.code, e.message)
            return exception_response(request.id, e)
        except Exception:
            logger.exception("RPC method {} raised an unhandled error", request.method)
            return exception_response(request.id, InternalError())
        return result_response(request.id, encoded)

    def _start_emitter(self, request: Request, connection: "Connection") -> dict[str, Any] | None:
        handler = self.registry.get_emitter(request.name)
        if handler is None:
            logger.debug("Emitter not found: {}", request.method)
            return error_response(request.id, METHOD_NOT_FOUND, EMITTER_NOT_FOUND_MESSAGE)
        connection.spawn(
            self._run_emitter(handler, request, connection),
            name=f"emitrpc-emitter:{request.name}",
        )
        return None

    async def _run_emitter(self, handler: EmitterHandler, request: Request, connection: "Connection") -> None:
        emit = Emitter(connection, request.id)
        try:
            outcome = handler(list(request.params), emit, connection.client_id)
            if inspect.isawaitable(outcome):
                await outcome
        except ApplicationError as e:
            logger.info("RPC emitter {} failed with [{}]: {}", request.method, e.code, e.message)
            await connection.send(exception_response(request.id, e))
        except Exception:
            logger.exception("RPC emitter {} raised an unhandled error", request.method)
            await connection.send(exception_response(request.id, InternalError()))
