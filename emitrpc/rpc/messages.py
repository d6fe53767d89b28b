"""Wire-level request and response shapes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from emitrpc.errors import ApplicationError, error_object

JSONRPC_VERSION = "2.0"
EMITTER_MARKER = ":"

RequestId = Union[str, int, float, None]


class RequestKind(Enum):
    METHOD = "method"
    EMITTER = "emitter"


@dataclass(frozen=True)
class Request:
    """One validated request item from an inbound frame."""
    method: str
    id: RequestId = None
    params: list[Any] = field(default_factory=list)
    kind: RequestKind = RequestKind.METHOD

    @property
    def name(self) -> str:
        """Registry lookup name (emitter marker removed)."""
        if self.kind is RequestKind.EMITTER:
            return self.method[: -len(EMITTER_MARKER)]
        return self.method

    @classmethod
    def build(cls, method: str, id: RequestId = None, params: list[Any] | None = None) -> "Request":
        kind = RequestKind.EMITTER if method.endswith(EMITTER_MARKER) else RequestKind.METHOD
        return cls(method=method, id=id, params=list(params or []), kind=kind)


@dataclass(frozen=True)
class InvalidItem:
    """Structurally malformed batch item."""


@dataclass(frozen=True)
class ParseFailure:
    """The frame was not valid JSON."""


INVALID_ITEM = InvalidItem()
PARSE_FAILURE = ParseFailure()

ParsedItem = Union[Request, InvalidItem]
Batch = list[ParsedItem]


def result_response(request_id: RequestId, result: Any) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def error_response(
    request_id: RequestId,
    code: int,
    message: str | None = None,
    data: Any = None,
) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error_object(code, message, data)}


def exception_response(request_id: RequestId, error: ApplicationError) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error.to_dict()}
