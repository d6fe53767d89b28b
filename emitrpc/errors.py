"""
JSON-RPC error codes and the application error carrier.

Provides:
- The reserved JSON-RPC 2.0 error codes and their canonical messages
- ApplicationError, the only exception type the dispatcher maps structurally
- Helpers for building wire error objects
"""

from __future__ import annotations

from typing import Any

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603
# "Reserved for implementation-defined server-errors"
SERVER_ERROR = -32000

ERROR_MESSAGES: dict[int, str] = {
    PARSE_ERROR: "Parse error",
    INVALID_REQUEST: "Invalid Request",
    METHOD_NOT_FOUND: "Method not found",
    INTERNAL_ERROR: "Internal error",
}

EMITTER_NOT_FOUND_MESSAGE = "Emitter not found"


def error_object(code: int, message: str | None = None, data: Any = None) -> dict[str, Any]:
    """Build a wire error object; reserved codes fall back to their canonical text."""
    if message is None:
        message = ERROR_MESSAGES.get(code, "")
    error: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return error


class ApplicationError(Exception):
    """Error raised by a handler to answer its request with an explicit error object."""

    def __init__(self, code: int = SERVER_ERROR, message: str | None = None, data: Any = None):
        if message is None:
            message = ERROR_MESSAGES.get(code, "")
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_dict(self) -> dict[str, Any]:
        return error_object(self.code, self.message, self.data)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class InvalidRequestError(ApplicationError):
    def __init__(self, message: str | None = None, data: Any = None):
        super().__init__(INVALID_REQUEST, message, data)


class InternalError(ApplicationError):
    def __init__(self, message: str | None = None, data: Any = None):
        super().__init__(INTERNAL_ERROR, message, data)
