"""JSON-RPC parsing, handler tables and batch dispatch."""

from emitrpc.rpc.dispatcher import Dispatcher, Emitter
from emitrpc.rpc.messages import (
    INVALID_ITEM,
    PARSE_FAILURE,
    InvalidItem,
    ParseFailure,
    Request,
    RequestKind,
)
from emitrpc.rpc.parser import parse_frame
from emitrpc.rpc.registry import HandlerRegistry

__all__ = [
    "Dispatcher",
    "Emitter",
    "HandlerRegistry",
    "Request",
    "RequestKind",
    "InvalidItem",
    "ParseFailure",
    "INVALID_ITEM",
    "PARSE_FAILURE",
    "parse_frame",
]
