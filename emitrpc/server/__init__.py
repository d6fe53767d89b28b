"""WebSocket server side: channels, admission, connections and the RpcApp."""

from emitrpc.server.admission import Rejection
from emitrpc.server.app import RpcApp
from emitrpc.server.channel import Channel, ChannelClosed, WebSocketChannel
from emitrpc.server.connection import Connection, ConnectionState
from emitrpc.server.connections import ConnectionRegistry
from emitrpc.server.params_codec import Base64JsonCodec

__all__ = [
    "RpcApp",
    "Rejection",
    "Channel",
    "ChannelClosed",
    "WebSocketChannel",
    "Connection",
    "ConnectionState",
    "ConnectionRegistry",
    "Base64JsonCodec",
]
