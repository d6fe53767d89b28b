"""emitrpc - JSON-RPC 2.0 over WebSocket with emitter requests."""

__version__ = "0.1.0"
__logo__ = "⇄"

from emitrpc.errors import ApplicationError
from emitrpc.server.admission import Rejection
from emitrpc.server.app import RpcApp

__all__ = ["__version__", "ApplicationError", "Rejection", "RpcApp"]
