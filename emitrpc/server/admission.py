"""Client identity admission for newly connected channels."""

from __future__ import annotations

import inspect
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Union

from loguru import logger

from emitrpc.errors import INTERNAL_ERROR, SERVER_ERROR, ApplicationError, error_object
from emitrpc.server.channel import Channel

AdmissionOutcome = Union[str, "Rejection", Mapping[str, Any], None]
AdmissionHook = Callable[[Any, Channel], Union[AdmissionOutcome, Awaitable[AdmissionOutcome]]]


@dataclass(frozen=True)
class Rejection:
    """Refuses a connection; ``error`` is sent to the client as-is before closing."""
    error: Any

    @classmethod
    def from_error(cls, code: int = SERVER_ERROR, message: str | None = None, data: Any = None) -> "Rejection":
        return cls(error=error_object(code, message, data))


def new_client_id() -> str:
    return str(uuid.uuid4())


def as_rejection(outcome: Any) -> Rejection | None:
    if isinstance(outcome, Rejection):
        return outcome
    if isinstance(outcome, ApplicationError):
        return Rejection(error=outcome.to_dict())
    if isinstance(outcome, Mapping):
        error = outcome.get("error")
        if error is None:
            error = error_object(SERVER_ERROR, "Connection rejected")
        return Rejection(error=error)
    return None


async def admit(hook: AdmissionHook | None, params: Any, channel: Channel) -> str | Rejection:
    """
    Resolve the client id for a new channel.

    Without a hook a random id is generated. A hook may return an id, a
    rejection (``Rejection``, a mapping carrying ``error``, or an
    ``ApplicationError``), or nothing, in which case a random id is used as
    well. A hook that raises rejects the connection with an internal error.
    """
    if hook is None:
        return new_client_id()
    try:
        outcome = hook(params, channel)
        if inspect.isawaitable(outcome):
            outcome = await outcome
    except ApplicationError as e:
        logger.info("Admission hook rejected connection: [{}] {}", e.code, e.message)
        return Rejection(error=e.to_dict())
    except Exception:
        logger.exception("Admission hook failed")
        return Rejection.from_error(INTERNAL_ERROR)

    rejection = as_rejection(outcome)
    if rejection is not None:
        return rejection
    if not outcome:
        return new_client_id()
    return str(outcome)
