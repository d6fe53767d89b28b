"""Name -> handler tables for regular methods and emitters."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, TypeVar, Union

from loguru import logger

from emitrpc.rpc.messages import EMITTER_MARKER

Emit = Callable[[Any], Awaitable[bool]]
MethodHandler = Callable[[list[Any], str], Union[Any, Awaitable[Any]]]
EmitterHandler = Callable[[list[Any], Emit, str], Union[None, Awaitable[None]]]

H = TypeVar("H", bound=Callable[..., Any])


class HandlerRegistry:
    """Two independent handler tables. Re-registering a name replaces the previous handler."""

    def __init__(self):
        self._methods: dict[str, MethodHandler] = {}
        self._emitters: dict[str, EmitterHandler] = {}

    def add_method(self, name: str, handler: MethodHandler) -> None:
        if name in self._methods:
            logger.debug("Replacing method handler {}", name)
        self._methods[name] = handler

    def add_emitter(self, name: str, handler: EmitterHandler) -> None:
        name = _strip_marker(name)
        if name in self._emitters:
            logger.debug("Replacing emitter handler {}", name)
        self._emitters[name] = handler

    def method(self, name: str) -> Callable[[H], H]:
        """Decorator form of add_method."""

        def decorator(fn: H) -> H:
            self.add_method(name, fn)
            return fn

        return decorator

    def emitter(self, name: str) -> Callable[[H], H]:
        """Decorator form of add_emitter."""

        def decorator(fn: H) -> H:
            self.add_emitter(name, fn)
            return fn

        return decorator

    def get_method(self, name: str) -> MethodHandler | None:
        return self._methods.get(name)

    def get_emitter(self, name: str) -> EmitterHandler | None:
        return self._emitters.get(name)

    def method_names(self) -> list[str]:
        return sorted(self._methods)

    def emitter_names(self) -> list[str]:
        return sorted(self._emitters)


def _strip_marker(name: str) -> str:
    if name.endswith(EMITTER_MARKER):
        return name[: -len(EMITTER_MARKER)]
    return name
