"""Channel → handler table shared by the web bridge and native widgets."""

import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


class HandlerAlreadyRegisteredError(RuntimeError):
    pass


class NoHandlerError(LookupError):
    pass


class HandlerRegistry:
    """Maps IPC channel names such as ``pdf:list`` to callables."""

    def __init__(self):
        self._handlers: dict[str, Callable[..., Any]] = {}

    def handle(self, channel: str, handler: Callable[..., Any]):
        if channel in self._handlers:
            raise HandlerAlreadyRegisteredError(
                f"Attempted to register a second handler for '{channel}'"
            )
        self._handlers[channel] = handler

    def invoke(self, channel: str, *args):
        handler = self._handlers.get(channel)
        if handler is None:
            raise NoHandlerError(f"No handler registered for '{channel}'")
        logger.debug("invoke %s%r", channel, args)
        return handler(*args)

    def channels(self) -> list[str]:
        return sorted(self._handlers)

    def __contains__(self, channel: str) -> bool:
        return channel in self._handlers
