"""IPC handler registration."""

from .context import HandlerContext
from .notes_handlers import (
    register_notes_handlers,
    register_search_handlers,
    register_settings_handlers,
)
from .pdf_handlers import register_pdf_handlers
from .registry import HandlerAlreadyRegisteredError, HandlerRegistry, NoHandlerError


def register_handlers(registry: HandlerRegistry, context: HandlerContext):
    """Register every channel the renderer and widgets use."""
    register_pdf_handlers(registry, context)
    register_notes_handlers(registry, context)
    register_search_handlers(registry, context)
    register_settings_handlers(registry, context)


__all__ = [
    "HandlerAlreadyRegisteredError",
    "HandlerContext",
    "HandlerRegistry",
    "NoHandlerError",
    "register_handlers",
]
