"""
Event dispatcher for the client push channel.

Maps push event names to a single handler each. Binding a name that already
has a handler replaces it: the previous handler stops firing and the
replacement is logged as a warning naming both handlers. Callers that want
the replacement to be an error bind with replace=False and get a
SubscriptionConflictError instead.

Handlers may be plain functions or coroutine functions. They run in the
order the transport delivers events; a failing handler is logged and never
affects the next delivery.
"""

import inspect
from collections.abc import Awaitable, Callable
from typing import Any

from ..exceptions import SubscriptionConflictError, create_error_context
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

EventHandler = Callable[[dict[str, Any]], Awaitable[None] | None]


def _handler_name(handler: Any) -> str:
    return getattr(handler, "__qualname__", None) or getattr(handler, "__name__", None) or repr(handler)


class EventDispatcher:
    """Event name to handler registry."""

    def __init__(self) -> None:
        self._handlers: dict[str, EventHandler] = {}
        self.stats = {"dispatched": 0, "unhandled": 0, "handler_errors": 0, "replacements": 0}

    def on(self, event_name: str, handler: EventHandler, *, replace: bool = True) -> None:
        """
        Bind handler to event_name.

        Args:
            event_name: Push event name
            handler: Callable receiving the event payload
            replace: When False, refuse to replace an existing handler

        Raises:
            SubscriptionConflictError: replace is False and event_name is already bound
        """
        existing = self._handlers.get(event_name)
        if existing is not None and existing is not handler:
            if not replace:
                raise SubscriptionConflictError(
                    f"Event '{event_name}' already has a handler",
                    create_error_context(operation="subscribe"),
                    event_name=event_name,
                    details={"existing_handler": _handler_name(existing), "new_handler": _handler_name(handler)},
                )
            self.stats["replacements"] += 1
            logger.warning(
                "Replacing event handler",
                event_name=event_name,
                previous_handler=_handler_name(existing),
                new_handler=_handler_name(handler),
            )
        self._handlers[event_name] = handler

    def off(self, event_name: str) -> None:
        """Unbind whatever handler is bound to event_name; no-op when unbound."""
        if self._handlers.pop(event_name, None) is not None:
            logger.debug("Event handler removed", event_name=event_name)

    def clear(self) -> None:
        """Remove every binding."""
        count = len(self._handlers)
        self._handlers.clear()
        if count:
            logger.debug("Event handlers cleared", handler_count=count)

    def handler_for(self, event_name: str) -> EventHandler | None:
        return self._handlers.get(event_name)

    def has_handler(self, event_name: str) -> bool:
        return event_name in self._handlers

    @property
    def event_names(self) -> list[str]:
        return list(self._handlers)

    async def dispatch(self, event_name: str, data: dict[str, Any]) -> bool:
        """
        Deliver one event to its handler.

        Returns:
            True when a handler ran without raising
        """
        handler = self._handlers.get(event_name)
        if handler is None:
            self.stats["unhandled"] += 1
            logger.debug("No handler for push event", event_name=event_name)
            return False

        self.stats["dispatched"] += 1
        try:
            result = handler(data)
            if inspect.isawaitable(result):
                await result
            return True
        except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: one failing handler must not break delivery
            self.stats["handler_errors"] += 1
            logger.error(
                "Error in push event handler",
                event_name=event_name,
                handler=_handler_name(handler),
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
