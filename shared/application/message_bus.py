"""
Message Bus

Routes commands to exactly one handler and domain events to any number
of handlers. The composition root (``apps.rentals.bootstrap``) fills the
registry explicitly; nothing is discovered by import side effects.

Command handlers return a ``Result``; business failures (``Err``) are
logged here once so callers only have to render them.
"""

from typing import Any, Callable, Dict, Iterable, List, Mapping, Type
import logging

from shared.domain.base import DomainEvent
from shared.domain.result import Err

logger = logging.getLogger(__name__)

EventRegistry = Mapping[Type[DomainEvent], Iterable[Callable[[DomainEvent], None]]]


class MessageBus:
    """Commands are 1:1 with handlers, events are 1:N"""

    def __init__(self, event_handlers: EventRegistry | None = None):
        self._command_handlers: Dict[Type, Callable[[Any], Any]] = {}
        self._event_handlers: Dict[Type[DomainEvent], List[Callable]] = {}
        for event_type, handlers in (event_handlers or {}).items():
            for handler in handlers:
                self.register_event_handler(event_type, handler)

    def register_command_handler(self, command_type: Type, handler: Callable[[Any], Any]):
        if command_type in self._command_handlers:
            raise ValueError(f"{command_type.__name__} already has a handler")
        self._command_handlers[command_type] = handler
        logger.debug(f"Command {command_type.__name__} -> {getattr(handler, '__name__', handler)}")

    def register_event_handler(self, event_type: Type[DomainEvent], handler: Callable[[DomainEvent], None]):
        self._event_handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Event {event_type.__name__} -> {getattr(handler, '__name__', handler)}")

    def handles(self, command_type: Type) -> bool:
        return command_type in self._command_handlers

    def handle_command(self, command: Any) -> Any:
        """
        Run the handler registered for ``type(command)``

        Raises ValueError for an unknown command type. Exceptions raised by
        the handler are logged and re-raised.
        """
        name = type(command).__name__
        handler = self._command_handlers.get(type(command))
        if handler is None:
            raise ValueError(f"No handler registered for command {name}")

        logger.info(f"Handling command {name}")
        try:
            result = handler(command)
        except Exception as e:
            logger.error(f"Command {name} raised: {e}")
            raise

        if isinstance(result, Err):
            logger.warning(f"Command {name} rejected: {result.kind.value} ({result.message})")
        return result

    def publish_events(self, events: List[DomainEvent]):
        """
        Deliver each event to all of its handlers, in registration order

        A failing handler is logged and skipped; the remaining handlers and
        events are still delivered.
        """
        for event in events:
            event_type = type(event)
            handlers = self._event_handlers.get(event_type)
            if not handlers:
                logger.debug(f"No handlers for {event_type.__name__}")
                continue

            logger.info(f"Publishing {event_type.__name__} {event.event_id}")
            for handler in handlers:
                try:
                    handler(event)
                except Exception as e:
                    logger.error(
                        f"Handler {getattr(handler, '__name__', handler)} failed "
                        f"on {event_type.__name__} {event.event_id}: {e}",
                        exc_info=True,
                    )
