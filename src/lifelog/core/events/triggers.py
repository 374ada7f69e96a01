"""In-process trigger bus for document-created events.

Handlers subscribe to a collection and are awaited whenever a job creates a
new document there. Each handler runs in isolation: an exception is logged
and the remaining handlers still run.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

TriggerHandler = Callable[[dict[str, Any]], Awaitable[Any]]


class TriggerBus:
    """Registry of ``on create`` handlers keyed by collection name.

    Usage::

        bus = TriggerBus()

        @bus.on_create("rhythmMap")
        async def score(doc):
            ...

        await bus.emit_created("rhythmMap", doc)
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[TriggerHandler]] = defaultdict(list)

    def register(self, collection: str, handler: TriggerHandler) -> None:
        self._handlers[collection].append(handler)
        logger.debug("Registered trigger %s on %s", getattr(handler, "__name__", handler), collection)

    def on_create(self, collection: str) -> Callable[[TriggerHandler], TriggerHandler]:
        """Decorator form of :meth:`register`."""
        def decorator(handler: TriggerHandler) -> TriggerHandler:
            self.register(collection, handler)
            return handler
        return decorator

    def handlers(self, collection: str) -> list[TriggerHandler]:
        return list(self._handlers.get(collection, []))

    async def emit_created(self, collection: str, doc: dict[str, Any]) -> int:
        """Run every handler for ``collection`` against ``doc``.

        Returns:
            Number of handlers that completed without raising.
        """
        ok = 0
        for handler in self.handlers(collection):
            try:
                await handler(doc)
                ok += 1
            except Exception:
                logger.exception(
                    "Trigger %s failed for %s/%s",
                    getattr(handler, "__name__", handler),
                    collection,
                    doc.get("id"),
                )
        return ok
