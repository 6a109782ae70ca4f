"""
In-process publish/subscribe bus for fire-and-forget notifications.
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Handler = Callable[[str, Dict[str, Any]], Awaitable[None]]


class Topics:
    MERCHANT_CREATED = "merchant.created"
    MERCHANT_UPDATED = "merchant.updated"
    MERCHANT_DEACTIVATED = "merchant.deactivated"
    TRANSACTION_CREATED = "transaction.created"
    PATTERN_DETECTED = "pattern.detected"
    ANALYSIS_COMPLETED = "analysis.completed"


class EventBus:
    """
    Topic based async event bus.

    Handlers subscribe to an exact topic or to "*". A failing handler is
    logged and never affects the publisher or the other handlers.
    """

    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)
        self.published: List[Dict[str, Any]] = []
        self.keep_history = False

    def subscribe(self, topic: str, handler: Handler) -> None:
        self._handlers[topic].append(handler)

    def unsubscribe(self, topic: str, handler: Handler) -> None:
        if handler in self._handlers.get(topic, []):
            self._handlers[topic].remove(handler)

    async def publish(self, topic: str, payload: Dict[str, Any]) -> None:
        message = {**payload, "timestamp": datetime.utcnow().isoformat()}
        if self.keep_history:
            self.published.append({"topic": topic, "payload": message})

        for handler in [*self._handlers.get(topic, []), *self._handlers.get("*", [])]:
            try:
                await handler(topic, message)
            except Exception as e:
                logger.error(f"Event handler failed for {topic}: {e}")


async def log_event(topic: str, payload: Dict[str, Any]) -> None:
    logger.info(f"Event {topic}: {payload}")


_event_bus: Optional[EventBus] = None

def get_event_bus() -> EventBus:
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
        _event_bus.subscribe("*", log_event)
    return _event_bus
