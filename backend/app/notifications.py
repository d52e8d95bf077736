"""Real-time notification publisher.

Notifications are best effort: a failing publisher is logged and ignored so
it never fails the request that triggered it.
"""

import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)

LEGAL_DOC_UPLOADED = "legal_doc_uploaded"
ANSWER_CREATED = "answer_created"


class Notifier(Protocol):
    """Pushes events to connected clients."""

    async def publish(self, event: str, payload: dict[str, Any]) -> None:
        ...


class LoggingNotifier:
    """Notifier that only logs events (default when no push channel is wired)."""

    async def publish(self, event: str, payload: dict[str, Any]) -> None:
        logger.info(f"Notification: {event}", extra={"structured": {"event": event, **payload}})


class InMemoryNotifier:
    """Notifier that records events (useful for testing)."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    async def publish(self, event: str, payload: dict[str, Any]) -> None:
        self.events.append((event, payload))


async def publish_safely(notifier: Notifier, event: str, payload: dict[str, Any]) -> None:
    """Publish an event, logging and dropping any failure."""
    try:
        await notifier.publish(event, payload)
    except Exception as e:
        logger.warning(f"Notification {event} failed: {type(e).__name__}: {e}")
