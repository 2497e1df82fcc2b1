"""Messaging: domain event publishers (log sink and in-memory outbox)."""

from eventchain.infrastructure.messaging.event_publisher import (
    InMemoryOutbox,
    LoggingEventPublisher,
)

__all__ = [
    "InMemoryOutbox",
    "LoggingEventPublisher",
]
