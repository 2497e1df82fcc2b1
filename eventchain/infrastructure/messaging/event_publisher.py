"""Domain event publishers.

LoggingEventPublisher writes each event as a JSON log line (the default
sink). InMemoryOutbox keeps events in order for tests and in-process
consumers.
"""

from __future__ import annotations

import json
from collections.abc import Iterable

from eventchain.domain.events import DomainEvent
from eventchain.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class LoggingEventPublisher:
    """Publishes domain events to the application log (implements IDomainEventPublisher)."""

    async def publish(self, events: Iterable[DomainEvent]) -> None:
        for event in events:
            logger.info(
                "Domain event %s: %s",
                event.event_name,
                json.dumps(event.to_dict(), default=str, sort_keys=True),
            )


class InMemoryOutbox:
    """Collects published domain events in order (implements IDomainEventPublisher)."""

    def __init__(self) -> None:
        self.events: list[DomainEvent] = []

    async def publish(self, events: Iterable[DomainEvent]) -> None:
        self.events.extend(events)

    def of_type[E: DomainEvent](self, event_type: type[E]) -> list[E]:
        """Return collected events of one type, oldest first."""
        return [e for e in self.events if isinstance(e, event_type)]

    def clear(self) -> None:
        self.events.clear()
