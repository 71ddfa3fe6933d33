"""Append-only event log with synchronous subscribers.

Records are stamped with a pool-local sequence number at commit. The log is
either unbounded or a ring buffer holding the most recent ``capacity``
records; sequence numbers keep increasing when old records fall off.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Callable, Iterable, Iterator
from dataclasses import replace
from typing import TypeVar

import structlog

from crr_amm.models.records import PoolEvent, TradeExecuted

logger = structlog.get_logger()

E = TypeVar("E", bound=PoolEvent)
Subscriber = Callable[[PoolEvent], None]


class EventLog:
    """Ordered record of everything a pool has committed."""

    def __init__(self, capacity: int | None = None) -> None:
        if capacity is not None and capacity <= 0:
            capacity = None
        self._records: deque[PoolEvent] = deque(maxlen=capacity)
        self._subscribers: list[Subscriber] = []
        self._sequence = 0
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int | None:
        return self._records.maxlen

    @property
    def last_sequence(self) -> int:
        return self._sequence

    def record(self, event: E, pool_id: str, timestamp: int) -> E:
        """Stamp event with the next sequence number and append it."""
        with self._lock:
            self._sequence += 1
            stamped = replace(event, pool_id=pool_id, sequence=self._sequence, timestamp=timestamp)
            self._records.append(stamped)
        return stamped

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register subscriber; returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            with self._lock:
                if subscriber in self._subscribers:
                    self._subscribers.remove(subscriber)

        return unsubscribe

    def notify(self, events: Iterable[PoolEvent]) -> None:
        """Deliver committed events to subscribers, in order.

        A failing subscriber is logged and skipped; the events it missed are
        already committed and stay in the log.
        """
        with self._lock:
            subscribers = list(self._subscribers)
        for event in events:
            for subscriber in subscribers:
                try:
                    subscriber(event)
                except Exception:
                    logger.exception(
                        "event_subscriber_failed",
                        pool_id=event.pool_id,
                        record=event.name,
                        sequence=event.sequence,
                    )

    def records(self, kind: type[E] | None = None) -> list[E]:
        with self._lock:
            if kind is None:
                return list(self._records)  # type: ignore[arg-type]
            return [r for r in self._records if isinstance(r, kind)]

    def trades(self) -> list[TradeExecuted]:
        return self.records(TradeExecuted)

    def __iter__(self) -> Iterator[PoolEvent]:
        return iter(self.records())

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
