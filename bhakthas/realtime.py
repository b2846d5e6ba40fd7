"""In-process push channel for booking status changes.

A customer viewing a ticket subscribes to that one booking and receives a
``BookingEvent`` whenever an admin moves it to a new status. Subscriptions
must be closed on teardown; ``Subscription`` is a context manager for that.
"""
from __future__ import annotations

import json
import logging
import queue
import threading
from dataclasses import asdict, dataclass
from typing import Iterator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingEvent:
    booking_id: int
    status: str
    previous_status: str
    updated_at: str

    def to_json(self) -> str:
        return json.dumps(asdict(self))


class Subscription:
    def __init__(self, channel: "BookingChannel", booking_id: int) -> None:
        self.channel = channel
        self.booking_id = booking_id
        self._queue: queue.Queue[BookingEvent] = queue.Queue()
        self.closed = False

    def deliver(self, event: BookingEvent) -> None:
        self._queue.put(event)

    def get(self, timeout: float | None = None) -> BookingEvent | None:
        """Wait for the next event; ``None`` when the timeout passes."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def pending(self) -> list[BookingEvent]:
        events = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events

    def events(self, timeout: float | None = None) -> Iterator[BookingEvent | None]:
        while not self.closed:
            yield self.get(timeout)

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.channel.unsubscribe(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class BookingChannel:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[int, list[Subscription]] = {}

    def subscribe(self, booking_id: int) -> Subscription:
        subscription = Subscription(self, booking_id)
        with self._lock:
            self._subscribers.setdefault(booking_id, []).append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            subscribers = self._subscribers.get(subscription.booking_id, [])
            if subscription in subscribers:
                subscribers.remove(subscription)
            if not subscribers:
                self._subscribers.pop(subscription.booking_id, None)

    def subscriber_count(self, booking_id: int) -> int:
        with self._lock:
            return len(self._subscribers.get(booking_id, []))

    def publish(self, event: BookingEvent) -> int:
        with self._lock:
            subscribers = list(self._subscribers.get(event.booking_id, []))
        for subscription in subscribers:
            subscription.deliver(event)
        logger.debug("Published booking %s -> %s to %d subscribers", event.booking_id, event.status, len(subscribers))
        return len(subscribers)


booking_channel = BookingChannel()
