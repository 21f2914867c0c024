"""
localdb Core - Event Bus.

Channel-keyed listener registry. Delivery is synchronous and reentrant: a
listener may publish (or mutate a table) while being invoked.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable

from localdb.exceptions import ListenerError
from localdb.observability.metrics import MetricsStore, get_metrics_store
from localdb.schemas import ChangeEvent

logger = logging.getLogger(__name__)

Listener = Callable[[ChangeEvent], None]


class Subscription:
    """Disposer returned by EventBus.subscribe()."""

    def __init__(self, bus: EventBus, channel: str, listener: Listener):
        self._bus = bus
        self.channel = channel
        self.listener = listener
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        """Stop delivery to this listener. Safe to call more than once."""
        if not self._active:
            return
        self._active = False
        self._bus._remove(self)

    def __repr__(self) -> str:
        state = "active" if self._active else "closed"
        return f"<Subscription {self.channel} {state}>"


class EventBus:
    """
    Synchronous publish/subscribe keyed by channel name.

    The same callable may be subscribed twice and will then fire twice;
    guarding against double subscription is left to the caller.
    """

    def __init__(self, metrics: MetricsStore | None = None, isolate_errors: bool = True):
        self._listeners: dict[str, list[Subscription]] = defaultdict(list)
        self._metrics = metrics or get_metrics_store()
        self.isolate_errors = isolate_errors

    def subscribe(self, channel: str, listener: Listener) -> Subscription:
        sub = Subscription(self, channel, listener)
        self._listeners[channel].append(sub)
        logger.debug("Subscribed listener to %s", channel)
        return sub

    def _remove(self, sub: Subscription) -> None:
        subs = self._listeners.get(sub.channel)
        if not subs:
            return
        self._listeners[sub.channel] = [s for s in subs if s is not sub]
        if not self._listeners[sub.channel]:
            del self._listeners[sub.channel]

    def publish(self, channel: str, event: ChangeEvent) -> int:
        """
        Deliver an event to every listener on a channel.

        Each listener receives a deep copy of the event. Iterates over a
        snapshot, so listeners added during delivery only see later events
        and listeners removed during delivery are skipped.

        Returns:
            Number of listeners that handled the event without raising

        Raises:
            ListenerError: If a listener raises and isolate_errors is off
        """
        delivered = 0
        for sub in tuple(self._listeners.get(channel, ())):
            if not sub.active:
                continue
            try:
                # Each listener gets its own copy; edits never reach the next one.
                sub.listener(event.model_copy(deep=True))
            except Exception as e:
                self._metrics.record_listener_error(channel)
                if not self.isolate_errors:
                    raise ListenerError(channel, e) from e
                logger.exception(
                    f"Listener on '{channel}' failed handling {event.event_type} for table '{event.table}'"
                )
                continue
            delivered += 1
        return delivered

    def listener_count(self, channel: str) -> int:
        return len(self._listeners.get(channel, ()))

    def channels(self) -> list[str]:
        return list(self._listeners)

    def clear(self) -> None:
        """Drop every subscription."""
        for subs in list(self._listeners.values()):
            for sub in subs:
                sub._active = False
        self._listeners.clear()
