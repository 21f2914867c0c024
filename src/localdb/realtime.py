"""
localdb - Realtime channels.

Maps the client's ``postgres_changes`` subscriptions onto the row store's
change channels. Presence and broadcast are accepted but not emulated.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Callable

from localdb.core.events import Subscription
from localdb.schemas import ChangeEvent

if TYPE_CHECKING:
    from localdb.core.store import RowStore

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[ChangeEvent], None]


def filter_text(value: Any) -> str:
    """Render a column value the way it appears in a ``column=eq.value`` filter."""
    return value if isinstance(value, str) else json.dumps(value, default=str)


def parse_row_filter(expr: str | None) -> tuple[str, str] | None:
    """Parse ``column=eq.value``; anything else means no row filter."""
    if not expr or "=eq." not in expr:
        return None
    column, _, value = expr.partition("=eq.")
    if not column or not value:
        return None
    return column, value


class RealtimeChannel:
    """
    A named group of change subscriptions.

    Usage:
        channel = client.channel("rfi-updates").on(
            "postgres_changes",
            {"event": "*", "schema": "public", "table": "rfis", "filter": "project_id=eq.proj-1"},
            handle_change,
        ).subscribe()
        ...
        client.remove_channel(channel)
    """

    def __init__(self, name: str, store: RowStore):
        self.name = name
        self._store = store
        self._subscriptions: list[Subscription] = []
        self.state = "closed"

    def on(self, event: str, filter: dict[str, Any], callback: ChangeCallback) -> RealtimeChannel:
        if event != "postgres_changes":
            logger.debug(f"Channel '{self.name}' ignoring unsupported event kind '{event}'")
            return self

        wanted = filter.get("event", "*")
        row_filter = parse_row_filter(filter.get("filter"))

        def deliver(change: ChangeEvent) -> None:
            if wanted != "*" and wanted != change.event_type:
                return
            if row_filter is not None:
                column, value = row_filter
                record = change.record
                if record is not None and filter_text(record.get(column)) != value:
                    return
            callback(change)

        channel = self._store.channel_for(filter["table"])
        self._subscriptions.append(self._store.subscribe(channel, deliver))
        return self

    def on_postgres_changes(
        self,
        event: str,
        callback: ChangeCallback,
        table: str,
        schema: str = "public",
        filter: str | None = None,
    ) -> RealtimeChannel:
        return self.on(
            "postgres_changes",
            {"event": event, "schema": schema, "table": table, "filter": filter},
            callback,
        )

    def subscribe(self, callback: Callable[[str], None] | None = None) -> RealtimeChannel:
        self.state = "joined"
        if callback is not None:
            callback("SUBSCRIBED")
        return self

    def unsubscribe(self) -> str:
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions.clear()
        self.state = "closed"
        return "ok"

    def track(self, payload: dict[str, Any]) -> str:
        return "ok"

    def send(self, message: dict[str, Any]) -> str:
        return "ok"

    def presence_state(self) -> dict[str, Any]:
        return {}
