"""
localdb Core - Row Store.

Owns every table (one ordered list of records per name) and the event bus.
All mutation paths write here and then call notify().
"""

from __future__ import annotations

import logging
from copy import deepcopy
from functools import lru_cache
from typing import Mapping

from localdb.config import StoreSettings, get_settings
from localdb.core.events import EventBus, Listener, Subscription
from localdb.core.query import QueryBuilder
from localdb.core.records import utc_now_iso
from localdb.observability.metrics import MetricsStore, get_metrics_store
from localdb.schemas import ChangeEvent, EventType, Record

logger = logging.getLogger(__name__)


class RowStore:
    """
    In-memory tables plus change notifications.

    Tables are created on first reference and a name always resolves to the
    same list object, so builders and subscriptions may hold on to it.
    """

    def __init__(
        self,
        settings: StoreSettings | None = None,
        metrics: MetricsStore | None = None,
        seed: Mapping[str, list[Record]] | None = None,
    ):
        self.settings = settings or get_settings().store
        self.metrics = metrics or get_metrics_store()
        self.bus = EventBus(self.metrics, isolate_errors=self.settings.isolate_listener_errors)
        self._tables: dict[str, list[Record]] = {}

        if seed is not None:
            self.seed(seed)
        elif self.settings.seed_demo_data:
            from localdb.seed import demo_data

            self.seed(demo_data())

    # -------------------------------------------------------------------------
    # Tables
    # -------------------------------------------------------------------------

    def get_table(self, name: str) -> list[Record]:
        table = self._tables.get(name)
        if table is None:
            table = self._tables[name] = []
        return table

    def table(self, name: str) -> QueryBuilder:
        """Start a query against a table."""
        return QueryBuilder(store=self, table_name=name)

    from_ = table

    def table_names(self) -> list[str]:
        return list(self._tables)

    def seed(self, data: Mapping[str, list[Record]]) -> None:
        """Replace the contents of the given tables without notifying."""
        for name, rows in data.items():
            self.get_table(name)[:] = [deepcopy(row) for row in rows]
        logger.info(f"Seeded {len(data)} table(s): {', '.join(data)}")

    def reset(self) -> None:
        """Empty every table in place. Subscriptions are kept."""
        for table in self._tables.values():
            table.clear()

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    def channel_for(self, table: str) -> str:
        return self.settings.channel_for(table)

    def notify(
        self,
        table: str,
        event_type: EventType,
        old: Record | None,
        new: Record | None,
    ) -> ChangeEvent:
        """Publish a row change to every listener on the table's channel."""
        event = ChangeEvent(
            event_type=event_type,
            table=table,
            old=deepcopy(old) if old is not None else None,
            new=deepcopy(new) if new is not None else None,
            commit_timestamp=utc_now_iso(),
        )
        self.metrics.record_mutation(table, event_type)
        self.bus.publish(self.channel_for(table), event)
        return event

    def subscribe(self, channel: str, listener: Listener) -> Subscription:
        return self.bus.subscribe(channel, listener)


@lru_cache(maxsize=1)
def get_store() -> RowStore:
    """Process-wide store. Tests should construct their own RowStore instead."""
    return RowStore()
