"""
localdb - Client facade.

Exposes the subset of the Supabase client surface that application code
uses for data access and realtime, backed by a RowStore.
"""

from functools import lru_cache

from localdb.core.query import QueryBuilder
from localdb.core.store import RowStore, get_store
from localdb.realtime import RealtimeChannel


class LocalClient:
    """Drop-in for ``supabase.Client`` table access and realtime channels."""

    def __init__(self, store: RowStore | None = None):
        self.store = store or get_store()
        self._channels: list[RealtimeChannel] = []

    def table(self, name: str) -> QueryBuilder:
        return self.store.table(name)

    from_ = table

    def channel(self, name: str) -> RealtimeChannel:
        channel = RealtimeChannel(name, self.store)
        self._channels.append(channel)
        return channel

    def get_channels(self) -> list[RealtimeChannel]:
        return list(self._channels)

    def remove_channel(self, channel: RealtimeChannel) -> str:
        status = channel.unsubscribe()
        self._channels = [c for c in self._channels if c is not channel]
        return status

    def remove_all_channels(self) -> None:
        for channel in list(self._channels):
            self.remove_channel(channel)


@lru_cache
def get_client() -> LocalClient:
    """
    Get the process-wide client over the process-wide store.

    Cached to reuse the same client instance.
    """
    return LocalClient(get_store())
