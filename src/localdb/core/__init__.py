"""
localdb Core - Row store, query builder, mutations and event bus.
"""

from localdb.core.events import EventBus, Subscription
from localdb.core.mutations import FilteredMutation, MutationResult
from localdb.core.query import QueryBuilder
from localdb.core.store import RowStore, get_store

__all__ = [
    "EventBus",
    "FilteredMutation",
    "MutationResult",
    "QueryBuilder",
    "RowStore",
    "Subscription",
    "get_store",
]
