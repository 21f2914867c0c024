"""
localdb - In-memory PostgREST-style query engine.

Chainable filter/sort/paginate queries over schema-less tables, upsert by
conflict key, and synchronous row-change notifications.
"""

__version__ = "0.1.0"

from localdb.client import LocalClient, get_client
from localdb.core.store import RowStore, get_store
from localdb.schemas import APIResponse, ChangeEvent, QueryError

__all__ = [
    "APIResponse",
    "ChangeEvent",
    "LocalClient",
    "QueryError",
    "RowStore",
    "__version__",
    "get_client",
    "get_store",
]
