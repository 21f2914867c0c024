"""Shared fixtures: every test gets its own store, metrics and client."""

import pytest

from localdb.client import LocalClient
from localdb.config import StoreSettings
from localdb.core.store import RowStore
from localdb.observability.metrics import MetricsStore


@pytest.fixture
def metrics():
    return MetricsStore()


@pytest.fixture
def store(metrics):
    return RowStore(settings=StoreSettings(seed_demo_data=False), metrics=metrics)


@pytest.fixture
def client(store):
    return LocalClient(store)


@pytest.fixture
def events(store):
    """Collect every change event delivered for a table."""

    def _collect(table):
        received = []
        store.subscribe(store.channel_for(table), received.append)
        return received

    return _collect
