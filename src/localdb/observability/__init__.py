"""
localdb Observability Module.

Provides in-process metrics collection for queries, mutations and listeners.
"""

from localdb.observability.metrics import MetricsStore, get_metrics_store

__all__ = ["MetricsStore", "get_metrics_store"]
