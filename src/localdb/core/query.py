"""
localdb Core - Query Builder.

Immutable read descriptor over one table. Every chained call returns a new
builder; nothing touches the table until execute() (or await).

Evaluation order:
1. Filter (every predicate must hold)
2. Sort (stable, composed keys: the first order() call is the primary key)
3. Offset, then limit
4. Shape by cardinality (list / single / maybe_single)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Iterable, Literal

from localdb.core.executable import Executable
from localdb.core.filters import FilterMixin, Predicate
from localdb.core.mutations import FilteredMutation, MutationResult, insert_rows, upsert_rows
from localdb.core.records import parse_columns, project
from localdb.schemas import APIResponse, QueryError, Record

if TYPE_CHECKING:
    from localdb.core.store import RowStore

logger = logging.getLogger(__name__)

Cardinality = Literal["list", "single", "maybe_single"]

# PostgREST code for "JSON object requested, multiple (or no) rows returned"
CARDINALITY_ERROR_CODE = "PGRST116"


def _sort_key(column: str):
    # Nulls sort after values ascending (and so before them descending).
    def key(record: Record) -> tuple[bool, Any]:
        value = record.get(column)
        return (value is None, value)

    return key


def sort_records(records: list[Record], sorts: Iterable[tuple[str, bool]]) -> list[Record]:
    """Stable multi-key sort; keys are applied from least to most significant."""
    ordered = list(records)
    for column, descending in reversed(list(sorts)):
        ordered.sort(key=_sort_key(column), reverse=descending)
    return ordered


def cardinality_error(found: int) -> QueryError:
    return QueryError(
        code=CARDINALITY_ERROR_CODE,
        message="Row not found" if found == 0 else "Multiple rows found",
        details=f"The result contains {found} rows",
    )


@dataclass(frozen=True)
class QueryBuilder(FilterMixin, Executable):
    """Chainable, lazily evaluated query against one table."""

    store: RowStore = field(repr=False)
    table_name: str
    filters: tuple[Predicate, ...] = field(default=(), repr=False)
    sorts: tuple[tuple[str, bool], ...] = ()
    limit_count: int | None = None
    offset: int = 0
    cardinality: Cardinality = "list"
    columns: tuple[str, ...] | None = None

    # -------------------------------------------------------------------------
    # Chaining
    # -------------------------------------------------------------------------

    def _with_filter(self, predicate: Predicate) -> QueryBuilder:
        return replace(self, filters=self.filters + (predicate,))

    def select(self, columns: str = "*", count: str | None = None) -> QueryBuilder:
        """Set the projection. count is accepted for client compatibility; count is always reported."""
        return replace(self, columns=parse_columns(columns))

    def order(self, column: str, *, desc: bool = False, ascending: bool | None = None) -> QueryBuilder:
        descending = (not ascending) if ascending is not None else desc
        return replace(self, sorts=self.sorts + ((column, descending),))

    def limit(self, count: int) -> QueryBuilder:
        return replace(self, limit_count=count)

    def range(self, start: int, end: int) -> QueryBuilder:
        """Window of rows start..end inclusive (zero-based)."""
        return replace(self, offset=start, limit_count=max(end - start + 1, 0))

    def single(self) -> QueryBuilder:
        return replace(self, cardinality="single")

    def maybe_single(self) -> QueryBuilder:
        return replace(self, cardinality="maybe_single")

    # -------------------------------------------------------------------------
    # Read path
    # -------------------------------------------------------------------------

    def execute(self) -> APIResponse:
        started = time.perf_counter()
        rows = self.store.get_table(self.table_name)

        matched = [row for row in rows if all(predicate(row) for predicate in self.filters)]
        total = len(matched)
        if self.sorts:
            matched = sort_records(matched, self.sorts)
        window = matched[self.offset :]
        if self.limit_count is not None:
            window = window[: self.limit_count]

        data = [project(row, self.columns) for row in window]
        response = self._shape(data, total)

        self.store.metrics.record_query_latency(self.table_name, (time.perf_counter() - started) * 1000)
        if response.error is not None:
            self.store.metrics.record_error(response.error.code)
        return response

    def _shape(self, data: list[Record], total: int) -> APIResponse:
        if self.cardinality == "list":
            return APIResponse(data=data, count=total)
        if len(data) == 1:
            return APIResponse(data=data[0], count=total)
        if not data and self.cardinality == "maybe_single":
            return APIResponse(data=None, count=total)
        logger.debug(f"{self.cardinality}() on '{self.table_name}' matched {len(data)} rows")
        return APIResponse(data=None, error=cardinality_error(len(data)), count=total)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def insert(self, rows: Record | list[Record]) -> MutationResult:
        """Insert now; the result is awaitable for call-site compatibility."""
        return insert_rows(self.store, self.table_name, rows)

    def upsert(
        self,
        rows: Record | list[Record],
        on_conflict: str | None = None,
        ignore_duplicates: bool = False,
    ) -> MutationResult:
        return upsert_rows(
            self.store,
            self.table_name,
            rows,
            on_conflict=on_conflict or self.store.settings.default_conflict_key,
            ignore_duplicates=ignore_duplicates,
        )

    def update(self, patch: Record) -> FilteredMutation:
        """Deferred: add filters, then execute() or await."""
        return FilteredMutation(
            store=self.store,
            table_name=self.table_name,
            action="update",
            patch=dict(patch),
            filters=self.filters,
        )

    def delete(self) -> FilteredMutation:
        """Deferred: add filters, then execute() or await."""
        return FilteredMutation(
            store=self.store,
            table_name=self.table_name,
            action="delete",
            filters=self.filters,
        )
