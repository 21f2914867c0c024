"""
localdb Core - Mutations.

insert/upsert run as soon as they are called and hand back an already
resolved MutationResult. update/delete return a FilteredMutation that only
touches the table when executed, after at least one filter has been added.

Every changed row fires exactly one notification, after the row has been
written, in table order.
"""

from __future__ import annotations

import logging
from copy import deepcopy
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Literal

from localdb.core.executable import Executable
from localdb.core.filters import FilterMixin, Predicate, strict_equals
from localdb.core.records import parse_columns, prepare_insert, project, utc_now_iso
from localdb.exceptions import MissingFilterException
from localdb.schemas import APIResponse, Record

if TYPE_CHECKING:
    from localdb.core.store import RowStore

logger = logging.getLogger(__name__)


class MutationResult(Executable):
    """
    Resolved result of insert/upsert.

    select(), single() and maybe_single() are accepted and ignored so that
    code written against the remote client (``insert(...).select().single()``)
    keeps working.
    """

    def __init__(self, response: APIResponse):
        self._response = response

    def select(self, columns: str = "*") -> MutationResult:
        """No-op: columns is ignored and the full written rows are returned."""
        return self

    def single(self) -> MutationResult:
        return self

    def maybe_single(self) -> MutationResult:
        return self

    def execute(self) -> APIResponse:
        return self._response


def _as_rows(rows: Record | list[Record]) -> tuple[list[Record], bool]:
    if isinstance(rows, list):
        return rows, True
    return [rows], False


def _shape(records: list[Record], many: bool) -> APIResponse:
    data = [deepcopy(r) for r in records]
    if many:
        return APIResponse(data=data, count=len(data))
    return APIResponse(data=data[0] if data else None, count=len(data))


def insert_rows(store: RowStore, table: str, rows: Record | list[Record]) -> MutationResult:
    batch, many = _as_rows(rows)
    now = utc_now_iso()
    target = store.get_table(table)

    inserted = [prepare_insert(row, now) for row in batch]
    target.extend(inserted)
    logger.debug(f"Inserted {len(inserted)} row(s) into '{table}'")

    for record in inserted:
        store.notify(table, "INSERT", None, record)
    return MutationResult(_shape(inserted, many))


def _find_conflict(target: list[Record], row: Record, keys: list[str]) -> Record | None:
    if any(row.get(key) is None for key in keys):
        return None
    for existing in target:
        if all(strict_equals(existing.get(key), row.get(key)) for key in keys):
            return existing
    return None


def upsert_rows(
    store: RowStore,
    table: str,
    rows: Record | list[Record],
    on_conflict: str = "id",
    ignore_duplicates: bool = False,
) -> MutationResult:
    """
    Merge rows into matching records or insert them.

    on_conflict names one column or several comma-separated columns; a row
    matches an existing record when all of them are equal.
    """
    batch, many = _as_rows(rows)
    keys = [key.strip() for key in on_conflict.split(",") if key.strip()]
    target = store.get_table(table)
    written: list[Record] = []

    for row in batch:
        now = utc_now_iso()
        existing = _find_conflict(target, row, keys)
        if existing is None:
            record = prepare_insert(row, now)
            target.append(record)
            store.notify(table, "INSERT", None, record)
            written.append(record)
        elif not ignore_duplicates:
            old = deepcopy(existing)
            existing.update(deepcopy(dict(row)))
            existing["updated_at"] = now
            store.notify(table, "UPDATE", old, existing)
            written.append(existing)

    logger.debug(f"Upserted {len(written)} row(s) into '{table}' on ({', '.join(keys)})")
    return MutationResult(_shape(written, many))


@dataclass(frozen=True)
class FilteredMutation(FilterMixin, Executable):
    """Deferred update or delete; runs on execute() or await."""

    store: RowStore = field(repr=False)
    table_name: str
    action: Literal["update", "delete"]
    patch: Record | None = None
    filters: tuple[Predicate, ...] = field(default=(), repr=False)
    columns: tuple[str, ...] | None = None

    def _with_filter(self, predicate: Predicate) -> FilteredMutation:
        return replace(self, filters=self.filters + (predicate,))

    def select(self, columns: str = "*") -> FilteredMutation:
        """Project the returned rows."""
        return replace(self, columns=parse_columns(columns))

    def execute(self) -> APIResponse:
        if not self.filters:
            self.store.metrics.record_error("MISSING_FILTER")
            raise MissingFilterException(self.action, self.table_name)

        target = self.store.get_table(self.table_name)
        matches = [row for row in target if all(predicate(row) for predicate in self.filters)]
        if self.action == "update":
            changed = self._apply_update(matches)
        else:
            changed = self._apply_delete(target, matches)

        data = [project(row, self.columns) for row in changed]
        return APIResponse(data=data, count=len(data))

    def _apply_update(self, matches: list[Record]) -> list[Record]:
        patch = self.patch or {}
        for record in matches:
            old = deepcopy(record)
            record.update(deepcopy(patch))
            record["updated_at"] = utc_now_iso()
            self.store.notify(self.table_name, "UPDATE", old, record)
        logger.debug(f"Updated {len(matches)} row(s) in '{self.table_name}'")
        return matches

    def _apply_delete(self, target: list[Record], matches: list[Record]) -> list[Record]:
        removed = {id(record) for record in matches}
        # Slice assignment keeps the table's list identity.
        target[:] = [record for record in target if id(record) not in removed]
        for record in matches:
            self.store.notify(self.table_name, "DELETE", record, None)
        logger.debug(f"Deleted {len(matches)} row(s) from '{self.table_name}'")
        return matches
