"""
localdb Core - Record helpers.

Identifier/timestamp synthesis and column projection for open records.
"""

from copy import deepcopy
from datetime import datetime, timezone
from typing import Iterable
from uuid import uuid4

from localdb.schemas import Record


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_id() -> str:
    return str(uuid4())


def prepare_insert(row: Record, now: str | None = None) -> Record:
    """Copy a row for insertion, filling in id and created_at when missing."""
    record = deepcopy(dict(row))
    if not record.get("id"):
        record["id"] = new_id()
    if not record.get("created_at"):
        record["created_at"] = now or utc_now_iso()
    return record


def parse_columns(columns: str) -> tuple[str, ...] | None:
    """
    Parse a select() column list.

    Returns None for "*" (whole records). Embedded resources such as
    ``project:projects(name)`` are dropped since there are no joins.
    """
    names: list[str] = []
    depth = 0
    token = ""
    for ch in columns + ",":
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == "," and depth == 0:
            token = token.strip()
            if token == "*":
                return None
            if token and "(" not in token:
                names.append(token)
            token = ""
        else:
            token += ch
    return tuple(names)


def project(record: Record, columns: Iterable[str] | None) -> Record:
    """Deep-copy a record, keeping only the given columns (all when None)."""
    if columns is None:
        return deepcopy(record)
    return {col: deepcopy(record[col]) for col in columns if col in record}

