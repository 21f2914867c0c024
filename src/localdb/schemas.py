"""
localdb - Common Schemas.

Record aliases and the Pydantic models shared by the store, the query
builders and realtime channels.
"""

from typing import Any, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Records
# =============================================================================

Record: TypeAlias = dict[str, Any]
"""One row: column name to a JSON-like value (str, number, bool, None, list, dict)."""

EventType = Literal["INSERT", "UPDATE", "DELETE"]


# =============================================================================
# Change Notifications
# =============================================================================


class ChangeEvent(BaseModel):
    """A row change broadcast on the table's change channel.

    ``old`` and ``new`` are copies taken at mutation time; later writes to the
    table do not alter an event already delivered.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    event_type: EventType = Field(..., alias="eventType")
    table: str
    schema_name: str = Field(default="public", alias="schema")
    old: Record | None = None
    new: Record | None = None
    commit_timestamp: str

    @property
    def record(self) -> Record | None:
        """The row the event is about: ``new`` if present, else ``old``."""
        return self.new if self.new is not None else self.old

    def to_payload(self) -> dict[str, Any]:
        """Serialize with the wire field names (``eventType``, ``schema``)."""
        return self.model_dump(by_alias=True)


# =============================================================================
# Query Results
# =============================================================================


class QueryError(BaseModel):
    """Data-shaped error carried by APIResponse (never raised)."""

    code: str = Field(..., description="PostgREST error code, e.g. PGRST116")
    message: str
    details: str | None = None
    hint: str | None = None


class APIResponse(BaseModel):
    """Resolved value of every query and mutation."""

    data: Any = None
    error: QueryError | None = None
    count: int | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
