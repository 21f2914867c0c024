"""
localdb - Demo dataset.

A small construction-management workspace: one approved architect profile,
two projects, memberships, an activity entry and a todo. The remaining
application tables start empty.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

DEMO_USER_ID = "mock-user-id"

EMPTY_TABLES = (
    "calendar_events",
    "documents",
    "messages",
    "message_threads",
    "message_participants",
    "rfis",
    "tenders",
    "tender_packages",
    "tender_bids",
    "companies",
)


def _iso(moment: datetime) -> str:
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def demo_data(now: datetime | None = None) -> dict[str, list[dict[str, Any]]]:
    """Build the demo tables with timestamps relative to ``now``."""
    now = now or datetime.now(timezone.utc)
    created = _iso(now)

    data: dict[str, list[dict[str, Any]]] = {
        "profiles": [
            {
                "id": "prof-1",
                "user_id": DEMO_USER_ID,
                "name": "Richard Architect",
                "role": "architect",
                "email": "richard@storea.com",
                "approved": True,
                "created_at": created,
            }
        ],
        "projects": [
            {
                "id": "proj-1",
                "name": "Luxury Villa Renovation",
                "address": "123 Ocean Drive, Gold Coast",
                "status": "active",
                "architectural_stage": "Construction Documentation",
                "budget": 1500000,
                "estimated_start_date": "2026-02-01",
                "estimated_finish_date": "2026-12-01",
                "project_reference_number": "PRJ-2026-001",
                "project_id": "PRJ-001",
                "homeowner_name": "John Smith",
                "description": "Full renovation of existing 2-storey beachfront property.",
                "priority": "high",
                "created_by": DEMO_USER_ID,
                "created_at": created,
            },
            {
                "id": "proj-2",
                "name": "City Apartment Complex",
                "address": "45 High Street, Melbourne",
                "status": "on_hold",
                "architectural_stage": "Concept",
                "budget": 5000000,
                "created_by": DEMO_USER_ID,
                "created_at": _iso(now - timedelta(days=1)),
            },
        ],
        "project_users": [
            {"id": "pu-1", "project_id": "proj-1", "user_id": DEMO_USER_ID, "role": "architect", "created_at": created},
            {"id": "pu-2", "project_id": "proj-2", "user_id": DEMO_USER_ID, "role": "architect", "created_at": created},
        ],
        "activity_log": [
            {
                "id": "act-1",
                "project_id": "proj-1",
                "user_id": DEMO_USER_ID,
                "entity_type": "document",
                "action": "uploaded",
                "description": "Uploaded architectural plans v2.pdf",
                "user_profile": {"name": "Richard Architect"},
                "project": {"name": "Luxury Villa Renovation"},
                "created_at": _iso(now - timedelta(hours=2)),
            }
        ],
        "todos": [
            {
                "id": "todo-1",
                "project_id": "proj-1",
                "title": "Review structural engineering report",
                "completed": False,
                "priority": "high",
                "due_date": _iso(now + timedelta(days=2)),
                "created_at": created,
            }
        ],
    }
    for name in EMPTY_TABLES:
        data[name] = []
    return data
