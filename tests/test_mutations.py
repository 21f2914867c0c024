"""Tests for insert, upsert, update and delete."""

from datetime import datetime

import pytest

from localdb.core.mutations import FilteredMutation, MutationResult
from localdb.exceptions import MissingFilterException


class TestInsert:
    """insert()."""

    def test_insert_synthesizes_id_and_created_at(self, store):
        response = store.table("users").insert({"name": "Alice"}).execute()

        record = response.data
        assert isinstance(record["id"], str) and record["id"]
        assert record["created_at"].endswith("Z")
        datetime.fromisoformat(record["created_at"].replace("Z", "+00:00"))
        assert record["name"] == "Alice"
        assert len(store.get_table("users")) == 1

    def test_insert_keeps_given_fields(self, store):
        record = store.table("users").insert({"id": "u1", "created_at": "2026-01-01T00:00:00.000Z"}).execute().data

        assert record == {"id": "u1", "created_at": "2026-01-01T00:00:00.000Z"}

    def test_insert_list_returns_list(self, store):
        response = store.table("todos").insert([{"title": "a"}, {"title": "b"}]).execute()

        assert [r["title"] for r in response.data] == ["a", "b"]
        assert len({r["id"] for r in response.data}) == 2
        assert response.count == 2

    def test_insert_runs_immediately(self, store):
        store.table("todos").insert({"title": "never awaited"})

        assert len(store.get_table("todos")) == 1

    def test_insert_copies_input(self, store):
        row = {"title": "a", "tags": ["x"]}
        store.table("todos").insert(row)
        row["tags"].append("y")

        assert store.get_table("todos")[0]["tags"] == ["x"]
        assert "id" not in row

    def test_chained_noops(self, store):
        result = store.table("todos").insert({"title": "a"})

        assert isinstance(result, MutationResult)
        assert result.select().single() is result
        assert result.maybe_single().execute().data["title"] == "a"

    def test_insert_notifies(self, store, events):
        received = events("users")

        record = store.table("users").insert({"name": "Alice"}).execute().data

        assert len(received) == 1
        event = received[0]
        assert event.event_type == "INSERT"
        assert event.table == "users"
        assert event.old is None
        assert event.new == record
        assert event.to_payload()["eventType"] == "INSERT"
        assert event.to_payload()["schema"] == "public"

    def test_delete_notifies_old_record(self, store, events):
        record = store.table("users").insert({"name": "Alice"}).execute().data
        received = events("users")

        store.table("users").delete().eq("id", record["id"]).execute()

        assert len(received) == 1
        assert received[0].event_type == "DELETE"
        assert received[0].old == record
        assert received[0].new is None

    @pytest.mark.asyncio
    async def test_await_insert(self, store):
        response = await store.table("users").insert({"name": "Alice"}).select().single()

        assert response.data["name"] == "Alice"


class TestUpsert:
    """upsert()."""

    def test_upsert_twice_keeps_one_row(self, store):
        store.table("items").upsert({"id": "x", "v": 1})
        store.table("items").upsert({"id": "x", "v": 2})

        rows = [r for r in store.get_table("items") if r["id"] == "x"]
        assert len(rows) == 1
        assert rows[0]["v"] == 2
        assert "updated_at" in rows[0]

    def test_upsert_events(self, store, events):
        received = events("items")

        store.table("items").upsert({"id": "x", "v": 1})
        store.table("items").upsert({"id": "x", "v": 2})

        assert [e.event_type for e in received] == ["INSERT", "UPDATE"]
        assert received[1].old["v"] == 1
        assert received[1].new["v"] == 2

    def test_upsert_merges_fields(self, store):
        store.seed({"profiles": [{"id": "p1", "name": "Richard", "role": "architect"}]})

        record = store.table("profiles").upsert({"id": "p1", "approved": True}).execute().data

        assert record["name"] == "Richard"
        assert record["approved"] is True

    def test_upsert_on_custom_conflict_key(self, store):
        store.seed({"project_users": [{"id": "pu-1", "project_id": "p1", "user_id": "u1", "role": "viewer"}]})

        store.table("project_users").upsert(
            [
                {"project_id": "p1", "user_id": "u1", "role": "editor"},
                {"project_id": "p1", "user_id": "u2", "role": "viewer"},
            ],
            on_conflict="project_id, user_id",
        )

        rows = store.get_table("project_users")
        assert len(rows) == 2
        assert rows[0]["id"] == "pu-1"
        assert rows[0]["role"] == "editor"
        assert rows[1]["user_id"] == "u2"

    def test_upsert_ignore_duplicates(self, store, events):
        store.seed({"items": [{"id": "x", "v": 1}]})
        received = events("items")

        response = store.table("items").upsert([{"id": "x", "v": 9}, {"id": "y", "v": 2}], ignore_duplicates=True).execute()

        assert [r["id"] for r in response.data] == ["y"]
        assert store.get_table("items")[0]["v"] == 1
        assert [e.event_type for e in received] == ["INSERT"]

    def test_upsert_without_key_inserts(self, store):
        store.table("items").upsert({"v": 1})
        store.table("items").upsert({"v": 1})

        assert len(store.get_table("items")) == 2


class TestUpdate:
    """update(...).<filters>."""

    def test_update_is_deferred(self, store):
        store.seed({"rfis": [{"id": "r1", "status": "open"}]})

        pending = store.table("rfis").update({"status": "closed"}).eq("id", "r1")

        assert isinstance(pending, FilteredMutation)
        assert store.get_table("rfis")[0]["status"] == "open"
        pending.execute()
        assert store.get_table("rfis")[0]["status"] == "closed"

    def test_update_matching_rows(self, store, events):
        store.seed(
            {
                "rfis": [
                    {"id": "r1", "status": "open", "project_id": "p1"},
                    {"id": "r2", "status": "open", "project_id": "p2"},
                    {"id": "r3", "status": "open", "project_id": "p1"},
                ]
            }
        )
        received = events("rfis")

        response = store.table("rfis").update({"status": "closed"}).eq("project_id", "p1").execute()

        assert [r["id"] for r in response.data] == ["r1", "r3"]
        assert all(r["status"] == "closed" and r["updated_at"] for r in response.data)
        assert store.get_table("rfis")[1]["status"] == "open"
        assert [(e.event_type, e.old["status"], e.new["status"]) for e in received] == [
            ("UPDATE", "open", "closed"),
            ("UPDATE", "open", "closed"),
        ]

    def test_update_no_match(self, store, events):
        store.seed({"rfis": [{"id": "r1", "status": "open"}]})
        received = events("rfis")

        response = store.table("rfis").update({"status": "closed"}).eq("id", "x").execute()

        assert response.data == []
        assert received == []

    def test_update_with_in_and_select(self, store):
        store.seed({"todos": [{"id": "t1", "done": False}, {"id": "t2", "done": False}, {"id": "t3", "done": False}]})

        response = store.table("todos").update({"done": True}).in_("id", ["t1", "t3"]).select("id").execute()

        assert response.data == [{"id": "t1"}, {"id": "t3"}]

    def test_update_requires_filter(self, store, metrics):
        with pytest.raises(MissingFilterException) as exc:
            store.table("rfis").update({"status": "closed"}).execute()

        assert exc.value.code == "MISSING_FILTER"
        assert metrics.get_summary()["errors"]["MISSING_FILTER"] == 1

    def test_update_keeps_prior_query_filters(self, store):
        store.seed({"rfis": [{"id": "r1", "status": "open"}, {"id": "r2", "status": "draft"}]})

        store.table("rfis").eq("status", "draft").update({"status": "open"}).execute()

        assert [r["status"] for r in store.get_table("rfis")] == ["open", "open"]

    @pytest.mark.asyncio
    async def test_await_update(self, store):
        store.seed({"rfis": [{"id": "r1", "status": "open"}]})

        response = await store.table("rfis").update({"status": "closed"}).eq("id", "r1")

        assert response.data[0]["status"] == "closed"


class TestDelete:
    """delete().<filters>."""

    def test_delete_removes_matches(self, store):
        store.seed({"todos": [{"id": "t1", "done": True}, {"id": "t2", "done": False}, {"id": "t3", "done": True}]})
        table = store.get_table("todos")

        response = store.table("todos").delete().eq("done", True).execute()

        assert [r["id"] for r in response.data] == ["t1", "t3"]
        assert [r["id"] for r in store.get_table("todos")] == ["t2"]
        assert store.get_table("todos") is table

    def test_delete_by_identity_not_id(self, store):
        store.seed({"todos": [{"id": "dup", "n": 1}, {"id": "dup", "n": 2}]})

        store.table("todos").delete().eq("n", 2).execute()

        assert store.get_table("todos") == [{"id": "dup", "n": 1}]

    def test_delete_requires_filter(self, store):
        store.seed({"todos": [{"id": "t1"}]})

        with pytest.raises(MissingFilterException):
            store.table("todos").delete().execute()

        assert len(store.get_table("todos")) == 1

    def test_mutation_counts(self, store, metrics):
        store.table("todos").insert([{"id": "a"}, {"id": "b"}])
        store.table("todos").update({"x": 1}).eq("id", "a").execute()
        store.table("todos").delete().eq("id", "b").execute()

        assert metrics.get_summary()["tables"]["todos"]["mutations"] == {"INSERT": 2, "UPDATE": 1, "DELETE": 1}
