"""Tests for realtime channels and the client facade."""

from localdb.realtime import RealtimeChannel, parse_row_filter


class TestRowFilter:
    """Row filter parsing."""

    def test_parse(self):
        assert parse_row_filter("project_id=eq.proj-1") == ("project_id", "proj-1")
        assert parse_row_filter(None) is None
        assert parse_row_filter("project_id=gt.3") is None


class TestRealtimeChannel:
    """postgres_changes subscriptions."""

    def test_all_events_for_table(self, client):
        received = []
        client.channel("messages").on(
            "postgres_changes",
            {"event": "*", "schema": "public", "table": "messages"},
            received.append,
        ).subscribe()

        msg = client.table("messages").insert({"body": "hi"}).execute().data
        client.table("messages").update({"body": "hello"}).eq("id", msg["id"]).execute()
        client.table("messages").delete().eq("id", msg["id"]).execute()
        client.table("threads").insert({"title": "other table"})

        assert [e.event_type for e in received] == ["INSERT", "UPDATE", "DELETE"]

    def test_event_type_filter(self, client):
        received = []
        client.channel("new-messages").on(
            "postgres_changes",
            {"event": "INSERT", "table": "messages"},
            received.append,
        ).subscribe()

        msg = client.table("messages").insert({"body": "hi"}).execute().data
        client.table("messages").update({"body": "edited"}).eq("id", msg["id"]).execute()

        assert [e.event_type for e in received] == ["INSERT"]

    def test_row_filter(self, client):
        received = []
        client.channel("proj-1-rfis").on_postgres_changes(
            "*", received.append, table="rfis", filter="project_id=eq.p1"
        ).subscribe()

        client.table("rfis").insert([{"project_id": "p1"}, {"project_id": "p2"}, {"project_id": "p1"}])
        client.table("rfis").delete().eq("project_id", "p2").execute()

        assert len(received) == 2
        assert all(e.new["project_id"] == "p1" for e in received)

    def test_row_filter_on_boolean_and_null_columns(self, client):
        done, unassigned = [], []
        client.channel("done-tasks").on_postgres_changes(
            "INSERT", done.append, table="tasks", filter="completed=eq.true"
        )
        client.channel("unassigned-tasks").on_postgres_changes(
            "INSERT", unassigned.append, table="tasks", filter="assignee=eq.null"
        )

        client.table("tasks").insert(
            [{"completed": True, "assignee": "u1"}, {"completed": False, "assignee": None}]
        )

        assert [e.new["completed"] for e in done] == [True]
        assert [e.new["assignee"] for e in unassigned] == [None]

    def test_row_filter_applies_to_deletes(self, client):
        client.table("rfis").insert([{"id": "a", "project_id": "p1"}, {"id": "b", "project_id": "p2"}])
        received = []
        client.channel("proj-1-rfis").on_postgres_changes(
            "DELETE", received.append, table="rfis", filter="project_id=eq.p1"
        )

        client.table("rfis").delete().in_("id", ["a", "b"]).execute()

        assert [e.old["id"] for e in received] == ["a"]

    def test_subscribe_reports_status(self, client):
        statuses = []

        channel = client.channel("x").subscribe(statuses.append)

        assert statuses == ["SUBSCRIBED"]
        assert channel.state == "joined"

    def test_other_event_kinds_ignored(self, client, store):
        channel = client.channel("presence").on("presence", {"event": "sync"}, lambda e: None)

        assert isinstance(channel, RealtimeChannel)
        assert store.bus.channels() == []
        assert channel.track({"user": "u1"}) == "ok"
        assert channel.send({"type": "broadcast"}) == "ok"
        assert channel.presence_state() == {}

    def test_remove_channel_stops_delivery(self, client, store):
        received = []
        channel = client.channel("todos").on(
            "postgres_changes", {"event": "*", "table": "todos"}, received.append
        ).subscribe()

        assert client.remove_channel(channel) == "ok"
        client.table("todos").insert({"title": "a"})

        assert received == []
        assert client.get_channels() == []
        assert store.bus.listener_count("todos-changes") == 0

    def test_remove_all_channels(self, client, store):
        for table in ("a", "b"):
            client.channel(table).on("postgres_changes", {"event": "*", "table": table}, lambda e: None)

        client.remove_all_channels()

        assert store.bus.channels() == []


class TestClient:
    """Client facade."""

    def test_table_and_from_are_the_same(self, client):
        client.table("projects").insert({"name": "Villa"})

        assert client.from_("projects").execute().data == client.table("projects").execute().data

    def test_get_client_is_cached(self):
        from localdb.client import get_client
        from localdb.core.store import get_store

        assert get_client() is get_client()
        assert get_client().store is get_store()
