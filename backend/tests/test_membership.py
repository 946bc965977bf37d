"""Tests for join/leave rules and capacity.

Covers:
- Rule order: exists → ACTIVE → not creator → capacity → not already joined
- Capacity is never exceeded and frees up on leave
- Rejoin reuses the single participation row
- Leave without a JOINED participation
- A join that loses the race for the last seat, or a colliding rejoin, rolls back cleanly
- A user's created / joined event lists
"""
import pytest
from sqlalchemy import event as sa_event

from anondo.models.event import Event
from anondo.models.participant import EventParticipant, ParticipantStatus
from tests.conftest import sign_in_user, create_test_event, reason


def _users(client, count):
    return [sign_in_user(client, f"user{i}@example.com", f"User {i}") for i in range(count)]


@pytest.fixture
def interleave(db_engine):
    """Run one raw write on the request's own connection just before a matching statement.

    Stands in for a concurrent request that commits between join_event's
    up-front checks and its guarded write, so the guarded write decides.
    """
    listeners = []

    def _install(prefix: str, sql: str, params: tuple) -> list:
        fired = []

        def _before(conn, cursor, statement, parameters, context, executemany):
            if not fired and statement.startswith(prefix):
                fired.append(statement)
                cursor.connection.execute(sql, params)

        sa_event.listen(db_engine, "before_cursor_execute", _before)
        listeners.append(_before)
        return fired

    yield _install
    for listener in listeners:
        sa_event.remove(db_engine, "before_cursor_execute", listener)


class TestJoin:

    def test_join_event(self, client):
        alice, bob = _users(client, 2)
        event = create_test_event(client, alice["headers"])
        resp = client.post(f"/api/events/{event['id']}/join", headers=bob["headers"])
        assert resp.status_code == 200
        assert resp.json()["message"] == "Successfully joined event"

        data = client.get(f"/api/events/{event['id']}").json()["event"]
        assert data["participant_count"] == 1
        assert data["participants"][0]["user"]["id"] == bob["id"]
        assert data["participants"][0]["status"] == "JOINED"

    def test_join_missing_event(self, client):
        (alice,) = _users(client, 1)
        resp = client.post("/api/events/nope/join", headers=alice["headers"])
        assert resp.status_code == 404
        assert reason(resp) == "event_not_found"

    def test_creator_cannot_join(self, client):
        (alice,) = _users(client, 1)
        event = create_test_event(client, alice["headers"])
        resp = client.post(f"/api/events/{event['id']}/join", headers=alice["headers"])
        assert resp.status_code == 400
        assert reason(resp) == "own_event"

    def test_cannot_join_inactive_event(self, client):
        alice, bob = _users(client, 2)
        event = create_test_event(client, alice["headers"], status="DRAFT")
        resp = client.post(f"/api/events/{event['id']}/join", headers=bob["headers"])
        assert resp.status_code == 400
        assert reason(resp) == "event_not_active"

    def test_inactive_checked_before_own_event(self, client):
        (alice,) = _users(client, 1)
        event = create_test_event(client, alice["headers"], status="CANCELLED")
        resp = client.post(f"/api/events/{event['id']}/join", headers=alice["headers"])
        assert reason(resp) == "event_not_active"

    def test_double_join_rejected(self, client):
        alice, bob = _users(client, 2)
        event = create_test_event(client, alice["headers"])
        client.post(f"/api/events/{event['id']}/join", headers=bob["headers"])
        resp = client.post(f"/api/events/{event['id']}/join", headers=bob["headers"])
        assert resp.status_code == 400
        assert reason(resp) == "already_joined"

    def test_join_requires_auth(self, client):
        (alice,) = _users(client, 1)
        event = create_test_event(client, alice["headers"])
        assert client.post(f"/api/events/{event['id']}/join").status_code == 401


class TestCapacity:

    def test_capacity_scenario(self, client, db):
        """Capacity 2: B and C join, D is turned away, C leaves, D gets the seat."""
        a, b, c, d = _users(client, 4)
        event = create_test_event(client, a["headers"], max_capacity=2)
        eid = event["id"]

        assert client.post(f"/api/events/{eid}/join", headers=b["headers"]).status_code == 200
        assert client.post(f"/api/events/{eid}/join", headers=c["headers"]).status_code == 200

        full = client.post(f"/api/events/{eid}/join", headers=d["headers"])
        assert full.status_code == 400
        assert reason(full) == "event_full"

        assert client.post(f"/api/events/{eid}/leave", headers=c["headers"]).status_code == 200
        assert client.post(f"/api/events/{eid}/join", headers=d["headers"]).status_code == 200

        data = client.get(f"/api/events/{eid}").json()["event"]
        assert data["participant_count"] == 2
        assert {p["user_id"] for p in data["participants"]} == {b["id"], d["id"]}
        assert db.query(Event.joined_count).filter(Event.id == eid).scalar() == 2

    def test_full_checked_before_already_joined(self, client):
        a, b = _users(client, 2)
        event = create_test_event(client, a["headers"], max_capacity=1)
        client.post(f"/api/events/{event['id']}/join", headers=b["headers"])
        resp = client.post(f"/api/events/{event['id']}/join", headers=b["headers"])
        assert reason(resp) == "event_full"

    def test_unlimited_capacity(self, client):
        users = _users(client, 5)
        event = create_test_event(client, users[0]["headers"])
        for u in users[1:]:
            assert client.post(f"/api/events/{event['id']}/join", headers=u["headers"]).status_code == 200
        assert client.get(f"/api/events/{event['id']}").json()["event"]["participant_count"] == 4

    def test_last_seat_taken_between_check_and_write(self, client, db, interleave):
        """The guarded counter UPDATE, not the up-front check, turns the late joiner away."""
        a, b, c = _users(client, 3)
        event = create_test_event(client, a["headers"], max_capacity=2)
        eid = event["id"]
        assert client.post(f"/api/events/{eid}/join", headers=b["headers"]).status_code == 200

        fired = interleave(
            "UPDATE events SET joined_count",
            "UPDATE events SET joined_count = max_capacity WHERE id = ?",
            (eid,),
        )
        resp = client.post(f"/api/events/{eid}/join", headers=c["headers"])
        assert fired, "guarded capacity UPDATE was never issued"
        assert resp.status_code == 400
        assert reason(resp) == "event_full"

        # The failed join rolled back: no participation row and the seat count is untouched.
        joined = (
            db.query(EventParticipant)
            .filter(EventParticipant.event_id == eid, EventParticipant.status == ParticipantStatus.JOINED)
            .all()
        )
        assert [p.user_id for p in joined] == [b["id"]]
        assert len(joined) <= 2
        assert db.query(Event.joined_count).filter(Event.id == eid).scalar() == 1

    def test_seat_freed_after_lost_race_can_be_taken(self, client, interleave):
        a, b, c = _users(client, 3)
        event = create_test_event(client, a["headers"], max_capacity=2)
        eid = event["id"]
        client.post(f"/api/events/{eid}/join", headers=b["headers"])
        interleave(
            "UPDATE events SET joined_count",
            "UPDATE events SET joined_count = max_capacity WHERE id = ?",
            (eid,),
        )
        assert reason(client.post(f"/api/events/{eid}/join", headers=c["headers"])) == "event_full"

        assert client.post(f"/api/events/{eid}/join", headers=c["headers"]).status_code == 200
        data = client.get(f"/api/events/{eid}").json()["event"]
        assert data["participant_count"] == 2


class TestLeaveAndRejoin:

    def test_leave_not_joined(self, client):
        alice, bob = _users(client, 2)
        event = create_test_event(client, alice["headers"])
        resp = client.post(f"/api/events/{event['id']}/leave", headers=bob["headers"])
        assert resp.status_code == 400
        assert reason(resp) == "not_joined"

    def test_leave_twice(self, client):
        alice, bob = _users(client, 2)
        event = create_test_event(client, alice["headers"])
        client.post(f"/api/events/{event['id']}/join", headers=bob["headers"])
        assert client.post(f"/api/events/{event['id']}/leave", headers=bob["headers"]).status_code == 200
        resp = client.post(f"/api/events/{event['id']}/leave", headers=bob["headers"])
        assert reason(resp) == "not_joined"

    def test_leave_missing_event(self, client):
        (alice,) = _users(client, 1)
        resp = client.post("/api/events/nope/leave", headers=alice["headers"])
        assert resp.status_code == 404

    def test_rejoin_keeps_single_row(self, client, db):
        alice, bob = _users(client, 2)
        event = create_test_event(client, alice["headers"])
        eid = event["id"]

        client.post(f"/api/events/{eid}/join", headers=bob["headers"])
        client.post(f"/api/events/{eid}/leave", headers=bob["headers"])
        left = client.get(f"/api/events/{eid}").json()["event"]
        assert left["participant_count"] == 0
        assert left["participants"] == []

        assert client.post(f"/api/events/{eid}/join", headers=bob["headers"]).status_code == 200
        rows = db.query(EventParticipant).filter(EventParticipant.event_id == eid).all()
        assert len(rows) == 1
        assert rows[0].status == ParticipantStatus.JOINED
        assert rows[0].left_at is None

    def test_concurrent_rejoin_collision(self, client, db, interleave):
        """A rejoin that finds its row already flipped back reports already_joined and releases the seat."""
        alice, bob = _users(client, 2)
        event = create_test_event(client, alice["headers"], max_capacity=5)
        eid = event["id"]
        client.post(f"/api/events/{eid}/join", headers=bob["headers"])
        client.post(f"/api/events/{eid}/leave", headers=bob["headers"])

        fired = interleave(
            "UPDATE event_participants SET",
            "UPDATE event_participants SET status = 'JOINED' WHERE event_id = ? AND user_id = ?",
            (eid, bob["id"]),
        )
        resp = client.post(f"/api/events/{eid}/join", headers=bob["headers"])
        assert fired, "rejoin UPDATE was never issued"
        assert resp.status_code == 400
        assert reason(resp) == "already_joined"

        rows = db.query(EventParticipant).filter(EventParticipant.event_id == eid).all()
        assert len(rows) == 1
        assert rows[0].status == ParticipantStatus.LEFT
        assert db.query(Event.joined_count).filter(Event.id == eid).scalar() == 0


class TestUserEvents:

    def test_created_and_joined(self, client):
        alice, bob = _users(client, 2)
        mine = create_test_event(client, bob["headers"], title="Bob's")
        theirs = create_test_event(client, alice["headers"], title="Alice's")
        client.post(f"/api/events/{theirs['id']}/join", headers=bob["headers"])

        data = client.get(f"/api/users/{bob['id']}/events", headers=bob["headers"]).json()
        assert [e["id"] for e in data["created"]] == [mine["id"]]
        assert [e["id"] for e in data["joined"]] == [theirs["id"]]
        assert "events" not in data

    def test_filtered_by_type(self, client):
        alice, bob = _users(client, 2)
        theirs = create_test_event(client, alice["headers"])
        client.post(f"/api/events/{theirs['id']}/join", headers=bob["headers"])

        data = client.get(f"/api/users/{bob['id']}/events", params={"type": "joined"}, headers=bob["headers"]).json()
        assert [e["id"] for e in data["events"]] == [theirs["id"]]
        assert "created" not in data

    def test_left_events_not_listed_as_joined(self, client):
        alice, bob = _users(client, 2)
        theirs = create_test_event(client, alice["headers"])
        client.post(f"/api/events/{theirs['id']}/join", headers=bob["headers"])
        client.post(f"/api/events/{theirs['id']}/leave", headers=bob["headers"])
        data = client.get(f"/api/users/{bob['id']}/events", params={"type": "joined"}, headers=bob["headers"]).json()
        assert data["events"] == []

    def test_only_own_events(self, client):
        alice, bob = _users(client, 2)
        resp = client.get(f"/api/users/{alice['id']}/events", headers=bob["headers"])
        assert resp.status_code == 403
        assert reason(resp) == "not_own_events"
