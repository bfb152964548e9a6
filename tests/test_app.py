import pytest
from fastapi.testclient import TestClient

from app import create_app
from conftest import DEFAULT_CODE


@pytest.fixture
def client():
    with TestClient(create_app(default_code=DEFAULT_CODE)) as test_client:
        yield test_client


def send(ws, message_type, **data):
    ws.send_json({"type": message_type, "data": data})


def join(ws, room_id, display_name):
    send(ws, "join", roomId=room_id, displayName=display_name)
    code = ws.receive_json()
    joined = ws.receive_json()
    assert code["type"] == "code-change"
    assert joined["type"] == "joined"
    return code["data"]["code"], joined["data"]


def names(members):
    return [m["displayName"] for m in members]


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_collaboration_flow(client):
    with client.websocket_connect("/ws") as alice:
        code, joined = join(alice, "r1", "Alice")
        assert code == DEFAULT_CODE
        assert names(joined["members"]) == ["Alice"]
        alice_id = joined["connectionId"]

        with client.websocket_connect("/ws") as bob:
            code, joined = join(bob, "r1", "Bob")
            assert code == DEFAULT_CODE
            assert names(joined["members"]) == ["Alice", "Bob"]
            bob_id = joined["connectionId"]

            seen_by_alice = alice.receive_json()
            assert seen_by_alice == {"type": "joined", "data": joined}

            send(alice, "code-change", roomId="r1", code="print(1)")
            assert bob.receive_json() == {"type": "code-change", "data": {"code": "print(1)"}}

            offer = {"description": {"type": "offer", "sdp": "v=0"}, "roomId": "r1"}
            send(bob, "offer", **offer)
            assert alice.receive_json() == {"type": "offer", "data": offer}

        left = alice.receive_json()
        assert left["type"] == "disconnected"
        assert left["data"]["connectionId"] == bob_id
        assert left["data"]["displayName"] == "Bob"
        assert names(left["data"]["members"]) == ["Alice"]

        details = client.get("/rooms/r1").json()
        assert details["online_users"] == [{"connection_id": alice_id, "display_name": "Alice"}]
        assert details["code"] == "print(1)"

    assert client.get("/rooms/r1").status_code == 404
    assert client.get("/rooms/").json() == {"rooms": []}

    with client.websocket_connect("/ws") as carol:
        code, _ = join(carol, "r1", "Carol")
        assert code == "print(1)"


def test_leave_runs_disconnect(client):
    with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
        join(alice, "r1", "Alice")
        join(bob, "r1", "Bob")
        alice.receive_json()

        send(bob, "leave")
        left = alice.receive_json()
        assert left["type"] == "disconnected"
        assert names(left["data"]["members"]) == ["Alice"]


def test_malformed_frames_are_ignored(client):
    with client.websocket_connect("/ws") as alice:
        alice.send_text("not json")
        alice.send_json(["not", "an", "object"])
        send(alice, "unknown-event", roomId="r1")
        send(alice, "join", roomId=42, displayName="Alice")

        code, joined = join(alice, "r1", "Alice")
        assert code == DEFAULT_CODE
        assert names(joined["members"]) == ["Alice"]

        rooms = client.get("/rooms/").json()["rooms"]
        assert rooms == [{"room_id": "r1", "online_users_count": 1}]


def test_missing_fields_default_to_empty(client):
    with client.websocket_connect("/ws") as alice:
        alice.send_json({"type": "join"})
        assert alice.receive_json()["type"] == "code-change"
        joined = alice.receive_json()["data"]
        assert joined["displayName"] == ""

        details = client.get("/rooms/").json()["rooms"]
        assert details == [{"room_id": "", "online_users_count": 1}]


def test_binary_frame_is_ignored_and_session_continues(client):
    with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
        join(alice, "r1", "Alice")
        join(bob, "r1", "Bob")
        alice.receive_json()

        bob.send_bytes(b'{"type": "code-change", "data": {"roomId": "r1", "code": "binary"}}')
        send(bob, "code-change", roomId="r1", code="after")

        assert alice.receive_json() == {"type": "code-change", "data": {"code": "after"}}
        details = client.get("/rooms/r1").json()
        assert details["online_users_count"] == 2
        assert details["code"] == "after"
