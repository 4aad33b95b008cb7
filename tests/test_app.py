import json
import time

import pytest
from fastapi.testclient import TestClient

from app import build_relay, create_app
from registry import RoomRegistry
from signaling import SignalingRelay


@pytest.fixture
def client():
    app = create_app(relay=SignalingRelay(RoomRegistry()), ws_path="/signal")
    with TestClient(app) as client:
        yield client


def wait_for_members(client, room_id, count, timeout=2.0):
    """Poll the rooms API until the room has ``count`` members."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        response = client.get(f"/rooms/{room_id}")
        if response.status_code == 200 and response.json()["member_count"] == count:
            return response.json()
        time.sleep(0.01)
    raise AssertionError(f"Room {room_id} never reached {count} members")


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_unknown_room_is_404(client):
    response = client.get("/rooms/nope")

    assert response.status_code == 404
    assert response.json()["detail"] == "Room not found"


def test_list_rooms_starts_empty(client):
    assert client.get("/rooms/").json() == []


def test_join_offer_and_chat_round_trip(client):
    with client.websocket_connect("/signal") as alice:
        alice.send_text(json.dumps({"type": "join", "roomId": "r1"}))
        wait_for_members(client, "r1", 1)

        with client.websocket_connect("/signal") as bob:
            bob.send_text(json.dumps({"type": "join", "roomId": "r1"}))
            assert alice.receive_text() == '{"type":"peer-joined","roomId":"r1","data":null}'

            offer = '{"type": "offer", "roomId": "r1", "sdp": "v=0 X"}'
            bob.send_text(offer)
            assert alice.receive_text() == offer

            # A malformed frame is dropped without closing the socket
            alice.send_text("definitely not json")
            chat = '{"type":"chat","roomId":"r1","text":"still here"}'
            alice.send_text(chat)
            assert bob.receive_text() == chat

            details = wait_for_members(client, "r1", 2)
            assert len(details["member_ids"]) == 2

        wait_for_members(client, "r1", 1)


def test_disconnect_removes_connection_from_all_rooms(client):
    with client.websocket_connect("/signal") as alice:
        alice.send_text(json.dumps({"type": "join", "roomId": "r1"}))
        alice.send_text(json.dumps({"type": "chat", "roomId": "r2", "text": "hi"}))
        wait_for_members(client, "r1", 1)
        wait_for_members(client, "r2", 1)

    wait_for_members(client, "r1", 0)
    wait_for_members(client, "r2", 0)

    rooms = sorted(client.get("/rooms/").json(), key=lambda room: room["room_id"])
    assert rooms == [
        {"room_id": "r1", "member_count": 0},
        {"room_id": "r2", "member_count": 0},
    ]


def test_message_without_room_id_creates_no_room(client):
    with client.websocket_connect("/signal") as alice:
        alice.send_text(json.dumps({"type": "join"}))
        alice.send_text(json.dumps({"type": "join", "roomId": "r1"}))
        wait_for_members(client, "r1", 1)

    assert [room["room_id"] for room in client.get("/rooms/").json()] == ["r1"]


@pytest.mark.parametrize("bad_frame", [
    "[" * 100000 + "]" * 100000,
    '{"type":"join","roomId":"\\ud800"}',
])
def test_unusable_frames_keep_the_socket_open(client, bad_frame):
    with client.websocket_connect("/signal") as alice, client.websocket_connect("/signal") as bob:
        bob.send_text(json.dumps({"type": "join", "roomId": "r1"}))
        wait_for_members(client, "r1", 1)

        alice.send_text(bad_frame)
        chat = '{"type":"chat","roomId":"r1","text":"after the bad frame"}'
        alice.send_text(chat)

        assert bob.receive_text() == chat
        assert [room["room_id"] for room in client.get("/rooms/").json()] == ["r1"]


class FlakyRelay(SignalingRelay):
    """Fails on the first frame it sees, then behaves normally."""

    def __init__(self):
        super().__init__(RoomRegistry())
        self.failed = False

    async def handle_message(self, sender, raw):
        if not self.failed:
            self.failed = True
            raise RuntimeError("unexpected failure")
        await super().handle_message(sender, raw)


def test_unexpected_error_is_scoped_to_one_message():
    relay = FlakyRelay()
    app = create_app(relay=relay, ws_path="/signal")
    with TestClient(app) as client:
        with client.websocket_connect("/signal") as alice:
            alice.send_text(json.dumps({"type": "join", "roomId": "lost"}))
            alice.send_text(json.dumps({"type": "join", "roomId": "r1"}))
            wait_for_members(client, "r1", 1)

        assert relay.failed
        assert client.get("/rooms/lost").status_code == 404


def test_default_relay_bounds_each_send():
    broadcaster = build_relay().broadcaster

    assert broadcaster.send_timeout is not None
    assert broadcaster.send_timeout > 0
