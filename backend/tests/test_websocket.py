from watchparty.main import create_app
from watchparty.utils.rate_limit import FrameRateLimiter
from fastapi.testclient import TestClient


def create_room(ws, room_name="Movie Night", username="Alice", **extra):
    ws.send_json({"type": "create-room", "roomName": room_name, "username": username, **extra})
    reply = ws.receive_json()
    assert reply["type"] == "room-created"
    return reply


def join_room(ws, room_id, username="Bob"):
    ws.send_json({"type": "join-room", "roomId": room_id, "username": username})
    joined = ws.receive_json()
    history = ws.receive_json()
    return joined, history


def assert_nothing_pending(ws):
    """A pong coming back first proves no other frame was queued."""
    ws.send_json({"type": "ping"})
    assert ws.receive_json() == {"type": "pong"}


def test_watch_party_session(client):
    with client.websocket_connect("/ws") as bob:
        with client.websocket_connect("/ws") as alice:
            created = create_room(alice)
            room_id = created["room"]["id"]
            alice_id = created["user"]["id"]
            assert created["user"]["isHost"] is True
            assert created["room"]["currentTime"] == 0
            assert client.get(f"/api/rooms/{room_id}").json()["userCount"] == 1

            joined, history = join_room(bob, room_id)
            assert joined["type"] == "room-joined"
            assert len(joined["room"]["users"]) == 2
            assert joined["user"]["isHost"] is False
            bob_id = joined["user"]["id"]
            assert history == {"type": "chat-history", "messages": []}

            user_joined = alice.receive_json()
            assert user_joined["type"] == "user-joined"
            assert user_joined["user"]["id"] == bob_id

            alice.send_json({"type": "video-sync", "roomId": room_id, "currentTime": 42.5, "isPlaying": True})
            assert bob.receive_json() == {
                "type": "video-state-changed",
                "currentTime": 42.5,
                "isPlaying": True,
                "userId": alice_id,
            }
            assert_nothing_pending(alice)

            bob.send_json({"type": "video-sync", "roomId": room_id, "currentTime": 3, "isPlaying": False})
            assert_nothing_pending(bob)
            assert_nothing_pending(alice)
            detail = client.get(f"/api/rooms/{room_id}").json()
            assert (detail["currentTime"], detail["isPlaying"]) == (42.5, True)

            alice.close()
            left = bob.receive_json()

        assert left == {"type": "user-left", "userId": alice_id, "username": "Alice", "newHostId": bob_id}
        detail = client.get(f"/api/rooms/{room_id}").json()
        assert detail["userCount"] == 1
        assert detail["hostId"] == bob_id
        assert detail["users"][0]["isHost"] is True

        bob.send_json({"type": "chat-message", "roomId": room_id, "message": "hi"})
        message = bob.receive_json()
        assert message["type"] == "chat-message"
        assert message["message"] == "hi"
        assert message["userId"] == bob_id
        assert message["username"] == "Bob"
        assert message["roomId"] == room_id
        assert message["id"]
        assert message["timestamp"]

    assert client.get(f"/api/rooms/{room_id}").status_code == 404


def test_set_video_reaches_sender_too(client):
    with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
        room_id = create_room(alice, videoUrl="https://example.com/a.mp4")["room"]["id"]
        join_room(bob, room_id)
        alice.receive_json()  # user-joined

        alice.send_json({"type": "set-video", "roomId": room_id, "videoUrl": "https://example.com/b.mp4"})

        for ws in (alice, bob):
            changed = ws.receive_json()
            assert changed["type"] == "video-changed"
            assert changed["videoUrl"] == "https://example.com/b.mp4"
            assert changed["currentTime"] == 0
            assert changed["isPlaying"] is False


def test_chat_history_backfills_new_member(client):
    with client.websocket_connect("/ws") as alice:
        room_id = create_room(alice)["room"]["id"]
        for text in ("one", "two"):
            alice.send_json({"type": "chat-message", "roomId": room_id, "message": text})
            alice.receive_json()

        with client.websocket_connect("/ws") as bob:
            _, history = join_room(bob, room_id)

    assert [m["message"] for m in history["messages"]] == ["one", "two"]
    assert all(m["username"] == "Alice" for m in history["messages"])


def test_join_unknown_room(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "join-room", "roomId": "nope", "username": "Bob"})
        reply = ws.receive_json()

    assert reply["type"] == "error"
    assert reply["message"] == "Room not found"


def test_malformed_frames(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("not json")
        assert ws.receive_json()["type"] == "error"

        ws.send_json(["a", "list"])
        assert ws.receive_json()["type"] == "error"

        ws.send_json({"type": "create-room", "username": "Alice"})
        reply = ws.receive_json()
        assert reply["type"] == "error"
        assert reply["error"] == "WS_002"

        assert_nothing_pending(ws)


def test_rate_limited_frames_are_not_processed():
    app = create_app(rate_limiter=FrameRateLimiter(enabled=True))
    app.state.rate_limiter.chat.burst_limit = 1

    with TestClient(app) as client, client.websocket_connect("/ws") as ws:
        room_id = create_room(ws)["room"]["id"]
        ws.send_json({"type": "chat-message", "roomId": room_id, "message": "first"})
        assert ws.receive_json()["type"] == "chat-message"

        ws.send_json({"type": "chat-message", "roomId": room_id, "message": "second"})
        reply = ws.receive_json()
        assert reply["type"] == "rate-limit-exceeded"
        assert [m.message for m in app.state.chat.recent_messages(room_id)] == ["first"]
