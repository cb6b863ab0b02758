from contextlib import ExitStack
from http import HTTPStatus

import pytest
from fastapi import WebSocketDisconnect


def next_event(ws, name):
    """Skip frames until one named *name* arrives; return its data."""
    while True:
        frame = ws.receive_json()
        if frame["event"] == name:
            return frame["data"]


def wait_for_presence(ws, expected):
    while next_event(ws, "getOnlineUsers") != expected:
        pass


def test_connect_without_user_id_is_refused(client):
    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect("/ws"):
            pass
    assert excinfo.value.code == 1008


def test_presence_follows_connects_and_disconnects(client):
    with client.websocket_connect("/ws?userId=alice") as alice:
        assert next_event(alice, "getOnlineUsers") == ["alice"]

        with client.websocket_connect("/ws?userId=bob") as bob:
            wait_for_presence(bob, ["alice", "bob"])
            wait_for_presence(alice, ["alice", "bob"])

        wait_for_presence(alice, ["alice"])
        assert client.app.state.hub.registry.online_users() == ["alice"]


def test_message_and_seen_receipt_end_to_end(client, headers):
    with client.websocket_connect("/ws?userId=alice") as alice, \
            client.websocket_connect("/ws?userId=bob") as bob:
        wait_for_presence(alice, ["alice", "bob"])

        sent = client.post("/messages/send/bob", json={"text": "hi"}, headers=headers("alice"))
        assert sent.status_code == HTTPStatus.CREATED

        pushed = next_event(bob, "newMessage")
        assert pushed == sent.json()
        assert pushed["text"] == "hi"
        assert pushed["deliveredAt"] is None
        assert pushed["seenAt"] is None

        bob.send_json({"event": "updateReceipt", "data": {"messageId": pushed["id"], "status": "seen"}})

        receipt = next_event(alice, "receiptUpdated")
        assert receipt["id"] == pushed["id"]
        assert receipt["deliveredAt"] is not None
        assert receipt["deliveredAt"] == receipt["seenAt"]


def test_send_to_offline_receiver_only_persists(client, headers):
    with client.websocket_connect("/ws?userId=alice") as alice:
        next_event(alice, "getOnlineUsers")

        sent = client.post("/messages/send/bob", json={"text": "are you there?"}, headers=headers("alice"))
        assert sent.status_code == HTTPStatus.CREATED
        assert client.app.state.hub.registry.lookup("bob") is None

    history = client.get("/messages/alice", headers=headers("bob")).json()
    assert len(history) == 1
    assert history[0]["text"] == "are you there?"
    assert history[0]["deliveredAt"] is None
    assert history[0]["receivedAt"] is None
    assert history[0]["seenAt"] is None


def test_invalid_receipt_frames_are_dropped(client, headers):
    message = client.post("/messages/send/bob", json={"text": "hi"}, headers=headers("alice")).json()

    with client.websocket_connect("/ws?userId=alice") as alice, \
            client.websocket_connect("/ws?userId=bob") as bob:
        wait_for_presence(alice, ["alice", "bob"])

        bob.send_text("not json")
        bob.send_json({"event": "typing", "data": {}})
        bob.send_json({"event": "updateReceipt", "data": {"messageId": message["id"], "status": "bogus"}})
        # "received" is only reachable over HTTP
        bob.send_json({"event": "updateReceipt", "data": {"messageId": message["id"], "status": "received"}})
        bob.send_json({"event": "updateReceipt", "data": {"messageId": message["id"], "status": "delivered"}})

        receipt = next_event(alice, "receiptUpdated")
        assert receipt["deliveredAt"] is not None
        assert receipt["receivedAt"] is None
        assert receipt["seenAt"] is None


def test_receipt_for_unknown_message_is_reported_to_caller(client):
    with client.websocket_connect("/ws?userId=bob") as bob:
        bob.send_json({"event": "updateReceipt", "data": {"messageId": 31337, "status": "seen"}})

        error = next_event(bob, "receiptError")
        assert error["messageId"] == 31337


def test_stale_disconnect_keeps_newer_connection(client, headers):
    registry = client.app.state.hub.registry

    with ExitStack() as stack:
        first = stack.enter_context(client.websocket_connect("/ws?userId=alice"))
        next_event(first, "getOnlineUsers")
        first_connection = registry.lookup("alice")

        with client.websocket_connect("/ws?userId=alice") as second:
            next_event(second, "getOnlineUsers")
            second_connection = registry.lookup("alice")
            assert second_connection is not first_connection

            first.close()
            sent = client.post("/messages/send/alice", json={"text": "ping"}, headers=headers("bob"))

            assert next_event(second, "newMessage") == sent.json()
            assert registry.lookup("alice") is second_connection
            assert registry.online_users() == ["alice"]
