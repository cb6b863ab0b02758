from datetime import datetime, timedelta, timezone

import pytest

import talkback.core.message as message_core
from talkback.core.errors import EmptyMessageError, MessageNotFoundError
from talkback.core.message import fetch_conversation, get_message, store_message, update_receipt

T0 = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


def naive(value):
    # sqlite hands timestamps back without tzinfo
    return value.replace(tzinfo=None)


def test_store_message_starts_without_receipts(db):
    record = store_message(db, "alice", "bob", text="hi")

    assert record.id is not None
    assert record.text == "hi"
    assert record.created_at is not None
    assert record.delivered_at is None
    assert record.received_at is None
    assert record.seen_at is None


def test_store_message_with_location_only(db):
    record = store_message(db, "alice", "bob", location={"latitude": 47.37, "longitude": 8.54})

    assert record.text is None
    assert record.location.latitude == 47.37
    assert record.location.address == ""


@pytest.mark.parametrize("text", [None, "", "   "])
def test_store_message_requires_payload(db, text):
    with pytest.raises(EmptyMessageError):
        store_message(db, "alice", "bob", text=text)


def test_fetch_conversation_returns_both_directions_in_order(db):
    first = store_message(db, "alice", "bob", text="one")
    second = store_message(db, "bob", "alice", text="two")
    store_message(db, "alice", "carol", text="elsewhere")

    history = fetch_conversation(db, "alice", "bob")

    assert [m.id for m in history] == [first.id, second.id]
    assert fetch_conversation(db, "bob", "alice") == history


def test_update_receipt_delivered_is_idempotent(db):
    record = store_message(db, "alice", "bob", text="hi")

    first = update_receipt(db, record.id, "delivered", now=T0)
    second = update_receipt(db, record.id, "delivered", now=T0 + timedelta(minutes=5))

    assert first.changed
    assert not second.changed
    assert second.record.delivered_at == first.record.delivered_at
    assert naive(second.record.delivered_at) == naive(T0)


def test_update_receipt_seen_backfills_delivered(db):
    record = store_message(db, "alice", "bob", text="hi")

    transition = update_receipt(db, record.id, "seen", now=T0)

    stored = get_message(db, record.id)
    assert stored.delivered_at is not None
    assert stored.delivered_at == stored.seen_at
    assert transition.record == stored


def test_update_receipt_keeps_delivered_before_seen(db):
    record = store_message(db, "alice", "bob", text="hi")

    update_receipt(db, record.id, "delivered", now=T0)
    update_receipt(db, record.id, "seen", now=T0 + timedelta(seconds=10))

    stored = get_message(db, record.id)
    assert stored.delivered_at <= stored.seen_at
    assert naive(stored.delivered_at) == naive(T0)


def test_update_receipt_unknown_message(db):
    with pytest.raises(MessageNotFoundError):
        update_receipt(db, 9999, "seen")


def test_update_receipt_never_overwrites_a_concurrent_write(db, monkeypatch):
    record = store_message(db, "alice", "bob", text="hi")
    stale = get_message(db, record.id)
    update_receipt(db, record.id, "delivered", now=T0)

    # First read returns the pre-delivery snapshot, as if another worker
    # committed between our read and our write
    reads = []
    real_get_message = message_core.get_message

    def racing_get_message(session, message_id):
        reads.append(message_id)
        if len(reads) == 1:
            return stale
        return real_get_message(session, message_id)

    monkeypatch.setattr(message_core, "get_message", racing_get_message)

    transition = update_receipt(db, record.id, "delivered", now=T0 + timedelta(hours=1))

    assert not transition.changed
    assert len(reads) >= 2
    assert naive(real_get_message(db, record.id).delivered_at) == naive(T0)


def test_seen_racing_a_later_delivered_keeps_receipts_ordered(db, monkeypatch):
    record = store_message(db, "alice", "bob", text="hi")
    stale = get_message(db, record.id)
    # delivered commits after seen computed its timestamp but before it writes
    update_receipt(db, record.id, "delivered", now=T0 + timedelta(seconds=5))

    reads = []
    real_get_message = message_core.get_message

    def racing_get_message(session, message_id):
        reads.append(message_id)
        if len(reads) == 1:
            return stale
        return real_get_message(session, message_id)

    monkeypatch.setattr(message_core, "get_message", racing_get_message)

    transition = update_receipt(db, record.id, "seen", now=T0)

    stored = real_get_message(db, record.id)
    assert transition.changed
    assert stored.seen_at is not None
    assert naive(stored.delivered_at) == naive(T0 + timedelta(seconds=5))
    assert naive(stored.delivered_at) <= naive(stored.seen_at)
