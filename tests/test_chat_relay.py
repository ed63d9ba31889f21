import asyncio
import gc
import json
import threading
from datetime import datetime, timezone

import pytest

from app.crud.chat_crud import ChatTargetNotFound, PersistenceFailure
from app.realtime.chat_relay import ChatRelay
from app.realtime.connection_manager import ConnectionManager
from app.schemas.chat import ChatAuthor, ChatMessageRecord
from tests.fakes import DummyWebSocket


class FakeStore:
    """저장 함수 대역. 호출 순서대로 id를 부여."""

    def __init__(self, error=None):
        self.saved = []
        self.error = error

    def __call__(self, meetup_id, user_id, text):
        if self.error is not None:
            raise self.error
        record = ChatMessageRecord(
            id=len(self.saved) + 1,
            meetup_id=meetup_id,
            user_id=user_id,
            message=text,
            created_at=datetime(2026, 10, 1, 19, 0, len(self.saved), tzinfo=timezone.utc),
            user=ChatAuthor(id=user_id, username=f"user{user_id}"),
        )
        self.saved.append(record)
        return record


def _frame(**payload):
    return json.dumps(payload)


async def _connect(relay, room=None):
    ws = DummyWebSocket()
    conn = await relay.manager.connect(ws)
    if room is not None:
        await relay.handle(conn, _frame(type="join_room", meetupId=room))
        assert ws.messages.pop(0) == {"type": "room_joined", "meetupId": room}
    return conn, ws


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def relay(store):
    return ChatRelay(ConnectionManager(), store)


@pytest.mark.asyncio
async def test_chat_message_is_acked_to_sender_and_broadcast_to_room(relay, store):
    sender, sender_ws = await _connect(relay, room=42)
    peer, peer_ws = await _connect(relay, room=42)
    outsider, outsider_ws = await _connect(relay, room=43)

    await relay.handle(sender, _frame(type="chat_message", meetupId=42, userId=7, message="hi"))

    assert len(store.saved) == 1
    assert [m["type"] for m in sender_ws.messages] == ["message_sent"]
    assert [m["type"] for m in peer_ws.messages] == ["new_message"]
    assert sender_ws.messages[0]["data"] == peer_ws.messages[0]["data"]
    data = sender_ws.messages[0]["data"]
    assert data["id"] == 1
    assert data["message"] == "hi"
    assert data["meetupId"] == 42
    assert data["userId"] == 7
    assert outsider_ws.messages == []


@pytest.mark.asyncio
async def test_empty_message_is_rejected_and_not_saved(relay, store):
    sender, sender_ws = await _connect(relay, room=1)
    peer, peer_ws = await _connect(relay, room=1)

    await relay.handle(sender, _frame(type="chat_message", meetupId=1, userId=1, message="   "))

    assert store.saved == []
    assert sender_ws.messages == [{"type": "error", "message": "Message must not be empty"}]
    assert peer_ws.messages == []


@pytest.mark.asyncio
async def test_chat_before_join_room_is_rejected(relay, store):
    conn, ws = await _connect(relay)

    await relay.handle(conn, _frame(type="chat_message", meetupId=1, userId=1, message="hello"))

    assert store.saved == []
    assert ws.messages[0]["type"] == "error"


@pytest.mark.asyncio
async def test_chat_to_other_room_is_rejected(relay, store):
    conn, ws = await _connect(relay, room=1)

    await relay.handle(conn, _frame(type="chat_message", meetupId=2, userId=1, message="wrong room"))

    assert store.saved == []
    assert ws.messages == [{"type": "error", "message": "Not subscribed to meetup 2"}]


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "[1, 2, 3]",
        _frame(type="shout", meetupId=1),
        _frame(type="chat_message", meetupId="abc", userId=1, message="x"),
        _frame(type="join_room"),
    ],
)
@pytest.mark.asyncio
async def test_malformed_frames_get_error_and_connection_survives(relay, store, raw):
    conn, ws = await _connect(relay, room=3)

    await relay.handle(conn, raw)
    assert ws.messages[-1]["type"] == "error"
    assert relay.manager.is_connected(conn)

    await relay.handle(conn, _frame(type="chat_message", meetupId=3, userId=1, message="still here"))
    assert ws.messages[-1]["type"] == "message_sent"


@pytest.mark.asyncio
async def test_persistence_failure_reports_error_and_skips_broadcast():
    relay = ChatRelay(ConnectionManager(), FakeStore(error=PersistenceFailure("Failed to save message")))
    sender, sender_ws = await _connect(relay, room=8)
    peer, peer_ws = await _connect(relay, room=8)

    await relay.handle(sender, _frame(type="chat_message", meetupId=8, userId=1, message="lost"))

    assert sender_ws.messages == [{"type": "error", "message": "Failed to save message"}]
    assert peer_ws.messages == []
    assert relay.manager.is_connected(sender)


@pytest.mark.asyncio
async def test_unknown_author_reports_error():
    relay = ChatRelay(ConnectionManager(), FakeStore(error=ChatTargetNotFound("User not found")))
    sender, sender_ws = await _connect(relay, room=8)

    await relay.handle(sender, _frame(type="chat_message", meetupId=8, userId=99, message="who am i"))

    assert sender_ws.messages == [{"type": "error", "message": "User not found"}]


@pytest.mark.asyncio
async def test_unexpected_store_error_does_not_kill_connection():
    relay = ChatRelay(ConnectionManager(), FakeStore(error=KeyError("boom")))
    sender, sender_ws = await _connect(relay, room=8)

    await relay.handle(sender, _frame(type="chat_message", meetupId=8, userId=1, message="x"))

    assert sender_ws.messages == [{"type": "error", "message": "Failed to process message"}]
    assert relay.manager.is_connected(sender)


@pytest.mark.asyncio
async def test_peers_see_messages_in_save_order(relay, store):
    a, a_ws = await _connect(relay, room=5)
    b, b_ws = await _connect(relay, room=5)
    watcher, watcher_ws = await _connect(relay, room=5)

    await asyncio.gather(
        relay.handle(a, _frame(type="chat_message", meetupId=5, userId=1, message="a1")),
        relay.handle(b, _frame(type="chat_message", meetupId=5, userId=2, message="b1")),
    )
    await relay.handle(a, _frame(type="chat_message", meetupId=5, userId=1, message="a2"))

    seen = [m["data"]["id"] for m in watcher_ws.messages]
    assert seen == [r.id for r in store.saved] == [1, 2, 3]
    assert sum(1 for m in a_ws.messages if m["type"] == "message_sent") == 2
    assert sum(1 for m in b_ws.messages if m["type"] == "message_sent") == 1


@pytest.mark.asyncio
async def test_sender_disconnect_after_send_still_broadcasts(store):
    relay = ChatRelay(ConnectionManager(), store)
    sender, sender_ws = await _connect(relay, room=6)
    peer, peer_ws = await _connect(relay, room=6)

    original = relay._save_message

    def save_then_disconnect(meetup_id, user_id, text):
        record = original(meetup_id, user_id, text)
        relay.manager.disconnect(sender)
        return record

    relay._save_message = save_then_disconnect

    await relay.handle(sender, _frame(type="chat_message", meetupId=6, userId=1, message="bye"))

    assert [m["type"] for m in peer_ws.messages] == ["new_message"]
    assert sender_ws.messages == []


@pytest.mark.asyncio
async def test_room_locks_are_released_for_unknown_rooms():
    def reject(meetup_id, user_id, text):
        raise ChatTargetNotFound("Meetup not found")

    relay = ChatRelay(ConnectionManager(), reject)
    conn, ws = await _connect(relay)

    for room in range(1000, 1500):
        await relay.handle(conn, _frame(type="join_room", meetupId=room))
        await relay.handle(conn, _frame(type="chat_message", meetupId=room, userId=1, message="anyone?"))

    gc.collect()
    assert len(relay.manager._room_locks) == 0
    assert ws.messages[-1] == {"type": "error", "message": "Meetup not found"}


@pytest.mark.asyncio
async def test_cancelled_sender_task_still_delivers_saved_message(store):
    started, release = threading.Event(), threading.Event()

    def slow_save(meetup_id, user_id, text):
        started.set()
        release.wait(timeout=5)
        return store(meetup_id, user_id, text)

    relay = ChatRelay(ConnectionManager(), slow_save)
    sender, sender_ws = await _connect(relay, room=11)
    peer, peer_ws = await _connect(relay, room=11)

    task = asyncio.create_task(
        relay.handle(sender, _frame(type="chat_message", meetupId=11, userId=1, message="still sent"))
    )
    while not started.is_set():
        await asyncio.sleep(0.01)
    task.cancel()
    release.set()
    with pytest.raises(asyncio.CancelledError):
        await task

    for _ in range(200):
        if peer_ws.messages:
            break
        await asyncio.sleep(0.01)

    assert [m["type"] for m in peer_ws.messages] == ["new_message"]
    assert peer_ws.messages[0]["data"]["message"] == "still sent"
    assert len(store.saved) == 1
