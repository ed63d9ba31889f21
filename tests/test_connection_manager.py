import pytest

from app.realtime.connection_manager import ConnectionManager
from app.realtime.frames import ErrorFrame, RoomJoinedFrame
from tests.fakes import DummyWebSocket


@pytest.mark.asyncio
async def test_fan_out_reaches_room_and_skips_excluded():
    manager = ConnectionManager()
    sender_ws, peer_ws, other_room_ws, idle_ws = (DummyWebSocket() for _ in range(4))
    sender = await manager.connect(sender_ws)
    peer = await manager.connect(peer_ws)
    other = await manager.connect(other_room_ws)
    await manager.connect(idle_ws)  # join_room 전 연결
    manager.subscribe(sender, 42)
    manager.subscribe(peer, 42)
    manager.subscribe(other, 43)

    delivered = await manager.fan_out(42, ErrorFrame(message="ping"), exclude=sender)

    assert delivered == 1
    assert peer_ws.messages == [{"type": "error", "message": "ping"}]
    assert sender_ws.messages == []
    assert other_room_ws.messages == []
    assert idle_ws.messages == []
    assert sender_ws.accepted is True


@pytest.mark.asyncio
async def test_fan_out_without_exclusion_includes_everyone_in_room():
    manager = ConnectionManager()
    sockets = [DummyWebSocket() for _ in range(3)]
    for ws in sockets:
        manager.subscribe(await manager.connect(ws), 7)

    assert await manager.fan_out(7, RoomJoinedFrame(meetup_id=7)) == 3
    assert all(ws.messages == [{"type": "room_joined", "meetupId": 7}] for ws in sockets)


@pytest.mark.asyncio
async def test_resubscribe_replaces_room():
    manager = ConnectionManager()
    ws = DummyWebSocket()
    conn = await manager.connect(ws)
    manager.subscribe(conn, 1)
    manager.subscribe(conn, 2)

    assert manager.connections_in(1) == []
    assert manager.connections_in(2) == [conn]


@pytest.mark.asyncio
async def test_stalled_peer_is_dropped_without_blocking_others():
    manager = ConnectionManager(send_timeout=0.05)
    slow_ws, fast_ws = DummyWebSocket(delay=1.0), DummyWebSocket()
    slow = await manager.connect(slow_ws)
    fast = await manager.connect(fast_ws)
    manager.subscribe(slow, 5)
    manager.subscribe(fast, 5)

    delivered = await manager.fan_out(5, ErrorFrame(message="hello"))

    assert delivered == 1
    assert fast_ws.messages == [{"type": "error", "message": "hello"}]
    assert not manager.is_connected(slow)
    assert manager.is_connected(fast)
    assert slow_ws.closed_with is not None


@pytest.mark.asyncio
async def test_failing_peer_is_dropped():
    manager = ConnectionManager()
    broken = await manager.connect(DummyWebSocket(fail=True))
    manager.subscribe(broken, 9)

    assert await manager.send(broken, ErrorFrame(message="x")) is False
    assert len(manager) == 0


@pytest.mark.asyncio
async def test_disconnect_removes_immediately_and_close_all():
    manager = ConnectionManager()
    a_ws, b_ws = DummyWebSocket(), DummyWebSocket()
    a = await manager.connect(a_ws)
    await manager.connect(b_ws)

    manager.disconnect(a)
    assert not manager.is_connected(a)
    assert await manager.send(a, ErrorFrame(message="late")) is False
    assert a_ws.messages == []

    await manager.close_all()
    assert len(manager) == 0
    assert b_ws.closed_with == 1001
