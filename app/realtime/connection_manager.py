# WebSocket 연결 관리자: 프로세스 단위 연결 집합 + 방(모임) 단위 fan-out
#
# - 앱 기동 시(lifespan) 1개 생성, app.state에 보관, 종료 시 close_all()
# - 연결 집합은 이벤트 루프에서만 변경, 순회는 항상 스냅샷(list)으로 수행
# - 피어 1개 전송은 CHAT_SEND_TIMEOUT_SEC로 제한. 느리거나 끊긴 피어는 집합에서 제거

import asyncio
import logging
import os
import uuid
import weakref
from typing import Any, Dict, List, Optional

from app.realtime.frames import OutboundFrame, dump_frame

logger = logging.getLogger(__name__)

CHAT_SEND_TIMEOUT_SEC = float(os.getenv("CHAT_SEND_TIMEOUT_SEC", "5"))
CLOSE_TIMEOUT_SEC = 1.0


class Connection:
    """클라이언트 1개. 한 번에 하나의 방만 구독 (join_room 재호출 시 교체)."""

    def __init__(self, websocket: Any):
        self.id: str = uuid.uuid4().hex
        self.websocket = websocket
        self.room: Optional[int] = None
        # 같은 소켓에 ack와 다른 방 fan-out이 동시에 쓰지 않도록 직렬화
        self.send_lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"<Connection {self.id[:8]} room={self.room}>"


class ConnectionManager:
    def __init__(self, send_timeout: float = CHAT_SEND_TIMEOUT_SEC):
        self.send_timeout = send_timeout
        self._connections: Dict[str, Connection] = {}
        # 방 락은 보유/대기 중인 태스크가 있는 동안만 유지
        self._room_locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()

    # --- lifecycle ---------------------------------------------------------

    async def connect(self, websocket: Any) -> Connection:
        await websocket.accept()
        conn = Connection(websocket)
        self._connections[conn.id] = conn
        logger.info("websocket connected: %s (total=%d)", conn.id, len(self._connections))
        return conn

    def disconnect(self, conn: Connection) -> None:
        """즉시 집합에서 제거. 이미 진행 중인 저장/브로드캐스트는 계속된다."""
        if self._connections.pop(conn.id, None) is not None:
            logger.info("websocket disconnected: %s (total=%d)", conn.id, len(self._connections))

    def is_connected(self, conn: Connection) -> bool:
        return conn.id in self._connections

    async def close_all(self, code: int = 1001) -> None:
        """앱 종료 시 호출."""
        for conn in list(self._connections.values()):
            await self._discard(conn, code=code)

    # --- rooms -------------------------------------------------------------

    def subscribe(self, conn: Connection, meetup_id: int) -> None:
        if conn.room is not None and conn.room != meetup_id:
            logger.debug("connection %s moves from room %s to %s", conn.id, conn.room, meetup_id)
        conn.room = meetup_id

    def connections_in(self, meetup_id: int, exclude: Optional[Connection] = None) -> List[Connection]:
        return [
            c
            for c in list(self._connections.values())
            if c.room == meetup_id and (exclude is None or c.id != exclude.id)
        ]

    def room_lock(self, meetup_id: int) -> asyncio.Lock:
        """방별 저장→fan-out 순서 보장용 락."""
        lock = self._room_locks.get(meetup_id)
        if lock is None:
            lock = self._room_locks[meetup_id] = asyncio.Lock()
        return lock

    def __len__(self) -> int:
        return len(self._connections)

    # --- delivery ----------------------------------------------------------

    async def send(self, conn: Connection, frame: OutboundFrame) -> bool:
        """best-effort 전송. 실패/시간 초과 시 연결을 제거하고 False."""
        if not self.is_connected(conn):
            return False
        text = dump_frame(frame)
        try:
            async with conn.send_lock:
                await asyncio.wait_for(conn.websocket.send_text(text), timeout=self.send_timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning("send to %s timed out after %.1fs, dropping connection", conn.id, self.send_timeout)
        except Exception as e:
            logger.warning("send to %s failed (%s), dropping connection", conn.id, e)
        await self._discard(conn)
        return False

    async def fan_out(self, meetup_id: int, frame: OutboundFrame, exclude: Optional[Connection] = None) -> int:
        """meetup_id 방의 연결들(exclude 제외)에 동시에 전송. 성공한 수 반환."""
        targets = self.connections_in(meetup_id, exclude=exclude)
        if not targets:
            return 0
        results = await asyncio.gather(*(self.send(c, frame) for c in targets))
        return sum(1 for ok in results if ok)

    async def _discard(self, conn: Connection, code: int = 1011) -> None:
        self.disconnect(conn)
        try:
            await asyncio.wait_for(conn.websocket.close(code=code), timeout=CLOSE_TIMEOUT_SEC)
        except Exception as e:
            # 이미 닫힌 소켓이면 close 자체가 실패할 수 있음
            logger.debug("close of %s failed: %r", conn.id, e)
