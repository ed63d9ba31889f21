# 실시간 채팅 릴레이: 프레임 처리 + 저장 후 fan-out
#
# chat_message 처리 순서
#   1) 검증 (빈 메시지, 방 구독 여부)
#   2) 저장 (스레드풀, 실패 시 error 프레임만 전송)
#   3) 같은 방의 다른 연결에 new_message
#   4) 발신자에게 message_sent
# 2~4는 방별 락 안에서 실행 → 저장 순서 = 전달 순서

import asyncio
import logging
from typing import Callable, Set

from fastapi.concurrency import run_in_threadpool

from app.crud.chat_crud import ChatError
from app.realtime.connection_manager import Connection, ConnectionManager
from app.realtime.frames import (
    ChatMessageFrame,
    ErrorFrame,
    FrameError,
    JoinRoomFrame,
    MessageSentFrame,
    NewMessageFrame,
    RoomJoinedFrame,
    parse_inbound,
)
from app.schemas.chat import ChatMessageRecord

logger = logging.getLogger(__name__)

MessageSaver = Callable[[int, int, str], ChatMessageRecord]


class ChatRelay:
    def __init__(self, manager: ConnectionManager, save_message: MessageSaver):
        self.manager = manager
        self._save_message = save_message
        # shield된 전송 태스크는 끝날 때까지 여기서 참조 유지
        self._inflight: Set[asyncio.Task] = set()

    async def handle(self, conn: Connection, raw: str) -> None:
        """프레임 1개 처리. 어떤 오류도 연결을 끊지 않고 해당 연결에만 error 프레임."""
        try:
            frame = parse_inbound(raw)
        except FrameError as e:
            await self._reject(conn, e.message)
            return

        try:
            if isinstance(frame, JoinRoomFrame):
                await self._join_room(conn, frame)
            elif isinstance(frame, ChatMessageFrame):
                await self._chat_message(conn, frame)
            else:
                raise TypeError(f"unhandled frame type: {type(frame).__name__}")
        except Exception:
            logger.exception("failed to process %s frame from %s", frame.type, conn.id)
            await self._reject(conn, "Failed to process message")

    async def _join_room(self, conn: Connection, frame: JoinRoomFrame) -> None:
        self.manager.subscribe(conn, frame.meetup_id)
        await self.manager.send(conn, RoomJoinedFrame(meetup_id=frame.meetup_id))

    async def _chat_message(self, conn: Connection, frame: ChatMessageFrame) -> None:
        if not frame.message.strip():
            await self._reject(conn, "Message must not be empty")
            return
        if conn.room is None:
            await self._reject(conn, "Join a room before sending messages")
            return
        if conn.room != frame.meetup_id:
            await self._reject(conn, f"Not subscribed to meetup {frame.meetup_id}")
            return

        # 발신자 연결이 끊겨 이 태스크가 취소돼도 저장·브로드캐스트는 끝까지 진행
        task = asyncio.ensure_future(self._persist_and_fan_out(conn, frame))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        await asyncio.shield(task)

    async def _persist_and_fan_out(self, conn: Connection, frame: ChatMessageFrame) -> None:
        async with self.manager.room_lock(frame.meetup_id):
            try:
                record = await run_in_threadpool(
                    self._save_message, frame.meetup_id, frame.user_id, frame.message
                )
            except ChatError as e:
                logger.info("chat message from user %s rejected: %s", frame.user_id, e.message)
                await self._reject(conn, e.message)
                return

            delivered = await self.manager.fan_out(
                frame.meetup_id, NewMessageFrame(data=record), exclude=conn
            )
            await self.manager.send(conn, MessageSentFrame(data=record))
            logger.debug("message %s delivered to %d peers in meetup %s", record.id, delivered, frame.meetup_id)

    async def _reject(self, conn: Connection, message: str) -> None:
        await self.manager.send(conn, ErrorFrame(message=message))
