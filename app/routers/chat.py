# 채팅 API: WebSocket 실시간 채팅 + 메시지 히스토리
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session

from app.crud.meetup_crud import get_meetup
from app.database import get_db
from app.realtime.chat_relay import ChatRelay
from app.realtime.frames import ErrorFrame
from app.schemas.chat import ChatMessageRecord
from app.services.chat_service import list_chat_messages

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Chat"])


def get_chat_relay(websocket: WebSocket) -> ChatRelay:
    """lifespan에서 만든 릴레이를 주입 (모듈 전역 상태 대신 app.state 사용)."""
    return websocket.app.state.chat_relay


@router.get(
    "/meetups/{meetup_id}/messages",
    response_model=List[ChatMessageRecord],
    response_model_by_alias=True,
)
def get_messages(meetup_id: int, db: Session = Depends(get_db)) -> List[ChatMessageRecord]:
    """모임 채팅 히스토리. 저장 순서 (created_at, id) 오름차순."""
    if get_meetup(db, meetup_id) is None:
        raise HTTPException(status_code=404, detail="Meetup not found")
    return list_chat_messages(db, meetup_id)


@router.websocket("/ws")
async def chat_socket(websocket: WebSocket, relay: ChatRelay = Depends(get_chat_relay)):
    """
    실시간 채팅 WebSocket.
    연결 후 {"type": "join_room", "meetupId": N} 로 방을 구독하고
    {"type": "chat_message", "meetupId": N, "userId": U, "message": "..."} 로 전송.
    한 연결의 프레임은 순서대로 하나씩 처리.
    """
    manager = relay.manager
    conn = await manager.connect(websocket)
    try:
        # 전송 실패로 관리자에서 제거된 연결은 더 이상 처리하지 않음
        while manager.is_connected(conn):
            event = await websocket.receive()
            if event["type"] == "websocket.disconnect":
                break
            text = event.get("text")
            if text is None:
                await manager.send(conn, ErrorFrame(message="Binary frames are not supported"))
                continue
            await relay.handle(conn, text)
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(conn)
