# 채팅 저장 서비스: 트랜잭션 소유 + 저장소 오류를 PersistenceFailure로 변환

import logging
from typing import Callable, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.crud import chat_crud
from app.crud.chat_crud import ChatError, PersistenceFailure
from app.schemas.chat import ChatMessageRecord

logger = logging.getLogger(__name__)


def save_chat_message(db: Session, meetup_id: int, user_id: int, text: str) -> ChatMessageRecord:
    """저장·commit이 끝난 canonical 레코드 반환. 실패 시 rollback 후 ChatError 계열 예외."""
    try:
        message, author = chat_crud.create_chat_message(db, meetup_id, user_id, text)
        db.commit()
    except ChatError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("failed to persist chat message for meetup %s", meetup_id)
        raise PersistenceFailure("Failed to save message") from e
    return ChatMessageRecord.from_row(message, author)


def make_message_saver(session_factory: Callable[[], Session]) -> Callable[[int, int, str], ChatMessageRecord]:
    """WebSocket 릴레이용: 호출마다 새 세션을 열고 닫는 동기 저장 함수 생성 (스레드풀에서 실행)."""

    def _save(meetup_id: int, user_id: int, text: str) -> ChatMessageRecord:
        try:
            db = session_factory()
        except SQLAlchemyError as e:
            logger.exception("could not open database session")
            raise PersistenceFailure("Storage unavailable") from e
        try:
            return save_chat_message(db, meetup_id, user_id, text)
        finally:
            db.close()

    return _save


def list_chat_messages(db: Session, meetup_id: int) -> List[ChatMessageRecord]:
    return [ChatMessageRecord.from_row(m, u) for m, u in chat_crud.get_chat_messages(db, meetup_id)]
