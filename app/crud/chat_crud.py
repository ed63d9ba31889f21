# 채팅 메시지 저장/조회 CRUD
from typing import List, Tuple

from sqlalchemy.orm import Session

from app.models.chat_message import ChatMessage
from app.models.meetup import Meetup
from app.models.user import User


class ChatError(Exception):
    """채팅 전송 실패 공통 부모. 릴레이에서 error 프레임으로 변환."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ChatValidationError(ChatError):
    pass


class ChatTargetNotFound(ChatError):
    """모임 또는 작성자가 없음."""


class PersistenceFailure(ChatError):
    """저장소 오류. 재시도하지 않고 발신자에게만 알림."""


def create_chat_message(db: Session, meetup_id: int, user_id: int, text: str) -> Tuple[ChatMessage, User]:
    """
    메시지 저장 후 (ChatMessage, 작성자 User) 반환.

    - 공백만 있는 메시지는 ChatValidationError.
    - 모임/사용자가 없으면 ChatTargetNotFound.
    - flush로 id만 확보. ⚠️ commit/rollback은 호출자(서비스)가 제어.
    """
    if not text or not text.strip():
        raise ChatValidationError("Message must not be empty")

    if db.query(Meetup.id).filter(Meetup.id == meetup_id).first() is None:
        raise ChatTargetNotFound("Meetup not found")
    author = db.query(User).filter(User.id == user_id).first()
    if author is None:
        raise ChatTargetNotFound("User not found")

    message = ChatMessage(meetup_id=meetup_id, user_id=user_id, message=text)
    db.add(message)
    db.flush()
    return message, author


def get_chat_messages(db: Session, meetup_id: int) -> List[Tuple[ChatMessage, User]]:
    """모임의 메시지를 (created_at, id) 오름차순으로 작성자와 함께 반환."""
    return (
        db.query(ChatMessage, User)
        .join(User, ChatMessage.user_id == User.id)
        .filter(ChatMessage.meetup_id == meetup_id)
        .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
        .all()
    )
