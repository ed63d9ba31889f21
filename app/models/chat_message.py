# ChatMessage 모델: 모임 채팅 메시지 (생성 후 불변)

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Text

from app.models.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatMessage(Base):
    """채팅 메시지. created_at은 서버가 마이크로초 단위로 부여, 정렬은 (created_at, id)."""

    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, index=True)
    meetup_id = Column(Integer, ForeignKey("meetups.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (Index("ix_chat_messages_meetup_created", "meetup_id", "created_at", "id"),)
