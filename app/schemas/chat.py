# 채팅 메시지 응답 스키마 (HTTP 히스토리와 WebSocket 프레임이 같은 레코드를 사용)

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_serializer
from pydantic.alias_generators import to_camel

from app.models.chat_message import ChatMessage
from app.models.user import User


class CamelModel(BaseModel):
    """wire 필드명은 camelCase (meetupId, userId, createdAt ...)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatAuthor(CamelModel):
    id: int
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None


class ChatMessageRecord(CamelModel):
    """서버가 id/created_at을 부여한 저장본 (canonical message record)."""

    id: int
    meetup_id: int
    user_id: int
    message: str
    created_at: datetime
    user: ChatAuthor

    @field_serializer("created_at")
    def _serialize_created_at(self, value: datetime) -> str:
        # SQLite는 tz 정보를 버리므로 naive 값은 UTC로 간주
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()

    @classmethod
    def from_row(cls, message: ChatMessage, author: User) -> "ChatMessageRecord":
        return cls(
            id=message.id,
            meetup_id=message.meetup_id,
            user_id=message.user_id,
            message=message.message,
            created_at=message.created_at,
            user=ChatAuthor(
                id=author.id,
                username=author.username,
                first_name=author.first_name,
                last_name=author.last_name,
                profile_image_url=author.profile_image_url,
            ),
        )
