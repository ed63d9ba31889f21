# WebSocket 채팅 프레임 정의 (type 필드로 구분하는 닫힌 tagged union)
#
# inbound : join_room, chat_message
# outbound: room_joined, new_message, message_sent, error

import json
from typing import Annotated, Literal, Union

from pydantic import Field, TypeAdapter, ValidationError

from app.schemas.chat import CamelModel, ChatMessageRecord


class FrameError(Exception):
    """파싱할 수 없는 프레임. 연결은 유지하고 error 프레임으로 응답."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# --- inbound ---------------------------------------------------------------


class JoinRoomFrame(CamelModel):
    type: Literal["join_room"]
    meetup_id: int


class ChatMessageFrame(CamelModel):
    type: Literal["chat_message"]
    meetup_id: int
    user_id: int
    message: str


InboundFrame = Annotated[Union[JoinRoomFrame, ChatMessageFrame], Field(discriminator="type")]

_inbound_adapter: TypeAdapter = TypeAdapter(InboundFrame)


def parse_inbound(raw: str) -> Union[JoinRoomFrame, ChatMessageFrame]:
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError):
        raise FrameError("Invalid JSON")
    if not isinstance(payload, dict):
        raise FrameError("Frame must be a JSON object")
    try:
        return _inbound_adapter.validate_python(payload)
    except ValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(p) for p in first.get("loc", ())) or "frame"
        raise FrameError(f"Malformed frame ({where}: {first.get('msg')})")


# --- outbound --------------------------------------------------------------


class RoomJoinedFrame(CamelModel):
    type: Literal["room_joined"] = "room_joined"
    meetup_id: int


class NewMessageFrame(CamelModel):
    """같은 방의 다른 연결에게 전달."""

    type: Literal["new_message"] = "new_message"
    data: ChatMessageRecord


class MessageSentFrame(CamelModel):
    """발신자에게 저장 완료 확인. data는 new_message와 동일."""

    type: Literal["message_sent"] = "message_sent"
    data: ChatMessageRecord


class ErrorFrame(CamelModel):
    type: Literal["error"] = "error"
    message: str


OutboundFrame = Union[RoomJoinedFrame, NewMessageFrame, MessageSentFrame, ErrorFrame]


def dump_frame(frame: OutboundFrame) -> str:
    return frame.model_dump_json(by_alias=True)
