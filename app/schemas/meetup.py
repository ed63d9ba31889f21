# 모임 API 요청/응답 스키마

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.schemas.user import UserOut

MeetupStatusLiteral = Literal["open", "full", "completed", "cancelled"]
MeetupTypeLiteral = Literal["1v1", "3people", "group"]
RestaurantTypeLiteral = Literal["casual", "fine", "fast", "any"]


class _MeetupLogistics(BaseModel):
    """생성/수정에서 공유하는 장소·일정·매칭 조건."""

    description: Optional[str] = None
    restaurant_name: Optional[str] = Field(default=None, max_length=200)
    restaurant_address: Optional[str] = None
    restaurant_type: Optional[RestaurantTypeLiteral] = None
    scheduled_date: Optional[datetime] = None
    scheduled_time: Optional[str] = Field(default=None, max_length=20)
    age_range_min: Optional[int] = Field(default=None, ge=18, le=80)
    age_range_max: Optional[int] = Field(default=None, ge=18, le=80)
    max_distance: Optional[int] = Field(default=None, gt=0)
    required_interests: Optional[List[str]] = None

    @model_validator(mode="after")
    def _check_age_range(self):
        if self.age_range_min is not None and self.age_range_max is not None:
            if self.age_range_min > self.age_range_max:
                raise ValueError("age_range_min must not exceed age_range_max")
        return self


class MeetupCreate(_MeetupLogistics):
    """모임 생성 요청. 생성자는 자동 참여. 최대 인원은 meetup_type에서 결정."""

    created_by: int
    title: str = Field(..., min_length=1, max_length=100)
    meetup_type: MeetupTypeLiteral


class MeetupUpdate(_MeetupLogistics):
    """모임 정보 수정 (장소·일정 등). 보낸 필드만 반영."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=100)


class StatusChangeBody(BaseModel):
    status: MeetupStatusLiteral


class MeetupResponse(BaseModel):
    """모임 응답 (목록/생성/수정 공통)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = None
    meetup_type: MeetupTypeLiteral
    max_participants: int
    current_participants: int
    restaurant_name: Optional[str] = None
    restaurant_address: Optional[str] = None
    restaurant_type: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    scheduled_time: Optional[str] = None
    status: MeetupStatusLiteral
    created_by: int
    age_range_min: Optional[int] = None
    age_range_max: Optional[int] = None
    max_distance: Optional[int] = None
    required_interests: Optional[List[str]] = None
    created_at: Optional[datetime] = None


class ParticipantOut(BaseModel):
    """joined 참여자 + 사용자 정보 (채팅 헤더/정원 표시용)."""

    participation_id: int
    status: str
    joined_at: Optional[datetime] = None
    user: UserOut


class MeetupDetailOut(MeetupResponse):
    """GET /meetups/{id} 전용: 생성자와 참여자 목록 포함."""

    creator: Optional[UserOut] = None
    participants: List[ParticipantOut] = []
