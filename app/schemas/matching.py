# 설문/매칭 요청·응답 스키마

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.schemas.meetup import MeetupTypeLiteral
from app.schemas.user import UserOut

ConversationTopicLiteral = Literal["travel", "food", "career", "hobbies", "current_events"]
MusicLiteral = Literal["pop", "rock", "hiphop", "electronic", "indie"]
PersonalityLiteral = Literal["outgoing", "thoughtful", "adventurous", "chill", "passionate"]
VenueTypeLiteral = Literal["restaurant", "cafe"]
PreferredTimeLiteral = Literal["lunch", "dinner"]


class SurveyBody(BaseModel):
    user_id: int
    favorite_conversation_topic: ConversationTopicLiteral
    favorite_music: MusicLiteral
    personality_type: PersonalityLiteral


class SurveyOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    favorite_conversation_topic: str
    favorite_music: str
    personality_type: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MatchRequestBody(BaseModel):
    """매칭 요청. 같은 유형·장소 종류·날짜·시간대끼리만 매칭."""

    user_id: int
    meetup_type: MeetupTypeLiteral = "group"
    venue_type: VenueTypeLiteral
    preferred_time: PreferredTimeLiteral
    preferred_date: str = Field(..., min_length=1, max_length=20)
    max_distance: int = Field(default=5, ge=5, le=50)
    age_range_min: Optional[int] = Field(default=None, ge=18, le=80)
    age_range_max: Optional[int] = Field(default=None, ge=18, le=80)

    @model_validator(mode="after")
    def _check_age_range(self):
        if self.age_range_min is not None and self.age_range_max is not None:
            if self.age_range_min > self.age_range_max:
                raise ValueError("age_range_min must not exceed age_range_max")
        return self


class CancelRequestBody(BaseModel):
    user_id: int


class MatchRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    meetup_type: str
    venue_type: str
    preferred_time: str
    preferred_date: str
    max_distance: int
    age_range_min: Optional[int] = None
    age_range_max: Optional[int] = None
    status: str
    created_at: Optional[datetime] = None


class MatchOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    meetup_type: str
    venue_type: str
    suggested_date: Optional[str] = None
    suggested_time: Optional[str] = None
    match_score: int
    status: str
    created_at: Optional[datetime] = None
    users: List[UserOut] = []


class MatchRequestResult(BaseModel):
    request: MatchRequestOut
    match: Optional[MatchOut] = None
    message: str
