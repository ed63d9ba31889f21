# 사용자 요청/응답 스키마

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class UserCreate(BaseModel):
    """가입이 끝난(이메일 인증 완료) 사용자 프로필 등록."""

    username: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    profile_image_url: Optional[str] = None
    age: Optional[int] = Field(default=None, ge=18, le=120)
    bio: Optional[str] = None
    interests: List[str] = []
    location: Optional[str] = None


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    age: Optional[int] = None
    is_email_verified: bool = True
    is_id_verified: bool = False
    is_phone_verified: bool = False
    trust_score: int = 0
    has_taken_survey: bool = False
    bio: Optional[str] = None
    interests: List[str] = []
    location: Optional[str] = None
    created_at: Optional[datetime] = None
