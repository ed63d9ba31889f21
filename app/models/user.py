# User 모델

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.sql import false, func

from app.models.base import Base


class User(Base):
    """사용자 테이블. 가입/이메일 인증은 외부 협력자가 처리하고 여기서는 프로필만 보관."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), nullable=False, unique=True)
    email = Column(String(255), nullable=False, unique=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    profile_image_url = Column(String(500), nullable=True)
    age = Column(Integer, nullable=True)  # 매칭 시 나이 조건 비교용
    # 신뢰/인증 플래그
    is_email_verified = Column(Boolean, nullable=False, default=True)
    is_id_verified = Column(Boolean, nullable=False, default=False)
    is_phone_verified = Column(Boolean, nullable=False, default=False)
    trust_score = Column(Integer, nullable=False, default=0)
    has_taken_survey = Column(Boolean, nullable=False, default=False, server_default=false())
    bio = Column(Text, nullable=True)
    interests = Column(JSON, nullable=False, default=list)  # 관심사 태그 목록
    location = Column(String(200), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
