# 스마트 매칭 모델: 매칭 요청 / 매칭 결과 / 매칭 멤버

from enum import Enum as PyEnum

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint, text
from sqlalchemy.sql import func

from app.models.base import Base


class MatchRequestStatus(str, PyEnum):
    ACTIVE = "active"
    MATCHED = "matched"
    CANCELLED = "cancelled"


class MatchStatus(str, PyEnum):
    """PENDING: 현재 유효한 매칭. 같은 사용자가 새 매칭에 들어가면 이전 매칭은 COMPLETED."""

    PENDING = "pending"
    COMPLETED = "completed"


class MatchRequest(Base):
    """매칭 대기 요청. (user, meetup_type)당 active 요청은 최대 1개."""

    __tablename__ = "meetup_requests"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    meetup_type = Column(String(20), nullable=False)
    venue_type = Column(String(20), nullable=False)  # restaurant, cafe
    preferred_time = Column(String(20), nullable=False)  # lunch, dinner
    preferred_date = Column(String(20), nullable=False)
    max_distance = Column(Integer, nullable=False, default=5)  # miles
    age_range_min = Column(Integer, nullable=True)
    age_range_max = Column(Integer, nullable=True)
    status = Column(String(20), nullable=False, default=MatchRequestStatus.ACTIVE.value, server_default="active")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index(
            "uq_meetup_requests_active_user_type",
            "user_id",
            "meetup_type",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )


class Match(Base):
    """같은 유형·장소 종류·날짜·시간대 요청끼리 묶인 결과."""

    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, index=True)
    meetup_type = Column(String(20), nullable=False)
    venue_type = Column(String(20), nullable=False)
    suggested_date = Column(String(20), nullable=True)
    suggested_time = Column(String(20), nullable=True)
    match_score = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=MatchStatus.PENDING.value, server_default="pending")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class MatchMember(Base):
    __tablename__ = "match_members"

    id = Column(Integer, primary_key=True, index=True)
    match_id = Column(Integer, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    joined_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (UniqueConstraint("match_id", "user_id", name="uq_match_members_match_user"),)
