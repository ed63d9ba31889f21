# Participation 모델: 모임 참여 기록

from enum import Enum as PyEnum

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.sql import func

from app.models.base import Base


class ParticipationStatus(str, PyEnum):
    JOINED = "joined"
    LEFT = "left"
    REMOVED = "removed"


class Participation(Base):
    """참여 테이블. 행은 삭제하지 않고 status만 바꿔 이력을 보존."""

    __tablename__ = "meetup_participants"

    id = Column(Integer, primary_key=True, index=True)
    meetup_id = Column(Integer, ForeignKey("meetups.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=ParticipationStatus.JOINED.value, server_default="joined")
    joined_at = Column(DateTime(timezone=True), server_default=func.now())

    # (user, meetup)당 joined 행은 최대 1개. left/removed 이력은 여러 개 허용.
    __table_args__ = (
        Index(
            "uq_participation_active_user_meetup",
            "user_id",
            "meetup_id",
            unique=True,
            postgresql_where=text("status = 'joined'"),
            sqlite_where=text("status = 'joined'"),
        ),
    )
