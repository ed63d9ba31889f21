# Meetup 모델: 식사 모임 엔티티

from enum import Enum as PyEnum

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from app.models.base import Base


class MeetupStatus(str, PyEnum):
    """모임 상태. COMPLETED/CANCELLED는 종료 상태로 join/leave 불가."""

    OPEN = "open"
    FULL = "full"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({MeetupStatus.COMPLETED.value, MeetupStatus.CANCELLED.value})


class MeetupType(str, PyEnum):
    """모임 유형. 유형마다 최대 인원이 정해져 있음."""

    ONE_TO_ONE = "1v1"
    SMALL_GROUP = "3people"
    GROUP = "group"


MAX_PARTICIPANTS: dict[str, int] = {
    MeetupType.ONE_TO_ONE.value: 2,
    MeetupType.SMALL_GROUP.value: 3,
    MeetupType.GROUP.value: 8,
}

# DB에는 String(20)으로 저장 (마이그레이션 단순화). 앱에서는 MeetupStatus로 비교.
STATUS_DEFAULT = MeetupStatus.OPEN.value


class Meetup(Base):
    """모임 테이블. current_participants는 meetup_participants(joined) 행 수의 캐시."""

    __tablename__ = "meetups"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)  # 제목
    description = Column(Text, nullable=True)  # 설명(선택)
    meetup_type = Column(String(20), nullable=False)
    max_participants = Column(Integer, nullable=False)  # 최대 인원 (유형에서 결정)
    current_participants = Column(Integer, nullable=False, default=0, server_default="0")  # 동시성은 FOR UPDATE + 모임별 락으로 보장
    # 장소 정보
    restaurant_name = Column(String(200), nullable=True)
    restaurant_address = Column(Text, nullable=True)
    restaurant_type = Column(String(20), nullable=True)  # casual, fine, fast, any
    scheduled_date = Column(DateTime(timezone=True), nullable=True)
    scheduled_time = Column(String(20), nullable=True)
    status = Column(String(20), nullable=False, default=STATUS_DEFAULT, server_default=STATUS_DEFAULT)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # 매칭 조건(선택)
    age_range_min = Column(Integer, nullable=True)
    age_range_max = Column(Integer, nullable=True)
    max_distance = Column(Integer, nullable=True)  # miles
    required_interests = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())  # 생성 시각(타임존 포함)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("current_participants >= 0", name="ck_meetups_participants_non_negative"),
        CheckConstraint("current_participants <= max_participants", name="ck_meetups_participants_lte_max"),
    )
