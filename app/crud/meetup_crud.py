# 모임 조회/생성 CRUD

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.models.meetup import MAX_PARTICIPANTS, Meetup, MeetupStatus
from app.models.participation import Participation, ParticipationStatus

# 생성 이후 수정 가능한 필드 (유형/정원/인원/상태는 제외)
EDITABLE_FIELDS = frozenset(
    {
        "title",
        "description",
        "restaurant_name",
        "restaurant_address",
        "restaurant_type",
        "scheduled_date",
        "scheduled_time",
        "age_range_min",
        "age_range_max",
        "max_distance",
        "required_interests",
    }
)


def get_meetup(db: Session, meetup_id: int) -> Optional[Meetup]:
    return db.query(Meetup).filter(Meetup.id == meetup_id).first()


def build_meetup(created_by: int, data: Dict[str, Any]) -> Meetup:
    """유형에서 max_participants를 정해 Meetup 객체 생성 (add/commit은 호출자)."""
    meetup_type = data["meetup_type"]
    return Meetup(
        created_by=created_by,
        max_participants=MAX_PARTICIPANTS[meetup_type],
        current_participants=0,
        status=MeetupStatus.OPEN.value,
        **data,
    )


def get_meetups(
    db: Session,
    meetup_type: Optional[str] = None,
    restaurant_type: Optional[str] = None,
    age_range_min: Optional[int] = None,
    age_range_max: Optional[int] = None,
    max_distance: Optional[int] = None,
) -> List[Meetup]:
    """
    open 상태 모임 목록. 필터는 모두 선택 사항.
    restaurant_type이 'any'면 필터로 쓰지 않음. created_at 내림차순.
    """
    q = db.query(Meetup).filter(Meetup.status == MeetupStatus.OPEN.value)
    if meetup_type:
        q = q.filter(Meetup.meetup_type == meetup_type)
    if age_range_min is not None:
        q = q.filter(Meetup.age_range_min >= age_range_min)
    if age_range_max is not None:
        q = q.filter(Meetup.age_range_max <= age_range_max)
    if restaurant_type and restaurant_type != "any":
        q = q.filter(Meetup.restaurant_type == restaurant_type)
    if max_distance is not None:
        q = q.filter(Meetup.max_distance <= max_distance)
    return q.order_by(Meetup.created_at.desc(), Meetup.id.desc()).all()


def get_user_meetups(db: Session, user_id: int) -> List[Meetup]:
    """사용자가 joined 상태로 참여 중인 모임. scheduled_date 내림차순."""
    return (
        db.query(Meetup)
        .join(Participation, Participation.meetup_id == Meetup.id)
        .filter(
            Participation.user_id == user_id,
            Participation.status == ParticipationStatus.JOINED.value,
        )
        .order_by(Meetup.scheduled_date.desc(), Meetup.id.desc())
        .all()
    )


def update_meetup(db: Session, meetup: Meetup, updates: Dict[str, Any]) -> Meetup:
    """EDITABLE_FIELDS에 속한 값만 반영. commit은 호출자."""
    for key, value in updates.items():
        if key in EDITABLE_FIELDS:
            setattr(meetup, key, value)
    return meetup
