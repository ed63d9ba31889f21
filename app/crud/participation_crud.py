# 참여/취소 CRUD (비관적 락으로 정원 초과 방지)
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.meetup import TERMINAL_STATUSES, Meetup, MeetupStatus
from app.models.participation import Participation, ParticipationStatus
from app.models.user import User


class ParticipationError(Exception):
    """참여 레지스트리 오류 공통 부모. 라우터에서 HTTPException으로 변환."""

    default_status = 400

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code or self.default_status


class MeetupNotFound(ParticipationError):
    default_status = 404


class UserNotFound(ParticipationError):
    default_status = 404


class MeetupClosed(ParticipationError):
    """completed/cancelled 모임에는 참여/취소 불가."""

    default_status = 409


class MeetupFull(ParticipationError):
    default_status = 409


class AlreadyJoined(ParticipationError):
    default_status = 409


class NotParticipant(ParticipationError):
    default_status = 400


class ParticipantCountError(ParticipationError):
    """current_participants가 0 아래로 내려가려는 경우. 보정하지 않고 불변식 위반으로 취급."""

    default_status = 500


def _status_value(meetup: Meetup) -> str:
    return getattr(meetup.status, "value", meetup.status)


def lock_meetup(db: Session, meetup_id: int) -> Meetup:
    """FOR UPDATE로 meetup 행 잠금 후 반환. 없으면 MeetupNotFound."""
    meetup = (
        db.query(Meetup)
        .filter(Meetup.id == meetup_id)
        .with_for_update()
        .first()
    )
    if meetup is None:
        raise MeetupNotFound("Meetup not found")
    return meetup


def get_active_participation(db: Session, meetup_id: int, user_id: int) -> Optional[Participation]:
    return (
        db.query(Participation)
        .filter(
            Participation.meetup_id == meetup_id,
            Participation.user_id == user_id,
            Participation.status == ParticipationStatus.JOINED.value,
        )
        .first()
    )


def count_active(db: Session, meetup_id: int) -> int:
    """joined 상태 행 수. current_participants 캐시와 항상 같아야 함."""
    return (
        db.query(func.count(Participation.id))
        .filter(
            Participation.meetup_id == meetup_id,
            Participation.status == ParticipationStatus.JOINED.value,
        )
        .scalar()
    )


def add_participant(db: Session, meetup_id: int, user_id: int) -> Participation:
    """
    모임 참여.

    - FOR UPDATE로 meetup 행 잠금 → 동시 join 시에도 정원 초과 방지.
    - participation 행 추가와 current_participants 증가를 같은 트랜잭션에서 처리.
    - 정원이 차면 status를 full로 전환.

    반환: 새 Participation

    ⚠️ 이 함수는 commit/rollback 하지 않음. 호출자(서비스)가 트랜잭션을 제어.
    """
    if db.query(User.id).filter(User.id == user_id).first() is None:
        raise UserNotFound("User not found")

    meetup = lock_meetup(db, meetup_id)

    if _status_value(meetup) in TERMINAL_STATUSES:
        raise MeetupClosed(f"Meetup is {_status_value(meetup)}")

    if meetup.current_participants >= meetup.max_participants:
        raise MeetupFull("Meetup is full")

    if get_active_participation(db, meetup_id, user_id) is not None:
        raise AlreadyJoined("Already joined this meetup")

    participation = Participation(
        meetup_id=meetup_id,
        user_id=user_id,
        status=ParticipationStatus.JOINED.value,
    )
    try:
        db.add(participation)
        # 부분 유니크 인덱스 위반을 여기서 감지하기 위해 즉시 flush
        db.flush()
    except IntegrityError:
        # 동시에 같은 user가 join하면 유니크 인덱스 위반 가능
        # rollback은 호출자(서비스)에서 수행
        raise AlreadyJoined("Already joined this meetup")

    meetup.current_participants += 1
    if meetup.current_participants >= meetup.max_participants:
        meetup.status = MeetupStatus.FULL.value

    return participation


def remove_participant(
    db: Session,
    meetup_id: int,
    user_id: int,
    status: ParticipationStatus = ParticipationStatus.LEFT,
) -> Participation:
    """
    모임 참여 취소 (left) 또는 강제 퇴장 (removed).

    - FOR UPDATE로 meetup 행 잠금
    - participation.status 변경 후 current_participants 감소
    - full 상태였다면 open으로 복귀

    ⚠️ 이 함수는 commit/rollback 하지 않음. 호출자(서비스)가 트랜잭션을 제어.
    """
    meetup = lock_meetup(db, meetup_id)

    if _status_value(meetup) in TERMINAL_STATUSES:
        raise MeetupClosed(f"Meetup is {_status_value(meetup)}")

    participation = get_active_participation(db, meetup_id, user_id)
    if participation is None:
        raise NotParticipant("Not a participant of this meetup")

    if meetup.current_participants <= 0:
        raise ParticipantCountError(
            f"Participant count for meetup {meetup_id} is {meetup.current_participants} "
            "but an active participation exists"
        )

    participation.status = status.value
    meetup.current_participants -= 1
    if _status_value(meetup) == MeetupStatus.FULL.value:
        meetup.status = MeetupStatus.OPEN.value

    return participation


def list_participants(db: Session, meetup_id: int) -> List[Tuple[Participation, User]]:
    """joined 참여자와 사용자 정보를 joined_at 순으로 반환."""
    if db.query(Meetup.id).filter(Meetup.id == meetup_id).first() is None:
        raise MeetupNotFound("Meetup not found")

    return (
        db.query(Participation, User)
        .join(User, Participation.user_id == User.id)
        .filter(
            Participation.meetup_id == meetup_id,
            Participation.status == ParticipationStatus.JOINED.value,
        )
        .order_by(Participation.joined_at, Participation.id)
        .all()
    )
