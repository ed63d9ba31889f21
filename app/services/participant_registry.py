# 참여 레지스트리: 트랜잭션 소유 + 모임별 직렬화
#
# participation 행 변경과 meetups.current_participants 변경은 항상 하나의 commit으로 묶는다.
# - 모임별 threading.Lock: 같은 프로세스(SQLite 포함) 안에서 같은 모임의 join/leave 직렬화
# - participation_crud의 FOR UPDATE: 여러 워커 프로세스(PostgreSQL) 사이의 직렬화
# 서로 다른 모임은 서로 다른 락을 쓰므로 병렬 처리된다.

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Tuple

from sqlalchemy.orm import Session

from app.crud import meetup_crud, participation_crud
from app.crud.participation_crud import UserNotFound
from app.models.meetup import Meetup
from app.models.participation import Participation, ParticipationStatus
from app.models.user import User

logger = logging.getLogger(__name__)

_locks_guard = threading.Lock()
_meetup_locks: Dict[int, threading.Lock] = {}
_lock_users: Dict[int, int] = {}  # 락을 잡았거나 기다리는 스레드 수


@contextmanager
def meetup_lock(meetup_id: int) -> Iterator[None]:
    """모임별 락. 잡거나 기다리는 스레드가 없어지면 맵에서 제거 (없는 모임 id도 남지 않음)."""
    with _locks_guard:
        lock = _meetup_locks.setdefault(meetup_id, threading.Lock())
        _lock_users[meetup_id] = _lock_users.get(meetup_id, 0) + 1
    try:
        with lock:
            yield
    finally:
        with _locks_guard:
            _lock_users[meetup_id] -= 1
            if _lock_users[meetup_id] == 0:
                del _lock_users[meetup_id]
                del _meetup_locks[meetup_id]


@contextmanager
def transaction(db: Session) -> Iterator[None]:
    """성공 시 commit, 예외 시 rollback 후 그대로 전파."""
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise


def join(db: Session, meetup_id: int, user_id: int) -> Participation:
    with meetup_lock(meetup_id), transaction(db):
        participation = participation_crud.add_participant(db, meetup_id, user_id)
    logger.info("user %s joined meetup %s", user_id, meetup_id)
    return participation


def leave(db: Session, meetup_id: int, user_id: int) -> Participation:
    with meetup_lock(meetup_id), transaction(db):
        participation = participation_crud.remove_participant(db, meetup_id, user_id)
    logger.info("user %s left meetup %s", user_id, meetup_id)
    return participation


def remove(db: Session, meetup_id: int, user_id: int) -> Participation:
    """호스트에 의한 강제 퇴장. 카운터 처리는 leave와 동일하고 status만 removed."""
    with meetup_lock(meetup_id), transaction(db):
        participation = participation_crud.remove_participant(
            db, meetup_id, user_id, status=ParticipationStatus.REMOVED
        )
    logger.info("user %s removed from meetup %s", user_id, meetup_id)
    return participation


def list_participants(db: Session, meetup_id: int) -> List[Tuple[Participation, User]]:
    return participation_crud.list_participants(db, meetup_id)


def create_meetup(db: Session, creator_id: int, data: Dict[str, Any]) -> Meetup:
    """
    모임 생성 + 생성자 자동 참여를 한 트랜잭션으로 처리.
    생성자 참여가 실패하면 모임도 남지 않는다.
    """
    with transaction(db):
        if db.query(User.id).filter(User.id == creator_id).first() is None:
            raise UserNotFound("User not found")
        meetup = meetup_crud.build_meetup(creator_id, data)
        db.add(meetup)
        db.flush()
        # 새 모임은 아직 다른 세션에 보이지 않으므로 모임 락 없이 참여 처리
        participation_crud.add_participant(db, meetup.id, creator_id)
    logger.info("meetup %s created by user %s", meetup.id, creator_id)
    return meetup
