# Meetup status state machine: allowed transitions only.
# open -> full, completed, cancelled
# full -> open, completed, cancelled
# completed -> (none)
# cancelled -> (none)
# open/full are normally driven by the participant counter; manual changes must agree with it.

import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.crud.participation_crud import MeetupNotFound, lock_meetup
from app.models.meetup import Meetup, MeetupStatus
from app.services.participant_registry import meetup_lock

logger = logging.getLogger(__name__)

# Allowed target statuses from each current status.
ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "open": {"full", "completed", "cancelled"},
    "full": {"open", "completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}


class StatusTransitionError(Exception):
    def __init__(self, message: str, status_code: int = 409):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def check_status_transition(current: str, target: str) -> Optional[str]:
    """
    Validate status transition. Returns None if allowed, else a clear error message for HTTP 409.
    """
    allowed = ALLOWED_TRANSITIONS.get(current, set())
    if target not in allowed:
        allowed_str = ", ".join(sorted(allowed)) if allowed else "none"
        return (
            f"Transition from {current} to {target} is not allowed. "
            f"From {current} only allowed: {allowed_str}."
        )
    return None


def check_capacity_agrees(meetup: Meetup, target: str) -> Optional[str]:
    """open/full 수동 전환이 현재 인원과 모순되면 오류 메시지."""
    is_full = meetup.current_participants >= meetup.max_participants
    if target == MeetupStatus.OPEN.value and is_full:
        return "Cannot reopen a meetup that is at capacity."
    if target == MeetupStatus.FULL.value and not is_full:
        return "Cannot mark a meetup full while seats remain."
    return None


def change_status(db: Session, meetup_id: int, target: str) -> Meetup:
    """모임 락 + FOR UPDATE 아래에서 상태 전환 후 commit."""
    with meetup_lock(meetup_id):
        try:
            meetup = lock_meetup(db, meetup_id)
            current = getattr(meetup.status, "value", meetup.status)
            error = check_status_transition(current, target) or check_capacity_agrees(meetup, target)
            if error:
                raise StatusTransitionError(error)
            meetup.status = target
            db.commit()
        except (MeetupNotFound, StatusTransitionError):
            db.rollback()
            raise
        except Exception:
            db.rollback()
            logger.exception("status change failed for meetup %s", meetup_id)
            raise
    logger.info("meetup %s status %s -> %s", meetup_id, current, target)
    return meetup
