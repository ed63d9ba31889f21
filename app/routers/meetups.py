# 모임 생성/조회/참여 API
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.crud import meetup_crud
from app.crud.participation_crud import ParticipationError
from app.database import get_db
from app.models.meetup import Meetup
from app.models.user import User
from app.realtime.sse_pubsub import (
    publish_meetup_status_changed,
    publish_participants_updated,
    stream_meetup_events,
)
from app.schemas.meetup import (
    MeetupCreate,
    MeetupDetailOut,
    MeetupResponse,
    MeetupTypeLiteral,
    MeetupUpdate,
    ParticipantOut,
    RestaurantTypeLiteral,
    StatusChangeBody,
)
from app.schemas.participation import JoinLeaveBody, ParticipationResult
from app.schemas.user import UserOut
from app.services import participant_registry
from app.services.meetup_status import StatusTransitionError, change_status

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/meetups", tags=["Meetups"])


def _status_value(meetup: Meetup) -> str:
    return getattr(meetup.status, "value", meetup.status)


def _get_meetup_or_404(db: Session, meetup_id: int) -> Meetup:
    meetup = meetup_crud.get_meetup(db, meetup_id)
    if meetup is None:
        raise HTTPException(status_code=404, detail="Meetup not found")
    return meetup


def _participants_out(db: Session, meetup_id: int) -> List[ParticipantOut]:
    rows = participant_registry.list_participants(db, meetup_id)
    return [
        ParticipantOut(
            participation_id=p.id,
            status=p.status,
            joined_at=p.joined_at,
            user=UserOut.model_validate(u),
        )
        for p, u in rows
    ]


async def _publish_counts(meetup: Meetup) -> None:
    await publish_participants_updated(
        meetup.id,
        meetup.current_participants,
        meetup.max_participants,
        _status_value(meetup),
    )


@router.post("", response_model=MeetupResponse)
def create_meetup(body: MeetupCreate, db: Session = Depends(get_db)) -> Meetup:
    """모임 생성. 생성자는 같은 트랜잭션에서 자동 참여 (current_participants=1)."""
    try:
        return participant_registry.create_meetup(
            db, body.created_by, body.model_dump(exclude={"created_by"})
        )
    except ParticipationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[MeetupResponse])
def list_meetups(
    meetup_type: Optional[MeetupTypeLiteral] = None,
    restaurant_type: Optional[RestaurantTypeLiteral] = None,
    age_range_min: Optional[int] = Query(None, ge=18, le=80),
    age_range_max: Optional[int] = Query(None, ge=18, le=80),
    max_distance: Optional[int] = Query(None, gt=0),
    db: Session = Depends(get_db),
) -> List[Meetup]:
    """open 상태 모임 검색. 최신순."""
    return meetup_crud.get_meetups(
        db,
        meetup_type=meetup_type,
        restaurant_type=restaurant_type,
        age_range_min=age_range_min,
        age_range_max=age_range_max,
        max_distance=max_distance,
    )


@router.get("/{meetup_id}", response_model=MeetupDetailOut)
def get_meetup(meetup_id: int, db: Session = Depends(get_db)) -> MeetupDetailOut:
    """id로 모임 조회 (생성자 + joined 참여자 포함). 없으면 404."""
    meetup = _get_meetup_or_404(db, meetup_id)
    creator = db.query(User).filter(User.id == meetup.created_by).first()
    detail = MeetupDetailOut.model_validate(meetup)
    detail.creator = UserOut.model_validate(creator) if creator else None
    detail.participants = _participants_out(db, meetup_id)
    return detail


@router.patch("/{meetup_id}", response_model=MeetupResponse)
def update_meetup(meetup_id: int, body: MeetupUpdate, db: Session = Depends(get_db)) -> Meetup:
    """장소·일정 등 수정. 보낸 필드만 반영."""
    meetup = _get_meetup_or_404(db, meetup_id)
    updates = body.model_dump(exclude_unset=True)
    # 한쪽 경계만 보낸 경우 저장된 다른 쪽과 비교
    age_min = updates.get("age_range_min", meetup.age_range_min)
    age_max = updates.get("age_range_max", meetup.age_range_max)
    if age_min is not None and age_max is not None and age_min > age_max:
        raise HTTPException(status_code=422, detail="age_range_min must not exceed age_range_max")
    try:
        meetup_crud.update_meetup(db, meetup, updates)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("failed to update meetup %s", meetup_id)
        raise HTTPException(status_code=500, detail="Failed to update meetup")
    return meetup


@router.patch("/{meetup_id}/status", response_model=MeetupResponse)
async def patch_status(meetup_id: int, body: StatusChangeBody, db: Session = Depends(get_db)) -> Meetup:
    """상태 전환 (state machine 검증). 허용되지 않으면 409."""
    try:
        meetup = await run_in_threadpool(change_status, db, meetup_id, body.status)
    except ParticipationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except StatusTransitionError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    await publish_meetup_status_changed(meetup_id, _status_value(meetup))
    return meetup


@router.post("/{meetup_id}/join", response_model=ParticipationResult)
async def post_join(meetup_id: int, body: JoinLeaveBody, db: Session = Depends(get_db)) -> ParticipationResult:
    """모임 참여. 정원/중복/상태 오류는 그대로 호출자에게 전달 (재시도 없음)."""
    try:
        await run_in_threadpool(participant_registry.join, db, meetup_id, body.user_id)
    except ParticipationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        logger.exception("join failed for meetup %s user %s", meetup_id, body.user_id)
        raise HTTPException(status_code=500, detail="Failed to join meetup")

    # commit 후 인원 갱신 → SSE 구독자에게 실시간 푸시
    meetup = _get_meetup_or_404(db, meetup_id)
    db.refresh(meetup)
    await _publish_counts(meetup)
    return ParticipationResult(message="joined", current_participants=meetup.current_participants)


@router.delete("/{meetup_id}/leave", response_model=ParticipationResult)
async def delete_leave(meetup_id: int, body: JoinLeaveBody, db: Session = Depends(get_db)) -> ParticipationResult:
    """모임 참여 취소."""
    try:
        await run_in_threadpool(participant_registry.leave, db, meetup_id, body.user_id)
    except ParticipationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        logger.exception("leave failed for meetup %s user %s", meetup_id, body.user_id)
        raise HTTPException(status_code=500, detail="Failed to leave meetup")

    meetup = _get_meetup_or_404(db, meetup_id)
    db.refresh(meetup)
    await _publish_counts(meetup)
    return ParticipationResult(message="left", current_participants=meetup.current_participants)


@router.get("/{meetup_id}/participants", response_model=List[ParticipantOut])
def get_participants(meetup_id: int, db: Session = Depends(get_db)) -> List[ParticipantOut]:
    try:
        return _participants_out(db, meetup_id)
    except ParticipationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{meetup_id}/events/stream")
async def get_event_stream(meetup_id: int, db: Session = Depends(get_db)):
    """SSE: 해당 모임의 participants_updated / meetup_status_changed 이벤트 스트림. 없는 모임은 404."""
    _get_meetup_or_404(db, meetup_id)
    return StreamingResponse(
        stream_meetup_events(meetup_id),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
