# 설문/매칭 CRUD. ⚠️ commit/rollback은 호출자(matching_service)가 제어
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.matching import Match, MatchMember, MatchRequest, MatchRequestStatus, MatchStatus
from app.models.survey import SurveyResponse
from app.models.user import User


class MatchingError(Exception):
    """설문/매칭 오류 공통 부모. 라우터에서 HTTPException으로 변환."""

    default_status = 400

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code or self.default_status


class MatchingUserNotFound(MatchingError):
    default_status = 404


class SurveyNotFound(MatchingError):
    default_status = 404


class RequestNotFound(MatchingError):
    default_status = 404


class DuplicateRequest(MatchingError):
    """같은 meetup_type으로 이미 active 요청이 있음."""

    default_status = 409


class RequestNotActive(MatchingError):
    default_status = 409


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise MatchingUserNotFound("User not found")
    return user


# --- survey ------------------------------------------------------------------


def get_survey(db: Session, user_id: int) -> Optional[SurveyResponse]:
    return db.query(SurveyResponse).filter(SurveyResponse.user_id == user_id).first()


def upsert_survey(db: Session, user: User, answers: Dict[str, Any]) -> SurveyResponse:
    """사용자당 1개. 기존 응답이 있으면 덮어쓰고 has_taken_survey 표시."""
    survey = get_survey(db, user.id)
    if survey is None:
        survey = SurveyResponse(user_id=user.id, **answers)
        db.add(survey)
    else:
        for key, value in answers.items():
            setattr(survey, key, value)
    user.has_taken_survey = True
    db.flush()
    return survey


def get_surveys(db: Session, user_ids: Sequence[int]) -> Dict[int, SurveyResponse]:
    rows = db.query(SurveyResponse).filter(SurveyResponse.user_id.in_(list(user_ids))).all()
    return {s.user_id: s for s in rows}


# --- requests ----------------------------------------------------------------


def get_active_request(db: Session, user_id: int, meetup_type: str) -> Optional[MatchRequest]:
    return (
        db.query(MatchRequest)
        .filter(
            MatchRequest.user_id == user_id,
            MatchRequest.meetup_type == meetup_type,
            MatchRequest.status == MatchRequestStatus.ACTIVE.value,
        )
        .first()
    )


def add_request(db: Session, user_id: int, data: Dict[str, Any]) -> MatchRequest:
    if get_active_request(db, user_id, data["meetup_type"]) is not None:
        raise DuplicateRequest("An active matching request already exists for this meetup type")
    request = MatchRequest(user_id=user_id, status=MatchRequestStatus.ACTIVE.value, **data)
    db.add(request)
    try:
        db.flush()
    except IntegrityError:
        # 부분 유니크 인덱스 위반 (동시 요청)
        raise DuplicateRequest("An active matching request already exists for this meetup type")
    return request


def get_request(db: Session, request_id: int) -> Optional[MatchRequest]:
    return db.query(MatchRequest).filter(MatchRequest.id == request_id).first()


def find_candidate_requests(db: Session, request: MatchRequest, limit: int = 10) -> List[Tuple[MatchRequest, User]]:
    """같은 유형·장소 종류·날짜·시간대의 다른 사용자 active 요청. 오래된 요청 우선."""
    return (
        db.query(MatchRequest, User)
        .join(User, MatchRequest.user_id == User.id)
        .filter(
            MatchRequest.status == MatchRequestStatus.ACTIVE.value,
            MatchRequest.meetup_type == request.meetup_type,
            MatchRequest.venue_type == request.venue_type,
            MatchRequest.preferred_date == request.preferred_date,
            MatchRequest.preferred_time == request.preferred_time,
            MatchRequest.user_id != request.user_id,
        )
        .order_by(MatchRequest.created_at.asc(), MatchRequest.id.asc())
        .limit(limit)
        .all()
    )


def mark_requests_matched(db: Session, user_ids: Sequence[int], meetup_type: str) -> None:
    (
        db.query(MatchRequest)
        .filter(
            MatchRequest.user_id.in_(list(user_ids)),
            MatchRequest.meetup_type == meetup_type,
            MatchRequest.status == MatchRequestStatus.ACTIVE.value,
        )
        .update({MatchRequest.status: MatchRequestStatus.MATCHED.value}, synchronize_session="fetch")
    )


# --- matches -----------------------------------------------------------------


def find_open_matches(db: Session, request: MatchRequest, capacity: int) -> List[Tuple[Match, List[User]]]:
    """요청과 조건이 같고 자리가 남은 pending 매칭과 멤버 목록. 요청자가 이미 속한 매칭은 제외, 오래된 순."""
    candidates = (
        db.query(Match)
        .filter(
            Match.status == MatchStatus.PENDING.value,
            Match.meetup_type == request.meetup_type,
            Match.venue_type == request.venue_type,
            Match.suggested_date == request.preferred_date,
            Match.suggested_time == request.preferred_time,
        )
        .order_by(Match.created_at.asc(), Match.id.asc())
        .all()
    )
    found = []
    for match in candidates:
        members = get_members(db, match.id)
        if len(members) < capacity and all(u.id != request.user_id for u in members):
            found.append((match, members))
    return found


def create_match(db: Session, request: MatchRequest) -> Match:
    match = Match(
        meetup_type=request.meetup_type,
        venue_type=request.venue_type,
        suggested_date=request.preferred_date,
        suggested_time=request.preferred_time,
        match_score=0,
        status=MatchStatus.PENDING.value,
    )
    db.add(match)
    db.flush()
    return match


def add_members(db: Session, match: Match, user_ids: Sequence[int]) -> None:
    for user_id in user_ids:
        db.add(MatchMember(match_id=match.id, user_id=user_id))
    db.flush()


def get_members(db: Session, match_id: int) -> List[User]:
    return (
        db.query(User)
        .join(MatchMember, MatchMember.user_id == User.id)
        .filter(MatchMember.match_id == match_id)
        .order_by(MatchMember.id.asc())
        .all()
    )


def complete_other_matches(db: Session, user_ids: Sequence[int], keep_match_id: int) -> None:
    """새 매칭에 들어간 사용자의 이전 pending 매칭은 completed 처리."""
    stale = (
        db.query(Match)
        .join(MatchMember, MatchMember.match_id == Match.id)
        .filter(
            MatchMember.user_id.in_(list(user_ids)),
            Match.status == MatchStatus.PENDING.value,
            Match.id != keep_match_id,
        )
        .all()
    )
    for match in stale:
        match.status = MatchStatus.COMPLETED.value
    db.flush()


def get_pending_matches(db: Session, user_id: int) -> List[Match]:
    """사용자가 속한 pending 매칭, 최신순."""
    return (
        db.query(Match)
        .join(MatchMember, MatchMember.match_id == Match.id)
        .filter(MatchMember.user_id == user_id, Match.status == MatchStatus.PENDING.value)
        .order_by(Match.created_at.desc(), Match.id.desc())
        .all()
    )
