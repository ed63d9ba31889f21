# 스마트 매칭 서비스: 설문 저장 + 매칭 요청 처리 (트랜잭션 소유)
#
# 매칭 요청 1건 처리 순서
#   1) 요청 저장 (같은 유형 active 요청이 있으면 409)
#   2) 조건이 같고 자리가 남은 pending 매칭에 합류 시도
#   3) 없으면 조건이 같은 다른 사용자 active 요청으로 새 매칭 구성
#   4) 멤버들의 다른 pending 매칭은 completed, active 요청은 matched
# 거리(max_distance)는 저장만 하고 비교하지 않는다 (좌표 변환 없음).

import logging
import threading
from itertools import combinations
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from app.crud import matching_crud
from app.crud.matching_crud import RequestNotActive, RequestNotFound, SurveyNotFound
from app.models.matching import Match, MatchRequest, MatchRequestStatus
from app.models.meetup import MAX_PARTICIPANTS
from app.models.survey import SurveyResponse
from app.models.user import User
from app.services.participant_registry import transaction

logger = logging.getLogger(__name__)

# 후보 조회 → 매칭 생성 사이에 다른 요청이 끼어들지 않도록 프로세스 내 직렬화
_matching_lock = threading.Lock()

CRITERION_POINTS = 20

COMPATIBLE_PERSONALITIES = frozenset(
    frozenset(pair)
    for pair in (
        ("outgoing", "adventurous"),
        ("thoughtful", "passionate"),
        ("chill", "thoughtful"),
        ("adventurous", "passionate"),
        ("outgoing", "passionate"),
    )
)


def personalities_compatible(a: Optional[str], b: Optional[str]) -> bool:
    if not a or not b:
        return False
    return a == b or frozenset((a, b)) in COMPATIBLE_PERSONALITIES


def compatibility_score(a: SurveyResponse, b: SurveyResponse) -> int:
    """두 사용자 설문 비교. 항목당 20점 (대화 주제, 음악, 성격 궁합)."""
    score = 0
    if a.favorite_conversation_topic == b.favorite_conversation_topic:
        score += CRITERION_POINTS
    if a.favorite_music == b.favorite_music:
        score += CRITERION_POINTS
    if personalities_compatible(a.personality_type, b.personality_type):
        score += CRITERION_POINTS
    return score


def group_score(surveys: Dict[int, SurveyResponse], member_ids: Sequence[int]) -> int:
    """모든 멤버 쌍 점수의 평균. 설문이 없는 멤버가 낀 쌍은 0점."""
    pairs = list(combinations(member_ids, 2))
    if not pairs:
        return 0
    total = 0
    for a, b in pairs:
        if a in surveys and b in surveys:
            total += compatibility_score(surveys[a], surveys[b])
    return round(total / len(pairs))


def _age_within(age: Optional[int], low: Optional[int], high: Optional[int]) -> bool:
    if low is None and high is None:
        return True
    # 나이 조건이 있는데 상대 나이를 모르면 제외
    if age is None:
        return False
    return (low is None or age >= low) and (high is None or age <= high)


def ages_compatible(user: User, request: MatchRequest, other: User, other_request: MatchRequest) -> bool:
    """서로의 나이 조건을 모두 만족해야 함."""
    return _age_within(other.age, request.age_range_min, request.age_range_max) and _age_within(
        user.age, other_request.age_range_min, other_request.age_range_max
    )


# --- survey ------------------------------------------------------------------


def submit_survey(db: Session, user_id: int, answers: Dict[str, Any]) -> SurveyResponse:
    with transaction(db):
        user = matching_crud.get_user(db, user_id)
        survey = matching_crud.upsert_survey(db, user, answers)
    logger.info("survey saved for user %s", user_id)
    return survey


def get_survey(db: Session, user_id: int) -> SurveyResponse:
    survey = matching_crud.get_survey(db, user_id)
    if survey is None:
        raise SurveyNotFound("Survey response not found")
    return survey


# --- matching ----------------------------------------------------------------


def _join_open_match(db: Session, user: User, request: MatchRequest, capacity: int) -> Optional[Match]:
    for match, members in matching_crud.find_open_matches(db, request, capacity):
        if all(_age_within(m.age, request.age_range_min, request.age_range_max) for m in members):
            matching_crud.add_members(db, match, [user.id])
            return match
    return None


def _form_new_match(db: Session, user: User, request: MatchRequest, capacity: int) -> Optional[Match]:
    candidates = matching_crud.find_candidate_requests(db, request)
    picked = [other.id for other_request, other in candidates if ages_compatible(user, request, other, other_request)]
    picked = picked[: capacity - 1]
    if not picked:
        return None
    match = matching_crud.create_match(db, request)
    matching_crud.add_members(db, match, [user.id, *picked])
    return match


def request_match(db: Session, user_id: int, data: Dict[str, Any]) -> Tuple[MatchRequest, Optional[Match]]:
    """매칭 요청 저장 후 바로 매칭 시도. 매칭이 안 되면 (요청, None): 요청은 active로 남아 다음 요청자와 매칭된다."""
    with _matching_lock, transaction(db):
        user = matching_crud.get_user(db, user_id)
        request = matching_crud.add_request(db, user_id, data)
        capacity = MAX_PARTICIPANTS[request.meetup_type]

        match = _join_open_match(db, user, request, capacity)
        if match is None:
            match = _form_new_match(db, user, request, capacity)

        if match is not None:
            member_ids = [m.id for m in matching_crud.get_members(db, match.id)]
            matching_crud.complete_other_matches(db, member_ids, keep_match_id=match.id)
            matching_crud.mark_requests_matched(db, member_ids, request.meetup_type)
            match.match_score = group_score(matching_crud.get_surveys(db, member_ids), member_ids)

    if match is None:
        logger.info("matching request %s from user %s is waiting", request.id, user_id)
    else:
        logger.info("user %s matched into match %s (score %s)", user_id, match.id, match.match_score)
    return request, match


def cancel_request(db: Session, user_id: int, request_id: int) -> MatchRequest:
    with transaction(db):
        request = matching_crud.get_request(db, request_id)
        if request is None or request.user_id != user_id:
            raise RequestNotFound("Matching request not found")
        if request.status != MatchRequestStatus.ACTIVE.value:
            raise RequestNotActive(f"Matching request is already {request.status}")
        request.status = MatchRequestStatus.CANCELLED.value
    logger.info("matching request %s cancelled by user %s", request_id, user_id)
    return request


def list_members(db: Session, match_id: int) -> List[User]:
    return matching_crud.get_members(db, match_id)


def list_matches(db: Session, user_id: int) -> List[Tuple[Match, List[User]]]:
    """사용자의 현재(pending) 매칭과 멤버. 최신순."""
    matching_crud.get_user(db, user_id)
    return [(m, matching_crud.get_members(db, m.id)) for m in matching_crud.get_pending_matches(db, user_id)]
