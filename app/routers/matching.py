# 설문 + 스마트 매칭 API
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.crud.matching_crud import MatchingError
from app.database import get_db
from app.models.matching import Match
from app.models.survey import SurveyResponse
from app.models.user import User
from app.schemas.matching import (
    CancelRequestBody,
    MatchOut,
    MatchRequestBody,
    MatchRequestOut,
    MatchRequestResult,
    SurveyBody,
    SurveyOut,
)
from app.schemas.user import UserOut
from app.services import matching_service

router = APIRouter(tags=["Matching"])


def _match_out(match: Match, members: List[User]) -> MatchOut:
    out = MatchOut.model_validate(match)
    out.users = [UserOut.model_validate(u) for u in members]
    return out


@router.post("/survey", response_model=SurveyOut)
def post_survey(body: SurveyBody, db: Session = Depends(get_db)) -> SurveyResponse:
    """성향 설문 제출. 다시 제출하면 덮어씀."""
    try:
        return matching_service.submit_survey(db, body.user_id, body.model_dump(exclude={"user_id"}))
    except MatchingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/survey/{user_id}", response_model=SurveyOut)
def get_survey(user_id: int, db: Session = Depends(get_db)) -> SurveyResponse:
    try:
        return matching_service.get_survey(db, user_id)
    except MatchingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/matching-requests", response_model=MatchRequestResult)
def post_matching_request(body: MatchRequestBody, db: Session = Depends(get_db)) -> MatchRequestResult:
    """매칭 요청 저장 후 즉시 매칭 시도. 매칭이 없으면 match=null로 대기."""
    try:
        request, match = matching_service.request_match(db, body.user_id, body.model_dump(exclude={"user_id"}))
    except MatchingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    if match is None:
        return MatchRequestResult(
            request=MatchRequestOut.model_validate(request),
            message="Request submitted, looking for compatible matches...",
        )
    return MatchRequestResult(
        request=MatchRequestOut.model_validate(request),
        match=_match_out(match, matching_service.list_members(db, match.id)),
        message="Matched",
    )


@router.delete("/matching-requests/{request_id}", response_model=MatchRequestOut)
def delete_matching_request(
    request_id: int, body: CancelRequestBody, db: Session = Depends(get_db)
) -> MatchRequestOut:
    """본인의 active 요청만 취소 가능."""
    try:
        return matching_service.cancel_request(db, body.user_id, request_id)
    except MatchingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/users/{user_id}/matches", response_model=List[MatchOut])
def get_user_matches(user_id: int, db: Session = Depends(get_db)) -> List[MatchOut]:
    """사용자의 현재(pending) 매칭과 멤버."""
    try:
        rows = matching_service.list_matches(db, user_id)
    except MatchingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return [_match_out(m, members) for m, members in rows]
