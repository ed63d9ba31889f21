# 사용자 API (프로필 등록/조회, 참여 중인 모임)
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.crud.meetup_crud import get_user_meetups
from app.database import get_db
from app.models.meetup import Meetup
from app.models.user import User
from app.schemas.meetup import MeetupResponse
from app.schemas.user import UserCreate, UserOut

router = APIRouter(prefix="/users", tags=["Users"])


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.post("", response_model=UserOut, status_code=201)
def create_user(body: UserCreate, db: Session = Depends(get_db)) -> User:
    """인증을 마친 사용자의 프로필 등록. username/email 중복 시 409."""
    taken = (
        db.query(User.id)
        .filter(or_(User.username == body.username, User.email == body.email))
        .first()
    )
    if taken is not None:
        raise HTTPException(status_code=409, detail="Username or email already taken")
    user = User(**body.model_dump())
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Username or email already taken")
    db.refresh(user)
    return user


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: int, db: Session = Depends(get_db)) -> User:
    return _get_user_or_404(db, user_id)


@router.get("/{user_id}/meetups", response_model=List[MeetupResponse])
def list_user_meetups(user_id: int, db: Session = Depends(get_db)) -> List[Meetup]:
    """사용자가 현재 참여 중(joined)인 모임."""
    _get_user_or_404(db, user_id)
    return get_user_meetups(db, user_id)
