# 참여/취소 요청·응답 스키마

from pydantic import BaseModel


class JoinLeaveBody(BaseModel):
    """참여/취소 모두 사용자 식별만 필요 (인증은 외부 협력자)."""
    user_id: int


class ParticipationResult(BaseModel):
    message: str
    current_participants: int
