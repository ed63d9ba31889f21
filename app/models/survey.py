# SurveyResponse 모델: 가입 직후 성향 설문 (매칭 점수 계산에 사용)

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from app.models.base import Base


class SurveyResponse(Base):
    """사용자당 1개. 다시 제출하면 덮어쓴다."""

    __tablename__ = "user_survey_responses"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    favorite_conversation_topic = Column(String(30), nullable=False)  # travel, food, career, hobbies, current_events
    favorite_music = Column(String(30), nullable=False)  # pop, rock, hiphop, electronic, indie
    personality_type = Column(String(30), nullable=False)  # outgoing, thoughtful, adventurous, chill, passionate
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
