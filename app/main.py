import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.database import SessionLocal
from app.models.chat_message import ChatMessage  # noqa: F401  테이블 메타데이터 등록용
from app.models.matching import Match, MatchMember, MatchRequest  # noqa: F401
from app.models.meetup import Meetup  # noqa: F401
from app.models.participation import Participation  # noqa: F401
from app.models.survey import SurveyResponse  # noqa: F401
from app.models.user import User  # noqa: F401
from app.realtime.chat_relay import ChatRelay
from app.realtime.connection_manager import ConnectionManager
from app.realtime.sse_pubsub import redis_client
from app.routers.chat import router as chat_router
from app.routers.matching import router as matching_router
from app.routers.meetups import router as meetups_router
from app.routers.users import router as users_router
from app.services.chat_service import make_message_saver

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

AUTO_MIGRATE = os.getenv("AUTO_MIGRATE", "1").lower() in ("1", "true", "yes")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]


def _run_alembic_upgrade() -> None:
    """앱 기동 시 DB 마이그레이션 자동 적용."""
    from alembic import command
    from alembic.config import Config

    root = Path(__file__).resolve().parent.parent
    cfg = Config(str(root / "alembic.ini"))
    command.upgrade(cfg, "head")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """기동: 마이그레이션 + 채팅 연결 관리자 생성 / 종료: 연결 정리."""
    if AUTO_MIGRATE:
        try:
            _run_alembic_upgrade()
        except Exception:
            # DB 미기동 등 실패 시에도 앱은 기동 (예: 로컬에서 DB 없이 실행 시)
            logger.exception("alembic upgrade failed; continuing without migrations")

    manager = ConnectionManager()
    app.state.chat_relay = ChatRelay(manager, make_message_saver(SessionLocal))
    logger.info("chat relay ready (send timeout %.1fs)", manager.send_timeout)
    try:
        yield
    finally:
        await manager.close_all()
        await redis_client.aclose()
        logger.info("chat relay stopped")


app = FastAPI(
    title="TableMate API",
    description="식사 모임 매칭 서비스 TableMate의 백엔드 API (모임 참여 + 실시간 채팅 + 스마트 매칭)",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(users_router)
app.include_router(meetups_router)
app.include_router(chat_router)
app.include_router(matching_router)

# CORS 설정
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["Health"])
async def health_check() -> dict:
    return {"status": "ok"}


@app.get("/", tags=["Root"])
async def root() -> dict:
    return {
        "message": "TableMate API에 오신 것을 환영합니다.",
        "docs": "/docs",
        "redoc": "/redoc",
        "health": "/health",
        "chat": "/ws",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
