# SSE + Redis Pub/Sub: 모임 참여 인원/상태 실시간 갱신
# SSE: 폴링 없이 서버→클라이언트 푸시 (long-lived connection → 예외 처리 필수)
# Redis Pub/Sub: 멀티 워커 환경에서도 모든 구독자에게 전달, 발행/구독 분리
# 채팅 자체는 WebSocket(chat_relay)으로 처리하고, 여기서는 모임 목록/헤더용 이벤트만 다룸

import asyncio
import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict

import redis.asyncio as redis

logger = logging.getLogger(__name__)

# Docker 환경에서는 localhost가 아니라 서비스명(redis)을 사용해야 함
REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")
CHANNEL_PREFIX = "meetup:"
CHANNEL_SUFFIX = ":events"
HEARTBEAT_INTERVAL = 15.0

# 모듈 단일 클라이언트 재사용 (매 요청마다 새 연결 생성 방지)
redis_client = redis.from_url(REDIS_URL, decode_responses=True)


def _channel(meetup_id: int) -> str:
    return f"{CHANNEL_PREFIX}{meetup_id}{CHANNEL_SUFFIX}"


async def _publish(meetup_id: int, payload: Dict[str, Any]) -> None:
    """commit 이후 호출. Redis 미기동이어도 join/leave 결과는 유지 (경고 로그만)."""
    payload.setdefault("ts", datetime.now(timezone.utc).isoformat())
    try:
        await redis_client.publish(_channel(meetup_id), json.dumps(payload, ensure_ascii=False))
    except Exception as e:
        logger.warning("redis publish to %s failed: %s", _channel(meetup_id), e)


async def publish_participants_updated(
    meetup_id: int,
    current_participants: int,
    max_participants: int,
    status: str,
) -> None:
    """join/leave commit 후 라우터에서 호출."""
    await _publish(
        meetup_id,
        {
            "type": "participants_updated",
            "meetup_id": meetup_id,
            "current_participants": current_participants,
            "max_participants": max_participants,
            "status": status,
        },
    )


async def publish_meetup_status_changed(meetup_id: int, status: str) -> None:
    """모임 상태 변경 시 발행 → SSE에서 event: meetup_status_changed 로 전달."""
    await _publish(
        meetup_id,
        {"type": "meetup_status_changed", "meetup_id": meetup_id, "status": status},
    )


def format_sse(data: str) -> str:
    """payload의 type을 SSE event 이름으로 사용."""
    try:
        event_name = json.loads(data).get("type") or "message"
    except (ValueError, AttributeError):
        event_name = "message"
    return f"event: {event_name}\ndata: {data}\n\n"


async def stream_meetup_events(meetup_id: int) -> AsyncGenerator[str, None]:
    """
    GET /meetups/{id}/events/stream 용.
    meetup:{id}:events 채널 구독 → SSE로 전달. 15초마다 heartbeat 주석 전송.
    """
    channel = _channel(meetup_id)
    pubsub = redis_client.pubsub()
    try:
        await pubsub.subscribe(channel)
        last_heartbeat = datetime.now(timezone.utc).timestamp()

        while True:
            message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
            now = datetime.now(timezone.utc).timestamp()
            if now - last_heartbeat >= HEARTBEAT_INTERVAL:
                yield ": ping\n\n"
                last_heartbeat = now
            if message and message.get("type") == "message":
                yield format_sse(message.get("data") or "")
    except asyncio.CancelledError:
        logger.debug("SSE stream for meetup %s cancelled", meetup_id)
        raise
    finally:
        await pubsub.unsubscribe(channel)
        await pubsub.aclose()
