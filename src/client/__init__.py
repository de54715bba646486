"""
Client layer: 서버 HTTP API를 쓰는 대화 오케스트레이터.

- api: HTTP 클라이언트 (httpx)
- session: 턴 전송, optimistic update, pending 가드
- directory: 대화 목록 캐시, 제목 변경
- events: 상태 변경 알림
"""

from .api import ChatApiClient, TransportError
from .directory import ChatDirectory
from .events import EVENT_CHANGED, EVENT_FAILED, EventEmitter
from .session import ChatSession

__all__ = [
    "ChatApiClient",
    "TransportError",
    "ChatDirectory",
    "ChatSession",
    "EventEmitter",
    "EVENT_CHANGED",
    "EVENT_FAILED",
]
