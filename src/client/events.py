"""
Event Emitter: 상태 변경 알림.

ChatSession/ChatDirectory 상태는 각 객체가 소유하고,
UI는 subscribe로 변경("changed")과 실패("failed")를 받는다.
"""

import logging
from collections.abc import Callable
from typing import Any

Listener = Callable[[str, dict[str, Any]], None]

logger = logging.getLogger(__name__)

EVENT_CHANGED = "changed"
EVENT_FAILED = "failed"


class EventEmitter:
    """동기 observer 목록."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        리스너 등록.

        Returns:
            구독 해제 함수
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: str, **payload: Any) -> None:
        """
        모든 리스너 호출.

        리스너 예외는 로그만 남기고 다음 리스너로 넘어간다.
        """
        for listener in list(self._listeners):
            try:
                listener(event, payload)
            except Exception:
                logger.exception(f"Listener failed on \"{event}\" event")
