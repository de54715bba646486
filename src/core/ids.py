"""
ID 생성: chat_id, turn_id

규칙:
- chat_id 수정 금지 (생성 시 한 번만 할당)
- chat_id는 시간 기반 (chat_<epoch ms>), 프로세스 내에서 단조 증가
"""

import threading
import time
import uuid
from datetime import UTC, datetime

from src.domain.constants import CHAT_ID_PREFIX

_chat_id_lock = threading.Lock()
_last_chat_ms = 0


def generate_chat_id(now_ms: int | None = None) -> str:
    """
    Chat ID 생성.

    포맷: chat_{epoch_ms}
    같은 밀리초에 두 번 호출되거나 시계가 뒤로 가도
    직전 값 + 1 ms를 사용하므로 프로세스 내 중복이 없다.

    Args:
        now_ms: 현재 시각 (ms). 테스트용 주입, None이면 time.time()

    Returns:
        chat_id 문자열
    """
    global _last_chat_ms

    if now_ms is None:
        now_ms = int(time.time() * 1000)

    with _chat_id_lock:
        candidate = max(now_ms, _last_chat_ms + 1)
        _last_chat_ms = candidate

    return f"{CHAT_ID_PREFIX}{candidate}"


def generate_turn_id() -> str:
    """
    Turn ID 생성.

    고유성 보장: UUID v4
    포맷: TURN-{timestamp}-{uuid[:8]}

    Returns:
        turn_id 문자열
    """
    now = datetime.now(UTC)
    timestamp = now.strftime("%Y%m%d%H%M%S")
    unique = uuid.uuid4().hex[:8]

    return f"TURN-{timestamp}-{unique}"


def _reset_chat_id_clock() -> None:
    """테스트 전용: 단조 증가 기준 초기화."""
    global _last_chat_ms
    with _chat_id_lock:
        _last_chat_ms = 0
