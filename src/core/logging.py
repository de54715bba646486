"""
Turn logging: 로거 설정, 턴 감사 로그 기록

규칙:
- 턴 로그 필수 컨텍스트: turn_id, started_at, message_count, result
- 실패 시 error_code/error_context 기록 (클라이언트 응답에는 미포함)
- 메시지 본문은 기록하지 않음 (길이만)
"""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from src.core.document_store import atomic_write_json
from src.core.ids import generate_turn_id
from src.domain.schemas import TurnLog

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s - %(message)s"


def configure_logging(level: str | int = "INFO") -> None:
    """
    프로세스 로거 설정 (시작 시 한 번).

    Args:
        level: 로그 레벨 이름 또는 숫자
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("src").setLevel(level)


# =============================================================================
# Turn Log Management
# =============================================================================


def create_turn_log(message_count: int) -> TurnLog:
    """
    새 TurnLog 생성.

    Args:
        message_count: 요청에 포함된 메시지 수

    Returns:
        초기화된 TurnLog
    """
    return TurnLog(
        turn_id=generate_turn_id(),
        started_at=datetime.now(UTC).isoformat(),
        message_count=message_count,
        result="pending",
    )


def complete_turn_log(
    turn_log: TurnLog,
    result: str,
    conversation_id: str | None = None,
    error_code: str | None = None,
    error_context: dict[str, Any] | None = None,
) -> None:
    """
    TurnLog 완료 처리.

    Args:
        turn_log: TurnLog 인스턴스
        result: success, unsaved, failed
        conversation_id: 저장된 대화 ID
        error_code: 에러 코드 (실패/미저장 시)
        error_context: 에러 컨텍스트 (실패/미저장 시)
    """
    turn_log.finished_at = datetime.now(UTC).isoformat()
    turn_log.result = result
    turn_log.conversation_id = conversation_id

    if result != "success":
        turn_log.error_code = error_code
        turn_log.error_context = error_context


def save_turn_log(turn_log: TurnLog, logs_dir: Path) -> Path:
    """
    TurnLog를 파일로 저장.

    Returns:
        저장된 파일 경로
    """
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"turn_{turn_log.turn_id}.json"
    atomic_write_json(log_path, turn_log.to_dict())
    return log_path


def load_turn_log(log_path: Path) -> dict[str, Any]:
    """TurnLog 파일 로드."""
    data: dict[str, Any] = json.loads(log_path.read_text(encoding="utf-8"))
    return data


def list_turn_logs(logs_dir: Path) -> list[Path]:
    """
    logs 디렉터리의 모든 turn log 파일 목록.

    Returns:
        로그 파일 경로 목록 (최신순)
    """
    if not logs_dir.exists():
        return []

    logs = list(logs_dir.glob("turn_*.json"))
    logs.sort(key=lambda p: p.stat().st_mtime, reverse=True)
    return logs
