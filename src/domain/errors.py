"""
Error definitions for the chat server and client.

에러 분류:
- ValidationError: 빈 제목 등 입력 오류 → 네트워크 호출 전에 즉시 reject
- UpstreamError: 추론 백엔드 실패/응답 형식 오류 → 재시도 없음
- PersistenceError: 문서 저장소 불가/레코드 없음 → optimistic 상태 롤백 없음
- ConfigError: 필수 자격 증명 누락 → 시작 시 치명적

Usage:
    raise PersistenceError(ErrorCodes.CONVERSATION_NOT_FOUND, conversation_id=cid)
"""

from typing import Any


class ChatError(Exception):
    """
    채팅 도메인 에러 기반 클래스.

    엔드포인트 경계에서 일괄 처리한다. context는 로그 전용이며
    클라이언트 응답에는 절대 포함하지 않는다.
    """

    def __init__(self, code: str, message: str = "", **context: Any) -> None:
        self.code = code
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        text = f"[{self.code}] {self.message}".rstrip()
        return f"{text} ({ctx_str})" if ctx_str else text

    def to_dict(self) -> dict[str, Any]:
        """로그/JSON 직렬화용."""
        return {
            "code": self.code,
            "message": self.message,
            **self.context,
        }


class ValidationError(ChatError):
    """입력 검증 실패 (예: 빈 제목)."""
    pass


class UpstreamError(ChatError):
    """추론 백엔드 실패 (전송, 쿼터, 응답 형식)."""
    pass


class PersistenceError(ChatError):
    """문서 저장소 실패 (연결 불가, 레코드 없음, 손상)."""
    pass


class ConfigError(ChatError):
    """시작 시 설정 오류 (필수 자격 증명 누락 등)."""
    pass


# =============================================================================
# Error Codes
# =============================================================================

class ErrorCodes:
    """에러 코드 상수."""

    # === Validation ===
    EMPTY_TITLE = "EMPTY_TITLE"
    EMPTY_MESSAGES = "EMPTY_MESSAGES"
    INVALID_ROLE = "INVALID_ROLE"

    # === Upstream (inference) ===
    UPSTREAM_FAILED = "UPSTREAM_FAILED"

    # === Persistence ===
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    STORE_LOCK_TIMEOUT = "STORE_LOCK_TIMEOUT"
    DOCUMENT_CORRUPT = "DOCUMENT_CORRUPT"
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"
    CONVERSATION_NOT_FOUND = "CONVERSATION_NOT_FOUND"
    CONVERSATION_DIVERGED = "CONVERSATION_DIVERGED"

    # === Config ===
    CREDENTIAL_MISSING = "CREDENTIAL_MISSING"
    UNKNOWN_PROVIDER = "UNKNOWN_PROVIDER"
