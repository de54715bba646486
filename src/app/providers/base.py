"""
LLM Provider 추상 인터페이스.

- Provider 추상화로 추론 백엔드 교체 가능 (모델명은 config만 SSOT)
- model_requested + model_used 기록
- 백엔드는 stateless: 매 호출마다 전체 메시지 목록을 보낸다
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

# =============================================================================
# Result Data Classes
# =============================================================================

@dataclass
class ChatCompletion:
    """
    채팅 완성 결과.

    text가 None/빈 문자열이면 상위(InferenceGateway)에서 fallback 처리.
    """
    text: str | None
    provider: str
    model_requested: str
    model_used: str | None = None
    request_id: str | None = None
    finish_reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result = {
            "provider": self.provider,
            "model_requested": self.model_requested,
            "model_used": self.model_used,
            "request_id": self.request_id,
            "finish_reason": self.finish_reason,
        }
        return {k: v for k, v in result.items() if v is not None}


# =============================================================================
# Provider Exceptions
# =============================================================================

class ProviderError(Exception):
    """Provider 관련 에러."""

    # 에러 코드
    KEY_MISSING = "KEY_MISSING"
    NETWORK_ERROR = "NETWORK_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    API_ERROR = "API_ERROR"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"

    def __init__(self, code: str, message: str, **context: Any) -> None:
        self.code = code
        self.message = message
        self.context = context
        super().__init__(f"[{code}] {message}")


# =============================================================================
# Abstract Provider
# =============================================================================

class LLMProvider(ABC):
    """
    LLM Provider 추상 인터페이스.

    구현체는 생성 시 자격 증명을 확인하고 (fail-fast),
    모든 전송/응답 오류를 ProviderError로 변환해야 한다.
    """

    name: str = "unknown"
    model: str

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, str]],
        max_tokens: int,
    ) -> ChatCompletion:
        """
        순서가 있는 메시지 목록으로 응답 생성.

        Args:
            messages: [{"role": "user"|"assistant", "content": str}, ...]
            max_tokens: 응답 길이 상한

        Returns:
            ChatCompletion

        Raises:
            ProviderError: 전송 실패, 쿼터 초과, 응답 형식 오류
        """
        ...

    async def aclose(self) -> None:
        """보유한 HTTP 클라이언트 정리 (필요한 구현체만)."""
        return None
