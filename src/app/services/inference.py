"""
Inference Gateway: 메시지 목록 → 정규화된 응답 텍스트.

규칙:
- 매 호출마다 전체 메시지 목록 전송 (백엔드는 stateless, 컨텍스트 캐시 없음)
- 고정 생성 상한 (max_tokens)
- 응답 정규화: trim → 연속 빈 줄을 빈 줄 하나로
- 빈 응답 → fallback 문자열 (턴 실패로 처리하지 않음)
- Provider 실패 → UpstreamError, 재시도 없음
"""

import logging
import re
from dataclasses import dataclass
from typing import Any

from src.app.providers.base import ChatCompletion, LLMProvider, ProviderError
from src.domain.constants import DEFAULT_FALLBACK_REPLY, DEFAULT_MAX_TOKENS
from src.domain.errors import ErrorCodes, UpstreamError, ValidationError
from src.domain.schemas import Message

logger = logging.getLogger(__name__)

# 줄바꿈 + (공백뿐인 줄 포함) 빈 줄 1개 이상 → 빈 줄 하나
_BLANK_LINE_RUN = re.compile(r"\n(?:[ \t]*\n)+")


def normalize_reply(raw: str) -> str:
    """
    모델 응답 정규화.

    렌더러의 안전성 처리와는 독립적인 단계. 멱등.
    """
    return _BLANK_LINE_RUN.sub("\n\n", raw.strip())


@dataclass
class InferenceReply:
    """정규화된 응답 + provider 메타데이터."""
    text: str
    completion: ChatCompletion
    fallback_used: bool = False


class InferenceGateway:
    """
    추론 게이트웨이.

    Usage:
        gateway = InferenceGateway(provider, max_tokens=3000)
        reply = await gateway.complete(messages)
    """

    def __init__(
        self,
        provider: LLMProvider,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        fallback_reply: str = DEFAULT_FALLBACK_REPLY,
    ):
        self.provider = provider
        self.max_tokens = max_tokens
        self.fallback_reply = fallback_reply

    @classmethod
    def from_config(cls, provider: LLMProvider, ai_config: dict[str, Any]) -> "InferenceGateway":
        return cls(
            provider,
            max_tokens=int(ai_config.get("max_tokens", DEFAULT_MAX_TOKENS)),
            fallback_reply=ai_config.get("fallback_reply") or DEFAULT_FALLBACK_REPLY,
        )

    async def complete(self, messages: list[Message]) -> str:
        """
        응답 텍스트 생성.

        Raises:
            UpstreamError: 전송/쿼터/응답 형식 실패
        """
        reply = await self.generate(messages)
        return reply.text

    async def generate(self, messages: list[Message]) -> InferenceReply:
        """
        응답 생성 (provider 메타데이터 포함).

        Raises:
            ValidationError: 빈 메시지 목록
            UpstreamError: 전송/쿼터/응답 형식 실패
        """
        if not messages:
            raise ValidationError(ErrorCodes.EMPTY_MESSAGES, "messages must not be empty")

        payload = [m.to_dict() for m in messages]
        try:
            completion = await self.provider.chat(payload, max_tokens=self.max_tokens)
        except ProviderError as e:
            logger.error(
                f"Inference failed: provider={self.provider.name} code={e.code} {e.message}"
            )
            raise UpstreamError(
                ErrorCodes.UPSTREAM_FAILED,
                e.message,
                provider=self.provider.name,
                provider_code=e.code,
                **e.context,
            ) from e

        text = normalize_reply(completion.text or "")
        if not text:
            logger.warning(
                f"Empty reply from {completion.provider} ({completion.model_used}); using fallback"
            )
            return InferenceReply(text=self.fallback_reply, completion=completion, fallback_used=True)

        return InferenceReply(text=text, completion=completion)
