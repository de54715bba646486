"""
Anthropic (Claude) Provider.

- 메시지 목록을 그대로 messages.create에 전달 (system 프롬프트 없음)
- model_requested + model_used 기록
- 재시도 없음: 실패는 ProviderError로 즉시 전달
"""

import logging
import os
from typing import Any

import anthropic

from .base import ChatCompletion, LLMProvider, ProviderError

logger = logging.getLogger(__name__)


class ClaudeProvider(LLMProvider):
    """
    Claude API Provider.

    Usage:
        provider = ClaudeProvider(model="claude-sonnet-4-20250514")
        completion = await provider.chat(messages, max_tokens=3000)
    """

    name = "anthropic"

    def __init__(
        self,
        model: str = "claude-sonnet-4-20250514",
        api_key: str | None = None,
        temperature: float | None = None,
        timeout: float | None = None,
    ):
        """
        Args:
            model: 모델 ID (config에서 주입)
            api_key: API 키 (환경변수 MY_ANTHROPIC_KEY 또는 ANTHROPIC_API_KEY 사용 가능)
            temperature: 샘플링 온도 (None이면 API 기본값)
            timeout: 요청 타임아웃 (초, None이면 SDK 기본값)

        Raises:
            ProviderError: API 키가 없을 때 (fail-fast)
        """
        self.model = model
        # API 키 결정: 인자 > MY_ANTHROPIC_KEY > ANTHROPIC_API_KEY
        self.api_key = (
            api_key
            or os.environ.get("MY_ANTHROPIC_KEY")
            or os.environ.get("ANTHROPIC_API_KEY")
        )

        if not self.api_key:
            raise ProviderError(
                ProviderError.KEY_MISSING,
                "Anthropic API key is missing. "
                "Set MY_ANTHROPIC_KEY or ANTHROPIC_API_KEY.",
            )

        self.temperature = temperature
        self.timeout = timeout
        self._client: Any = None

    def _get_client(self) -> Any:
        """Anthropic 클라이언트 (lazy init)."""
        if self._client is None:
            kwargs: dict[str, Any] = {"api_key": self.api_key}
            if self.timeout is not None:
                kwargs["timeout"] = self.timeout
            self._client = anthropic.AsyncAnthropic(**kwargs)
        return self._client

    async def chat(
        self,
        messages: list[dict[str, str]],
        max_tokens: int,
    ) -> ChatCompletion:
        """messages.create 호출 후 텍스트 블록을 합쳐 반환."""
        api_kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": messages,
        }
        if self.temperature is not None:
            api_kwargs["temperature"] = self.temperature

        try:
            response = await self._get_client().messages.create(**api_kwargs)
        except anthropic.RateLimitError as e:
            raise ProviderError(ProviderError.RATE_LIMITED, "Anthropic rate limit") from e
        except (anthropic.APIConnectionError, anthropic.APITimeoutError) as e:
            raise ProviderError(ProviderError.NETWORK_ERROR, str(e)) from e
        except anthropic.APIStatusError as e:
            raise ProviderError(
                ProviderError.API_ERROR,
                f"Anthropic API returned {e.status_code}",
                status_code=e.status_code,
            ) from e
        except anthropic.APIError as e:
            raise ProviderError(ProviderError.MALFORMED_RESPONSE, str(e)) from e

        return ChatCompletion(
            text=self._extract_text(response),
            provider=self.name,
            model_requested=self.model,
            model_used=getattr(response, "model", None) or self.model,
            request_id=getattr(response, "id", None),
            finish_reason=getattr(response, "stop_reason", None),
        )

    @staticmethod
    def _extract_text(response: Any) -> str | None:
        """
        응답 content 블록에서 텍스트만 추출.

        Raises:
            ProviderError: content가 리스트가 아닐 때
        """
        content = getattr(response, "content", None)
        if content is None:
            return None
        if not isinstance(content, list):
            raise ProviderError(
                ProviderError.MALFORMED_RESPONSE,
                "Anthropic response content is not a list",
            )

        parts = [
            block.text
            for block in content
            if getattr(block, "type", "text") == "text" and isinstance(getattr(block, "text", None), str)
        ]
        return "".join(parts) if parts else None

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
