"""
Hugging Face Inference Provider.

OpenAI 호환 chat completions 엔드포인트 사용:
    POST {base_url}/chat/completions

본 모듈 역할:
1. 메시지 목록 → 요청 JSON 변환
2. HTTP 호출 및 네트워크/API 오류를 ProviderError로 변환
3. 응답 JSON → ChatCompletion
"""

import logging
import os
from typing import Any

import httpx

from .base import ChatCompletion, LLMProvider, ProviderError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://router.huggingface.co/v1"
DEFAULT_MODEL = "meta-llama/Meta-Llama-3-8B-Instruct"


class HuggingFaceProvider(LLMProvider):
    """
    Hugging Face Inference Provider.

    Usage:
        provider = HuggingFaceProvider(model="meta-llama/Meta-Llama-3-8B-Instruct")
        completion = await provider.chat(messages, max_tokens=3000)
    """

    name = "huggingface"

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        api_key: str | None = None,
        base_url: str | None = None,
        temperature: float | None = None,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            model: 모델 ID (config에서 주입)
            api_key: API 키 (환경변수 HUGGINGFACE_API_KEY 사용 가능)
            base_url: API 기본 URL
            temperature: 샘플링 온도 (None이면 API 기본값)
            timeout: HTTP 타임아웃 (초)
            transport: httpx transport (테스트 주입용)

        Raises:
            ProviderError: API 키가 없을 때 (fail-fast)
        """
        self.model = model
        self.api_key = api_key or os.environ.get("HUGGINGFACE_API_KEY")
        if not self.api_key:
            raise ProviderError(
                ProviderError.KEY_MISSING,
                "HUGGINGFACE_API_KEY is not set.",
            )

        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.temperature = temperature
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """HTTP 클라이언트 (lazy init)."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
            )
        return self._client

    def _build_payload(self, messages: list[dict[str, str]], max_tokens: int) -> dict[str, Any]:
        """요청 JSON 구성."""
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": m["role"], "content": m["content"]} for m in messages
            ],
            "max_tokens": max_tokens,
        }
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        return payload

    async def chat(
        self,
        messages: list[dict[str, str]],
        max_tokens: int,
    ) -> ChatCompletion:
        payload = self._build_payload(messages, max_tokens)
        try:
            resp = await self._get_client().post("/chat/completions", json=payload)
        except httpx.RequestError as e:
            # DNS 실패, 연결 타임아웃 등
            raise ProviderError(ProviderError.NETWORK_ERROR, str(e)) from e

        if resp.status_code == 429:
            raise ProviderError(ProviderError.RATE_LIMITED, "Hugging Face rate limit")
        if resp.status_code >= 400:
            raise ProviderError(
                ProviderError.API_ERROR,
                f"Hugging Face API returned {resp.status_code}",
                status_code=resp.status_code,
                body=resp.text[:500],
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise ProviderError(
                ProviderError.MALFORMED_RESPONSE,
                "response body is not JSON",
            ) from e

        return self._parse_response(data)

    def _parse_response(self, data: Any) -> ChatCompletion:
        """
        응답 JSON → ChatCompletion.

        choices가 비었거나 content가 없으면 text=None (fallback 대상).
        구조 자체가 다르면 MALFORMED_RESPONSE.
        """
        if not isinstance(data, dict) or not isinstance(data.get("choices"), list):
            raise ProviderError(
                ProviderError.MALFORMED_RESPONSE,
                "response has no choices list",
            )

        text: str | None = None
        finish_reason: str | None = None
        choices = data["choices"]
        if choices:
            first = choices[0]
            if not isinstance(first, dict):
                raise ProviderError(
                    ProviderError.MALFORMED_RESPONSE,
                    "choice is not an object",
                )
            message = first.get("message") or {}
            if not isinstance(message, dict):
                raise ProviderError(
                    ProviderError.MALFORMED_RESPONSE,
                    "choice message is not an object",
                )
            content = message.get("content")
            if content is not None and not isinstance(content, str):
                raise ProviderError(
                    ProviderError.MALFORMED_RESPONSE,
                    "message content is not a string",
                )
            text = content
            finish_reason = first.get("finish_reason")

        return ChatCompletion(
            text=text,
            provider=self.name,
            model_requested=self.model,
            model_used=data.get("model") or self.model,
            request_id=data.get("id"),
            finish_reason=finish_reason,
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
