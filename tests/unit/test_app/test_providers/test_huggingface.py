"""
test_huggingface.py - Hugging Face Provider 테스트

httpx.MockTransport로 네트워크 없이 검증:
- 요청 JSON (model, messages, max_tokens)
- 응답 파싱 (choices[0].message.content)
- 오류 매핑: 429 → RATE_LIMITED, 5xx → API_ERROR, 연결 실패 → NETWORK_ERROR
- 형식 오류 → MALFORMED_RESPONSE
"""

import json

import httpx
import pytest

from src.app.providers.base import ProviderError
from src.app.providers.huggingface import DEFAULT_MODEL, HuggingFaceProvider

# =============================================================================
# Helpers
# =============================================================================


def make_completion_body(content: str | None, model: str = DEFAULT_MODEL) -> dict:
    """OpenAI 호환 chat completion 응답."""
    return {
        "id": "chatcmpl-test",
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
    }


def make_provider(handler, **kwargs) -> HuggingFaceProvider:
    return HuggingFaceProvider(
        api_key="hf_test",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


MESSAGES = [
    {"role": "user", "content": "Hello"},
    {"role": "assistant", "content": "Hi"},
    {"role": "user", "content": "How are you?"},
]


# =============================================================================
# 초기화 테스트
# =============================================================================


class TestHuggingFaceProviderInit:
    """초기화 테스트."""

    def test_missing_key_fails_fast(self, monkeypatch):
        monkeypatch.delenv("HUGGINGFACE_API_KEY", raising=False)

        with pytest.raises(ProviderError) as exc_info:
            HuggingFaceProvider()

        assert exc_info.value.code == ProviderError.KEY_MISSING

    def test_key_from_env(self, monkeypatch):
        monkeypatch.setenv("HUGGINGFACE_API_KEY", "hf_env")

        provider = HuggingFaceProvider()

        assert provider.api_key == "hf_env"
        assert provider.model == "meta-llama/Meta-Llama-3-8B-Instruct"

    def test_base_url_trailing_slash(self):
        provider = HuggingFaceProvider(api_key="hf_test", base_url="http://localhost:8080/v1/")

        assert provider.base_url == "http://localhost:8080/v1"


# =============================================================================
# 요청/응답 테스트
# =============================================================================


class TestHuggingFaceChat:
    """chat 호출 테스트."""

    @pytest.mark.asyncio
    async def test_request_payload(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["auth"] = request.headers.get("authorization")
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json=make_completion_body("Fine"))

        provider = make_provider(handler)
        await provider.chat(MESSAGES, max_tokens=3000)
        await provider.aclose()

        assert captured["url"] == "https://router.huggingface.co/v1/chat/completions"
        assert captured["auth"] == "Bearer hf_test"
        assert captured["body"]["model"] == DEFAULT_MODEL
        assert captured["body"]["max_tokens"] == 3000
        assert captured["body"]["messages"] == MESSAGES
        assert "temperature" not in captured["body"]

    @pytest.mark.asyncio
    async def test_temperature_included_when_set(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json=make_completion_body("Fine"))

        provider = make_provider(handler, temperature=0.2)
        await provider.chat(MESSAGES, max_tokens=10)

        assert captured["body"]["temperature"] == 0.2

    @pytest.mark.asyncio
    async def test_parses_reply(self):
        provider = make_provider(
            lambda request: httpx.Response(200, json=make_completion_body("Fine, thanks"))
        )

        completion = await provider.chat(MESSAGES, max_tokens=10)

        assert completion.text == "Fine, thanks"
        assert completion.provider == "huggingface"
        assert completion.model_requested == DEFAULT_MODEL
        assert completion.model_used == DEFAULT_MODEL
        assert completion.request_id == "chatcmpl-test"
        assert completion.finish_reason == "stop"

    @pytest.mark.asyncio
    async def test_empty_choices_gives_none(self):
        body = {"id": "x", "model": DEFAULT_MODEL, "choices": []}
        provider = make_provider(lambda request: httpx.Response(200, json=body))

        completion = await provider.chat(MESSAGES, max_tokens=10)

        assert completion.text is None

    @pytest.mark.asyncio
    async def test_null_content_gives_none(self):
        provider = make_provider(
            lambda request: httpx.Response(200, json=make_completion_body(None))
        )

        completion = await provider.chat(MESSAGES, max_tokens=10)

        assert completion.text is None


# =============================================================================
# 오류 매핑 테스트
# =============================================================================


class TestHuggingFaceErrors:
    """ProviderError 매핑 테스트."""

    @pytest.mark.asyncio
    async def test_rate_limited(self):
        provider = make_provider(lambda request: httpx.Response(429, json={"error": "quota"}))

        with pytest.raises(ProviderError) as exc_info:
            await provider.chat(MESSAGES, max_tokens=10)

        assert exc_info.value.code == ProviderError.RATE_LIMITED

    @pytest.mark.asyncio
    async def test_server_error(self):
        provider = make_provider(lambda request: httpx.Response(503, text="unavailable"))

        with pytest.raises(ProviderError) as exc_info:
            await provider.chat(MESSAGES, max_tokens=10)

        assert exc_info.value.code == ProviderError.API_ERROR
        assert exc_info.value.context["status_code"] == 503

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        provider = make_provider(handler)

        with pytest.raises(ProviderError) as exc_info:
            await provider.chat(MESSAGES, max_tokens=10)

        assert exc_info.value.code == ProviderError.NETWORK_ERROR

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        provider = make_provider(lambda request: httpx.Response(200, text="<html>oops</html>"))

        with pytest.raises(ProviderError) as exc_info:
            await provider.chat(MESSAGES, max_tokens=10)

        assert exc_info.value.code == ProviderError.MALFORMED_RESPONSE

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"model": DEFAULT_MODEL},
            {"choices": "nope"},
            {"choices": ["not an object"]},
            {"choices": [{"message": "text"}]},
            {"choices": [{"message": {"content": 42}}]},
            ["not", "a", "dict"],
        ],
    )
    async def test_malformed_structure(self, body):
        provider = make_provider(lambda request: httpx.Response(200, json=body))

        with pytest.raises(ProviderError) as exc_info:
            await provider.chat(MESSAGES, max_tokens=10)

        assert exc_info.value.code == ProviderError.MALFORMED_RESPONSE
