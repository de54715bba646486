"""
AI Provider Abstraction.

추론 백엔드 교체 가능하게 설계. 모델명은 config만 SSOT.
"""

from typing import Any

from .anthropic import ClaudeProvider
from .base import ChatCompletion, LLMProvider, ProviderError
from .huggingface import HuggingFaceProvider

PROVIDERS: dict[str, type[LLMProvider]] = {
    "huggingface": HuggingFaceProvider,
    "anthropic": ClaudeProvider,
}


def create_provider(ai_config: dict[str, Any]) -> LLMProvider:
    """
    config의 ai 섹션으로 Provider 생성.

    Args:
        ai_config: {"provider", "model", "base_url", "temperature", "timeout"}

    Raises:
        KeyError: 알 수 없는 provider 이름
        ProviderError: 자격 증명 누락 (fail-fast)
    """
    name = str(ai_config.get("provider") or "huggingface").lower()
    if name not in PROVIDERS:
        raise KeyError(f"Unknown provider: {name!r}")

    kwargs: dict[str, Any] = {}
    if ai_config.get("model"):
        kwargs["model"] = ai_config["model"]
    if ai_config.get("temperature") is not None:
        kwargs["temperature"] = float(ai_config["temperature"])
    if ai_config.get("timeout") is not None:
        kwargs["timeout"] = float(ai_config["timeout"])
    if name == "huggingface" and ai_config.get("base_url"):
        kwargs["base_url"] = ai_config["base_url"]

    return PROVIDERS[name](**kwargs)


__all__ = [
    "LLMProvider",
    "ChatCompletion",
    "ProviderError",
    "ClaudeProvider",
    "HuggingFaceProvider",
    "create_provider",
]
