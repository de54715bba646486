"""
Pytest fixtures for the chat server/client tests.

구성:
- 경로/설정 fixture
- 문서 저장소 (tmp_path, 열린 핸들)
- StubProvider: 네트워크 없이 응답/실패를 흉내내는 LLMProvider
"""

from collections.abc import Generator
from pathlib import Path

import pytest
import yaml

from src.app.providers.base import ChatCompletion, LLMProvider, ProviderError
from src.app.services.conversations import ConversationStore
from src.core.document_store import JsonDocumentStore
from src.core.ids import _reset_chat_id_clock

# =============================================================================
# Path Fixtures
# =============================================================================

@pytest.fixture
def project_root() -> Path:
    """프로젝트 루트 경로."""
    return Path(__file__).parent.parent


@pytest.fixture
def default_config_path(project_root: Path) -> Path:
    """default.yaml 경로."""
    return project_root / "default.yaml"


@pytest.fixture
def default_config(default_config_path: Path) -> dict:
    """기본 설정 로드."""
    with open(default_config_path, encoding="utf-8") as f:
        return yaml.safe_load(f)


@pytest.fixture(autouse=True)
def reset_chat_id_clock() -> Generator[None, None, None]:
    """테스트 간 chat_id 단조 증가 기준 격리."""
    _reset_chat_id_clock()
    yield
    _reset_chat_id_clock()


# =============================================================================
# Storage Fixtures
# =============================================================================

@pytest.fixture
def document_store(tmp_path: Path) -> Generator[JsonDocumentStore, None, None]:
    """열린 문서 저장소 (tmp_path 기반)."""
    store = JsonDocumentStore(tmp_path / "data", lock_timeout=2.0).open()
    yield store
    store.close()


@pytest.fixture
def conversation_store(document_store: JsonDocumentStore) -> ConversationStore:
    """대화 저장소."""
    return ConversationStore(document_store)


# =============================================================================
# Provider Fixtures
# =============================================================================

class StubProvider(LLMProvider):
    """
    테스트용 provider.

    - replies: 순서대로 반환할 응답 원문 (소진되면 마지막 값 반복)
    - error: 설정하면 chat 호출 시 raise
    - calls: 받은 (messages, max_tokens) 기록
    """

    name = "stub"

    def __init__(self, replies: list[str | None] | None = None, model: str = "stub-model"):
        self.model = model
        self.replies: list[str | None] = list(replies or ["Hi there"])
        self.error: ProviderError | None = None
        self.calls: list[tuple[list[dict[str, str]], int]] = []
        self.closed = False

    async def chat(self, messages: list[dict[str, str]], max_tokens: int) -> ChatCompletion:
        self.calls.append(([dict(m) for m in messages], max_tokens))
        if self.error is not None:
            raise self.error
        text = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        return ChatCompletion(
            text=text,
            provider=self.name,
            model_requested=self.model,
            model_used=self.model,
        )

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def stub_provider() -> StubProvider:
    """기본 응답 "Hi there"."""
    return StubProvider()


@pytest.fixture
def provider_factory() -> type[StubProvider]:
    """StubProvider 클래스 (응답 목록 지정용)."""
    return StubProvider
