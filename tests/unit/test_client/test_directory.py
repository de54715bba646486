"""
test_directory.py - ChatDirectory 테스트

검증 포인트:
1. refresh: 목록 교체, loading 해제
2. refresh 실패: 기존 목록 유지, loading false, "failed" 1회, 예외 없음
3. rename: 빈 제목은 서버 호출 없이 reject, 성공 시 로컬 title만 갱신
4. 정렬은 클라이언트에서 (서버 순서 비의존)
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.client.api import ChatApiClient, TransportError
from src.client.directory import ChatDirectory
from src.domain.errors import ValidationError
from src.domain.schemas import Conversation


def make_conversation(chat_id: str, created_at: str, title: str = "Untitled Chat") -> Conversation:
    return Conversation(id=chat_id, created_at=created_at, title=title)


FIRST_ID = "chat_1700000000000"
SECOND_ID = "chat_1700000500000"
FIRST_CREATED = "2023-11-14T22:13:20+00:00"
SECOND_CREATED = "2023-11-14T22:21:40+00:00"


def server_list() -> list[Conversation]:
    """매 호출 새 객체 (서버 응답 파싱과 동일)."""
    return [
        make_conversation(FIRST_ID, FIRST_CREATED),
        make_conversation(SECOND_ID, SECOND_CREATED),
    ]


@pytest.fixture
def api() -> MagicMock:
    api = MagicMock(spec=ChatApiClient)
    api.list_chats = AsyncMock(return_value=server_list())
    api.rename_chat = AsyncMock(return_value=None)
    return api


@pytest.fixture
def directory(api: MagicMock) -> ChatDirectory:
    return ChatDirectory(api)


def record_events(directory: ChatDirectory) -> list[tuple[str, dict]]:
    events: list[tuple[str, dict]] = []
    directory.events.subscribe(lambda event, payload: events.append((event, payload)))
    return events


# =============================================================================
# refresh
# =============================================================================


class TestRefresh:
    """목록 갱신."""

    @pytest.mark.asyncio
    async def test_replaces_conversations(self, directory: ChatDirectory):
        directory.conversations = {"stale": make_conversation("stale", "x")}

        assert await directory.refresh() is True

        assert set(directory.conversations) == {FIRST_ID, SECOND_ID}
        assert directory.loading is False

    @pytest.mark.asyncio
    async def test_loading_during_fetch(self, directory: ChatDirectory, api: MagicMock):
        seen = {}

        async def list_chats():
            seen["loading"] = directory.loading
            return []

        api.list_chats.side_effect = list_chats

        await directory.refresh()

        assert seen["loading"] is True
        assert directory.loading is False

    @pytest.mark.asyncio
    async def test_store_unreachable(self, directory: ChatDirectory, api: MagicMock):
        await directory.refresh()
        before = dict(directory.conversations)
        api.list_chats.side_effect = TransportError("Failed to fetch chats.", 500)
        events = record_events(directory)

        assert await directory.refresh() is False

        assert directory.conversations == before
        assert directory.loading is False
        failed = [e for e in events if e[0] == "failed"]
        assert failed == [("failed", {"error": "Failed to fetch chats.", "status_code": 500})]

    @pytest.mark.asyncio
    async def test_failure_does_not_raise(self, directory: ChatDirectory, api: MagicMock):
        api.list_chats.side_effect = TransportError("down")

        result = await directory.refresh()

        assert result is False
        assert directory.conversations == {}

    @pytest.mark.asyncio
    async def test_cancelled_refresh_clears_loading(self, directory: ChatDirectory, api: MagicMock):
        async def never_returns():
            await asyncio.Event().wait()

        api.list_chats.side_effect = never_returns
        task = asyncio.create_task(directory.refresh())
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert directory.loading is False

    @pytest.mark.asyncio
    async def test_raising_listener_does_not_leave_loading(self, directory: ChatDirectory):
        def broken_listener(event, payload):
            if payload.get("loading") is True:
                raise RuntimeError("ui callback failed")

        directory.events.subscribe(broken_listener)

        assert await directory.refresh() is True

        assert directory.loading is False
        assert set(directory.conversations) == {FIRST_ID, SECOND_ID}


# =============================================================================
# rename
# =============================================================================


class TestRename:
    """제목 변경."""

    @pytest.mark.asyncio
    async def test_updates_local_title_without_refresh(self, directory: ChatDirectory, api: MagicMock):
        await directory.refresh()
        api.list_chats.reset_mock()

        assert await directory.rename(FIRST_ID, "Greeting") is True

        api.rename_chat.assert_awaited_once_with(FIRST_ID, "Greeting")
        api.list_chats.assert_not_called()
        assert directory.get(FIRST_ID).title == "Greeting"
        assert directory.get(SECOND_ID).title == "Untitled Chat"

    @pytest.mark.asyncio
    async def test_whitespace_title_rejected(self, directory: ChatDirectory, api: MagicMock):
        await directory.refresh()
        original = directory.get(FIRST_ID).title

        with pytest.raises(ValidationError):
            await directory.rename("chat_1700000000000", "  ")

        api.rename_chat.assert_not_called()
        assert directory.get(FIRST_ID).title == original

    @pytest.mark.asyncio
    async def test_server_failure(self, directory: ChatDirectory, api: MagicMock):
        await directory.refresh()
        api.rename_chat.side_effect = TransportError("Failed to rename chat.", 500)
        events = record_events(directory)

        assert await directory.rename(FIRST_ID, "Greeting") is False

        assert directory.get(FIRST_ID).title != "Greeting"
        assert [e[0] for e in events] == ["failed"]

    @pytest.mark.asyncio
    async def test_unknown_local_id(self, directory: ChatDirectory):
        """로컬에 없는 ID도 서버 변경은 성공으로 처리."""
        assert await directory.rename("chat_elsewhere", "Title") is True
        assert directory.get("chat_elsewhere") is None

    @pytest.mark.asyncio
    async def test_local_write_wins_until_refresh(self, directory: ChatDirectory, api: MagicMock):
        await directory.refresh()
        await directory.rename(FIRST_ID, "Mine")
        api.list_chats.return_value = [
            make_conversation(FIRST_ID, FIRST_CREATED, title="Theirs"),
        ]

        assert directory.get(FIRST_ID).title == "Mine"
        await directory.refresh()
        assert directory.get(FIRST_ID).title == "Theirs"


# =============================================================================
# 정렬
# =============================================================================


class TestSorting:
    """클라이언트 정렬."""

    @pytest.mark.asyncio
    async def test_newest_first_regardless_of_server_order(self, directory: ChatDirectory, api: MagicMock):
        api.list_chats.return_value = server_list()
        await directory.refresh()
        forward = [c.id for c in directory.sorted_conversations()]

        api.list_chats.return_value = list(reversed(server_list()))
        await directory.refresh()
        backward = [c.id for c in directory.sorted_conversations()]

        assert forward == backward == [SECOND_ID, FIRST_ID]
