"""
Chat Directory: 저장된 대화 목록 캐시.

- refresh(): 전체 목록 교체. 실패 시 기존 목록 유지, 예외를 던지지 않음
- rename(): 서버 변경 후 로컬 title만 갱신 (전체 refresh 없음)
"""

import logging

from src.client.api import ChatApiClient, TransportError
from src.client.events import EVENT_CHANGED, EVENT_FAILED, EventEmitter
from src.domain.schemas import Conversation, validate_title

logger = logging.getLogger(__name__)


class ChatDirectory:
    """
    대화 목록.

    Usage:
        directory = ChatDirectory(api)
        await directory.refresh()
        for conversation in directory.sorted_conversations():
            ...
    """

    def __init__(self, api: ChatApiClient):
        self.api = api
        self.events = EventEmitter()
        self.conversations: dict[str, Conversation] = {}
        self.loading = False

    async def refresh(self) -> bool:
        """
        목록 다시 가져오기.

        Returns:
            True: 갱신됨 / False: 실패 (기존 목록 유지, "failed" 이벤트 1회)
        """
        self.loading = True
        try:
            self.events.emit(EVENT_CHANGED, loading=True)
            fetched = await self.api.list_chats()
            self.conversations = {c.id: c for c in fetched}
            return True
        except TransportError as e:
            logger.warning(f"Chat list refresh failed: {e}")
            self.events.emit(EVENT_FAILED, error=e.message, status_code=e.status_code)
            return False
        finally:
            self.loading = False
            self.events.emit(EVENT_CHANGED, loading=False)

    async def rename(self, chat_id: str, new_title: str) -> bool:
        """
        제목 변경.

        Raises:
            ValidationError: 빈/공백 제목 (서버 호출 없음)

        Returns:
            True: 변경됨 / False: 서버 실패 ("failed" 이벤트)
        """
        validate_title(new_title)
        try:
            await self.api.rename_chat(chat_id, new_title)
        except TransportError as e:
            logger.warning(f"Rename failed for {chat_id}: {e}")
            self.events.emit(EVENT_FAILED, error=e.message, status_code=e.status_code)
            return False

        # 다른 곳에서 동시에 바꿨더라도 다음 refresh 전까지는 로컬 값이 보인다
        conversation = self.conversations.get(chat_id)
        if conversation is not None:
            conversation.title = new_title
        self.events.emit(EVENT_CHANGED, loading=self.loading)
        return True

    def get(self, chat_id: str) -> Conversation | None:
        return self.conversations.get(chat_id)

    def sorted_conversations(self) -> list[Conversation]:
        """최신순 (createdAt 내림차순). 서버 순서에 의존하지 않는다."""
        return sorted(
            self.conversations.values(),
            key=lambda c: (c.created_at, c.id),
            reverse=True,
        )
