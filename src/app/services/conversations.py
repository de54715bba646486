"""
Conversation Store: 대화 레코드 영속화 어댑터.

불변 규칙:
- id는 생성 시 한 번만 할당 (chat_<epoch ms>)
- messages는 append로만 증가
- rename은 title 필드만 덮어씀 (last writer wins, 버전 검사 없음)
- 빈/공백 제목은 저장소 호출 전에 reject
"""

import logging
from datetime import UTC, datetime

from src.core.document_store import JsonDocumentStore
from src.core.ids import generate_chat_id
from src.domain.constants import CONVERSATIONS_COLLECTION, DEFAULT_CHAT_TITLE
from src.domain.errors import ErrorCodes, PersistenceError, ValidationError
from src.domain.schemas import (
    Conversation,
    Message,
    messages_to_dicts,
    validate_title,
)

logger = logging.getLogger(__name__)


class ConversationStore:
    """
    대화 저장소.

    Usage:
        store = ConversationStore(document_store)
        chat_id = store.create(messages)
        store.rename(chat_id, "My chat")
    """

    def __init__(
        self,
        documents: JsonDocumentStore,
        collection: str = CONVERSATIONS_COLLECTION,
    ):
        """
        Args:
            documents: 시작 시 열린 문서 저장소 핸들
            collection: 컬렉션 이름
        """
        self.documents = documents
        self.collection = collection

    def create(self, initial_messages: list[Message]) -> str:
        """
        새 대화 레코드 생성.

        Raises:
            PersistenceError: 저장소 불가

        Returns:
            새 chat_id
        """
        chat_id = generate_chat_id()
        conversation = Conversation(
            id=chat_id,
            title=DEFAULT_CHAT_TITLE,
            created_at=datetime.now(UTC).isoformat(),
            messages=list(initial_messages),
        )
        self.documents.set(self.collection, chat_id, conversation.to_document())
        logger.info(f"Conversation created: {chat_id} ({len(initial_messages)} messages)")
        return chat_id

    def get(self, chat_id: str) -> Conversation:
        """
        대화 단건 조회.

        Raises:
            PersistenceError: CONVERSATION_NOT_FOUND, 저장소 불가
        """
        try:
            data = self.documents.get(self.collection, chat_id)
        except PersistenceError as e:
            if e.code == ErrorCodes.DOCUMENT_NOT_FOUND:
                raise self._not_found(chat_id) from e
            raise
        return self._to_conversation(chat_id, data)

    def list_all(self) -> list[Conversation]:
        """
        전체 대화 조회. 순서 보장 없음.

        Raises:
            PersistenceError: 저장소 불가, 손상된 문서
        """
        return [
            self._to_conversation(doc_id, data)
            for doc_id, data in self.documents.list(self.collection)
        ]

    def rename(self, chat_id: str, new_title: str) -> bool:
        """
        제목 변경.

        Raises:
            ValidationError: 빈/공백 제목 (저장소 호출 없음)
            PersistenceError: CONVERSATION_NOT_FOUND, 저장소 불가

        Returns:
            True
        """
        validate_title(new_title)
        try:
            self.documents.update(self.collection, chat_id, {"title": new_title})
        except PersistenceError as e:
            if e.code == ErrorCodes.DOCUMENT_NOT_FOUND:
                raise self._not_found(chat_id) from e
            raise
        logger.info(f"Conversation renamed: {chat_id}")
        return True

    def append(self, chat_id: str, turn_messages: list[Message]) -> int:
        """
        기존 대화에 이번 턴의 새 메시지만 append.

        turn_messages는 클라이언트가 보낸 전체 목록 + 응답이다.
        저장된 messages가 그 앞부분(prefix)과 일치할 때만 나머지를 붙인다.

        Raises:
            PersistenceError: CONVERSATION_NOT_FOUND, CONVERSATION_DIVERGED, 저장소 불가

        Returns:
            추가된 메시지 수
        """
        stored = self.get(chat_id)
        stored_dicts = messages_to_dicts(stored.messages)
        turn_dicts = messages_to_dicts(turn_messages)

        if turn_dicts[: len(stored_dicts)] != stored_dicts:
            raise PersistenceError(
                ErrorCodes.CONVERSATION_DIVERGED,
                "stored messages are not a prefix of the turn",
                conversation_id=chat_id,
                stored_count=len(stored_dicts),
                turn_count=len(turn_dicts),
            )

        tail = turn_dicts[len(stored_dicts):]
        if tail:
            try:
                self.documents.update(
                    self.collection, chat_id, {"messages": stored_dicts + tail}
                )
            except PersistenceError as e:
                if e.code == ErrorCodes.DOCUMENT_NOT_FOUND:
                    raise self._not_found(chat_id) from e
                raise
        logger.info(f"Conversation appended: {chat_id} (+{len(tail)} messages)")
        return len(tail)

    # =========================================================================
    # Internals
    # =========================================================================

    @staticmethod
    def _not_found(chat_id: str) -> PersistenceError:
        return PersistenceError(
            ErrorCodes.CONVERSATION_NOT_FOUND,
            "conversation not found",
            conversation_id=chat_id,
        )

    @staticmethod
    def _to_conversation(doc_id: str, data: dict) -> Conversation:
        try:
            return Conversation.from_document(doc_id, data)
        except ValidationError as e:
            raise PersistenceError(
                ErrorCodes.DOCUMENT_CORRUPT,
                "stored conversation has invalid messages",
                conversation_id=doc_id,
                error=str(e),
            ) from e
