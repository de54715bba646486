"""
Chat Turn Service: 서버 측 턴 처리.

흐름:
    메시지 목록 → InferenceGateway → updated = input + [assistant 응답]
    → ConversationStore (legacy: 매 턴 create / keyed: create-or-append)
    → 응답 텍스트 반환

추론과 저장은 하나의 원자 단위가 아니다:
저장 실패 시 응답은 그대로 반환하고 saved=False로 표시한다.
"""

import logging
from pathlib import Path

from src.app.services.conversations import ConversationStore
from src.app.services.inference import InferenceGateway
from src.core.logging import complete_turn_log, create_turn_log, save_turn_log
from src.domain.constants import (
    PERSISTENCE_MODE_KEYED,
    PERSISTENCE_MODE_LEGACY,
    PERSISTENCE_MODES,
    ROLE_ASSISTANT,
)
from src.domain.errors import ChatError, ErrorCodes, PersistenceError
from src.domain.schemas import Message, TurnLog, TurnResult

logger = logging.getLogger(__name__)


class ChatTurnService:
    """
    턴 처리 서비스.

    Usage:
        service = ChatTurnService(gateway, store)
        result = await service.handle_turn(messages)
    """

    def __init__(
        self,
        gateway: InferenceGateway,
        store: ConversationStore,
        persistence_mode: str = PERSISTENCE_MODE_LEGACY,
        turn_log_dir: Path | None = None,
    ):
        """
        Args:
            gateway: 추론 게이트웨이
            store: 대화 저장소
            persistence_mode: legacy (턴마다 새 레코드) / keyed (conversationId 기준 append)
            turn_log_dir: 턴 감사 로그 디렉토리 (None이면 저장 안 함)
        """
        if persistence_mode not in PERSISTENCE_MODES:
            raise ValueError(f"Unknown persistence mode: {persistence_mode!r}")
        self.gateway = gateway
        self.store = store
        self.persistence_mode = persistence_mode
        self.turn_log_dir = turn_log_dir

    async def handle_turn(
        self,
        messages: list[Message],
        conversation_id: str | None = None,
    ) -> TurnResult:
        """
        턴 하나 처리.

        Args:
            messages: 클라이언트가 보낸 전체 메시지 목록 (방금 입력한 user 메시지 포함)
            conversation_id: keyed 모드에서 append 대상 대화 ID

        Raises:
            ValidationError: 빈 메시지 목록
            UpstreamError: 추론 실패 (저장 시도 없음)

        Returns:
            TurnResult
        """
        turn_log = create_turn_log(len(messages))
        turn_log.persistence_mode = self.persistence_mode
        turn_log.provider = self.gateway.provider.name

        try:
            reply = await self.gateway.generate(messages)
        except ChatError as e:
            complete_turn_log(turn_log, "failed", error_code=e.code, error_context=e.to_dict())
            self._save_log(turn_log)
            raise

        turn_log.model_requested = reply.completion.model_requested
        turn_log.model_used = reply.completion.model_used
        turn_log.reply_chars = len(reply.text)

        updated = [*messages, Message(role=ROLE_ASSISTANT, content=reply.text)]

        try:
            saved_id = self._persist(updated, conversation_id)
        except PersistenceError as e:
            # 허용된 불일치 구간: 사용자는 응답을 보지만 저장되지 않음
            logger.error(f"Reply generated but not saved: {e}")
            complete_turn_log(turn_log, "unsaved", error_code=e.code, error_context=e.to_dict())
            self._save_log(turn_log)
            return TurnResult(reply=reply.text, conversation_id=None, saved=False)

        complete_turn_log(turn_log, "success", conversation_id=saved_id)
        self._save_log(turn_log)
        return TurnResult(reply=reply.text, conversation_id=saved_id, saved=True)

    def _persist(self, updated: list[Message], conversation_id: str | None) -> str:
        """persistence_mode에 따라 저장. 저장된 대화 ID 반환."""
        if self.persistence_mode == PERSISTENCE_MODE_KEYED and conversation_id:
            try:
                self.store.append(conversation_id, updated)
                return conversation_id
            except PersistenceError as e:
                if e.code not in (
                    ErrorCodes.CONVERSATION_NOT_FOUND,
                    ErrorCodes.CONVERSATION_DIVERGED,
                ):
                    raise
                # 대상이 없거나 이력이 갈라졌으면 새 레코드로 저장
                logger.warning(
                    f"Cannot append to {conversation_id} ({e.code}); creating a new conversation"
                )
        return self.store.create(updated)

    def _save_log(self, turn_log: TurnLog) -> None:
        if self.turn_log_dir is None:
            return
        try:
            save_turn_log(turn_log, self.turn_log_dir)
        except OSError as e:
            logger.warning(f"Failed to save turn log {turn_log.turn_id}: {e}")
