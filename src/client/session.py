"""
Chat Session: 클라이언트 측 턴 오케스트레이터.

상태:
- messages: 화면 표시용 메시지 (assistant는 렌더링된 HTML)
- pending: 턴 진행 중 여부 (유일한 동시성 가드)
- conversation_id: 마지막으로 저장된 대화 ID

규칙:
- 빈/공백 입력, pending 중 입력은 no-op
- user 메시지는 즉시 추가 (optimistic), 실패해도 롤백하지 않고 saved=False로 남김
- pending은 성공/실패/취소 모든 경우에 해제
- 자동 재시도 없음
- 턴 진행 중 select/reset 하면 그 턴의 응답은 버린다
"""

import logging
from dataclasses import replace

from src.client.api import ChatApiClient, TransportError
from src.client.events import EVENT_CHANGED, EVENT_FAILED, EventEmitter
from src.domain.constants import ROLE_ASSISTANT, ROLE_USER
from src.domain.schemas import Conversation, Message
from src.render.markup import render_markup, sanitize_user_text

logger = logging.getLogger(__name__)


class ChatSession:
    """
    대화 세션.

    Usage:
        session = ChatSession(api)
        session.events.subscribe(on_event)
        await session.send("Hello")
    """

    def __init__(self, api: ChatApiClient):
        self.api = api
        self.events = EventEmitter()
        self.messages: list[Message] = []
        self.pending = False
        self.conversation_id: str | None = None
        # 서버에 보내는 원문 이력 (assistant 원문, 렌더링 전)
        self._history: list[Message] = []
        # select/reset마다 증가: 진행 중 턴의 응답이 어느 대화 것인지 구분
        self._generation = 0

    async def send(self, text: str) -> bool:
        """
        턴 전송.

        Returns:
            True: 응답 수신 / False: no-op, 실패, 또는 대기 중 대화가 바뀌어 응답을 버림
        """
        if not text or not text.strip() or self.pending:
            return False

        # await 이전에 check-and-set
        self.pending = True
        user_message = Message(role=ROLE_USER, content=text)
        self.messages.append(user_message)
        self._history.append(user_message)
        generation = self._generation

        try:
            self.events.emit(EVENT_CHANGED, pending=True)
            result = await self.api.send_turn(list(self._history), self.conversation_id)

            if generation != self._generation:
                # 응답 대기 중 select/reset으로 대화가 바뀜: 새 대화에 섞지 않는다
                logger.info(
                    f"Discarded reply for replaced conversation {result.conversation_id}"
                )
                return False

            self._history.append(Message(role=ROLE_ASSISTANT, content=result.reply))
            self.messages.append(
                Message(role=ROLE_ASSISTANT, content=render_markup(result.reply))
            )
            if result.saved:
                self._mark_saved()
                self.conversation_id = result.conversation_id
            return True
        except TransportError as e:
            logger.warning(f"Turn failed: {e}")
            self.events.emit(EVENT_FAILED, error=e.message, status_code=e.status_code)
            return False
        finally:
            self.pending = False
            self.events.emit(EVENT_CHANGED, pending=False)

    def select(self, conversation: Conversation | None) -> None:
        """
        저장된 대화로 교체. pending은 건드리지 않는다.

        None이면 빈 대화.
        """
        self._generation += 1
        stored = list(conversation.messages) if conversation else []
        self._history = [replace(m, saved=True) for m in stored]
        self.messages = [self._display_form(m) for m in self._history]
        self.conversation_id = conversation.id if conversation else None
        self.events.emit(EVENT_CHANGED, pending=self.pending)

    def reset(self) -> None:
        """새 대화 시작."""
        self.select(None)

    def display_html(self, message: Message) -> str:
        """
        화면 삽입용 HTML.

        assistant는 이미 렌더링되어 있고, user는 무력화만 거친다.
        """
        if message.role == ROLE_USER:
            return sanitize_user_text(message.content)
        return message.content

    @property
    def unsaved_count(self) -> int:
        return sum(1 for m in self.messages if not m.saved)

    def _mark_saved(self) -> None:
        self.messages = [m if m.saved else replace(m, saved=True) for m in self.messages]
        self._history = [m if m.saved else replace(m, saved=True) for m in self._history]

    @staticmethod
    def _display_form(message: Message) -> Message:
        if message.role == ROLE_ASSISTANT:
            return replace(message, content=render_markup(message.content))
        return message
