"""
Chat API Client: 서버 HTTP 표면 호출.

- POST /chat → TurnResult
- GET /chats → Conversation 목록
- PATCH /chats/{id} → 제목 변경

전송 실패, 2xx 이외 응답, 형식이 맞지 않는 응답은 모두 TransportError.
자체 타임아웃은 두지 않고 httpx 클라이언트 설정을 따른다.
"""

import logging
from typing import Any

import httpx

from src.domain.errors import ValidationError
from src.domain.schemas import Conversation, Message, TurnResult, messages_to_dicts

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://127.0.0.1:5000"


class TransportError(Exception):
    """서버 호출 실패."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message if status_code is None else f"[{status_code}] {message}")


class ChatApiClient:
    """
    비동기 HTTP 클라이언트.

    Usage:
        async with ChatApiClient("http://127.0.0.1:5000") as api:
            result = await api.send_turn(messages)
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float | None = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            base_url: 서버 주소 (기존 서버는 .../api 포함)
            timeout: httpx 타임아웃 (None이면 무제한)
            transport: 테스트용 transport 주입
        """
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "ChatApiClient":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # =========================================================================
    # Endpoints
    # =========================================================================

    async def send_turn(
        self,
        messages: list[Message],
        conversation_id: str | None = None,
    ) -> TurnResult:
        """턴 전송. 전체 메시지 목록을 보낸다."""
        body: dict[str, Any] = {"messages": messages_to_dicts(messages)}
        if conversation_id:
            body["conversationId"] = conversation_id

        data = await self._request("POST", "/chat", json=body)
        if not isinstance(data, dict) or not isinstance(data.get("reply"), str):
            raise TransportError("malformed turn response")

        return TurnResult(
            reply=data["reply"],
            conversation_id=data.get("conversationId"),
            # 저장 여부를 보고하지 않는 서버는 응답 전에 저장을 마친다
            saved=bool(data.get("saved", True)),
        )

    async def list_chats(self) -> list[Conversation]:
        """저장된 대화 목록 (순서 보장 없음)."""
        data = await self._request("GET", "/chats")
        if not isinstance(data, list):
            raise TransportError("malformed chat list response")
        try:
            return [Conversation.from_dict(item) for item in data]
        except (KeyError, TypeError, AttributeError, ValidationError) as e:
            raise TransportError(f"malformed chat list response: {e}") from e

    async def rename_chat(self, chat_id: str, title: str) -> None:
        """제목 변경."""
        await self._request("PATCH", f"/chats/{chat_id}", json={"title": title})

    # =========================================================================
    # Internals
    # =========================================================================

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {type(e).__name__}: {e}")
            raise TransportError(f"request failed: {e}") from e

        if response.status_code >= 400:
            raise TransportError(self._error_message(response), response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise TransportError("response is not JSON", response.status_code) from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.reason_phrase or "request failed"
        if isinstance(data, dict) and isinstance(data.get("error"), str):
            return data["error"]
        return response.reason_phrase or "request failed"
