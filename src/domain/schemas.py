"""
Data schemas for conversations and turns.

규칙:
- Message는 append 이후 불변 (frozen)
- Conversation.id는 생성 시 한 번만 할당
- messages는 append로만 증가, 순서 = 전송 순서
- 타임스탬프는 ISO 8601 (UTC) 문자열
"""

from dataclasses import dataclass, field
from typing import Any

from .constants import ALLOWED_ROLES, DEFAULT_CHAT_TITLE
from .errors import ErrorCodes, ValidationError

# =============================================================================
# Message
# =============================================================================

@dataclass(frozen=True)
class Message:
    """
    대화 메시지 한 건.

    saved: 서버 저장 확인 여부 (클라이언트 전용).
        optimistic update로 추가된 메시지는 False로 시작하며,
        실패 시에도 롤백하지 않고 False로 남는다 (UI에서 "미저장" 표시용).
        wire 포맷에는 포함하지 않는다.
    """
    role: str
    content: str
    saved: bool = False

    def __post_init__(self) -> None:
        if self.role not in ALLOWED_ROLES:
            raise ValidationError(
                ErrorCodes.INVALID_ROLE,
                f"role must be one of {sorted(ALLOWED_ROLES)}",
                role=self.role,
            )

    def to_dict(self) -> dict[str, str]:
        """wire/저장 포맷."""
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict[str, Any], saved: bool = False) -> "Message":
        return cls(
            role=str(data.get("role", "")),
            content=str(data.get("content") or ""),
            saved=saved,
        )


def messages_to_dicts(messages: list[Message]) -> list[dict[str, str]]:
    """Message 목록 → wire 포맷."""
    return [m.to_dict() for m in messages]


def validate_title(title: str | None) -> str:
    """
    제목 검증.

    Raises:
        ValidationError: EMPTY_TITLE (None, 빈 문자열, 공백뿐)

    Returns:
        입력 그대로의 제목
    """
    if title is None or not title.strip():
        raise ValidationError(ErrorCodes.EMPTY_TITLE, "Title must not be empty.")
    return title


# =============================================================================
# Conversation
# =============================================================================

@dataclass
class Conversation:
    """
    저장된 대화 레코드.

    title만 rename으로 변경 가능. messages/created_at은 건드리지 않는다.
    """
    id: str
    created_at: str  # ISO 8601
    title: str = DEFAULT_CHAT_TITLE
    messages: list[Message] = field(default_factory=list)

    def to_document(self) -> dict[str, Any]:
        """문서 저장소 포맷 (id는 문서 키로 별도 관리)."""
        return {
            "title": self.title,
            "createdAt": self.created_at,
            "messages": messages_to_dicts(self.messages),
        }

    def to_dict(self) -> dict[str, Any]:
        """HTTP 응답 포맷."""
        return {"id": self.id, **self.to_document()}

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any]) -> "Conversation":
        return cls(
            id=doc_id,
            title=data.get("title") or DEFAULT_CHAT_TITLE,
            created_at=str(data.get("createdAt") or ""),
            messages=[Message.from_dict(m, saved=True) for m in data.get("messages") or []],
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Conversation":
        """HTTP 응답 (id 포함) → Conversation."""
        return cls.from_document(str(data["id"]), data)


# =============================================================================
# Turn
# =============================================================================

@dataclass
class TurnResult:
    """
    서버 측 턴 처리 결과.

    saved=False: 추론은 성공했으나 저장 실패 (허용된 불일치 구간)
    """
    reply: str
    conversation_id: str | None = None
    saved: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "reply": self.reply,
            "conversationId": self.conversation_id,
            "saved": self.saved,
        }


@dataclass
class TurnLog:
    """
    턴 감사 로그.

    턴 단위 실행 결과 및 메타데이터.
    """
    turn_id: str
    started_at: str  # ISO 8601
    message_count: int = 0
    finished_at: str | None = None
    result: str = "pending"  # pending, success, unsaved, failed

    # Inference
    provider: str | None = None
    model_requested: str | None = None
    model_used: str | None = None
    reply_chars: int | None = None

    # Persistence
    persistence_mode: str | None = None
    conversation_id: str | None = None

    # Error (if failed)
    error_code: str | None = None
    error_context: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "turn_id": self.turn_id,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "result": self.result,
            "message_count": self.message_count,
            "provider": self.provider,
            "model_requested": self.model_requested,
            "model_used": self.model_used,
            "reply_chars": self.reply_chars,
            "persistence_mode": self.persistence_mode,
            "conversation_id": self.conversation_id,
            "error_code": self.error_code,
            "error_context": self.error_context,
        }
