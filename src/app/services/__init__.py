"""
Application Services.

역할:
- inference: 추론 게이트웨이 (provider 호출 + 응답 정규화)
- conversations: 대화 레코드 영속화
- turns: 서버 측 턴 처리 (추론 → 저장)
"""

from .conversations import ConversationStore
from .inference import InferenceGateway, normalize_reply
from .turns import ChatTurnService

__all__ = [
    "ConversationStore",
    "InferenceGateway",
    "ChatTurnService",
    "normalize_reply",
]
