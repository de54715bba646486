"""
Domain Constants: 서버/클라이언트 공용 상수.
"""

# =============================================================================
# Conversation
# =============================================================================

DEFAULT_CHAT_TITLE = "Untitled Chat"
CONVERSATIONS_COLLECTION = "conversations"
CHAT_ID_PREFIX = "chat_"

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
ALLOWED_ROLES = frozenset({ROLE_USER, ROLE_ASSISTANT})

# =============================================================================
# Inference
# =============================================================================

DEFAULT_MAX_TOKENS = 3000
DEFAULT_FALLBACK_REPLY = "Sorry, I couldn't generate a response."

# =============================================================================
# Persistence modes
# =============================================================================
# legacy: 턴마다 새 레코드 생성 (기존 저장 데이터와 호환)
# keyed: conversationId가 있으면 해당 레코드에 append

PERSISTENCE_MODE_LEGACY = "legacy"
PERSISTENCE_MODE_KEYED = "keyed"
PERSISTENCE_MODES = frozenset({PERSISTENCE_MODE_LEGACY, PERSISTENCE_MODE_KEYED})

# =============================================================================
# HTTP error messages (클라이언트에 노출되는 일반 메시지)
# =============================================================================

GENERIC_TURN_ERROR = "Something went wrong."
GENERIC_LIST_ERROR = "Failed to fetch chats."
GENERIC_RENAME_ERROR = "Failed to rename chat."
INVALID_REQUEST_ERROR = "Invalid request body."
LIVENESS_TEXT = "Server is running and ready to handle requests!"
