"""Domain layer: errors, schemas and constants."""

from .errors import (
    ChatError,
    ConfigError,
    ErrorCodes,
    PersistenceError,
    UpstreamError,
    ValidationError,
)
from .schemas import Conversation, Message, TurnLog, TurnResult, validate_title

__all__ = [
    "ChatError",
    "ConfigError",
    "ErrorCodes",
    "PersistenceError",
    "UpstreamError",
    "ValidationError",
    "Conversation",
    "Message",
    "TurnLog",
    "TurnResult",
    "validate_title",
]
