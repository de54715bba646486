"""
Core layer: 저장/식별/감사 핵심 모듈.

역할:
- 문서 저장소 연결 핸들 (JSON 파일, 원자적 쓰기, 컬렉션 락)
- chat_id / turn_id 발급
- 로거 설정, 턴 감사 로그
"""

from .document_store import JsonDocumentStore, atomic_write_json
from .ids import generate_chat_id, generate_turn_id
from .logging import (
    complete_turn_log,
    configure_logging,
    create_turn_log,
    save_turn_log,
)

__all__ = [
    # document_store
    "JsonDocumentStore",
    "atomic_write_json",
    # ids
    "generate_chat_id",
    "generate_turn_id",
    # logging
    "configure_logging",
    "create_turn_log",
    "complete_turn_log",
    "save_turn_log",
]
