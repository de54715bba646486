"""
FastAPI Routes.

API 라우트 (JSON)
"""

from . import chat

__all__ = ["chat"]
