"""
Render layer: 모델 응답/사용자 입력 → 화면 표시용 HTML.

역할:
- Markdown 확장 (markdown)
- 능동 콘텐츠 무력화 (nh3)
"""

from .markup import neutralize_html, render_markup, sanitize_user_text

__all__ = [
    "render_markup",
    "sanitize_user_text",
    "neutralize_html",
]
