"""
Markup 렌더러: 모델 원문 → 화면 표시용 안전한 HTML.

순서 (바꾸지 말 것):
1. Markdown 확장 (markdown)
2. 능동 콘텐츠 무력화 (nh3): script/style, on* 핸들러, javascript: URI 제거
3. 앞뒤 공백 제거

Markdown 확장이 모델 원문의 위험 구문을 HTML로 만들어낼 수 있으므로
무력화는 반드시 확장 이후에 실행한다.

사용자 입력은 Markdown 확장 없이 무력화만 거친다.

순수 함수: 네트워크/저장소 접근 없음, 같은 입력 → 같은 출력.
"""

import markdown
import nh3

# Markdown 확장: fenced code, 표, 리스트 들여쓰기 보정
MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "sane_lists"]

# 허용 태그는 nh3 기본값 사용, code 블록의 언어 class만 추가 허용
ALLOWED_ATTRIBUTES: dict[str, set[str]] = {
    tag: set(attrs) for tag, attrs in nh3.ALLOWED_ATTRIBUTES.items()
}
ALLOWED_ATTRIBUTES.setdefault("code", set()).add("class")

# 허용 URL 스킴 (javascript:, data:, vbscript: 등은 제외)
ALLOWED_URL_SCHEMES = {"http", "https", "mailto"}

# 태그와 내용을 함께 제거할 태그
CLEAN_CONTENT_TAGS = {"script", "style"}


def neutralize_html(html: str) -> str:
    """
    능동 콘텐츠 무력화.

    Args:
        html: 임의의 HTML/텍스트

    Returns:
        실행 가능한 구문이 제거된 HTML
    """
    return nh3.clean(
        html,
        attributes=ALLOWED_ATTRIBUTES,
        url_schemes=ALLOWED_URL_SCHEMES,
        clean_content_tags=CLEAN_CONTENT_TAGS,
    )


def render_markup(raw_text: str) -> str:
    """
    모델 응답 원문 → 안전한 HTML.

    Args:
        raw_text: 모델이 생성한 원문 (Markdown)

    Returns:
        확장 + 무력화 + trim 된 HTML
    """
    expanded = markdown.markdown(raw_text or "", extensions=MARKDOWN_EXTENSIONS)
    return neutralize_html(expanded).strip()


def sanitize_user_text(text: str) -> str:
    """
    사용자 입력 → 안전한 표시용 문자열.

    Markdown 확장 없음: 사용자가 입력한 markup 비슷한 문법이
    능동 콘텐츠로 확장되지 않도록 원문 그대로 무력화만 한다.
    """
    return neutralize_html(text or "").strip()
