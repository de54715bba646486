"""
App layer: 대화 서버 (FastAPI).

역할:
- JSON API: 턴 처리, 대화 목록, 제목 변경
- 추론 provider 호출, 대화 저장
- 시작 시 자격 증명 확인 (없으면 서버를 띄우지 않음)
"""
