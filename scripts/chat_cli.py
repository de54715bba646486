#!/usr/bin/env python3
"""
chat_cli.py - 터미널 대화 클라이언트

ChatSession/ChatDirectory를 그대로 사용하는 최소 UI.

명령:
    /list                 저장된 대화 목록
    /open <id>            대화 불러오기
    /rename <id> <title>  제목 변경
    /new                  새 대화
    /quit                 종료

사용법:
    uv run python scripts/chat_cli.py
    uv run python scripts/chat_cli.py --url http://127.0.0.1:5000/api
"""

import argparse
import asyncio
import html
import logging
import re
import sys
from pathlib import Path
from typing import Any

# 프로젝트 루트를 path에 추가
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.client import (  # noqa: E402
    EVENT_FAILED,
    ChatApiClient,
    ChatDirectory,
    ChatSession,
)
from src.domain.errors import ValidationError  # noqa: E402

logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

_TAG = re.compile(r"<[^>]+>")


def to_terminal(markup: str) -> str:
    """렌더링된 HTML → 터미널 텍스트."""
    return html.unescape(_TAG.sub("", markup)).strip()


def on_failed(event: str, payload: dict[str, Any]) -> None:
    if event == EVENT_FAILED:
        print(f"⚠️  {payload.get('error')}")


def print_directory(directory: ChatDirectory) -> None:
    conversations = directory.sorted_conversations()
    if not conversations:
        print("(저장된 대화 없음)")
        return
    for c in conversations:
        print(f"  {c.id}  {c.title}  ({len(c.messages)} messages)")


async def handle_command(line: str, session: ChatSession, directory: ChatDirectory) -> bool:
    """명령 처리. False면 종료."""
    parts = line.split(maxsplit=2)
    command = parts[0]

    if command == "/quit":
        return False
    if command == "/new":
        session.reset()
        print("새 대화")
    elif command == "/list":
        if await directory.refresh():
            print_directory(directory)
    elif command == "/open" and len(parts) >= 2:
        conversation = directory.get(parts[1])
        if conversation is None:
            print(f"대화 없음: {parts[1]} (/list 먼저 실행)")
        else:
            session.select(conversation)
            for m in session.messages:
                print(f"[{m.role}] {to_terminal(m.content)}")
    elif command == "/rename" and len(parts) >= 2:
        try:
            if await directory.rename(parts[1], parts[2] if len(parts) > 2 else ""):
                print("제목 변경됨")
        except ValidationError as e:
            print(f"⚠️  {e.message}")
    else:
        print("알 수 없는 명령")
    return True


async def run(base_url: str) -> int:
    async with ChatApiClient(base_url) as api:
        session = ChatSession(api)
        directory = ChatDirectory(api)
        session.events.subscribe(on_failed)
        directory.events.subscribe(on_failed)

        while True:
            try:
                line = await asyncio.to_thread(input, "> ")
            except EOFError:
                break

            if line.startswith("/"):
                if not await handle_command(line.strip(), session, directory):
                    break
                continue

            if await session.send(line):
                reply = session.messages[-1]
                marker = "" if reply.saved else " (미저장)"
                print(f"{to_terminal(reply.content)}{marker}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="터미널 대화 클라이언트")
    parser.add_argument("--url", default="http://127.0.0.1:5000", help="서버 주소")
    args = parser.parse_args()
    return asyncio.run(run(args.url))


if __name__ == "__main__":
    sys.exit(main())
