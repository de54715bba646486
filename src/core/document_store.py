"""
문서 저장소: 컬렉션/문서 ID 단위 JSON 파일 저장.

구조:
    <root>/<collection>/<doc_id>.json
    <root>/<collection>/.lock

규칙:
- 트랜잭션/스키마 강제 없음 (create/read/update-by-id만 제공)
- 원자적 쓰기: temp → rename + fsync
- 컬렉션 락은 파일 쓰기 원자성 보장용일 뿐, 버전 충돌 감지는 하지 않음 (last write wins)
- 연결 핸들: 프로세스 시작 시 open(), 종료 시 close()
"""

import json
import logging
import os
import re
import tempfile
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from filelock import FileLock, Timeout

from src.domain.errors import ErrorCodes, PersistenceError

logger = logging.getLogger(__name__)

# 문서 ID 허용 문자 (파일명 안전)
_DOC_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,128}$")

LOCK_FILENAME = ".lock"


# =============================================================================
# Atomic Write
# =============================================================================


def _fsync_dir(dir_path: Path) -> None:
    """
    디렉토리 fsync (가능한 환경에서).

    rename 후 디렉토리 엔트리까지 내구성을 강화하려면 필요.
    """
    try:
        dir_fd = os.open(str(dir_path), os.O_RDONLY | os.O_DIRECTORY)
        try:
            os.fsync(dir_fd)
        finally:
            os.close(dir_fd)
    except (OSError, AttributeError) as e:
        logger.warning(
            f"Directory fsync failed for {dir_path}: {e}. "
            f"Rename durability may not be guaranteed."
        )


def atomic_write_json(path: Path, data: dict) -> None:
    """
    원자적 JSON 쓰기.

    - 중간 상태 없음: temp → rename
    - 실패 시 temp 파일 삭제, 기존 파일 보존

    Args:
        path: 저장할 파일 경로
        data: JSON 직렬화할 데이터
    """
    dir_path = path.parent
    dir_path.mkdir(parents=True, exist_ok=True)

    temp_path = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            dir=dir_path,
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        ) as f:
            temp_path = Path(f.name)
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.flush()
            try:
                os.fsync(f.fileno())
            except OSError as e:
                logger.warning(f"File fsync failed for {path}: {e}")

        os.replace(temp_path, path)
        _fsync_dir(dir_path)

    except Exception:
        if temp_path and temp_path.exists():
            try:
                temp_path.unlink()
            except OSError:
                pass
        raise


# =============================================================================
# Document Store
# =============================================================================


class JsonDocumentStore:
    """
    JSON 파일 기반 문서 저장소 (연결 핸들).

    Usage:
        store = JsonDocumentStore(Path("data"))
        store.open()
        try:
            store.set("conversations", "chat_1", {...})
        finally:
            store.close()
    """

    def __init__(self, root: Path, lock_timeout: float = 10.0):
        """
        Args:
            root: 저장소 루트 디렉토리
            lock_timeout: 컬렉션 락 대기 시간 (초)
        """
        self.root = Path(root)
        self.lock_timeout = lock_timeout
        self._opened = False

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def is_open(self) -> bool:
        return self._opened

    def open(self) -> "JsonDocumentStore":
        """저장소 연결 (루트 디렉토리 준비)."""
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(
                ErrorCodes.STORE_UNAVAILABLE,
                "document store root is not writable",
                root=str(self.root),
                error=str(e),
            ) from e
        self._opened = True
        logger.info(f"Document store opened at {self.root}")
        return self

    def close(self) -> None:
        """저장소 연결 해제. 이후 호출은 STORE_UNAVAILABLE."""
        if self._opened:
            logger.info(f"Document store closed ({self.root})")
        self._opened = False

    def __enter__(self) -> "JsonDocumentStore":
        return self.open()

    def __exit__(self, *exc: object) -> None:
        self.close()

    # =========================================================================
    # Operations
    # =========================================================================

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """문서 생성/덮어쓰기."""
        path = self._doc_path(collection, doc_id)
        with self._collection_lock(collection):
            self._write(path, data)

    def get(self, collection: str, doc_id: str) -> dict[str, Any]:
        """
        문서 조회.

        Raises:
            PersistenceError: DOCUMENT_NOT_FOUND, DOCUMENT_CORRUPT, STORE_UNAVAILABLE
        """
        path = self._doc_path(collection, doc_id)
        self._require_open()
        return self._read(path, doc_id)

    def list(self, collection: str) -> list[tuple[str, dict[str, Any]]]:
        """
        컬렉션 전체 문서 조회.

        순서는 보장하지 않는다. 손상된 문서는 경고 후 건너뛴다 (get은 그대로 실패).

        Returns:
            (doc_id, data) 목록
        """
        self._require_open()
        coll_dir = self._collection_dir(collection)
        if not coll_dir.exists():
            return []

        items: list[tuple[str, dict[str, Any]]] = []
        try:
            paths = list(coll_dir.glob("*.json"))
        except OSError as e:
            raise PersistenceError(
                ErrorCodes.STORE_UNAVAILABLE,
                "failed to scan collection",
                collection=collection,
                error=str(e),
            ) from e

        for path in paths:
            try:
                items.append((path.stem, self._read(path, path.stem)))
            except PersistenceError as e:
                if e.code != ErrorCodes.DOCUMENT_CORRUPT:
                    raise
                logger.warning(f"Skipping corrupt document {collection}/{path.stem}: {e}")
        return items

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        """
        문서 부분 업데이트 (주어진 필드만 덮어씀).

        Raises:
            PersistenceError: DOCUMENT_NOT_FOUND (문서 없음)

        Returns:
            업데이트된 문서
        """
        path = self._doc_path(collection, doc_id)
        with self._collection_lock(collection):
            data = self._read(path, doc_id)
            data.update(fields)
            self._write(path, data)
        return data

    # =========================================================================
    # Internals
    # =========================================================================

    def _require_open(self) -> None:
        if not self._opened:
            raise PersistenceError(
                ErrorCodes.STORE_UNAVAILABLE,
                "document store is not open",
                root=str(self.root),
            )

    def _collection_dir(self, collection: str) -> Path:
        if not _DOC_ID_PATTERN.match(collection):
            raise PersistenceError(
                ErrorCodes.STORE_UNAVAILABLE,
                "invalid collection name",
                collection=collection,
            )
        return self.root / collection

    def _doc_path(self, collection: str, doc_id: str) -> Path:
        # 경로 탈출 방지: 허용 문자 외 ID는 존재할 수 없는 문서로 취급
        if not _DOC_ID_PATTERN.match(doc_id):
            raise PersistenceError(
                ErrorCodes.DOCUMENT_NOT_FOUND,
                "document not found",
                collection=collection,
                doc_id=doc_id,
            )
        return self._collection_dir(collection) / f"{doc_id}.json"

    @contextmanager
    def _collection_lock(self, collection: str) -> Generator[None, None, None]:
        """
        컬렉션 락 획득.

        Raises:
            PersistenceError: STORE_LOCK_TIMEOUT, STORE_UNAVAILABLE
        """
        self._require_open()
        coll_dir = self._collection_dir(collection)
        try:
            coll_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(
                ErrorCodes.STORE_UNAVAILABLE,
                "failed to prepare collection",
                collection=collection,
                error=str(e),
            ) from e

        lock = FileLock(coll_dir / LOCK_FILENAME, timeout=self.lock_timeout)
        try:
            lock.acquire()
        except Timeout as e:
            raise PersistenceError(
                ErrorCodes.STORE_LOCK_TIMEOUT,
                f"Failed to acquire lock for collection '{collection}'",
                collection=collection,
                timeout=self.lock_timeout,
            ) from e
        try:
            yield
        finally:
            lock.release()

    def _read(self, path: Path, doc_id: str) -> dict[str, Any]:
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise PersistenceError(
                ErrorCodes.DOCUMENT_NOT_FOUND,
                "document not found",
                doc_id=doc_id,
            ) from e
        except OSError as e:
            raise PersistenceError(
                ErrorCodes.STORE_UNAVAILABLE,
                "failed to read document",
                doc_id=doc_id,
                error=str(e),
            ) from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise PersistenceError(
                ErrorCodes.DOCUMENT_CORRUPT,
                "document is not valid JSON",
                doc_id=doc_id,
                error=str(e),
            ) from e

        if not isinstance(data, dict):
            raise PersistenceError(
                ErrorCodes.DOCUMENT_CORRUPT,
                "document is not a JSON object",
                doc_id=doc_id,
            )
        return data

    def _write(self, path: Path, data: dict[str, Any]) -> None:
        try:
            atomic_write_json(path, data)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(
                ErrorCodes.STORE_UNAVAILABLE,
                "failed to write document",
                path=str(path),
                error=str(e),
            ) from e
