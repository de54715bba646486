"""
FastAPI 애플리케이션 진입점.

실행:
- 개발: uv run uvicorn src.app.main:app --reload
- 프로덕션: uv run python -m src.app.main
"""

import copy
import logging
import os
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from src.app.providers import LLMProvider, ProviderError, create_provider
from src.app.routes import chat
from src.app.services.conversations import ConversationStore
from src.app.services.inference import InferenceGateway
from src.app.services.turns import ChatTurnService
from src.core.document_store import JsonDocumentStore
from src.core.logging import configure_logging
from src.domain.constants import INVALID_REQUEST_ERROR, LIVENESS_TEXT
from src.domain.errors import ConfigError, ErrorCodes

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent.parent

# =============================================================================
# Configuration
# =============================================================================

DEFAULT_CONFIG: dict[str, Any] = {
    "ai": {
        "provider": "huggingface",
        "model": "meta-llama/Meta-Llama-3-8B-Instruct",
        "max_tokens": 3000,
        "timeout": 60.0,
    },
    "storage": {"root": "data", "lock_timeout": 10.0},
    "chat": {"persistence_mode": "legacy"},
    "server": {"host": "127.0.0.1", "port": 5000, "cors_origins": ["*"]},
    "logging": {"level": "INFO", "turn_log_dir": None},
}

# 환경변수 → config 경로
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "INFERENCE_PROVIDER": ("ai", "provider"),
    "INFERENCE_MODEL": ("ai", "model"),
    "INFERENCE_BASE_URL": ("ai", "base_url"),
    "CHAT_DATA_DIR": ("storage", "root"),
    "CHAT_PERSISTENCE_MODE": ("chat", "persistence_mode"),
    "PORT": ("server", "port"),
    "LOG_LEVEL": ("logging", "level"),
}


def _merge(base: dict, override: dict) -> dict:
    """중첩 dict 병합 (override 우선)."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Path | None = None) -> dict:
    """
    설정 파일 로드.

    우선순위: 환경변수 > default.yaml > DEFAULT_CONFIG
    """
    if config_path is None:
        # 프로젝트 루트의 default.yaml
        config_path = PROJECT_ROOT / "default.yaml"

    config = copy.deepcopy(DEFAULT_CONFIG)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            data: dict[Any, Any] = yaml.safe_load(f) or {}
        config = _merge(config, data)

    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            config.setdefault(section, {})[key] = value

    config["server"]["port"] = int(config["server"]["port"])
    return config


def build_provider(config: dict) -> LLMProvider:
    """
    Provider 생성.

    Raises:
        ConfigError: 자격 증명 누락, 알 수 없는 provider
    """
    ai_config = config.get("ai", {})
    try:
        return create_provider(ai_config)
    except ProviderError as e:
        raise ConfigError(ErrorCodes.CREDENTIAL_MISSING, e.message) from e
    except KeyError as e:
        raise ConfigError(
            ErrorCodes.UNKNOWN_PROVIDER,
            f"Unknown inference provider: {ai_config.get('provider')!r}",
        ) from e


def _resolve_path(value: str | None) -> Path | None:
    if not value:
        return None
    path = Path(value)
    return path if path.is_absolute() else PROJECT_ROOT / path


# =============================================================================
# Lifespan
# =============================================================================


def create_app(
    config: dict | None = None,
    provider: LLMProvider | None = None,
) -> FastAPI:
    """
    FastAPI 앱 생성.

    Args:
        config: 설정 (None이면 load_config)
        provider: LLM Provider (None이면 시작 시 config 기반 생성)
    """
    app_config = config if config is not None else load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        애플리케이션 생명주기 관리.

        시작 시: 로깅 설정, provider 생성 (자격 증명 없으면 중단), 저장소 연결
        종료 시: provider/저장소 정리
        """
        # Startup
        configure_logging(app_config["logging"].get("level", "INFO"))
        app.state.config = app_config

        app_provider = provider if provider is not None else build_provider(app_config)

        storage = app_config["storage"]
        documents = JsonDocumentStore(
            _resolve_path(storage["root"]),
            lock_timeout=float(storage.get("lock_timeout", 10.0)),
        ).open()

        store = ConversationStore(documents)
        gateway = InferenceGateway.from_config(app_provider, app_config["ai"])
        app.state.documents = documents
        app.state.conversation_store = store
        app.state.turn_service = ChatTurnService(
            gateway,
            store,
            persistence_mode=app_config["chat"].get("persistence_mode", "legacy"),
            turn_log_dir=_resolve_path(app_config["logging"].get("turn_log_dir")),
        )
        logger.info(
            f"Chat server ready: provider={app_provider.name} model={app_provider.model}"
        )

        try:
            yield
        finally:
            # Shutdown
            try:
                await app_provider.aclose()
            finally:
                documents.close()

    app = FastAPI(
        title="Llama Chat",
        description="LLM 대화 서버: 턴 처리, 대화 목록, 제목 변경",
        version="0.1.0",
        lifespan=lifespan,
    )

    cors_origins = app_config["server"].get("cors_origins") or []
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(RequestValidationError)
    async def invalid_body_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info(f"Rejected request body on {request.url.path}: {exc.errors()}")
        return JSONResponse(status_code=400, content={"error": INVALID_REQUEST_ERROR})

    # API 라우트 (기존 클라이언트 호환용 /api 경로도 제공)
    app.include_router(chat.api_router, tags=["Chat API"])
    app.include_router(chat.api_router, prefix="/api", include_in_schema=False)

    @app.get("/", response_class=PlainTextResponse)
    async def root() -> str:
        """Liveness."""
        return LIVENESS_TEXT

    @app.get("/health")
    async def health() -> dict[str, str]:
        """헬스 체크."""
        return {"status": "ok"}

    return app


# =============================================================================
# App Instance
# =============================================================================

load_dotenv()
app = create_app()


# =============================================================================
# CLI Entry Point
# =============================================================================

def main() -> int:
    import uvicorn

    config = load_config()
    configure_logging(config["logging"].get("level", "INFO"))

    # 자격 증명 누락은 요청을 받기 전에 프로세스 종료
    try:
        provider = build_provider(config)
    except ConfigError as e:
        logger.error(f"Startup aborted: {e.message}")
        return 1

    server = config["server"]
    uvicorn.run(
        create_app(config=config, provider=provider),
        host=server["host"],
        port=server["port"],
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
