"""Whiteboard FastAPI application factory.

create_app() is the single entry point for building the ASGI application.
It validates settings, wires stores (in-memory for local, Supabase
otherwise, or whatever the caller injects), installs middleware and the
error handlers, and mounts the board router.

Usage:
    # Local development
    from whiteboard.app import create_app, BoardServiceSettings
    app = create_app(BoardServiceSettings())

    # Non-local (Supabase stores built from settings)
    app = create_app(BoardServiceSettings.from_env())

    # Testing (full DI control)
    app = create_app(settings, board_repo=repo, user_repo=users, ...)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from .boards.service import BoardService
from .errors import BoardServiceError
from .observability.logging import configure_logging, get_logger
from .observability.metrics import metrics_text
from .observability.middleware import (
    MetricsMiddleware,
    RequestIdMiddleware,
    RequestLoggingMiddleware,
)
from .protocols import BlobStore, BoardRepository, UserRepository
from .routes.boards import create_board_router
from .routes.me import create_me_router
from .security.auth_guard import AuthGuardMiddleware
from .security.token_verify import TokenVerifier, create_token_verifier
from .settings import BoardServiceSettings

if TYPE_CHECKING:
    from .db.supabase_client import SupabaseClient

logger = get_logger(__name__)

# Local-only signing secret so `create_app()` works out of the box.
LOCAL_DEV_JWT_SECRET = "local-dev-secret-change-me-0123456789"


@dataclass(frozen=True)
class AppDependencies:
    """Injected stores plus the service built on them (``app.state.deps``)."""

    board_repo: BoardRepository
    user_repo: UserRepository
    blob_store: BlobStore
    board_service: BoardService
    store_client: SupabaseClient | None = None


def _build_inmemory_stores() -> tuple[BoardRepository, UserRepository, BlobStore]:
    from .inmemory import (
        InMemoryBlobStore,
        InMemoryBoardRepository,
        InMemoryUserRepository,
    )

    return InMemoryBoardRepository(), InMemoryUserRepository(), InMemoryBlobStore()


def _build_supabase_stores(
    settings: BoardServiceSettings,
) -> tuple[SupabaseClient, BoardRepository, UserRepository, BlobStore]:
    from .db import (
        SupabaseBoardRepository,
        SupabaseClient,
        SupabaseStorageBlobStore,
        SupabaseUserRepository,
    )

    client = SupabaseClient(
        supabase_url=settings.supabase_url,
        service_role_key=settings.supabase_service_role_key,
        default_schema=settings.supabase_schema,
    )
    return (
        client,
        SupabaseBoardRepository(client),
        SupabaseUserRepository(client),
        SupabaseStorageBlobStore(client, bucket=settings.blob_bucket),
    )


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(BoardServiceError)
    async def board_service_error(request: Request, exc: BoardServiceError):
        if exc.status_code >= 500:
            logger.error(
                "board_service_error",
                code=exc.code,
                detail=exc.detail,
                path=request.url.path,
                exc_info=exc,
            )
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        # Auth dependencies raise with a ready-made payload; render it flat.
        if isinstance(exc.detail, dict):
            return JSONResponse(
                status_code=exc.status_code,
                content=exc.detail,
                headers=exc.headers,
            )
        return await http_exception_handler(request, exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = first.get("msg", "invalid input")
        return JSONResponse(
            status_code=400,
            content={
                "error": "bad_request",
                "detail": f"{field}: {message}" if field else message,
            },
        )


def create_app(
    settings: BoardServiceSettings | None = None,
    *,
    board_repo: BoardRepository | None = None,
    user_repo: UserRepository | None = None,
    blob_store: BlobStore | None = None,
    token_verifier: TokenVerifier | None = None,
) -> FastAPI:
    """Create a configured whiteboard FastAPI application.

    Args:
        settings: Application settings. Defaults to local-dev settings.
        board_repo, user_repo, blob_store: Store overrides. Missing ones
            are in-memory in local mode and Supabase-backed otherwise.
        token_verifier: Override for access-token verification.

    Raises:
        ValueError: If settings validation fails.
    """
    if settings is None:
        settings = BoardServiceSettings()

    errors = settings.validate()
    if errors:
        raise ValueError(
            "Whiteboard settings validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    configure_logging(level=settings.log_level, json_output=settings.log_json)

    store_client = None
    if None in (board_repo, user_repo, blob_store):
        if settings.is_local:
            default_boards, default_users, default_blobs = _build_inmemory_stores()
        else:
            store_client, default_boards, default_users, default_blobs = (
                _build_supabase_stores(settings)
            )
        if board_repo is None:
            board_repo = default_boards
        if user_repo is None:
            user_repo = default_users
        if blob_store is None:
            blob_store = default_blobs

    if token_verifier is None:
        token_verifier = create_token_verifier(
            jwt_secret=settings.jwt_secret or LOCAL_DEV_JWT_SECRET,
            audience=settings.jwt_audience or None,
        )

    service = BoardService(
        board_repo,
        user_repo,
        blob_store,
        name_conflict_retries=settings.name_conflict_retries,
    )
    deps = AppDependencies(
        board_repo=board_repo,
        user_repo=user_repo,
        blob_store=blob_store,
        board_service=service,
        store_client=store_client,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("whiteboard_startup", environment=settings.environment)
        yield
        if deps.store_client is not None:
            await deps.store_client.aclose()
        logger.info("whiteboard_shutdown")

    app = FastAPI(
        title="Whiteboard Service",
        description="Board lifecycle, sharing and recents API",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.deps = deps
    app.state.settings = settings

    # Execution order: RequestID -> Logging -> Metrics -> AuthGuard -> CORS -> route.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["*"],
    )
    app.add_middleware(
        AuthGuardMiddleware,
        token_verifier=token_verifier,
        require_auth=False,
        session_cookie_name=settings.session_cookie_name,
    )
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIdMiddleware)

    _register_error_handlers(app)

    @app.get("/health")
    async def health():
        return {"status": "ok", "environment": settings.environment}

    @app.get("/metrics")
    async def metrics():
        body, content_type = metrics_text()
        return Response(content=body, media_type=content_type)

    app.include_router(create_me_router(service))
    app.include_router(create_board_router(service))

    return app


# For uvicorn, use --factory:
#   uvicorn whiteboard.app.main:create_app --factory
