"""Whiteboard service configuration.

BoardServiceSettings is the single configuration object accepted by
create_app(). It is a plain dataclass (not env-coupled) so tests can inject
config without touching os.environ; ``from_env`` is the production factory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .boards.naming import DEFAULT_CONFLICT_RETRIES

DEFAULT_CORS_ORIGINS: tuple[str, ...] = ("http://localhost:3000",)


@dataclass(frozen=True, slots=True)
class BoardServiceSettings:
    """Configuration for the whiteboard FastAPI application.

    All fields have defaults suitable for local development. Non-local
    environments must supply supabase_url, supabase_service_role_key and
    a jwt_secret of at least 32 characters.
    """

    # ── Environment ────────────────────────────────────────────────
    environment: str = "local"
    """One of: local, dev, staging, production."""

    # ── Supabase ───────────────────────────────────────────────────
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    """Service-role key for PostgREST/Storage calls. Never log this."""

    supabase_schema: str = "app"
    """Schema holding the boards, board_shares and users tables."""

    blob_bucket: str = "boards"
    """Storage bucket holding external board payloads."""

    # ── Auth collaborator ──────────────────────────────────────────
    jwt_secret: str = ""
    """HS256 secret for access tokens and the session cookie."""

    jwt_audience: str = "authenticated"
    session_cookie_name: str = "token"

    # ── CORS ───────────────────────────────────────────────────────
    cors_origins: tuple[str, ...] = DEFAULT_CORS_ORIGINS

    # ── Board behaviour ────────────────────────────────────────────
    name_conflict_retries: int = DEFAULT_CONFLICT_RETRIES
    """Re-resolutions after a store-level (owner_id, name) conflict."""

    # ── Logging ────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool = True

    @property
    def is_local(self) -> bool:
        return self.environment == "local"

    def validate(self) -> list[str]:
        """Return a list of configuration errors. Empty means valid."""
        errors: list[str] = []
        if self.name_conflict_retries < 0:
            errors.append("name_conflict_retries must be >= 0")
        if not self.is_local:
            if not self.supabase_url:
                errors.append(f"{self.environment}: supabase_url is required")
            if not self.supabase_service_role_key:
                errors.append(
                    f"{self.environment}: supabase_service_role_key is required"
                )
            if not self.jwt_secret or len(self.jwt_secret) < 32:
                errors.append(
                    f"{self.environment}: jwt_secret must be >= 32 characters"
                )
        return errors

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None) -> BoardServiceSettings:
        """Build settings from environment variables."""
        if env is None:
            env = dict(os.environ)

        cors_raw = env.get("CORS_ORIGINS", "")
        cors = (
            tuple(o.strip() for o in cors_raw.split(",") if o.strip())
            if cors_raw
            else DEFAULT_CORS_ORIGINS
        )

        retries_raw = env.get("NAME_CONFLICT_RETRIES", "")
        try:
            retries = int(retries_raw) if retries_raw else DEFAULT_CONFLICT_RETRIES
        except ValueError:
            raise ValueError(
                f"NAME_CONFLICT_RETRIES must be an integer, got {retries_raw!r}"
            ) from None

        return cls(
            environment=env.get("ENVIRONMENT", "local"),
            supabase_url=env.get("SUPABASE_URL", ""),
            supabase_service_role_key=env.get("SUPABASE_SERVICE_ROLE_KEY", ""),
            supabase_schema=env.get("SUPABASE_SCHEMA", "app"),
            blob_bucket=env.get("BLOB_BUCKET", "boards"),
            jwt_secret=env.get("JWT_SECRET", ""),
            jwt_audience=env.get("JWT_AUDIENCE", "authenticated"),
            session_cookie_name=env.get("SESSION_COOKIE_NAME", "token"),
            cors_origins=cors,
            name_conflict_retries=retries,
            log_level=env.get("LOG_LEVEL", "INFO"),
            log_json=env.get("LOG_FORMAT", "json") == "json",
        )
