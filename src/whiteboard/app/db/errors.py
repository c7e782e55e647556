"""Supabase client error hierarchy and translation to service errors.

These stay small and dependency-free so repositories never leak
httpx.Response objects (or secrets) to callers.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from whiteboard.app.errors import ConflictError, UnavailableError


@dataclass(frozen=True, slots=True)
class SupabaseError(Exception):
    """Base Supabase error for PostgREST and Storage requests."""

    status_code: int
    message: str
    code: str | None = None
    details: str | None = None
    hint: str | None = None

    def __str__(self) -> str:
        bits: list[str] = [f"SupabaseError(status={self.status_code})", self.message]
        if self.code:
            bits.append(f"code={self.code}")
        if self.details:
            bits.append(f"details={self.details}")
        return " ".join(bits)


class SupabaseAuthError(SupabaseError):
    """401/403 (bad key, RLS)."""


class SupabaseNotFoundError(SupabaseError):
    """404 (missing table/route/object)."""


class SupabaseConflictError(SupabaseError):
    """409 (unique violations)."""


class SupabaseTransportError(SupabaseError):
    """The request never produced a response (DNS, connect, timeout)."""


@contextmanager
def translate_store_errors(
    operation: str, *, conflict_code: str = "name_conflict",
) -> Iterator[None]:
    """Map Supabase failures onto the service error taxonomy.

    Unique violations become ``ConflictError``; anything else from the
    store becomes ``UnavailableError``.
    """
    try:
        yield
    except SupabaseConflictError as exc:
        raise ConflictError(
            exc.details or exc.message, code=conflict_code,
        ) from exc
    except SupabaseError as exc:
        raise UnavailableError(
            f"{operation} failed (status={exc.status_code})",
        ) from exc
