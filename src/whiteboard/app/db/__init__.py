"""Supabase-backed stores for non-local environments."""

from .blob_store import SupabaseStorageBlobStore
from .board_repo import SupabaseBoardRepository
from .errors import (
    SupabaseAuthError,
    SupabaseConflictError,
    SupabaseError,
    SupabaseNotFoundError,
    SupabaseTransportError,
    translate_store_errors,
)
from .supabase_client import PostgrestFilter, SupabaseClient
from .user_repo import SupabaseUserRepository

__all__ = [
    "PostgrestFilter",
    "SupabaseAuthError",
    "SupabaseBoardRepository",
    "SupabaseClient",
    "SupabaseConflictError",
    "SupabaseError",
    "SupabaseNotFoundError",
    "SupabaseStorageBlobStore",
    "SupabaseTransportError",
    "SupabaseUserRepository",
    "translate_store_errors",
]
