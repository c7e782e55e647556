"""Supabase Storage-backed BlobStore."""

from __future__ import annotations

from whiteboard.app.observability.logging import get_logger

from .errors import translate_store_errors
from .supabase_client import SupabaseClient

logger = get_logger(__name__)


class SupabaseStorageBlobStore:
    """Releases board payload blobs from a Storage bucket."""

    def __init__(self, client: SupabaseClient, bucket: str = "boards") -> None:
        self._client = client
        self._bucket = bucket

    async def delete(self, key: str) -> None:
        with translate_store_errors("delete blob"):
            removed = await self._client.remove_objects(self._bucket, [key])
        if not removed:
            logger.warning("blob_missing_on_delete", bucket=self._bucket, key=key)
