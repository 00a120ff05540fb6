"""Supabase Storage client for generated documents."""
import asyncio
import logging
from typing import Optional

from supabase import create_client

from recytrack.config import settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Upload or download against object storage failed."""
    pass


class StorageClient:
    """Client for Supabase Storage operations."""

    _client = None

    @classmethod
    def get_client(cls):
        """Get or create Supabase client."""
        if cls._client is None:
            if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_KEY:
                raise StorageError(
                    "Supabase credentials not configured. "
                    "Set SUPABASE_URL and SUPABASE_SERVICE_KEY environment variables."
                )
            cls._client = create_client(
                settings.SUPABASE_URL,
                settings.SUPABASE_SERVICE_KEY
            )
        return cls._client

    @classmethod
    def get_bucket(cls):
        """Get the storage bucket."""
        client = cls.get_client()
        return client.storage.from_(settings.SUPABASE_STORAGE_BUCKET)

    @classmethod
    async def upload(
        cls,
        content: bytes,
        path: str,
        content_type: str = "application/pdf",
        retry_delay: Optional[float] = None,
    ) -> str:
        """
        Upload a file and return its public URL.

        A failed upload is retried exactly once after a fixed delay.

        Args:
            content: File content as bytes
            path: Storage path (e.g., "delivery-notes/LS-2026-00001.pdf")
            content_type: MIME type

        Returns:
            Public URL of the uploaded file
        """
        delay = settings.STORAGE_RETRY_DELAY_SECONDS if retry_delay is None else retry_delay

        for attempt in (1, 2):
            try:
                bucket = cls.get_bucket()
                # upsert=True to overwrite if exists; the SDK call blocks
                await asyncio.to_thread(
                    bucket.upload,
                    path=path,
                    file=content,
                    file_options={"content-type": content_type, "upsert": "true"}
                )
                return cls.get_public_url(path)
            except StorageError:
                raise
            except Exception as e:
                if attempt == 2:
                    logger.error(f"Upload of {path} failed after retry: {e}")
                    raise StorageError(f"Upload of {path} failed: {e}") from e
                logger.warning(f"Upload of {path} failed, retrying in {delay}s: {e}")
                await asyncio.sleep(delay)

    @classmethod
    def download(cls, path: str) -> bytes:
        """Download a stored file."""
        try:
            return cls.get_bucket().download(path)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Download of {path} failed: {e}") from e

    @classmethod
    def get_public_url(cls, path: str) -> str:
        """Get public URL for a file."""
        bucket = cls.get_bucket()
        return bucket.get_public_url(path)

    @classmethod
    def extract_path_from_url(cls, url: str) -> Optional[str]:
        """
        Extract storage path from a Supabase Storage URL.

        URL format: https://xxx.supabase.co/storage/v1/object/public/<bucket>/path/file.ext
        """
        if not url:
            return None

        marker = f"/storage/v1/object/public/{settings.SUPABASE_STORAGE_BUCKET}/"
        if marker in url:
            return url.split(marker)[1].split("?")[0]

        return None


def get_storage_client() -> type[StorageClient]:
    """Get the StorageClient class."""
    return StorageClient
