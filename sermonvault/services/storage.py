"""
Object storage for sermon PDFs.

Files live in an S3-compatible bucket under {user_id}/{sermon_id}/{file_name}.
boto3 is synchronous, so every call runs in a worker thread to keep the
event loop free.
"""

import asyncio
import re
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from sermonvault.core.config import settings
from sermonvault.core.errors import StorageError
from sermonvault.core.logging import get_logger

logger = get_logger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._ -]+")


def build_object_key(user_id: int, sermon_id: int, file_name: str) -> str:
    """
    Build the storage key for a sermon file.

    Path separators and other unsafe characters are stripped from the
    file name so a key can never escape the user's prefix.
    """
    name = _UNSAFE_FILENAME_CHARS.sub("_", file_name.replace("/", "_").replace("\\", "_"))
    name = name.strip(" .") or "sermon.pdf"
    return f"{user_id}/{sermon_id}/{name}"


class SermonStorage:
    """S3 client for the sermon file bucket."""

    def __init__(
        self,
        bucket: str | None = None,
        region: str | None = None,
        endpoint_url: str | None = None,
        client=None,
    ) -> None:
        """
        Args:
            bucket: Bucket name (default settings.STORAGE_BUCKET)
            region: AWS region (default settings.STORAGE_REGION)
            endpoint_url: Custom endpoint for MinIO / other S3-compatible stores
            client: Pre-built boto3 S3 client (tests)
        """
        self._bucket = bucket or settings.STORAGE_BUCKET
        self._region = region or settings.STORAGE_REGION
        self._endpoint_url = endpoint_url if endpoint_url is not None else settings.STORAGE_ENDPOINT_URL
        self._s3_client = client or boto3.client(
            "s3",
            region_name=self._region,
            endpoint_url=self._endpoint_url,
        )

    @property
    def bucket(self) -> str:
        return self._bucket

    async def upload(self, key: str, content: bytes, content_type: str = "application/pdf") -> None:
        """Store content at key, overwriting any existing object."""
        try:
            await asyncio.to_thread(
                self._s3_client.put_object,
                Bucket=self._bucket,
                Key=key,
                Body=content,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Upload of {key} failed: {e}", provider_name="s3") from e

        logger.info("storage_object_uploaded", key=key, size=len(content))

    async def delete(self, key: str) -> None:
        """Remove the object at key (S3 treats missing keys as success)."""
        try:
            await asyncio.to_thread(
                self._s3_client.delete_object,
                Bucket=self._bucket,
                Key=key,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Delete of {key} failed: {e}", provider_name="s3") from e

        logger.info("storage_object_deleted", key=key)

    async def generate_signed_url(self, key: str, expires_in: int | None = None) -> str:
        """
        Generate a presigned GET URL for viewing a stored file.

        Args:
            key: Object key
            expires_in: Lifetime in seconds (default SIGNED_URL_EXPIRE_SECONDS, 1 hour)
        """
        try:
            return await asyncio.to_thread(
                self._s3_client.generate_presigned_url,
                ClientMethod="get_object",
                Params={"Bucket": self._bucket, "Key": key},
                ExpiresIn=expires_in or settings.SIGNED_URL_EXPIRE_SECONDS,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Signing URL for {key} failed: {e}", provider_name="s3") from e

    def public_url(self, key: str) -> str:
        """Unsigned URL of an object; only readable if the bucket allows it."""
        quoted = quote(key)
        if self._endpoint_url:
            return f"{self._endpoint_url.rstrip('/')}/{self._bucket}/{quoted}"
        return f"https://{self._bucket}.s3.{self._region}.amazonaws.com/{quoted}"


# ================================
# Global Instance (Singleton)
# ================================

_storage: SermonStorage | None = None


def get_storage() -> SermonStorage:
    """Return the process-wide SermonStorage, creating it on first call."""
    global _storage
    if _storage is None:
        _storage = SermonStorage()
        logger.info("storage_client_initialized", bucket=_storage.bucket)
    return _storage
