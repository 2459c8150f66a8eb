from __future__ import annotations
"""Object storage backends - local media volume or an S3-compatible store.

Both backends expose the same async surface: ``upload`` (upsert),
``download`` and ``create_signed_url``. Blocking I/O runs in a worker thread.
"""

import asyncio
import hashlib
import hmac
import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from urllib.parse import quote, urlencode

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from storyframe.config import Settings
from storyframe.services.storage_paths import StorageTarget

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Storage backend failure."""


class StorageObjectMissing(StorageError):
    """The requested object does not exist."""

    def __init__(self, target: StorageTarget):
        self.target = target
        super().__init__(f"Object not found: {target.pointer}")


class StorageBackend(ABC):
    """Async object store addressed by StorageTarget."""

    name: str = "unknown"

    @abstractmethod
    async def upload(self, target: StorageTarget, data: bytes, content_type: str = "image/png") -> None:
        ...

    @abstractmethod
    async def download(self, target: StorageTarget) -> bytes:
        ...

    @abstractmethod
    async def _sign(self, target: StorageTarget, expires_in: int) -> str:
        ...

    async def create_signed_url(self, target: StorageTarget, expires_in: int = 3600) -> str | None:
        """Return a time-limited URL, or None if signing failed.

        Signing failures never fail the request that asked for the URL.
        """
        try:
            return await self._sign(target, expires_in)
        except Exception as e:
            logger.warning("Signed URL failed for %s: %s", target.pointer, e)
            return None


# ---------------------------------------------------------------------------
# Local media volume
# ---------------------------------------------------------------------------

class LocalStorage(StorageBackend):
    """Files under ``<root>/<bucket>/<path>``, served via HMAC-signed URLs."""

    name = "local"

    def __init__(self, root: str | Path, signing_secret: str, public_base_url: str = ""):
        self.root = Path(root).resolve()
        self._secret = signing_secret.encode("utf-8")
        self.public_base_url = public_base_url.rstrip("/")

    def resolve(self, target: StorageTarget) -> Path:
        path = (self.root / target.bucket / target.path).resolve()
        if self.root not in path.parents:
            raise StorageError(f"Path escapes storage root: {target.pointer}")
        return path

    async def upload(self, target: StorageTarget, data: bytes, content_type: str = "image/png") -> None:
        path = self.resolve(target)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(path.suffix + ".tmp")
            tmp.write_bytes(data)
            tmp.replace(path)

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            raise StorageError(f"Upload failed for {target.pointer}: {e}") from e
        logger.debug("Stored %s (%d bytes)", target.pointer, len(data))

    async def download(self, target: StorageTarget) -> bytes:
        path = self.resolve(target)
        if not path.is_file():
            raise StorageObjectMissing(target)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise StorageError(f"Download failed for {target.pointer}: {e}") from e

    def signature(self, bucket: str, path: str, expires: int) -> str:
        message = f"{bucket}/{path}:{expires}".encode("utf-8")
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def verify(self, bucket: str, path: str, expires: int, signature: str) -> bool:
        if expires < int(time.time()):
            return False
        return hmac.compare_digest(self.signature(bucket, path, expires), signature)

    async def _sign(self, target: StorageTarget, expires_in: int) -> str:
        expires = int(time.time()) + int(expires_in)
        query = urlencode({
            "expires": expires,
            "signature": self.signature(target.bucket, target.path, expires),
        })
        return f"{self.public_base_url}/storage/{quote(target.bucket)}/{quote(target.path)}?{query}"


# ---------------------------------------------------------------------------
# S3-compatible object store
# ---------------------------------------------------------------------------

_MISSING_CODES = {"NoSuchKey", "404", "NotFound"}


class S3Storage(StorageBackend):
    """Buckets map one-to-one onto S3 (or R2/MinIO) buckets."""

    name = "s3"

    def __init__(
        self,
        *,
        endpoint_url: str | None = None,
        region_name: str = "auto",
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        client=None,
    ):
        self._client = client or boto3.client(
            service_name="s3",
            endpoint_url=endpoint_url or None,
            aws_access_key_id=access_key_id or None,
            aws_secret_access_key=secret_access_key or None,
            region_name=region_name,
        )

    async def upload(self, target: StorageTarget, data: bytes, content_type: str = "image/png") -> None:
        try:
            await asyncio.to_thread(
                self._client.put_object,
                Bucket=target.bucket,
                Key=target.path,
                Body=data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Upload failed for {target.pointer}: {e}") from e

    async def download(self, target: StorageTarget) -> bytes:
        try:
            response = await asyncio.to_thread(
                self._client.get_object, Bucket=target.bucket, Key=target.path,
            )
            return await asyncio.to_thread(response["Body"].read)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _MISSING_CODES:
                raise StorageObjectMissing(target) from e
            raise StorageError(f"Download failed for {target.pointer}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Download failed for {target.pointer}: {e}") from e

    async def _sign(self, target: StorageTarget, expires_in: int) -> str:
        return await asyncio.to_thread(
            self._client.generate_presigned_url,
            "get_object",
            Params={"Bucket": target.bucket, "Key": target.path},
            ExpiresIn=int(expires_in),
        )


def build_storage(settings: Settings) -> StorageBackend:
    """Construct the backend named by STORAGE_BACKEND."""
    backend = settings.STORAGE_BACKEND.strip().lower()
    if backend == "s3":
        return S3Storage(
            endpoint_url=settings.S3_ENDPOINT_URL,
            region_name=settings.S3_REGION,
            access_key_id=settings.S3_ACCESS_KEY_ID,
            secret_access_key=settings.S3_SECRET_ACCESS_KEY,
        )
    if backend != "local":
        logger.warning("Unknown STORAGE_BACKEND=%s, using local storage", backend)
    return LocalStorage(
        settings.MEDIA_VOLUME,
        signing_secret=settings.STORAGE_SIGNING_SECRET,
        public_base_url=settings.PUBLIC_BASE_URL,
    )
