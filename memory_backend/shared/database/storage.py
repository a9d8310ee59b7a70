"""
Object storage operations for Supabase Storage.

Uploads go through the Supabase resumable endpoint (TUS 1.0.0) so that
large memories are sent in fixed-size chunks, progress can be reported at
every chunk boundary, and a dropped connection resumes from the offset the
server acknowledged instead of starting over.

Usage:
    storage = ObjectStorage()
    stored = storage.put(
        "users/u1/memories/1700000000000_k3j4h5g6f.jpg",
        data,
        "image/jpeg",
        custom_metadata={"originalName": "IMG_001.jpg"},
        on_progress=lambda sent, total: print(sent / total),
    )
    storage.delete(stored.path)
"""

import base64
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
from urllib.parse import urljoin

import httpx
from supabase import Client

from .client import get_supabase_admin_client, get_supabase_url, get_service_role_key
from .config import BucketNames, DatabaseConfig, StorageConfig
from .exceptions import StorageError, TransferCancelledError


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class StoredObject:
    """Result of a completed upload."""

    path: str
    download_url: str


def encode_upload_metadata(metadata: Dict[str, str]) -> str:
    """Encode the TUS ``Upload-Metadata`` header (``key base64,key base64``)."""
    pairs = []
    for key, value in metadata.items():
        encoded = base64.b64encode(str(value).encode('utf-8')).decode('ascii')
        pairs.append(f"{key} {encoded}")
    return ",".join(pairs)


class ObjectStorage:
    """Supabase Storage capability: resumable put, delete, public URL."""

    def __init__(
        self,
        client: Optional[Client] = None,
        http_client: Optional[httpx.Client] = None,
        bucket: str = BucketNames.MEMORIES,
        chunk_size: int = StorageConfig.CHUNK_SIZE
    ):
        self._client = client
        self._http = http_client
        self.bucket = bucket
        self.chunk_size = chunk_size

    @property
    def client(self) -> Client:
        """Get Supabase client (lazy initialization)."""
        if self._client is None:
            self._client = get_supabase_admin_client()
        return self._client

    @property
    def http(self) -> httpx.Client:
        """HTTP client for the resumable endpoint (lazy initialization)."""
        if self._http is None:
            self._http = httpx.Client(timeout=httpx.Timeout(
                StorageConfig.DEFAULT_TIMEOUT,
                connect=DatabaseConfig.DEFAULT_TIMEOUT_CONNECT,
                pool=DatabaseConfig.DEFAULT_TIMEOUT_POOL
            ))
        return self._http

    def _headers(self, **extra: str) -> Dict[str, str]:
        service_key = get_service_role_key()
        headers = {
            "authorization": f"Bearer {service_key}",
            "apikey": service_key,
            "Tus-Resumable": StorageConfig.TUS_VERSION,
            "x-upsert": "false",
        }
        headers.update(extra)
        return headers

    def _create_session(
        self,
        path: str,
        total_bytes: int,
        content_type: str,
        custom_metadata: Dict[str, Any]
    ) -> str:
        endpoint = f"{get_supabase_url()}{StorageConfig.RESUMABLE_ENDPOINT}"
        upload_metadata = encode_upload_metadata({
            "bucketName": self.bucket,
            "objectName": path,
            "contentType": content_type,
            "cacheControl": StorageConfig.CACHE_CONTROL,
            "metadata": json.dumps(custom_metadata or {}),
        })

        try:
            response = self.http.post(endpoint, headers=self._headers(**{
                "Upload-Length": str(total_bytes),
                "Upload-Metadata": upload_metadata,
            }))
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise StorageError(f"Could not create upload session for {path}: {str(e)}")

        location = response.headers.get("Location")
        if not location:
            raise StorageError(f"Upload session for {path} returned no Location header")
        return urljoin(endpoint, location)

    def _server_offset(self, upload_url: str) -> int:
        response = self.http.head(upload_url, headers=self._headers())
        response.raise_for_status()
        try:
            return int(response.headers["Upload-Offset"])
        except (KeyError, TypeError, ValueError):
            raise StorageError(f"Upload session {upload_url} returned no valid Upload-Offset")

    def _terminate(self, upload_url: str) -> None:
        try:
            self.http.delete(upload_url, headers=self._headers())
        except httpx.HTTPError as e:
            logger.warning(f"Could not terminate upload session {upload_url}: {e}")

    def put(
        self,
        path: str,
        data: bytes,
        content_type: str,
        custom_metadata: Optional[Dict[str, Any]] = None,
        on_progress: Optional[ProgressCallback] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
        deadline: Optional[float] = None
    ) -> StoredObject:
        """Upload bytes to ``path`` with a chunked, resumable transfer.

        Any failure, including one raised by ``on_progress`` or
        ``should_cancel``, terminates the upload session before it is
        reported, so no partial object is left behind.

        Args:
            path: Object path inside the bucket
            data: Object content
            content_type: MIME type stored with the object
            custom_metadata: Key/value metadata stored with the object
            on_progress: Called with (bytes_transferred, total_bytes) at
                every chunk boundary
            should_cancel: Polled before every chunk; returning True aborts
            deadline: Absolute ``time.monotonic()`` value after which the
                transfer is abandoned

        Returns:
            StoredObject: Path and public download URL

        Raises:
            TransferCancelledError: If the caller cancelled the transfer
            StorageError: If the transfer failed or the deadline passed
        """
        total = len(data)
        upload_url = self._create_session(path, total, content_type, custom_metadata or {})

        offset = 0
        resume_attempts = 0
        resync = False

        try:
            if on_progress:
                on_progress(0, total)

            while offset < total:
                if should_cancel and should_cancel():
                    raise TransferCancelledError(f"Upload of {path} cancelled at byte {offset}/{total}")
                if deadline is not None and time.monotonic() > deadline:
                    raise StorageError(f"Upload of {path} exceeded its deadline at byte {offset}/{total}")

                try:
                    if resync:
                        # HEAD failures count against the same resume budget
                        offset = self._server_offset(upload_url)
                        resync = False
                    else:
                        chunk = data[offset:offset + self.chunk_size]
                        response = self.http.patch(upload_url, content=chunk, headers=self._headers(**{
                            "Upload-Offset": str(offset),
                            "Content-Type": "application/offset+octet-stream",
                        }))
                        if response.status_code == 409:
                            # Offset mismatch after a lost acknowledgement
                            raise httpx.TransportError("upload offset conflict")
                        response.raise_for_status()
                        offset = int(response.headers.get("Upload-Offset", offset + len(chunk)))
                        resume_attempts = 0
                except httpx.TransportError as e:
                    resume_attempts += 1
                    if resume_attempts > StorageConfig.MAX_RESUME_ATTEMPTS:
                        raise StorageError(
                            f"Upload of {path} failed after {resume_attempts} resume attempts: {str(e)}"
                        )
                    delay = StorageConfig.RESUME_INITIAL_DELAY * (2 ** (resume_attempts - 1))
                    logger.warning(
                        f"Chunk upload interrupted at byte {offset}/{total} for {path}, "
                        f"resuming in {delay}s: {str(e)}"
                    )
                    time.sleep(delay)
                    resync = True
                    continue

                if on_progress:
                    on_progress(offset, total)

        except StorageError:
            self._terminate(upload_url)
            raise
        except httpx.HTTPError as e:
            self._terminate(upload_url)
            raise StorageError(f"Error uploading file to storage: {str(e)}")
        except Exception as e:
            self._terminate(upload_url)
            raise StorageError(f"Upload of {path} aborted: {str(e)}") from e

        logger.info(f"Uploaded {total} bytes to {self.bucket}/{path}")
        return StoredObject(path=path, download_url=self.public_url(path))

    def delete(self, path: str) -> bool:
        """Delete an object.

        Returns:
            bool: True if the object was removed, False if it did not exist

        Raises:
            StorageError: If the delete request fails
        """
        try:
            removed = self.client.storage.from_(self.bucket).remove([path])
        except Exception as e:
            raise StorageError(f"Error deleting file from storage: {str(e)}")

        if not removed:
            logger.warning(f"Object not found in {self.bucket}: {path}")
            return False
        return True

    def public_url(self, path: str) -> str:
        """Get the durable, publicly-resolvable URL for an object."""
        try:
            url = self.client.storage.from_(self.bucket).get_public_url(path)
        except Exception as e:
            raise StorageError(f"Error resolving public URL for {path}: {str(e)}")
        return url.rstrip('?')
