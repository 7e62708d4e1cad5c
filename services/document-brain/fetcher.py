"""Downloads source documents over HTTP.

A single streamed GET with bounded timeouts and size; any failure is a
``FetchError``. Retries are left to the caller.
"""

import logging
import time

import httpx

from config import Settings
from errors import FetchError

logger = logging.getLogger(__name__)

SIZE_TOLERANCE_BYTES = 100


class DocumentFetcher:
    """Resolves a document reference (URL or storage path) to raw bytes."""

    def __init__(
        self,
        *,
        store_url: str = "",
        service_key: str = "",
        bucket: str = "documents",
        timeout: int = 60,
        connect_timeout: int = 10,
        max_bytes: int = 25 * 1024 * 1024,
    ):
        self._store_url = store_url.rstrip("/")
        self._service_key = service_key
        self._bucket = bucket
        self._max_bytes = max_bytes
        self._timeout = timeout

        self._client = httpx.Client(
            follow_redirects=True,
            timeout=httpx.Timeout(
                connect=float(connect_timeout),
                read=float(timeout),
                write=30.0,
                pool=30.0,
            ),
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "DocumentFetcher":
        return cls(
            store_url=settings.STORE_URL,
            service_key=settings.STORE_SERVICE_KEY,
            bucket=settings.STORE_BUCKET,
            timeout=settings.FETCH_TIMEOUT_SECONDS,
            connect_timeout=settings.FETCH_CONNECT_TIMEOUT,
            max_bytes=settings.MAX_DOWNLOAD_BYTES,
        )

    def close(self):
        self._client.close()

    def storage_url(self, file_path: str) -> str:
        """Object-storage URL for a path inside the configured bucket."""
        if not self._store_url:
            raise FetchError(file_path, "storage paths need STORE_URL to be configured")
        return f"{self._store_url}/storage/v1/object/{self._bucket}/{file_path.lstrip('/')}"

    def fetch(self, ref: str, expected_size: int | None = None) -> bytes:
        """Download ``ref`` and return its bytes. Raises FetchError on any failure.

        The body is streamed so oversized or stalled downloads are abandoned
        before they are fully read.
        """
        try:
            with self._client.stream("GET", ref, headers=self._headers_for(ref)) as resp:
                if not resp.is_success:
                    resp.read()
                    logger.error("Download failed: HTTP %d", resp.status_code)
                    raise FetchError(ref, f"HTTP {resp.status_code}: {resp.text[:200]}")

                declared = resp.headers.get("content-length")
                if declared and declared.isdigit() and int(declared) > self._max_bytes:
                    raise FetchError(ref, self._too_large(int(declared)))

                data = self._read_body(ref, resp)
                content_type = resp.headers.get("content-type", "unknown")
        except httpx.HTTPError as e:
            logger.error("Download failed (transport): %s", e)
            raise FetchError(ref, str(e)) from e

        size = len(data)
        logger.info("Downloaded document: %d bytes (%s)", size, content_type)

        if expected_size is not None and abs(size - expected_size) > SIZE_TOLERANCE_BYTES:
            raise FetchError(
                ref,
                f"size mismatch: expected {expected_size} bytes, downloaded {size} "
                "(stale cached copy or wrong file)",
            )

        return data

    def _read_body(self, ref: str, resp: httpx.Response) -> bytes:
        """Collect the streamed body, enforcing the size limit and overall deadline."""
        deadline = time.monotonic() + self._timeout
        chunks = []
        received = 0
        for chunk in resp.iter_bytes():
            received += len(chunk)
            if received > self._max_bytes:
                raise FetchError(ref, self._too_large(received))
            if time.monotonic() > deadline:
                raise FetchError(ref, f"download took longer than {self._timeout}s")
            chunks.append(chunk)
        return b"".join(chunks)

    def _too_large(self, size: int) -> str:
        return (
            f"document is too large ({size / 1024 / 1024:.2f}MB, "
            f"limit {self._max_bytes / 1024 / 1024:.0f}MB)"
        )

    def _headers_for(self, ref: str) -> dict[str, str]:
        headers = {"Cache-Control": "no-cache, no-store, must-revalidate"}
        if self._store_url and self._service_key and ref.startswith(f"{self._store_url}/storage/"):
            headers["Authorization"] = f"Bearer {self._service_key}"
            headers["apikey"] = self._service_key
        return headers
