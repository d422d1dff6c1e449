"""HTTP client for the object-storage bucket holding technician documents.

The storage service speaks the Supabase Storage REST dialect: objects are
written with ``POST /object/{bucket}/{key}``.  Failures are logged and
surface as ``None``.
"""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)


class StorageClient:
    """Async wrapper around the storage REST API.

    Parameters
    ----------
    base_url:
        Storage API root, e.g. ``https://<project>.supabase.co/storage/v1``.
    bucket:
        Bucket that holds every technician document.
    service_key:
        Service-role key; the bucket is private.
    timeout:
        Per-request timeout in seconds.
    """

    def __init__(
        self,
        base_url: str,
        bucket: str,
        service_key: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._bucket = bucket
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(timeout),
            headers={"Authorization": f"Bearer {service_key}", "apikey": service_key},
            transport=transport,
        )

    async def upload(self, key: str, content: bytes, content_type: str) -> str | None:
        """Store *content* under *key* and return the key, or ``None`` on failure."""
        try:
            response = await self._client.post(
                f"/object/{self._bucket}/{key}",
                content=content,
                headers={"Content-Type": content_type, "x-upsert": "false"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Storage upload of %s returned %d: %s",
                key,
                exc.response.status_code,
                exc.response.text[:300],
            )
            return None
        except httpx.RequestError as exc:
            logger.warning("Storage upload of %s failed: %s", key, exc)
            return None
        return key

    async def close(self) -> None:
        await self._client.aclose()
