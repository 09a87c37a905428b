"""
Blob Store HTTP Client.

Thin synchronous client for a Vercel-Blob-compatible object store. Used both
for the catalog document and for uploaded product images.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx


logger = logging.getLogger(__name__)


class BlobError(Exception):
    """The blob store could not be reached or rejected the request."""


class BlobPreconditionFailed(BlobError):
    """A conditional write lost against a newer object version."""


@dataclass(frozen=True)
class BlobObject:
    url: str
    pathname: str
    etag: Optional[str] = None
    content_type: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "BlobObject":
        return cls(
            url=data["url"],
            pathname=data.get("pathname", ""),
            etag=data.get("etag"),
            content_type=data.get("contentType"),
        )


class BlobClient:
    """
    Client for the blob store REST API.

    Example:
        >>> client = BlobClient(token="vercel_blob_rw_...")
        >>> obj = client.put("products/1-0-pump.jpg", data, "image/jpeg")
        >>> client.delete([obj.url])
    """

    def __init__(
        self,
        token: str,
        api_url: str = "https://blob.vercel-storage.com",
        api_version: str = "7",
        timeout_seconds: float = 15.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self._token = token
        self._api_version = api_version
        self._client = httpx.Client(timeout=timeout_seconds, transport=transport)

    def _api_headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._token}",
            "x-api-version": self._api_version,
        }
        if extra:
            headers.update(extra)
        return headers

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, url, **kwargs)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 412:
                raise BlobPreconditionFailed(f"{method} {url}: precondition failed") from e
            logger.error(f"Blob store error: {method} {url} -> {status} {e.response.text[:200]}")
            raise BlobError(f"{method} {url} failed with HTTP {status}") from e
        except httpx.RequestError as e:
            logger.error(f"Blob store unreachable: {method} {url}: {e}")
            raise BlobError(f"{method} {url} failed: {e}") from e

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise BlobError(f"Unparseable blob store response: {e}") from e

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    def list(self, prefix: str, limit: int = 1) -> List[BlobObject]:
        """List objects whose pathname starts with `prefix`."""
        response = self._request(
            "GET",
            f"{self.api_url}/",
            params={"prefix": prefix, "limit": limit},
            headers=self._api_headers(),
        )
        data = self._json(response)
        try:
            return [BlobObject.from_payload(item) for item in data.get("blobs", [])]
        except (AttributeError, KeyError, TypeError) as e:
            raise BlobError(f"Unexpected list response: {e}") from e

    def find(self, pathname: str) -> Optional[BlobObject]:
        """Object stored at exactly `pathname`, or None."""
        for blob in self.list(prefix=pathname, limit=1):
            if blob.pathname == pathname:
                return blob
        return None

    def fetch(self, url: str) -> bytes:
        """Download an object's body from its public URL."""
        response = self._request(
            "GET",
            url,
            headers={"Cache-Control": "no-cache"},
        )
        return response.content

    def put(
        self,
        pathname: str,
        content: bytes,
        content_type: Optional[str] = None,
        *,
        add_random_suffix: bool = True,
        allow_overwrite: bool = False,
        if_match: Optional[str] = None,
    ) -> BlobObject:
        """
        Upload `content` at `pathname`.

        Raises:
            BlobPreconditionFailed: `if_match` no longer matches the stored object
            BlobError: Any other failure
        """
        headers = {
            "x-content-type": content_type or "application/octet-stream",
            "x-add-random-suffix": "1" if add_random_suffix else "0",
        }
        if allow_overwrite:
            headers["x-allow-overwrite"] = "1"
        if if_match:
            headers["x-if-match"] = if_match

        response = self._request(
            "PUT",
            f"{self.api_url}/{quote(pathname, safe='/')}",
            content=content,
            headers=self._api_headers(headers),
        )
        data = self._json(response)
        try:
            blob = BlobObject.from_payload(data)
        except (KeyError, TypeError) as e:
            raise BlobError(f"Unexpected put response: {e}") from e

        if blob.etag is None and response.headers.get("etag"):
            blob = BlobObject(blob.url, blob.pathname, response.headers["etag"], blob.content_type)

        logger.debug(f"Stored blob {blob.pathname}")
        return blob

    def delete(self, urls: List[str]) -> None:
        """Delete objects by URL."""
        if not urls:
            return
        self._request(
            "POST",
            f"{self.api_url}/delete",
            json={"urls": list(urls)},
            headers=self._api_headers(),
        )
        logger.debug(f"Deleted {len(urls)} blob(s)")

    def close(self) -> None:
        self._client.close()
