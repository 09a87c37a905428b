"""
==============================================================================
Image Service Module
==============================================================================

Uploads product images to the blob store and garbage-collects them.

Failure Policy:
---------------
- A failed upload never fails the request: the image is embedded in the
  catalog as a data URI instead.
- Only URLs hosted by the blob store are ever deleted; data URIs and
  external links are left alone.
- Delete failures are logged and swallowed.

Upload Naming:
--------------
    <prefix>/<timestampMillis>-<tag>-<sanitized filename>

    products/1718000000000-0-pump-front.jpg        (create, image 0)
    products/1718000000000-edit-1-pump-side.jpg    (update, new image 1)

==============================================================================
"""

from __future__ import annotations

import base64
import logging
import re
import time
from typing import Callable, Iterable, List, Optional

from marine_catalog.catalog.models import UploadedImage
from marine_catalog.storage.blob_client import BlobClient, BlobError


# Module logger
logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

_WHITESPACE = re.compile(r"\s+")


def now_millis() -> int:
    return int(time.time() * 1000)


def sanitize_filename(filename: Optional[str]) -> str:
    """Replace whitespace runs with hyphens; empty names become 'upload'."""
    return _WHITESPACE.sub("-", (filename or "").strip()) or "upload"


def to_data_uri(image: UploadedImage) -> str:
    encoded = base64.b64encode(image.content).decode("ascii")
    return f"data:{image.content_type or DEFAULT_CONTENT_TYPE};base64,{encoded}"


class ImageService:
    """
    Product image storage.

    Attributes:
        _client: Blob client, None when running without a blob store
        _prefix: Pathname prefix for uploads
        _host_marker: Substring identifying blob-hosted URLs
        _clock: Millisecond clock used for upload names

    Example:
        >>> service = ImageService(client, prefix="products")
        >>> urls = service.upload_all(files)
        >>> service.delete_all(urls)
    """

    def __init__(
        self,
        client: Optional[BlobClient],
        prefix: str = "products",
        host_marker: str = "vercel-storage.com",
        clock: Callable[[], int] = now_millis,
    ) -> None:
        self._client = client
        self._prefix = prefix.strip("/")
        self._host_marker = host_marker
        self._clock = clock

    def build_pathname(self, filename: Optional[str], tag: str, timestamp: int) -> str:
        return f"{self._prefix}/{timestamp}-{tag}-{sanitize_filename(filename)}"

    # =========================================================================
    # UPLOAD
    # =========================================================================

    def upload(self, image: UploadedImage, tag: str, timestamp: Optional[int] = None) -> str:
        """
        Store one image and return its URL.

        Falls back to a data URI if there is no blob store or the upload fails.
        """
        if self._client is None:
            logger.debug(f"No blob store configured, embedding '{image.filename}' as data URI")
            return to_data_uri(image)

        pathname = self.build_pathname(
            image.filename,
            tag,
            timestamp if timestamp is not None else self._clock(),
        )

        try:
            blob = self._client.put(
                pathname,
                image.content,
                image.content_type or DEFAULT_CONTENT_TYPE,
            )
            return blob.url
        except BlobError as e:
            logger.warning(f"⚠️ Upload of '{pathname}' failed, embedding as data URI: {e}")
            return to_data_uri(image)

    def upload_all(self, images: Iterable[UploadedImage], tag_prefix: str = "") -> List[str]:
        """
        Upload images in order under one shared timestamp.

        Args:
            images: Files to store
            tag_prefix: Prepended to each index tag (e.g. "edit-")

        Returns:
            URLs in the same order as `images`
        """
        timestamp = self._clock()
        return [
            self.upload(image, f"{tag_prefix}{index}", timestamp)
            for index, image in enumerate(images)
        ]

    # =========================================================================
    # DELETE
    # =========================================================================

    def owns(self, url: object) -> bool:
        """True for URLs hosted by the blob store."""
        return (
            isinstance(url, str)
            and not url.startswith("data:")
            and self._host_marker in url
        )

    def delete(self, url: str) -> bool:
        """
        Best-effort delete of a blob-hosted image.

        Returns:
            True if a delete was issued and succeeded
        """
        if self._client is None or not self.owns(url):
            return False

        try:
            self._client.delete([url])
            return True
        except BlobError as e:
            logger.warning(f"⚠️ Could not delete blob image {url}: {e}")
            return False

    def delete_all(self, urls: Iterable[str]) -> int:
        """Delete every owned URL, returning how many deletes succeeded."""
        return sum(1 for url in dict.fromkeys(urls) if self.delete(url))
