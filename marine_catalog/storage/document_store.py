"""
==============================================================================
Document Store Module
==============================================================================

Persistence for the single catalog document.

Stores:
-------
- MemoryDocumentStore: process-local, non-durable
- BlobDocumentStore: durable blob object with a MemoryDocumentStore fallback
  used whenever the blob store is unreachable

Revisions:
----------
Every load returns a Snapshot carrying a revision. Passing that snapshot back
to save() makes the write conditional: if the stored document changed since
the load, RevisionConflict is raised and the caller reloads and reapplies its
change. Without an expected snapshot, save() overwrites unconditionally.

A snapshot served from the memory fallback (durable=False) only ever writes
back to the fallback, so an outage or an unreadable catalog object can never
replace the durable catalog with a partial one.

==============================================================================
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from typing import Optional

from pydantic import ValidationError

from marine_catalog.catalog.models import CatalogDocument
from marine_catalog.config import Settings
from marine_catalog.storage.blob_client import BlobClient, BlobError, BlobPreconditionFailed


# Module logger
logger = logging.getLogger(__name__)


class RevisionConflict(Exception):
    """The document changed between load and save."""


@dataclass(frozen=True)
class Snapshot:
    """
    A loaded document and the revision it was read at.

    Attributes:
        document: Private copy of the catalog, safe to mutate
        revision: Opaque version token, None when the store cannot tell
        durable: False when served by the memory fallback of a blob store
    """

    document: CatalogDocument
    revision: Optional[str] = None
    durable: bool = True


def serialize_document(document: CatalogDocument) -> str:
    return json.dumps(document.to_dict(), indent=2, ensure_ascii=False)


def parse_document(raw: bytes | str) -> CatalogDocument:
    """
    Parse a stored catalog payload.

    Raises:
        ValueError: Payload is not a valid catalog document
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid catalog JSON: {e}") from e

    if not isinstance(data, dict):
        raise ValueError("Catalog document must be a JSON object")

    try:
        return CatalogDocument.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid catalog document: {e}") from e


class DocumentStore:
    """Interface shared by the catalog stores."""

    backend_name = "abstract"

    def load(self) -> Snapshot:
        raise NotImplementedError

    def save(
        self,
        document: CatalogDocument,
        expected: Optional[Snapshot] = None
    ) -> Snapshot:
        raise NotImplementedError

    def close(self) -> None:
        """Release underlying resources."""


class MemoryDocumentStore(DocumentStore):
    """
    Process-local catalog store.

    Starts empty. Contents are lost on restart.
    """

    backend_name = "memory"

    def __init__(self, initial: Optional[CatalogDocument] = None) -> None:
        self._lock = threading.Lock()
        self._payload = serialize_document(initial or CatalogDocument())
        self._version = 0

    def _revision(self) -> str:
        return f"mem-{self._version}"

    def load(self) -> Snapshot:
        with self._lock:
            payload, revision = self._payload, self._revision()
        return Snapshot(parse_document(payload), revision, durable=True)

    def save(
        self,
        document: CatalogDocument,
        expected: Optional[Snapshot] = None
    ) -> Snapshot:
        payload = serialize_document(document)

        with self._lock:
            if expected is not None and expected.revision != self._revision():
                raise RevisionConflict(
                    f"expected {expected.revision}, found {self._revision()}"
                )
            self._payload = payload
            self._version += 1
            revision = self._revision()

        return Snapshot(parse_document(payload), revision, durable=True)


class BlobDocumentStore(DocumentStore):
    """
    Catalog store backed by one JSON object in the blob store.

    Reads and writes fall back to the injected memory store when the blob
    store fails, so the service stays available without durability.
    """

    backend_name = "blob"

    def __init__(
        self,
        client: BlobClient,
        key: str,
        fallback: Optional[MemoryDocumentStore] = None
    ) -> None:
        self._client = client
        self._key = key
        self._fallback = fallback or MemoryDocumentStore()

    @property
    def fallback(self) -> MemoryDocumentStore:
        return self._fallback

    def load(self) -> Snapshot:
        try:
            blob = self._client.find(self._key)
            if blob is None:
                logger.info(f"No catalog at '{self._key}' yet, starting empty")
                return Snapshot(CatalogDocument(), None, durable=True)

            document = parse_document(self._client.fetch(blob.url))
            return Snapshot(document, blob.etag, durable=True)

        except (BlobError, ValueError) as e:
            logger.warning(f"⚠️ Blob store unavailable, reading memory fallback: {e}")
            return self._as_fallback(self._fallback.load())

    def save(
        self,
        document: CatalogDocument,
        expected: Optional[Snapshot] = None
    ) -> Snapshot:
        if expected is not None and not expected.durable:
            # Built on fallback data: never overwrite the durable catalog with it
            logger.warning("⚠️ Catalog was read from the memory fallback, keeping write in memory only")
            return self._as_fallback(self._fallback.save(document, expected=expected))

        if_match = expected.revision if expected is not None else None

        try:
            blob = self._client.put(
                self._key,
                serialize_document(document).encode("utf-8"),
                "application/json",
                add_random_suffix=False,
                allow_overwrite=True,
                if_match=if_match,
            )
            return Snapshot(document.model_copy(deep=True), blob.etag, durable=True)

        except BlobPreconditionFailed as e:
            raise RevisionConflict(str(e)) from e

        except BlobError as e:
            logger.warning(f"⚠️ Blob store write failed, keeping catalog in memory only: {e}")
            return self._as_fallback(self._fallback.save(document))

    def close(self) -> None:
        self._client.close()

    @staticmethod
    def _as_fallback(snapshot: Snapshot) -> Snapshot:
        return Snapshot(snapshot.document, snapshot.revision, durable=False)


# =============================================================================
# FACTORY
# =============================================================================

def build_blob_client(settings: Settings) -> BlobClient:
    return BlobClient(
        token=settings.blob_read_write_token or "",
        api_url=settings.blob_api_url,
        api_version=settings.blob_api_version,
        timeout_seconds=settings.blob_timeout_seconds,
    )


def build_store(
    settings: Settings,
    client: Optional[BlobClient] = None
) -> DocumentStore:
    """
    Select the catalog store for this process.

    Args:
        settings: Application settings
        client: Blob client to reuse (built from settings if None)

    Returns:
        BlobDocumentStore when a blob backend is configured, else MemoryDocumentStore
    """
    backend = settings.resolved_storage_backend

    if backend == "blob":
        logger.info(f"Catalog storage: blob store ('{settings.products_blob_key}')")
        return BlobDocumentStore(
            client or build_blob_client(settings),
            settings.products_blob_key,
            MemoryDocumentStore(),
        )

    logger.warning("⚠️ Catalog storage: in-memory only, changes are lost on restart")
    return MemoryDocumentStore()
