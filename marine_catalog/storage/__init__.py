"""
==============================================================================
Storage Package - Blob Store & Catalog Persistence
==============================================================================

Modules:
--------
- blob_client: HTTP client for the blob object store
- document_store: Catalog document stores and backend selection

==============================================================================
"""

from .blob_client import BlobClient, BlobError, BlobObject, BlobPreconditionFailed
from .document_store import (
    BlobDocumentStore,
    DocumentStore,
    MemoryDocumentStore,
    RevisionConflict,
    Snapshot,
    build_blob_client,
    build_store,
)

__all__ = [
    "BlobClient",
    "BlobError",
    "BlobObject",
    "BlobPreconditionFailed",
    "BlobDocumentStore",
    "DocumentStore",
    "MemoryDocumentStore",
    "RevisionConflict",
    "Snapshot",
    "build_blob_client",
    "build_store",
]
