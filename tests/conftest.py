"""
==============================================================================
Pytest Configuration and Fixtures
==============================================================================

Provides a fake blob store, catalog services, test client and admin
authentication fixtures.

==============================================================================
"""

import json
from typing import Callable, Dict, Generator, List, Optional, Set

import httpx
import pytest
from fastapi.testclient import TestClient

from marine_catalog.core.dependencies import get_catalog_service
from marine_catalog.core.security import get_security_manager
from marine_catalog.main import app
from marine_catalog.services.catalog_service import CatalogService
from marine_catalog.services.image_service import ImageService
from marine_catalog.storage.blob_client import BlobClient
from marine_catalog.storage.document_store import BlobDocumentStore, MemoryDocumentStore


BLOB_API_URL = "https://blob.test"
BLOB_PUBLIC_HOST = "store.public.blob.vercel-storage.com"
PRODUCTS_KEY = "data/products.json"
START_MILLIS = 1718000000000


# ============================================================================
# FAKE BLOB STORE
# ============================================================================

class FakeBlobServer:
    """
    In-memory stand-in for the blob store REST API.

    Serves the API host (list, put, delete) and the public host (object
    downloads) through httpx.MockTransport.
    """

    def __init__(self) -> None:
        self.objects: Dict[str, dict] = {}
        self.deleted: List[str] = []
        self.offline = False
        self.failing_uploads: Set[str] = set()
        self._etag_counter = 0

    def url_for(self, pathname: str) -> str:
        return f"https://{BLOB_PUBLIC_HOST}/{pathname}"

    def seed(self, pathname: str, content: bytes, content_type: str = "application/json") -> None:
        self._store(pathname, content, content_type)

    def seed_catalog(self, document: dict) -> None:
        self.seed(PRODUCTS_KEY, json.dumps(document).encode("utf-8"))

    def catalog(self) -> dict:
        return json.loads(self.objects[PRODUCTS_KEY]["content"])

    def _store(self, pathname: str, content: bytes, content_type: str) -> dict:
        self._etag_counter += 1
        obj = {
            "url": self.url_for(pathname),
            "pathname": pathname,
            "contentType": content_type,
            "etag": f'"etag-{self._etag_counter}"',
            "content": content,
        }
        self.objects[pathname] = obj
        return obj

    @staticmethod
    def _public(obj: dict) -> dict:
        return {key: value for key, value in obj.items() if key != "content"}

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.offline:
            raise httpx.ConnectError("blob store offline", request=request)

        if request.url.host == BLOB_PUBLIC_HOST:
            obj = self.objects.get(request.url.path.lstrip("/"))
            if obj is None:
                return httpx.Response(404)
            return httpx.Response(200, content=obj["content"])

        if request.method == "GET" and request.url.path == "/":
            prefix = request.url.params.get("prefix", "")
            limit = int(request.url.params.get("limit", "1000"))
            blobs = [
                self._public(obj)
                for pathname, obj in sorted(self.objects.items())
                if pathname.startswith(prefix)
            ]
            return httpx.Response(200, json={"blobs": blobs[:limit]})

        if request.method == "PUT":
            pathname = request.url.path.lstrip("/")
            if any(marker in pathname for marker in self.failing_uploads):
                return httpx.Response(503, json={"error": "upload failed"})

            if_match = request.headers.get("x-if-match")
            current = self.objects.get(pathname)
            if if_match and (current is None or current["etag"] != if_match):
                return httpx.Response(412, json={"error": "precondition failed"})

            obj = self._store(
                pathname,
                request.content,
                request.headers.get("x-content-type", "application/octet-stream"),
            )
            return httpx.Response(200, json=self._public(obj))

        if request.method == "POST" and request.url.path == "/delete":
            urls = json.loads(request.content)["urls"]
            for url in urls:
                self.deleted.append(url)
                for pathname, obj in list(self.objects.items()):
                    if obj["url"] == url:
                        del self.objects[pathname]
            return httpx.Response(200, json={})

        return httpx.Response(404)


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = START_MILLIS) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, millis: int = 1) -> None:
        self.now += millis


# ============================================================================
# STORAGE FIXTURES
# ============================================================================

@pytest.fixture
def blob_server() -> FakeBlobServer:
    """Fresh fake blob store for each test."""
    return FakeBlobServer()


@pytest.fixture
def blob_client(blob_server: FakeBlobServer) -> Generator[BlobClient, None, None]:
    """Blob client wired to the fake blob store."""
    client = BlobClient(
        token="test-token",
        api_url=BLOB_API_URL,
        transport=httpx.MockTransport(blob_server.handler),
    )
    yield client
    client.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture
def blob_store(blob_client: BlobClient) -> BlobDocumentStore:
    return BlobDocumentStore(blob_client, PRODUCTS_KEY, MemoryDocumentStore())


# ============================================================================
# SERVICE FIXTURES
# ============================================================================

@pytest.fixture
def image_service(blob_client: BlobClient, clock: FakeClock) -> ImageService:
    return ImageService(blob_client, prefix="products", clock=clock)


@pytest.fixture
def catalog_service(
    blob_store: BlobDocumentStore,
    image_service: ImageService,
    clock: FakeClock
) -> CatalogService:
    """Catalog service over the fake blob store."""
    return CatalogService(blob_store, image_service, max_attempts=3, clock=clock)


@pytest.fixture
def make_fields() -> Callable[..., Dict[str, str]]:
    """Factory for valid create-form fields."""
    def _make(**overrides: Optional[str]) -> Dict[str, str]:
        fields = {
            "category": "automation",
            "name": "Siemens S7-1200 PLC",
            "description": "Compact controller, tested and working",
            "link": "https://example.com/listing/plc",
        }
        fields.update({key: value for key, value in overrides.items() if value is not None})
        for key, value in overrides.items():
            if value is None:
                fields.pop(key, None)
        return fields
    return _make


# ============================================================================
# CLIENT FIXTURES
# ============================================================================

@pytest.fixture
def client(catalog_service: CatalogService) -> Generator[TestClient, None, None]:
    """Create test client with the catalog service override."""
    app.dependency_overrides[get_catalog_service] = lambda: catalog_service

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def admin_token() -> str:
    """Create access token for the admin."""
    security = get_security_manager()
    return security.create_access_token({"sub": "admin", "role": "admin"})


@pytest.fixture
def admin_headers(admin_token: str) -> Dict[str, str]:
    """Authorization headers for the admin."""
    return {"Authorization": f"Bearer {admin_token}"}
