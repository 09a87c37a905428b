"""
==============================================================================
API Integration Tests
==============================================================================

Tests for REST API endpoints.

==============================================================================
"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

import marine_catalog.api.admin.auth as auth_routes
from marine_catalog.config import Settings
from marine_catalog.core.security import get_security_manager
from marine_catalog.main import Application

from tests.conftest import START_MILLIS, FakeBlobServer


PRODUCTS_URL = "/api/admin/products"


def product_form(**overrides) -> dict:
    form = {
        "category": "electronics",
        "name": "Furuno GP-39 GPS",
        "description": "Compact GPS navigator",
        "link": "https://example.com/listing/gp39",
        "partNumber": "GP-39",
        "condition": "used",
    }
    form.update(overrides)
    return form


def create_product(client: TestClient, headers: dict, files=None, **overrides) -> dict:
    response = client.post(
        PRODUCTS_URL,
        headers=headers,
        data=product_form(**overrides),
        files=files or [],
    )
    assert response.status_code == 200, response.text
    return response.json()["product"]


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_health_check(self, client: TestClient):
        """Test health check returns status."""
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["details"]["storage_backend"] == "blob"

    def test_health_degraded_when_blob_offline(self, client: TestClient, blob_server: FakeBlobServer):
        """Test the memory fallback is reported as degraded."""
        blob_server.offline = True
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "degraded"

    def test_readiness_probe(self, client: TestClient):
        """Test readiness probe."""
        response = client.get("/api/health/ready")
        assert response.status_code == 200
        assert response.json()["ready"] is True

    def test_liveness_probe(self, client: TestClient):
        """Test liveness probe."""
        response = client.get("/api/health/live")
        assert response.status_code == 200
        assert response.json()["alive"] is True


class TestAuthEndpoints:
    """Tests for admin login."""

    def test_login_success(self, client: TestClient):
        """Test successful login."""
        response = client.post(
            "/api/admin/login",
            json={"username": "admin", "password": "admin123"}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["token"]
        assert data["token_type"] == "bearer"

    def test_login_token_authorizes_mutations(self, client: TestClient):
        """Test the issued token is accepted by admin endpoints."""
        token = client.post(
            "/api/admin/login",
            json={"username": "admin", "password": "admin123"}
        ).json()["token"]

        response = client.delete(
            PRODUCTS_URL,
            params={"id": "missing-1"},
            headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 404

    def test_login_invalid_password(self, client: TestClient):
        """Test login with invalid password."""
        response = client.post(
            "/api/admin/login",
            json={"username": "admin", "password": "wrongpassword"}
        )
        assert response.status_code == 401
        data = response.json()
        assert data["success"] is False
        assert data["code"] == "INVALID_CREDENTIALS"
        assert data["error"] == "Invalid username or password"

    def test_login_wrong_username(self, client: TestClient):
        response = client.post(
            "/api/admin/login",
            json={"username": "root", "password": "admin123"}
        )
        assert response.status_code == 401

    def test_login_missing_fields(self, client: TestClient):
        response = client.post("/api/admin/login", json={"username": "admin"})
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_login_runs_in_threadpool(self, client: TestClient, monkeypatch):
        """Test password hashing is kept off the event loop."""
        calls = []

        async def recording(func, *args):
            calls.append(func.__name__)
            return func(*args)

        monkeypatch.setattr(auth_routes, "run_in_threadpool", recording)

        response = client.post(
            "/api/admin/login",
            json={"username": "admin", "password": "admin123"}
        )
        assert response.status_code == 200
        assert calls == ["login"]

    def test_login_wrong_method(self, client: TestClient):
        """Test login only accepts POST."""
        response = client.get("/api/admin/login")
        assert response.status_code == 405
        assert response.json()["code"] == "METHOD_NOT_ALLOWED"


class TestAuthorization:
    """Tests for admin-only product mutations."""

    def test_create_without_token(self, client: TestClient):
        response = client.post(PRODUCTS_URL, data=product_form())
        assert response.status_code == 401

    def test_update_without_token(self, client: TestClient):
        response = client.put(PRODUCTS_URL, json={"id": "x", "name": "y"})
        assert response.status_code == 401

    def test_delete_without_token(self, client: TestClient):
        response = client.delete(PRODUCTS_URL, params={"id": "x"})
        assert response.status_code == 401

    def test_expired_token(self, client: TestClient):
        token = get_security_manager().create_access_token(
            {"sub": "admin", "role": "admin"},
            expires_delta=timedelta(minutes=-1)
        )
        response = client.delete(
            PRODUCTS_URL,
            params={"id": "x"},
            headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401

    def test_non_admin_role(self, client: TestClient):
        token = get_security_manager().create_access_token({"sub": "viewer", "role": "viewer"})
        response = client.delete(
            PRODUCTS_URL,
            params={"id": "x"},
            headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 403

    def test_reads_are_public(self, client: TestClient):
        response = client.get(PRODUCTS_URL)
        assert response.status_code == 200
        assert response.json() == {"products": []}


class TestProductEndpoints:
    """Tests for the product catalog endpoints."""

    def test_create_with_images(self, client: TestClient, admin_headers: dict, blob_server: FakeBlobServer):
        """Test multipart create uploads every file in order."""
        files = [
            ("images", ("front.jpg", b"front", "image/jpeg")),
            ("images", ("back.jpg", b"back", "image/jpeg")),
        ]
        response = client.post(PRODUCTS_URL, headers=admin_headers, data=product_form(), files=files)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Product added successfully"

        product = data["product"]
        assert product["id"] == f"electronics-{START_MILLIS}"
        assert product["partNumber"] == "GP-39"
        assert product["images"] == [
            blob_server.url_for(f"products/{START_MILLIS}-0-front.jpg"),
            blob_server.url_for(f"products/{START_MILLIS}-1-back.jpg"),
        ]
        assert product["image"] == product["images"][0]

    def test_create_missing_field(self, client: TestClient, admin_headers: dict):
        form = product_form()
        del form["link"]

        response = client.post(PRODUCTS_URL, headers=admin_headers, data=form)

        assert response.status_code == 400
        assert response.json()["details"]["missing"] == ["link"]
        assert client.get(PRODUCTS_URL).json()["products"] == []

    def test_list_and_get(self, client: TestClient, admin_headers: dict):
        product = create_product(client, admin_headers)

        listed = client.get(PRODUCTS_URL).json()["products"]
        assert [p["id"] for p in listed] == [product["id"]]

        response = client.get(f"{PRODUCTS_URL}/{product['id']}")
        assert response.status_code == 200
        assert response.json()["product"] == product

    def test_get_unknown(self, client: TestClient):
        response = client.get(f"{PRODUCTS_URL}/electronics-1")
        assert response.status_code == 404
        assert response.json()["code"] == "PRODUCT_NOT_FOUND"

    def test_update_json(self, client: TestClient, admin_headers: dict):
        """Test a JSON patch only touches the fields it names."""
        product = create_product(client, admin_headers)

        response = client.put(
            PRODUCTS_URL,
            headers=admin_headers,
            json={"id": product["id"], "name": "Furuno GP-39 (boxed)"}
        )

        assert response.status_code == 200
        updated = response.json()["product"]
        assert updated["name"] == "Furuno GP-39 (boxed)"
        assert updated["description"] == product["description"]
        assert updated["createdAt"] == product["createdAt"]

    def test_update_multipart(
        self,
        client: TestClient,
        admin_headers: dict,
        blob_server: FakeBlobServer
    ):
        """Test keepImages plus new files on a multipart update."""
        files = [
            ("images", ("a.jpg", b"a", "image/jpeg")),
            ("images", ("b.jpg", b"b", "image/jpeg")),
        ]
        product = create_product(client, admin_headers, files=files)
        first, second = product["images"]

        response = client.put(
            PRODUCTS_URL,
            headers=admin_headers,
            data={"id": product["id"], "condition": "new", "keepImages": f'["{second}"]'},
            files=[("newImages", ("c.jpg", b"c", "image/jpeg"))],
        )

        assert response.status_code == 200
        updated = response.json()["product"]
        assert updated["condition"] == "new"
        assert updated["images"][0] == second
        assert updated["images"][1].endswith("-edit-0-c.jpg")
        assert updated["image"] == second
        assert blob_server.deleted == [first]

    def test_update_bad_body(self, client: TestClient, admin_headers: dict):
        response = client.put(
            PRODUCTS_URL,
            headers={**admin_headers, "Content-Type": "text/plain"},
            content=b"not json"
        )
        assert response.status_code == 400

    def test_update_missing_id(self, client: TestClient, admin_headers: dict):
        response = client.put(PRODUCTS_URL, headers=admin_headers, json={"name": "x"})
        assert response.status_code == 400

    def test_update_unknown(self, client: TestClient, admin_headers: dict):
        response = client.put(
            PRODUCTS_URL,
            headers=admin_headers,
            json={"id": "electronics-1", "name": "x"}
        )
        assert response.status_code == 404

    def test_delete(self, client: TestClient, admin_headers: dict, blob_server: FakeBlobServer):
        product = create_product(
            client,
            admin_headers,
            files=[("images", ("a.jpg", b"a", "image/jpeg"))]
        )

        response = client.delete(PRODUCTS_URL, params={"id": product["id"]}, headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Product deleted successfully"}
        assert client.get(PRODUCTS_URL).json()["products"] == []
        assert blob_server.deleted == product["images"]

    @pytest.mark.parametrize("params, status", [({}, 400), ({"id": "electronics-1"}, 404)])
    def test_delete_errors(self, client: TestClient, admin_headers: dict, params: dict, status: int):
        response = client.delete(PRODUCTS_URL, params=params, headers=admin_headers)
        assert response.status_code == status
        body = response.json()
        assert body["success"] is False
        assert isinstance(body["error"], str)


class TestErrorResponses:
    """Tests for the error body shape the admin UI displays."""

    def test_error_is_display_message(self, client: TestClient, admin_headers: dict):
        """Test `error` is a plain message with the code alongside."""
        response = client.delete(PRODUCTS_URL, params={"id": "nope"}, headers=admin_headers)

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "Product not found"
        assert body["code"] == "PRODUCT_NOT_FOUND"
        assert body["details"] == {"product_id": "nope"}
        assert "timestamp" in body

    def test_validation_error_is_display_message(self, client: TestClient, admin_headers: dict):
        form = product_form()
        del form["name"]

        response = client.post(PRODUCTS_URL, headers=admin_headers, data=form)

        body = response.json()
        assert body["error"] == "Required fields: name"
        assert body["details"] == {"missing": ["name"]}

    def test_framework_errors_share_the_shape(self, client: TestClient):
        response = client.get("/api/admin/login")

        assert isinstance(response.json()["error"], str)


class TestApplication:
    """Tests for environment-dependent application setup."""

    def test_docs_hidden_in_production(self):
        application = Application(Settings(_env_file=None, app_env="production"))

        assert application.app.docs_url is None
        assert TestClient(application.app).get("/docs").status_code == 404

    def test_docs_served_in_development(self):
        application = Application(Settings(_env_file=None, app_env="development"))

        assert application.app.docs_url == "/docs"
        assert TestClient(application.app).get("/docs").status_code == 200
