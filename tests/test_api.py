"""API endpoint tests using FastAPI TestClient."""

import pytest
from unittest.mock import AsyncMock, patch, MagicMock
from fastapi.testclient import TestClient

from api.server import create_app
from vto_backend.config import AppConfig
from vto_backend.models import TryOnResponse


@pytest.fixture
def client(app_config):
    return TestClient(create_app(app_config))


@pytest.fixture
def tryon_body(person_url, garment_url):
    return {"personImageUrl": person_url, "garmentImageUrl": garment_url}


def mock_fal(response=None, side_effect=None):
    service = MagicMock()
    service.process_try_on = AsyncMock(return_value=response, side_effect=side_effect)
    return service


class TestHealthEndpoints:
    """Tests for the banner and health endpoints."""

    def test_root_endpoint(self, client):
        """Root endpoint lists the API."""
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Virtual Try-On API Server"
        assert "version" in data
        assert data["endpoints"]["tryOn"] == "/api/try-on"

    def test_health_endpoint(self, client):
        """Health endpoint returns status, timestamp and uptime."""
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert "timestamp" in data
        assert data["uptime"] >= 0

    def test_health_reports_error_without_api_key(self):
        """Health is still 200 but says "error" when fal.ai can't be reached."""
        config = AppConfig(_env_file=None, fal_ai_api_key=None)
        client = TestClient(create_app(config))

        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "error"

    def test_health_reports_error_when_check_fails(self, client):
        service = MagicMock()
        service.check_connection = AsyncMock(return_value=False)
        with patch("api.server.get_fal_service", return_value=service):
            response = client.get("/api/health")

        assert response.json()["status"] == "error"
        service.check_connection.assert_awaited_once()

    def test_lifespan_starts_and_stops(self, app_config):
        with TestClient(create_app(app_config)) as client:
            assert client.get("/").status_code == 200

    def test_samples_endpoint(self, client):
        data = client.get("/api/samples").json()["data"]

        assert len(data["person"]) == 3
        assert all(s["type"] == "garment" for s in data["garment"])


class TestTryOnValidation:
    """Body validation happens before anything reaches fal.ai."""

    @pytest.mark.parametrize("body,error", [
        ({"garmentImageUrl": "https://g"}, "personImageUrl is required and must be a string"),
        ({"personImageUrl": 42, "garmentImageUrl": "https://g"},
         "personImageUrl is required and must be a string"),
        ({"personImageUrl": "https://p"}, "garmentImageUrl is required and must be a string"),
        ({"personImageUrl": "ftp://p", "garmentImageUrl": "https://g"},
         "personImageUrl must be a valid HTTP/HTTPS URL"),
        ({"personImageUrl": "HTTPS://p", "garmentImageUrl": "data:image/png;base64,xx"},
         "garmentImageUrl must be a valid HTTP/HTTPS URL"),
    ])
    def test_invalid_bodies(self, client, body, error):
        with patch("api.server.get_fal_service") as get_service:
            response = client.post("/api/try-on", json=body)

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": error}
        get_service.assert_not_called()

    def test_invalid_garment_type(self, client, tryon_body):
        response = client.post("/api/try-on", json={**tryon_body, "garmentType": "hats"})

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "garmentType must be one of tops, bottoms, one-pieces",
        }

    def test_invalid_other_field_is_named(self, client, tryon_body):
        response = client.post("/api/try-on", json={**tryon_body, "category": 5})

        assert response.status_code == 400
        assert response.json()["error"].startswith("category is invalid")

    def test_non_json_body(self, client):
        response = client.post(
            "/api/try-on",
            content=b"not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400


class TestTryOnEndpoint:
    """Tests for the main try-on endpoint."""

    def test_success(self, client, tryon_body, person_url):
        service = mock_fal(TryOnResponse(
            success=True,
            result_image_url="https://cdn.fal.test/result.png",
            message="Try-on processed successfully",
        ))
        with patch("api.server.get_fal_service", return_value=service):
            response = client.post("/api/try-on", json={**tryon_body, "garmentType": "tops"})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "resultImageUrl": "https://cdn.fal.test/result.png",
            "message": "Try-on processed successfully",
        }

        forwarded = service.process_try_on.await_args.args[0]
        assert forwarded.person_image_url == person_url
        assert forwarded.garment_type == "tops"
        assert forwarded.category is None

    def test_ai_failure_is_503(self, client, tryon_body):
        service = mock_fal(TryOnResponse(success=False, error="Request timeout"))
        with patch("api.server.get_fal_service", return_value=service):
            response = client.post("/api/try-on", json=tryon_body)

        assert response.status_code == 503
        assert response.json() == {"success": False, "error": "Request timeout"}

    def test_exception_is_500(self, client, tryon_body):
        service = mock_fal(side_effect=Exception("Test error"))
        with patch("api.server.get_fal_service", return_value=service):
            response = client.post("/api/try-on", json=tryon_body)

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Internal server error"}

    def test_missing_api_key_is_503(self, tryon_body):
        config = AppConfig(_env_file=None, fal_ai_api_key=None)
        client = TestClient(create_app(config))

        response = client.post("/api/try-on", json=tryon_body)

        assert response.status_code == 503
        assert response.json()["error"] == "AI service is not configured"


class TestUploadEndpoint:

    def test_upload_returns_data_url(self, client, png_bytes):
        response = client.post(
            "/api/upload",
            files={"image": ("photo.png", png_bytes, "image/png")},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["imageUrl"].startswith("data:image/png;base64,")
        assert data["message"] == "Image uploaded successfully"

    def test_no_file(self, client):
        response = client.post("/api/upload", data={"other": "x"})

        assert response.status_code == 400
        assert response.json()["error"] == "No file uploaded"

    def test_wrong_type(self, client):
        response = client.post(
            "/api/upload",
            files={"image": ("doc.pdf", b"%PDF-1.4", "application/pdf")},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid file type. Only JPEG, PNG, and WebP are allowed."

    def test_not_an_image(self, client):
        response = client.post(
            "/api/upload",
            files={"image": ("fake.png", b"definitely not a png", "image/png")},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Uploaded file is not a valid image"

    def test_too_large(self, png_bytes):
        config = AppConfig(_env_file=None, max_file_size=10)
        client = TestClient(create_app(config))

        response = client.post(
            "/api/upload",
            files={"image": ("photo.png", png_bytes, "image/png")},
        )

        assert response.status_code == 413


class TestHistoryEndpoints:

    @pytest.fixture
    def history_client(self, client, history_service):
        with patch("api.server.get_history_service", return_value=history_service):
            yield client

    @pytest.fixture
    def saved_id(self, history_client, person_url, garment_url):
        response = history_client.post("/api/history", json={
            "personImageUrl": person_url,
            "garmentImageUrl": garment_url,
            "resultImageUrl": "https://cdn.fal.test/result.png",
        })
        assert response.status_code == 201
        return response.json()["data"]["id"]

    def test_save_and_list(self, history_client, saved_id):
        data = history_client.get("/api/history").json()["data"]

        assert [r["id"] for r in data] == [saved_id]
        assert data[0]["isFavorite"] is False
        assert data[0]["resultImageUrl"] == "https://cdn.fal.test/result.png"

    def test_favorite_flow(self, history_client, saved_id):
        response = history_client.patch(
            f"/api/history/{saved_id}/favorite", json={"isFavorite": True}
        )
        assert response.status_code == 200

        favorites = history_client.get("/api/favorites").json()["data"]
        assert [f["id"] for f in favorites] == [saved_id]

    def test_delete_and_clear(self, history_client, saved_id):
        assert history_client.delete(f"/api/history/{saved_id}").status_code == 200
        assert history_client.get("/api/history").json()["data"] == []

        assert history_client.delete("/api/history").json()["success"] is True

    def test_store_failure_is_500(self, history_client, fake_supabase):
        fake_supabase.fail = True

        response = history_client.patch("/api/history/abc/favorite", json={"isFavorite": True})

        assert response.status_code == 500
        assert response.json()["success"] is False

    def test_unconfigured_store_is_503(self, client):
        response = client.get("/api/history")

        assert response.status_code == 503
        assert response.json() == {"success": False, "error": "History store is not configured"}


class TestErrorHandler:
    """Unhandled exceptions become a 500 envelope."""

    def make_client(self, environment):
        app = create_app(AppConfig(_env_file=None, environment=environment))

        async def boom():
            raise RuntimeError("kaboom")

        app.add_api_route("/boom", boom)
        return TestClient(app, raise_server_exceptions=False)

    def test_development_includes_message(self):
        response = self.make_client("development").get("/boom")

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "error": "Internal server error",
            "message": "kaboom",
        }

    def test_production_hides_message(self):
        response = self.make_client("production").get("/boom")

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Internal server error"}


class TestRateLimiting:

    def test_api_paths_limited(self):
        config = AppConfig(_env_file=None, rate_limit_max_requests=2)
        client = TestClient(create_app(config))

        assert client.get("/api/health").status_code == 200
        second = client.get("/api/health")
        assert second.headers["RateLimit-Remaining"] == "0"

        blocked = client.get("/api/health")
        assert blocked.status_code == 429
        assert blocked.json() == {
            "success": False,
            "error": "Too many requests from this IP, please try again later.",
        }
        assert "Retry-After" in blocked.headers

        # Root is outside /api
        assert client.get("/").status_code == 200


class TestCors:

    def test_preflight_allows_configured_origin(self, client):
        response = client.options(
            "/api/try-on",
            headers={
                "Origin": "http://localhost:8081",
                "Access-Control-Request-Method": "POST",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
