"""Tests for the FastAPI REST endpoints."""

import json
from collections.abc import Iterator
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from src.analysis.pipeline import AnalysisPipeline, CallerIdentity
from src.api.app import app
from src.api.dependencies import Components, get_components
from src.errors import AuthError, CompletionError, OCRError, PersistenceError
from src.ocr.tesseract_engine import OCRResult
from src.utils.config import AppConfig


def _fenced(obj: dict) -> str:
    return f"```json\n{json.dumps(obj)}\n```"


def _make_components(
    reply: str = "{}",
    schema_version: str = "v2",
    store: MagicMock | None = None,
    verifier: MagicMock | None = None,
    failure_policy: str = "fail",
) -> Components:
    """Wire a real pipeline around mocked OCR, completion API and store."""
    ocr = MagicMock()
    ocr.extract_text.return_value = OCRResult(
        text="Sugar, Salt, Palm Oil", confidence=0.9, word_count=4, language="eng"
    )
    completion = MagicMock()
    completion.complete.return_value = reply

    config = AppConfig()
    config.analysis.schema_version = schema_version
    pipeline = AnalysisPipeline(
        ocr_engine=ocr,
        completion=completion,
        store=store,
        schema_version=schema_version,
        failure_policy=failure_policy,
    )
    return Components(config=config, pipeline=pipeline, store=store, verifier=verifier)


@pytest.fixture
def client() -> Iterator[TestClient]:
    """Create a FastAPI test client and reset dependency overrides afterwards."""
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def lenient_client() -> Iterator[TestClient]:
    """Create a client that returns 500 responses instead of re-raising."""
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


def _use(components: Components) -> Components:
    app.dependency_overrides[get_components] = lambda: components
    return components


def _post_image(client: TestClient, image_bytes: bytes, **kwargs):
    return client.post(
        "/analyze",
        files={"image": ("label.png", image_bytes, "image/png")},
        **kwargs,
    )


class TestHealthEndpoint:
    """Tests for the /health endpoint."""

    def test_health_returns_ok(self, client: TestClient) -> None:
        _use(_make_components())
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert data["schema_version"] == "v2"
        assert isinstance(data["tesseract_available"], bool)
        assert data["storage_enabled"] is False
        assert data["auth_enabled"] is False


class TestAnalyzeEndpoint:
    """Tests for the /analyze endpoint."""

    def test_flat_scenario(
        self, client: TestClient, image_bytes: bytes, flat_result: dict
    ) -> None:
        _use(_make_components(reply=_fenced(flat_result), schema_version="v1"))
        response = _post_image(client, image_bytes)
        assert response.status_code == 200
        assert response.json() == flat_result

    def test_structured_result(
        self, client: TestClient, image_bytes: bytes, structured_result: dict
    ) -> None:
        _use(_make_components(reply=json.dumps(structured_result)))
        response = _post_image(client, image_bytes)
        assert response.status_code == 200
        assert response.json() == structured_result

    def test_missing_image(self, client: TestClient) -> None:
        components = _use(_make_components())
        response = client.post("/analyze", data={"latitude": "19.07"})
        assert response.status_code == 400
        assert response.json() == {"error": "No image file provided"}
        components.pipeline.ocr_engine.extract_text.assert_not_called()
        components.pipeline.completion.complete.assert_not_called()

    def test_empty_image(self, client: TestClient) -> None:
        components = _use(_make_components())
        response = _post_image(client, b"")
        assert response.status_code == 400
        components.pipeline.ocr_engine.extract_text.assert_not_called()

    def test_prose_reply(self, client: TestClient, image_bytes: bytes) -> None:
        _use(_make_components(reply="The label is unreadable, sorry."))
        response = _post_image(client, image_bytes)
        assert response.status_code == 400
        body = response.json()
        assert set(body) == {"error"}
        assert body["error"]

    def test_trailing_prose_reply(
        self, client: TestClient, image_bytes: bytes, structured_result: dict
    ) -> None:
        _use(_make_components(reply=json.dumps(structured_result) + "\nEnjoy!"))
        response = _post_image(client, image_bytes)
        assert response.status_code == 400
        assert "after the JSON object" in response.json()["error"]

    def test_malformed_json_reply(self, client: TestClient, image_bytes: bytes) -> None:
        _use(_make_components(reply='```json\n{"total_alerts": 3,,}\n```'))
        response = _post_image(client, image_bytes)
        assert response.status_code == 500
        assert "not valid JSON" in response.json()["error"]

    def test_truncated_json_reply(self, client: TestClient, image_bytes: bytes) -> None:
        reply = '```json\n{"total_alerts": 3, "product_labels": {}\n```'
        _use(_make_components(reply=reply))
        response = _post_image(client, image_bytes)
        assert response.status_code == 500
        assert "not valid JSON" in response.json()["error"]

    def test_schema_mismatch(
        self, client: TestClient, image_bytes: bytes, flat_result: dict
    ) -> None:
        _use(_make_components(reply=_fenced(flat_result), schema_version="v2"))
        response = _post_image(client, image_bytes)
        assert response.status_code == 500
        assert "error" in response.json()

    def test_ocr_failure(self, client: TestClient, image_bytes: bytes) -> None:
        components = _use(_make_components())
        components.pipeline.ocr_engine.extract_text.side_effect = OCRError(
            "OCR failed: tesseract is not installed"
        )
        response = _post_image(client, image_bytes)
        assert response.status_code == 500
        assert response.json() == {"error": "OCR failed: tesseract is not installed"}

    def test_completion_failure(self, client: TestClient, image_bytes: bytes) -> None:
        components = _use(_make_components())
        components.pipeline.completion.complete.side_effect = CompletionError(
            "Completion request failed: 429"
        )
        response = _post_image(client, image_bytes)
        assert response.status_code == 500
        assert response.json() == {"error": "Completion request failed: 429"}

    def test_unexpected_error(self, client: TestClient, image_bytes: bytes) -> None:
        components = _use(_make_components())
        components.pipeline.ocr_engine.extract_text.side_effect = RuntimeError("boom")
        response = _post_image(client, image_bytes)
        assert response.status_code == 500
        assert response.json() == {"error": "boom"}

    def test_invalid_latitude(self, client: TestClient, image_bytes: bytes) -> None:
        _use(_make_components())
        response = _post_image(client, image_bytes, data={"latitude": "north"})
        assert response.status_code == 400
        assert "latitude" in response.json()["error"]


class TestAnalyzePersistence:
    """Tests for /analyze with storage configured."""

    def test_result_persisted_with_caller_and_location(
        self, client: TestClient, image_bytes: bytes, structured_result: dict
    ) -> None:
        store = MagicMock()
        store.save.return_value = "65a4f0c2e1b2c3d4e5f60718"
        verifier = MagicMock()
        verifier.verify.return_value = CallerIdentity(
            uid="user-123", phone_number="+919800000000"
        )
        _use(
            _make_components(
                reply=_fenced(structured_result), store=store, verifier=verifier
            )
        )

        response = _post_image(
            client,
            image_bytes,
            data={"latitude": "19.07", "longitude": "72.87"},
            headers={"Authorization": "Bearer valid-token"},
        )

        assert response.status_code == 200
        assert response.json() == structured_result
        verifier.verify.assert_called_once_with("valid-token")
        store.save.assert_called_once()
        record = store.save.call_args.args[0]
        assert record.uid == "user-123"
        assert record.phone == "+919800000000"
        assert record.location.latitude == pytest.approx(19.07)
        assert record.location.longitude == pytest.approx(72.87)
        assert record.result["ingredients_analyzed"] == structured_result[
            "ingredients_analyzed"
        ]
        assert record.result["product_labels"] == structured_result["product_labels"]

    def test_persistence_failure(
        self, client: TestClient, image_bytes: bytes, structured_result: dict
    ) -> None:
        store = MagicMock()
        store.save.side_effect = PersistenceError("Failed to store analysis: down")
        _use(_make_components(reply=_fenced(structured_result), store=store))
        response = _post_image(client, image_bytes)
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to store analysis: down"}

    def test_persistence_failure_logged_only(
        self, client: TestClient, image_bytes: bytes, structured_result: dict
    ) -> None:
        store = MagicMock()
        store.save.side_effect = PersistenceError("Failed to store analysis: down")
        _use(
            _make_components(
                reply=_fenced(structured_result), store=store, failure_policy="log"
            )
        )
        response = _post_image(client, image_bytes)
        assert response.status_code == 200
        assert response.json() == structured_result


class TestAuthentication:
    """Tests for bearer token enforcement."""

    def test_missing_token(self, client: TestClient, image_bytes: bytes) -> None:
        components = _use(_make_components(verifier=MagicMock()))
        response = _post_image(client, image_bytes)
        assert response.status_code == 401
        assert response.json() == {"error": "No token"}
        components.pipeline.ocr_engine.extract_text.assert_not_called()

    def test_invalid_token(self, client: TestClient, image_bytes: bytes) -> None:
        verifier = MagicMock()
        verifier.verify.side_effect = AuthError("Invalid token")
        components = _use(_make_components(verifier=verifier))
        response = _post_image(
            client, image_bytes, headers={"Authorization": "Bearer forged"}
        )
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid token"}
        components.pipeline.ocr_engine.extract_text.assert_not_called()

    def test_auth_checked_before_missing_image(self, client: TestClient) -> None:
        _use(_make_components(verifier=MagicMock()))
        response = client.post("/analyze", data={"latitude": "1.0"})
        assert response.status_code == 401

    def test_verify_endpoint(self, client: TestClient) -> None:
        verifier = MagicMock()
        verifier.verify.return_value = CallerIdentity(
            uid="user-123", phone_number="+919800000000"
        )
        _use(_make_components(verifier=verifier))
        response = client.post(
            "/api/auth/verify", headers={"Authorization": "Bearer valid-token"}
        )
        assert response.status_code == 200
        assert response.json() == {"uid": "user-123", "phone_number": "+919800000000"}

    def test_verify_endpoint_without_auth(self, client: TestClient) -> None:
        _use(_make_components())
        response = client.post("/api/auth/verify")
        assert response.status_code == 200

    def test_verifier_crash_is_json_500(
        self, lenient_client: TestClient, image_bytes: bytes
    ) -> None:
        verifier = MagicMock()
        verifier.verify.side_effect = FileNotFoundError("serviceAccountKey.json")
        components = _use(_make_components(verifier=verifier))
        response = _post_image(
            lenient_client, image_bytes, headers={"Authorization": "Bearer token"}
        )
        assert response.status_code == 500
        assert response.json() == {"error": "serviceAccountKey.json"}
        components.pipeline.ocr_engine.extract_text.assert_not_called()
        assert response.json() == {"uid": None, "phone_number": None}


class TestAnalysesEndpoint:
    """Tests for the /analyses history endpoint."""

    def test_storage_disabled(self, client: TestClient) -> None:
        _use(_make_components())
        response = client.get("/analyses")
        assert response.status_code == 200
        assert response.json() == {"analyses": []}

    def test_lists_callers_analyses(self, client: TestClient) -> None:
        store = MagicMock()
        store.list_for_user.return_value = [{"_id": "abc", "uid": "user-123"}]
        verifier = MagicMock()
        verifier.verify.return_value = CallerIdentity(uid="user-123")
        _use(_make_components(store=store, verifier=verifier))

        response = client.get(
            "/analyses?limit=5", headers={"Authorization": "Bearer valid-token"}
        )

        assert response.status_code == 200
        assert response.json() == {"analyses": [{"_id": "abc", "uid": "user-123"}]}
        store.list_for_user.assert_called_once_with("user-123", 5)

    def test_limit_out_of_range(self, client: TestClient) -> None:
        _use(_make_components(store=MagicMock()))
        response = client.get("/analyses?limit=0")
        assert response.status_code == 400

    def test_store_crash_is_json_500(self, lenient_client: TestClient) -> None:
        store = MagicMock()
        store.list_for_user.side_effect = RuntimeError("connection pool closed")
        _use(_make_components(store=store))
        response = lenient_client.get("/analyses")
        assert response.status_code == 500
        assert response.json() == {"error": "connection pool closed"}
