"""
Tests for global error handling and response format consistency.

Every error answered by the API carries a ``detail`` message and an
``error_code``.
"""

import pytest
from hypothesis import given, strategies as st, settings, HealthCheck
from fastapi.testclient import TestClient

from api_workspace.dependencies import get_store
from api_workspace.exceptions import (
    APIException,
    BadRequestError,
    ExecutionError,
    ImportValidationError,
    ResourceNotFoundError,
)
from api_workspace.main import app
from api_workspace.schemas.execute import ExecuteError
from api_workspace.services.workspace_store import WorkspaceStore


@pytest.fixture(scope="module")
def client():
    """Create a test client bound to an in-memory store."""
    store = WorkspaceStore()
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


# Strategies for generating test data
resource_id_strategy = st.uuids().map(str)

resource_path_strategy = st.sampled_from([
    ("/api/collections/{id}", "Collection"),
    ("/api/environments/{id}", "Environment"),
    ("/api/history/{id}", "History record"),
])

invalid_http_method_strategy = st.text(
    alphabet=st.sampled_from("ABCDEFGHIJKLMNOPQRSTUVWXYZ"),
    min_size=1,
    max_size=10
).filter(lambda m: m not in ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"])


class TestErrorResponseFormat:
    """Tests for consistent error response format."""

    def test_404_collection_not_found(self, client):
        response = client.get("/api/collections/missing-id")
        assert response.status_code == 404
        data = response.json()
        assert "missing-id" in data["detail"]
        assert data["error_code"] == "RESOURCE_NOT_FOUND"

    def test_404_request_not_found(self, client):
        collection = client.post("/api/collections", json={"name": "c"}).json()

        response = client.get(f"/api/collections/{collection['id']}/requests/missing-id")

        assert response.status_code == 404
        assert "Request" in response.json()["detail"]

    def test_404_folder_not_found(self, client):
        collection = client.post("/api/collections", json={"name": "c"}).json()

        response = client.delete(f"/api/collections/{collection['id']}/folders/missing-id")

        assert response.status_code == 404
        assert "Folder" in response.json()["detail"]

    def test_422_validation_error_format(self, client):
        """Missing required fields are reported with the validation error code."""
        response = client.post("/api/collections", json={})
        assert response.status_code == 422
        data = response.json()
        assert data["error_code"] == "VALIDATION_ERROR"
        assert "name" in data["detail"]

    @given(method=invalid_http_method_strategy)
    @settings(max_examples=25, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_422_invalid_http_method(self, client, method: str):
        collection = client.post("/api/collections", json={"name": "c"}).json()

        response = client.post(
            f"/api/collections/{collection['id']}/requests",
            json={"name": "Test", "method": method, "url": "http://example.com"},
        )

        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    @given(resource_id=resource_id_strategy, resource=resource_path_strategy)
    @settings(max_examples=50, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_not_found_always_has_detail_and_code(self, client, resource_id: str, resource):
        path, resource_type = resource

        response = client.get(path.format(id=resource_id))

        assert response.status_code == 404
        data = response.json()
        assert data["detail"] == f"{resource_type} with id {resource_id} not found"
        assert data["error_code"] == "RESOURCE_NOT_FOUND"


class TestExceptionClasses:
    """Tests for custom exception classes."""

    @pytest.mark.parametrize(
        "exc, status_code, error_code",
        [
            (ResourceNotFoundError("Collection", "abc"), 404, "RESOURCE_NOT_FOUND"),
            (ImportValidationError("bad file"), 422, "VALIDATION_ERROR"),
            (BadRequestError("bad"), 400, "BAD_REQUEST"),
            (ExecutionError(ExecuteError(error="down", error_type="network_error")), 502, "NETWORK_ERROR"),
            (ExecutionError(ExecuteError(error="slow", error_type="timeout")), 504, "TIMEOUT"),
            (ExecutionError(ExecuteError(error="bad", error_type="invalid_url")), 400, "INVALID_URL"),
            (ExecutionError(ExecuteError(error="?", error_type="unknown")), 500, "EXECUTION_ERROR"),
        ],
    )
    def test_status_and_code(self, exc: APIException, status_code: int, error_code: str):
        assert exc.status_code == status_code
        assert exc.error_code == error_code
        assert str(exc) == exc.detail

    def test_resource_not_found_message(self):
        assert ResourceNotFoundError("Environment", "xyz").detail == "Environment with id xyz not found"
