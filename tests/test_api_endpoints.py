"""
Tests for the HTTP entry points.
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from recipe_embeddings.api.main import CORS_HEADERS, app
from recipe_embeddings.embedding import embed
from recipe_embeddings.sync.schema import SyncReport


def _assert_cors(response):
    for name, value in CORS_HEADERS.items():
        assert response.headers[name.lower()] == value


class TestAPIEndpoints:
    """Test cases for API endpoints."""

    @pytest.fixture
    def client(self):
        return TestClient(app)

    def test_health_endpoint(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}
        _assert_cors(response)

    @pytest.mark.parametrize("path", ["/generate-embedding", "/sync-embeddings", "/search", "/similar-recipes"])
    def test_preflight(self, client, path):
        response = client.options(path)
        assert response.status_code == 200
        assert response.text == "ok"
        _assert_cors(response)

    def test_generate_embedding(self, client):
        response = client.post("/generate-embedding", json={"text": "Nasi Goreng 2 Telur"})
        assert response.status_code == 200
        data = response.json()
        assert data["embedding"] == pytest.approx(embed("Nasi Goreng 2 Telur"), abs=1e-15)
        assert len(data["embedding"]) == 384
        _assert_cors(response)

    @pytest.mark.parametrize("body", [{}, {"text": 42}, {"text": ""}, {"text": None}, ["text"]])
    def test_generate_embedding_requires_text(self, client, body):
        response = client.post("/generate-embedding", json=body)
        assert response.status_code == 400
        assert response.json() == {"error": "Text parameter is required"}
        _assert_cors(response)

    def test_generate_embedding_malformed_body(self, client):
        response = client.post(
            "/generate-embedding",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to generate embedding"}
        _assert_cors(response)

    @patch("recipe_embeddings.api.main.run_sync")
    def test_sync_success(self, mock_run_sync, client):
        mock_run_sync.return_value = SyncReport(
            success=True,
            message="Embedding synchronization completed",
            total_recipes=40,
            recipes_needing_embeddings=21,
            processed=20,
            dataset_enabled=True,
            errors=["Recipe r7: bad"],
            timestamp="2025-06-18T08:48:04.000Z",
        )

        response = client.post("/sync-embeddings")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Embedding synchronization completed",
            "totalRecipes": 40,
            "recipesNeedingEmbeddings": 21,
            "processed": 20,
            "datasetEnabled": True,
            "errors": ["Recipe r7: bad"],
            "timestamp": "2025-06-18T08:48:04.000Z",
        }
        _assert_cors(response)

    @patch("recipe_embeddings.api.main.run_sync")
    def test_sync_without_errors_omits_errors_key(self, mock_run_sync, client):
        mock_run_sync.return_value = SyncReport(
            success=True,
            message="No recipes found to process",
            processed=0,
            dataset_enabled=False,
        )

        data = client.post("/sync-embeddings").json()

        assert "errors" not in data
        assert "totalRecipes" not in data
        assert data["processed"] == 0
        assert data["datasetEnabled"] is False

    @patch("recipe_embeddings.api.main.run_sync")
    def test_sync_failure(self, mock_run_sync, client):
        mock_run_sync.return_value = SyncReport.failure("Failed to fetch recipes: timeout")

        response = client.post("/sync-embeddings", json={"ignored": True})

        assert response.status_code == 500
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "Failed to fetch recipes: timeout"
        assert data["timestamp"].endswith("Z")
        _assert_cors(response)

    @patch("recipe_embeddings.api.main.get_supabase_client")
    def test_search(self, mock_get_client, client, fake_client):
        fake_client.rpc_results["search_recipes_by_text"] = [
            {"id": "r1", "title": "Nasi Goreng", "similarity_score": 0.91, "loves_count": 120}
        ]
        mock_get_client.return_value = fake_client

        response = client.post("/search", json={"query": "nasi goreng", "limit": 5})

        assert response.status_code == 200
        [result] = response.json()["results"]
        assert result["id"] == "r1"
        assert result["similarity_score"] == 0.91
        name, params = fake_client.rpc_calls[0]
        assert name == "search_recipes_by_text"
        assert params["match_count"] == 5
        assert params["similarity_threshold"] == 0.4

    def test_search_requires_query(self, client):
        response = client.post("/search", json={"limit": 5})
        assert response.status_code == 400

    @pytest.mark.parametrize("method", ["GET", "PUT", "PATCH", "DELETE"])
    @patch("recipe_embeddings.api.main.run_sync")
    def test_sync_triggered_by_any_non_preflight_method(self, mock_run_sync, method, client):
        mock_run_sync.return_value = SyncReport(
            success=True, message="No recipes found to process", processed=0, dataset_enabled=True
        )

        response = client.request(method, "/sync-embeddings")

        assert response.status_code == 200
        assert response.json()["message"] == "No recipes found to process"
        mock_run_sync.assert_called_once_with()
        _assert_cors(response)

    @patch("recipe_embeddings.api.main.get_supabase_client")
    def test_similar_recipes(self, mock_get_client, client, fake_client):
        fake_client.rpc_results["find_similar_recipes"] = [
            {"id": "r2", "title": "Telur Dadar", "similarity_score": 0.72, "loves_count": 300}
        ]
        mock_get_client.return_value = fake_client
        ingredients = [{"name": "telur", "category": "protein"}, {"name": "bawang"}]

        response = client.post("/similar-recipes", json={"ingredients": ingredients, "limit": 4})

        assert response.status_code == 200
        [result] = response.json()["results"]
        assert result["id"] == "r2"
        assert result["loves_count"] == 300
        name, params = fake_client.rpc_calls[0]
        assert name == "find_similar_recipes"
        assert params["query_embedding"] == embed("telur bawang protein")
        assert params["min_loves"] == 50
        assert params["similarity_threshold"] == 0.3
        assert params["match_count"] == 4
        _assert_cors(response)

    @pytest.mark.parametrize(
        "body",
        [{}, {"ingredients": []}, {"ingredients": "telur"}, {"ingredients": [{"category": "protein"}]}, ["telur"]],
    )
    def test_similar_recipes_requires_ingredients(self, client, body):
        response = client.post("/similar-recipes", json=body)
        assert response.status_code == 400
        assert response.json() == {"error": "Ingredients parameter is required"}
