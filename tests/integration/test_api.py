"""Integration tests for the HTTP API"""

import pytest
from fastapi.testclient import TestClient

from loretrigger.api import main
from loretrigger.api.main import app

ENTRIES = [
    {"id": "world", "comment": "World", "content": "A kingdom.", "is_constant": True},
    {"id": "dragon", "comment": "Dragon", "primary_keys": ["dragon"], "content": "Scales."},
]


@pytest.fixture
def client():
    with TestClient(app) as client:
        yield client


class TestEndpoints:
    """Test the API surface over one engine"""

    def test_root(self, client: TestClient) -> None:
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["messages_processed"] == 0

    def test_health_counts_processed_messages(self, client: TestClient) -> None:
        client.post("/entries", json={"entries": ENTRIES})
        client.post("/process", json={"message": "a dragon appears"})
        client.post("/process", json={"message": "quiet night"})

        assert client.get("/health").json()["messages_processed"] == 2

    def test_load_and_process(self, client: TestClient) -> None:
        response = client.post("/entries", json={"entries": ENTRIES})
        assert response.status_code == 200
        assert response.json() == {"loaded": 2, "constant": 1}

        response = client.post("/process", json={"message": "a dragon appears"})
        body = response.json()

        assert response.status_code == 200
        assert body["injected_count"] == 2
        assert [a["entry_id"] for a in body["actions"]] == ["world", "dragon"]
        assert "Scales." in body["triggered_content"]
        assert body["match_type_counts"] == {"primary": 1}
        assert "entry" not in body["actions"][0]

    def test_invalid_entries_rejected(self, client: TestClient) -> None:
        response = client.post("/entries", json={"entries": [{"id": "a"}, {"id": "a"}]})
        assert response.status_code == 422

        response = client.post("/entries", json={"entries": [{"id": "a", "weight": -1}]})
        assert response.status_code == 422

    def test_constant_content(self, client: TestClient) -> None:
        client.post("/entries", json={"entries": ENTRIES})
        response = client.get("/constant-content")
        assert response.json()["content"].startswith("## World")

    def test_stats_and_reset(self, client: TestClient) -> None:
        client.post("/entries", json={"entries": ENTRIES})
        client.post("/process", json={"message": "dragon"})

        assert client.get("/stats").json()["total_triggers"] >= 2

        response = client.post("/stats/reset")
        assert response.status_code == 200
        assert response.json()["total_triggers"] == 0

    def test_history_cleanup(self, client: TestClient) -> None:
        response = client.post("/history/cleanup")
        assert response.status_code == 200
        assert response.json()["removed"] == 0


class TestUninitialized:
    def test_requires_engine(self) -> None:
        """Without the lifespan the engine is missing"""
        client = TestClient(app)
        assert main.engine is None
        assert client.get("/health").status_code == 503
        assert client.post("/process", json={"message": "x"}).status_code == 503
