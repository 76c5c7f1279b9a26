"""
Tests for the REST API.

Tests cover:
- Content, section and search endpoints
- Quiz listing and answer checking
- Progress reads, merges and validation
- Mock authentication
- The attention playground endpoint and its form bounds
- Logging behaviour of the application factory

Each test gets a fresh application with its own store, driven through
FastAPI's TestClient.
"""

import importlib
import logging

import pytest
from fastapi.testclient import TestClient

from transformer_guide.api import create_app
from transformer_guide.config import AppConfig
from transformer_guide.content import MemoryStorage


@pytest.fixture
def client():
    """Client for an app that leaves logging configuration alone."""
    app = create_app(AppConfig(), MemoryStorage(), configure_logging=False)
    return TestClient(app)


class TestContentEndpoints:
    """Sections, course metadata and search."""

    def test_health(self, client):
        """The liveness check always answers."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_content(self, client):
        """All sections come back in course order with the course title."""
        data = client.get("/api/content").json()

        assert [s["slug"] for s in data["sections"]] == [
            "introduction",
            "architecture",
            "embeddings",
            "attention",
        ]
        assert data["metadata"]["title"] == "Understanding Transformer Models"

    def test_section(self, client):
        """A known slug returns that section."""
        response = client.get("/api/section/embeddings")

        assert response.status_code == 200
        assert response.json()["section"]["order"] == 3

    def test_missing_section(self, client):
        """An unknown slug is a 404 with a fixed message."""
        response = client.get("/api/section/conclusion")

        assert response.status_code == 404
        assert response.json()["detail"] == "Section not found"

    def test_search(self, client):
        """Search echoes the query and returns the matching sections."""
        data = client.get("/api/search", params={"q": "recurrent"}).json()

        assert data["query"] == "recurrent"
        assert [s["slug"] for s in data["results"]] == ["introduction"]


class TestQuizEndpoints:
    """Quiz listing and answer checking."""

    @pytest.mark.parametrize("path", ["/api/quiz", "/api/quiz-questions"])
    def test_list_questions(self, client, path):
        """Both quiz paths serve the same questions."""
        questions = client.get(path).json()["questions"]

        assert [q["id"] for q in questions] == [1, 2]
        assert questions[0]["options"][2]["id"] == "c"

    def test_correct_answer(self, client):
        """A correct answer is confirmed together with the explanation."""
        data = client.post("/api/quiz/1/answer", json={"option_id": "c"}).json()

        assert data["correct"] is True
        assert data["correct_option"] == "c"
        assert data["explanation"]

    def test_wrong_answer(self, client):
        """A wrong answer reveals the correct option."""
        data = client.post("/api/quiz/2/answer", json={"option_id": "a"}).json()

        assert data["correct"] is False
        assert data["correct_option"] == "b"

    def test_unknown_question(self, client):
        """Answering a question that does not exist is a 404."""
        response = client.post("/api/quiz/42/answer", json={"option_id": "a"})

        assert response.status_code == 404


class TestProgressEndpoints:
    """Progress reads, merges and validation."""

    def test_progress_not_found(self, client):
        """No progress is stored before the first update."""
        assert client.get("/api/user/1/progress").status_code == 404

    def test_patch_then_get(self, client):
        """Successive PATCHes merge into one record."""
        response = client.patch(
            "/api/user/1/progress",
            json={"progress": 40, "completed_sections": ["introduction"]},
        )
        assert response.status_code == 200

        client.patch("/api/user/1/progress", json={"progress": 60})
        progress = client.get("/api/user/1/progress").json()["progress"]

        assert progress["progress"] == 60
        assert progress["completed_sections"] == ["introduction"]
        assert progress["user_id"] == 1

    @pytest.mark.parametrize(
        "body", [{"progress": 150}, {"user_id": 2}, {"unknown": 1}]
    )
    def test_patch_rejected(self, client, body):
        """Out-of-range values and unknown or protected fields are a 400."""
        response = client.patch("/api/user/1/progress", json=body)

        assert response.status_code == 400

    @pytest.mark.parametrize("value", [0, 55, 100])
    def test_post_progress(self, client, value):
        """Percentages from 0 to 100 are accepted and echoed."""
        response = client.post("/api/progress", json={"progress": value})

        assert response.status_code == 200
        assert response.json() == {"success": True, "progress": value}

    @pytest.mark.parametrize("body", [{"progress": -1}, {"progress": 101}, {"progress": "x"}, {}])
    def test_post_progress_rejected(self, client, body):
        """Anything but a percentage is a 400."""
        response = client.post("/api/progress", json=body)

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid progress value"


class TestAuthEndpoints:
    """Mock registration, login and logout."""

    def test_register(self, client):
        """Registration returns the user without the password."""
        response = client.post(
            "/api/auth/register",
            json={"username": "ada", "password": "pw", "email": "ada@example.com"},
        )

        assert response.status_code == 201
        user = response.json()["user"]
        assert user["username"] == "ada"
        assert "password" not in user

    def test_register_duplicate(self, client):
        """A taken username is a 409."""
        body = {"username": "ada", "password": "pw"}
        client.post("/api/auth/register", json=body)

        assert client.post("/api/auth/register", json=body).status_code == 409

    def test_register_empty_username(self, client):
        """The request model rejects an empty username."""
        response = client.post("/api/auth/register", json={"username": "", "password": "pw"})

        assert response.status_code == 422

    def test_login_creates_unknown_user(self, client):
        """Login accepts any password and creates the user once."""
        first = client.post("/api/auth/login", json={"username": "bob", "password": "a"})
        second = client.post("/api/auth/login", json={"username": "bob", "password": "b"})

        assert first.status_code == second.status_code == 200
        assert first.json()["user"]["id"] == second.json()["user"]["id"]

    def test_logout(self, client):
        """Logout always succeeds."""
        assert client.post("/api/auth/logout").json() == {"success": True}


class TestAttentionEndpoints:
    """The attention playground."""

    def test_defaults(self, client):
        """The form bounds come from the configuration."""
        data = client.get("/api/attention/defaults").json()

        assert data["head_count"] == 4
        assert data["min_heads"] == 1
        assert data["max_heads"] == 12
        assert data["temperature"] == 1.0

    def test_attention(self, client):
        """Tokens and one row-stochastic matrix per head are returned."""
        response = client.post(
            "/api/attention",
            json={"sentence": "Attention is all you need.", "head_count": 3, "seed": 0},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["tokens"] == ["Attention", "is", "all", "you", "need", "."]
        assert len(data["weights"]) == 3
        for head in data["weights"]:
            for row in head:
                assert abs(sum(row) - 1.0) <= 1e-9

    def test_attention_uses_defaults(self, client):
        """Missing head count and temperature fall back to the defaults."""
        data = client.post("/api/attention", json={"sentence": "a b"}).json()

        assert len(data["weights"]) == 4
        assert data["temperature"] == 1.0

    def test_attention_seed_is_reproducible(self, client):
        """The same seed yields the same random heads."""
        body = {"sentence": "one two three", "head_count": 5, "seed": 7}

        first = client.post("/api/attention", json=body).json()
        second = client.post("/api/attention", json=body).json()

        assert first["weights"] == second["weights"]

    def test_attention_empty_sentence(self, client):
        """Blank input gives no tokens and one empty matrix per head."""
        data = client.post("/api/attention", json={"sentence": "  ", "head_count": 2}).json()

        assert data["tokens"] == []
        assert data["weights"] == [[], []]

    @pytest.mark.parametrize(
        "body",
        [
            {"sentence": "a", "head_count": 0},
            {"sentence": "a", "head_count": 13},
            {"sentence": "a", "temperature": 0.05},
            {"sentence": "a", "temperature": 2.5},
            {"head_count": 2},
        ],
    )
    def test_attention_rejected(self, client, body):
        """Values outside the form bounds, or a missing sentence, are a 422."""
        assert client.post("/api/attention", json=body).status_code == 422


class TestAppLogging:
    """Building or importing the app does not hijack the package logger."""

    def test_import_leaves_logging_alone(self):
        """Importing the API module configures no logger."""
        package_logger = logging.getLogger("transformer_guide")
        saved = (package_logger.propagate, list(package_logger.handlers))
        package_logger.propagate = True
        try:
            import transformer_guide.api as api_module

            importlib.reload(api_module)

            assert package_logger.propagate is True
            assert package_logger.handlers == saved[1]
        finally:
            package_logger.propagate = saved[0]

    def test_failures_reach_caplog(self, client, caplog):
        """With logging left to the caller, API warnings are captured."""
        with caplog.at_level(logging.WARNING, logger="transformer_guide.api"):
            client.get("/api/section/conclusion")

        assert "Section not found: conclusion" in caplog.text
