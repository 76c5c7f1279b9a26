"""
Tests for the in-memory content store.

Tests cover:
- Seed sections and their ordering
- Section lookup and search
- Quiz answers
- Mock users
- Progress merging and validation
"""

import pytest

from transformer_guide.content import (
    COURSE_TITLE,
    MemoryStorage,
    seed_quiz_questions,
    seed_sections,
    to_dict,
)


@pytest.fixture
def storage():
    """A freshly seeded store."""
    return MemoryStorage()


class TestSections:
    """Course sections."""

    def test_seed_sections_in_course_order(self, storage):
        """The four seed sections come back sorted by order."""
        slugs = [section.slug for section in storage.get_all_sections()]

        assert slugs == ["introduction", "architecture", "embeddings", "attention"]
        assert [s.order for s in storage.get_all_sections()] == [1, 2, 3, 4]

    def test_seed_ids_are_unique(self):
        """Seed sections and questions have distinct ids."""
        assert len({s.id for s in seed_sections()}) == len(seed_sections())
        assert len({q.id for q in seed_quiz_questions()}) == len(seed_quiz_questions())

    def test_get_section(self, storage):
        """Sections are looked up by slug."""
        section = storage.get_section("attention")

        assert section.title == "Self-Attention Mechanism"
        assert "softmax" in section.content

    def test_get_missing_section(self, storage):
        """An unknown slug gives None."""
        assert storage.get_section("conclusion") is None

    def test_get_content_has_metadata(self, storage):
        """Content bundles sections with course metadata."""
        content = storage.get_content()

        assert len(content["sections"]) == 4
        assert content["metadata"]["title"] == COURSE_TITLE
        assert content["metadata"]["last_updated"]

    def test_to_dict(self, storage):
        """Records convert to plain dicts with all fields."""
        data = to_dict(storage.get_section("introduction"))

        assert data["slug"] == "introduction"
        assert set(data) == {"id", "title", "slug", "order", "content"}


class TestSearch:
    """Case-insensitive search over titles and bodies."""

    def test_search_is_case_insensitive(self, storage):
        """Case does not matter."""
        results = storage.search_sections("SOFTMAX")

        assert [s.slug for s in results] == ["attention"]

    def test_search_titles_and_content(self, storage):
        """Both titles and bodies are searched, results in course order."""
        results = storage.search_sections("architecture")

        # "Transformer Architecture Overview" and two bodies mention it
        assert [s.slug for s in results] == ["architecture", "embeddings", "attention"]

    @pytest.mark.parametrize("query", ["", "   "])
    def test_empty_query(self, storage, query):
        """A blank query matches nothing."""
        assert storage.search_sections(query) == []

    def test_no_match(self, storage):
        """Unknown words give no results."""
        assert storage.search_sections("convolution") == []


class TestQuiz:
    """Quiz questions and answer checking."""

    def test_questions(self, storage):
        """Two questions with four options each."""
        questions = storage.get_quiz_questions()

        assert len(questions) == 2
        assert all(len(q.options) == 4 for q in questions)

    @pytest.mark.parametrize(
        "question_id, option_id, expected",
        [(1, "c", True), (1, "a", False), (2, "b", True), (2, "d", False)],
    )
    def test_check_answer(self, storage, question_id, option_id, expected):
        """Only the correct option is accepted."""
        assert storage.check_answer(question_id, option_id) is expected

    def test_unknown_question(self, storage):
        """Answering a missing question raises KeyError."""
        with pytest.raises(KeyError):
            storage.check_answer(99, "a")


class TestUsers:
    """Mock user accounts."""

    def test_create_and_lookup(self, storage):
        """A created user is found by id and by name, without the password."""
        user = storage.create_user("ada", "secret", email="ada@example.com")

        assert user.id == 1
        assert storage.get_user(1) is user
        assert storage.get_user_by_username("ada") is user
        assert user.public_dict() == {
            "id": 1,
            "username": "ada",
            "email": "ada@example.com",
        }

    def test_ids_increase(self, storage):
        """User ids are assigned in sequence."""
        first = storage.create_user("a", "x")
        second = storage.create_user("b", "x")

        assert second.id == first.id + 1

    def test_duplicate_username(self, storage):
        """Usernames are unique."""
        storage.create_user("ada", "secret")

        with pytest.raises(ValueError):
            storage.create_user("ada", "other")

    def test_empty_username(self, storage):
        """A username is required."""
        with pytest.raises(ValueError):
            storage.create_user("", "secret")


class TestProgress:
    """Progress records are created on first update and merged afterwards."""

    def test_no_progress_yet(self, storage):
        """Nothing is stored before the first update."""
        assert storage.get_user_progress(1) is None

    def test_first_update_creates_defaults(self, storage):
        """The first update starts from a default record."""
        progress = storage.update_user_progress(7, {"progress": 10})

        assert progress.user_id == 7
        assert progress.progress == 10
        assert progress.completed_sections == []
        assert progress.quiz_scores == {}
        assert storage.get_user_progress(7) == progress

    def test_partial_update_keeps_other_fields(self, storage):
        """Fields missing from an update are kept."""
        storage.update_user_progress(1, {"completed_sections": ["introduction"]})

        progress = storage.update_user_progress(1, {"progress": 50})

        assert progress.completed_sections == ["introduction"]
        assert progress.progress == 50

    def test_progress_id_is_stable(self, storage):
        """Updates modify the same record."""
        first = storage.update_user_progress(1, {"progress": 10})
        second = storage.update_user_progress(1, {"progress": 20})

        assert first.id == second.id

    def test_last_accessed_is_set(self, storage):
        """Every update stamps a UTC time."""
        progress = storage.update_user_progress(1, {})

        assert progress.last_accessed.endswith("+00:00")

    @pytest.mark.parametrize("value", [-1, 101, 50.5, "50", True])
    def test_invalid_progress(self, storage, value):
        """progress must be an int from 0 to 100."""
        with pytest.raises(ValueError):
            storage.update_user_progress(1, {"progress": value})

    @pytest.mark.parametrize("field", ["id", "user_id", "last_accessed", "score"])
    def test_unknown_fields(self, storage, field):
        """Only the updatable fields may change."""
        with pytest.raises(ValueError):
            storage.update_user_progress(1, {field: 3})

    def test_wrong_collection_type(self, storage):
        """Collection fields keep their types."""
        with pytest.raises(ValueError):
            storage.update_user_progress(1, {"completed_sections": "introduction"})
        with pytest.raises(ValueError):
            storage.update_user_progress(1, {"quiz_scores": [1, 2]})

    def test_rejected_update_changes_nothing(self, storage):
        """A failed update leaves the record as it was."""
        storage.update_user_progress(1, {"progress": 30})

        with pytest.raises(ValueError):
            storage.update_user_progress(1, {"progress": 300})

        assert storage.get_user_progress(1).progress == 30
