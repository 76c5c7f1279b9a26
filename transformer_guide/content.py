"""
In-Memory Course Content Store

This module holds everything the course serves besides the two interactive
tools: the prose sections, the quiz, the (mock) users and their progress.
Nothing is persisted; the store is rebuilt from the seed content every time
the process starts.

Classes:
    Section: One chapter of the course
    QuizOption: One answer choice
    QuizQuestion: A multiple-choice question
    User: A registered (mock) user
    UserProgress: How far a user has come through the course
    MemoryStorage: The store itself

Functions:
    seed_sections: The course sections
    seed_quiz_questions: The quiz
"""

import logging
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

COURSE_TITLE = "Understanding Transformer Models"
COURSE_DESCRIPTION = (
    "Learn about the architecture and implementation of "
    "transformer-based language models"
)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Section:
    """
    One chapter of the course.

    Attributes:
        id: Numeric identifier
        title: Display title
        slug: URL-friendly identifier; also the page anchor used by the
              scroll-spy
        order: Position in the course (1-based)
        content: Prose body
    """

    id: int
    title: str
    slug: str
    order: int
    content: str


@dataclass
class QuizOption:
    id: str
    text: str


@dataclass
class QuizQuestion:
    """
    A multiple-choice question.

    Attributes:
        id: Numeric identifier
        question: Question text
        options: Answer choices
        correct_option: id of the correct QuizOption
        explanation: Shown after answering
    """

    id: int
    question: str
    options: List[QuizOption]
    correct_option: str
    explanation: str


@dataclass
class User:
    """A mock user. The password is stored as given: there is no real auth."""

    id: int
    username: str
    password: str
    email: Optional[str] = None

    def public_dict(self) -> Dict[str, Any]:
        """User fields that are safe to return to a client."""
        return {"id": self.id, "username": self.username, "email": self.email}


@dataclass
class UserProgress:
    """
    A user's progress through the course.

    Attributes:
        id: Numeric identifier
        user_id: Owner
        progress: Overall completion percentage, 0-100
        completed_sections: Slugs of finished sections
        quiz_scores: Score per quiz id
        section_progress: Completion percentage per section slug
        last_accessed: ISO-8601 UTC timestamp of the last update
    """

    id: int
    user_id: int
    progress: int = 0
    completed_sections: List[str] = field(default_factory=list)
    quiz_scores: Dict[str, int] = field(default_factory=dict)
    section_progress: Dict[str, int] = field(default_factory=dict)
    last_accessed: str = field(default_factory=_utc_now)


# Fields a caller may change through update_user_progress
UPDATABLE_PROGRESS_FIELDS = frozenset(
    f.name for f in fields(UserProgress) if f.name not in ("id", "user_id", "last_accessed")
)


def seed_sections() -> List[Section]:
    """The course sections, in reading order."""
    return [
        Section(
            id=1,
            title="Introduction to Transformer Models",
            slug="introduction",
            order=1,
            content=(
                "Transformer models have revolutionized natural language "
                "processing. Instead of reading text one word at a time like "
                "recurrent networks, they look at every token of a sequence at "
                "once and let each token decide which others matter."
            ),
        ),
        Section(
            id=2,
            title="Transformer Architecture Overview",
            slug="architecture",
            order=2,
            content=(
                "The Transformer architecture consists of an encoder-decoder "
                "structure. Each layer combines multi-head self-attention with a "
                "position-wise feed-forward network, wrapped in residual "
                "connections and layer normalization."
            ),
        ),
        Section(
            id=3,
            title="Embeddings & Positional Encoding",
            slug="embeddings",
            order=3,
            content=(
                "Before words can be processed by the Transformer architecture "
                "they are mapped to embedding vectors. Because attention itself "
                "ignores order, positional encodings built from sine and cosine "
                "functions are added to tell the model where each token sits."
            ),
        ),
        Section(
            id=4,
            title="Self-Attention Mechanism",
            slug="attention",
            order=4,
            content=(
                "The self-attention mechanism is at the heart of the Transformer "
                "architecture. Every token produces a query, a key and a value; "
                "softmax(QK^T / sqrt(d_k)) turns query-key similarities into "
                "weights that mix the values."
            ),
        ),
    ]


def seed_quiz_questions() -> List[QuizQuestion]:
    """The course quiz."""
    return [
        QuizQuestion(
            id=1,
            question=(
                "What's the main advantage of self-attention over recurrent "
                "neural networks?"
            ),
            options=[
                QuizOption("a", "Self-attention requires less memory"),
                QuizOption("b", "Self-attention creates smaller models"),
                QuizOption(
                    "c", "Self-attention allows parallelization of sequence processing"
                ),
                QuizOption("d", "Self-attention automatically improves accuracy"),
            ],
            correct_option="c",
            explanation=(
                "Self-attention allows the model to process all tokens in the "
                "sequence in parallel, unlike RNNs which must process tokens "
                "sequentially."
            ),
        ),
        QuizQuestion(
            id=2,
            question="What is the purpose of the scaling factor in the attention formula?",
            options=[
                QuizOption("a", "To reduce the model's memory usage"),
                QuizOption("b", "To stabilize gradients during training"),
                QuizOption("c", "To make the model run faster"),
                QuizOption("d", "To increase the attention span"),
            ],
            correct_option="b",
            explanation=(
                "The scaling factor prevents the dot products from growing too "
                "large in magnitude, which would push the softmax function into "
                "regions with very small gradients."
            ),
        ),
    ]


class MemoryStorage:
    """
    Process-local store for sections, quiz questions, users and progress.

    Example:
        >>> storage = MemoryStorage()
        >>> [s.slug for s in storage.get_all_sections()]
        ['introduction', 'architecture', 'embeddings', 'attention']
        >>> storage.get_section("missing") is None
        True
    """

    def __init__(self):
        self._sections: Dict[str, Section] = {}
        self._quiz_questions: List[QuizQuestion] = []
        self._users: Dict[int, User] = {}
        self._progress: Dict[int, UserProgress] = {}
        self._next_user_id = 1
        self._next_progress_id = 1

        self._initialize_content()

    def _initialize_content(self) -> None:
        for section in seed_sections():
            self._sections[section.slug] = section
        self._quiz_questions = seed_quiz_questions()

    # -------------------------------------------------------------------------
    # Content
    # -------------------------------------------------------------------------
    def get_all_sections(self) -> List[Section]:
        """All sections, ordered by their `order` field."""
        return sorted(self._sections.values(), key=lambda section: section.order)

    def get_section(self, slug: str) -> Optional[Section]:
        """Section with the given slug, or None."""
        return self._sections.get(slug)

    def get_content(self) -> Dict[str, Any]:
        """Ordered sections plus course metadata."""
        return {
            "sections": self.get_all_sections(),
            "metadata": {
                "title": COURSE_TITLE,
                "description": COURSE_DESCRIPTION,
                "last_updated": _utc_now(),
            },
        }

    def search_sections(self, query: str) -> List[Section]:
        """
        Case-insensitive substring search over section titles and content.

        Args:
            query: Search text; surrounding whitespace is ignored

        Returns:
            Matching sections in course order. Empty for an empty query.
        """
        needle = query.strip().lower()
        if not needle:
            return []
        return [
            section
            for section in self.get_all_sections()
            if needle in section.title.lower() or needle in section.content.lower()
        ]

    # -------------------------------------------------------------------------
    # Quiz
    # -------------------------------------------------------------------------
    def get_quiz_questions(self) -> List[QuizQuestion]:
        return list(self._quiz_questions)

    def get_quiz_question(self, question_id: int) -> Optional[QuizQuestion]:
        for question in self._quiz_questions:
            if question.id == question_id:
                return question
        return None

    def check_answer(self, question_id: int, option_id: str) -> bool:
        """
        Check an answer.

        Raises:
            KeyError: If there is no question with this id
        """
        question = self.get_quiz_question(question_id)
        if question is None:
            raise KeyError(f"No quiz question with id {question_id}")
        return option_id == question.correct_option

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------
    def get_user(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        for user in self._users.values():
            if user.username == username:
                return user
        return None

    def create_user(
        self, username: str, password: str, email: Optional[str] = None
    ) -> User:
        """
        Register a user.

        Raises:
            ValueError: If the username is empty or already taken
        """
        if not username:
            raise ValueError("Username must be non-empty")
        if self.get_user_by_username(username) is not None:
            raise ValueError(f"Username {username!r} is already taken")

        user = User(
            id=self._next_user_id, username=username, password=password, email=email
        )
        self._next_user_id += 1
        self._users[user.id] = user
        logger.info("Created user %s (id=%d)", username, user.id)
        return user

    # -------------------------------------------------------------------------
    # Progress
    # -------------------------------------------------------------------------
    def get_user_progress(self, user_id: int) -> Optional[UserProgress]:
        return self._progress.get(user_id)

    def update_user_progress(
        self, user_id: int, changes: Mapping[str, Any]
    ) -> UserProgress:
        """
        Merge changes into a user's progress.

        A progress record with default values is created the first time.
        Fields not mentioned in `changes` are kept; last_accessed is always
        refreshed.

        Args:
            user_id: Owner of the progress record
            changes: Any of progress, completed_sections, quiz_scores,
                     section_progress

        Returns:
            The merged progress record

        Raises:
            ValueError: On unknown fields, a progress value outside 0-100 or
                        a collection field of the wrong type
        """
        unknown = set(changes) - UPDATABLE_PROGRESS_FIELDS
        if unknown:
            raise ValueError(f"Unknown progress fields: {sorted(unknown)}")

        if "progress" in changes:
            value = changes["progress"]
            if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 100:
                raise ValueError(f"progress must be an integer in [0, 100], got {value!r}")
        if "completed_sections" in changes and not isinstance(
            changes["completed_sections"], list
        ):
            raise ValueError("completed_sections must be a list of section slugs")
        for name in ("quiz_scores", "section_progress"):
            if name in changes and not isinstance(changes[name], dict):
                raise ValueError(f"{name} must be a mapping")

        current = self._progress.get(user_id)
        if current is None:
            current = UserProgress(id=self._next_progress_id, user_id=user_id)
            self._next_progress_id += 1

        updated = replace(current, **changes, last_accessed=_utc_now())
        self._progress[user_id] = updated
        return updated


def to_dict(record) -> Dict[str, Any]:
    """Convert a content dataclass (and nested ones) to plain dicts."""
    return asdict(record)
