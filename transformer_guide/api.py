"""
REST API for the Transformer Guide

FastAPI application serving the course content, the quiz, mock
authentication, user progress and the attention playground.

Endpoints:
    GET   /health                     Liveness check
    GET   /api/content                All sections plus course metadata
    GET   /api/section/{slug}         One section
    GET   /api/quiz                   Quiz questions (alias /api/quiz-questions)
    POST  /api/quiz/{id}/answer       Check an answer
    GET   /api/search?q=...           Search section titles and content
    GET   /api/user/{id}/progress     A user's progress
    PATCH /api/user/{id}/progress     Merge changes into a user's progress
    POST  /api/progress               Validate a bare progress percentage
    POST  /api/auth/register          Create a mock user
    POST  /api/auth/login             Mock login
    POST  /api/auth/logout            Mock logout
    GET   /api/attention/defaults     Playground form bounds and defaults
    POST  /api/attention              Generate attention weights

Run with:
    uvicorn transformer_guide.api:create_app --factory --reload
"""

import logging
from typing import Any, Dict, Optional

import numpy as np
from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from transformer_guide import __version__
from transformer_guide.attention import generate_attention_weights
from transformer_guide.config import AppConfig
from transformer_guide.content import MemoryStorage, to_dict
from transformer_guide.logging_utils import create_logger

logger = logging.getLogger(__name__)


class AnswerRequest(BaseModel):
    option_id: str


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str
    email: Optional[str] = None


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str


class AttentionRequest(BaseModel):
    """Playground form. Missing head count / temperature use the configured defaults."""

    sentence: str
    head_count: Optional[int] = None
    temperature: Optional[float] = None
    split_punctuation: bool = True
    seed: Optional[int] = None


def create_app(
    config: Optional[AppConfig] = None,
    storage: Optional[MemoryStorage] = None,
    configure_logging: bool = True,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Application settings (defaults to AppConfig.from_env())
        storage: Content store (defaults to a freshly seeded MemoryStorage)
        configure_logging: Attach the package log handler at the configured
                           level. Turn off to leave logging to the caller.

    Returns:
        Configured FastAPI app. The config and storage are available as
        app.state.config and app.state.storage.
    """
    config = config if config is not None else AppConfig.from_env()
    storage = storage if storage is not None else MemoryStorage()

    if configure_logging:
        create_logger("transformer_guide", level=config.log_level)

    app = FastAPI(
        title="Transformer Guide",
        description="Course content, quiz and attention playground for learning transformers",
        version=__version__,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.config = config
    app.state.storage = storage

    # -------------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------------
    @app.get("/health")
    def health_check() -> Dict[str, str]:
        return {"status": "healthy"}

    # -------------------------------------------------------------------------
    # Content
    # -------------------------------------------------------------------------
    @app.get("/api/content")
    def get_content() -> Dict[str, Any]:
        content = storage.get_content()
        return {
            "sections": [to_dict(section) for section in content["sections"]],
            "metadata": content["metadata"],
        }

    @app.get("/api/section/{slug}")
    def get_section(slug: str) -> Dict[str, Any]:
        section = storage.get_section(slug)
        if section is None:
            logger.warning("Section not found: %s", slug)
            raise HTTPException(status_code=404, detail="Section not found")
        return {"section": to_dict(section)}

    @app.get("/api/search")
    def search(q: str = Query("", description="Text to look for")) -> Dict[str, Any]:
        results = storage.search_sections(q)
        return {"query": q, "results": [to_dict(section) for section in results]}

    # -------------------------------------------------------------------------
    # Quiz
    # -------------------------------------------------------------------------
    def list_questions() -> Dict[str, Any]:
        return {
            "questions": [to_dict(question) for question in storage.get_quiz_questions()]
        }

    app.add_api_route("/api/quiz", list_questions, methods=["GET"])
    app.add_api_route("/api/quiz-questions", list_questions, methods=["GET"])

    @app.post("/api/quiz/{question_id}/answer")
    def check_answer(question_id: int, request: AnswerRequest) -> Dict[str, Any]:
        try:
            correct = storage.check_answer(question_id, request.option_id)
        except KeyError:
            logger.warning("Answer for unknown quiz question %d", question_id)
            raise HTTPException(status_code=404, detail="Question not found")

        question = storage.get_quiz_question(question_id)
        return {
            "correct": correct,
            "correct_option": question.correct_option,
            "explanation": question.explanation,
        }

    # -------------------------------------------------------------------------
    # Progress
    # -------------------------------------------------------------------------
    @app.get("/api/user/{user_id}/progress")
    def get_progress(user_id: int) -> Dict[str, Any]:
        progress = storage.get_user_progress(user_id)
        if progress is None:
            raise HTTPException(status_code=404, detail="User progress not found")
        return {"progress": to_dict(progress)}

    @app.patch("/api/user/{user_id}/progress")
    def update_progress(
        user_id: int, changes: Dict[str, Any] = Body(...)
    ) -> Dict[str, Any]:
        try:
            progress = storage.update_user_progress(user_id, changes)
        except ValueError as error:
            logger.warning("Rejected progress update for user %d: %s", user_id, error)
            raise HTTPException(status_code=400, detail=str(error))
        return {"progress": to_dict(progress)}

    @app.post("/api/progress")
    def post_progress(body: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
        progress = body.get("progress")
        if (
            isinstance(progress, bool)
            or not isinstance(progress, (int, float))
            or not 0 <= progress <= 100
        ):
            raise HTTPException(status_code=400, detail="Invalid progress value")
        return {"success": True, "progress": progress}

    # -------------------------------------------------------------------------
    # Mock authentication
    # -------------------------------------------------------------------------
    @app.post("/api/auth/register", status_code=201)
    def register(request: RegisterRequest) -> Dict[str, Any]:
        try:
            user = storage.create_user(
                request.username, request.password, email=request.email
            )
        except ValueError as error:
            raise HTTPException(status_code=409, detail=str(error))
        return {"user": user.public_dict()}

    @app.post("/api/auth/login")
    def login(request: LoginRequest) -> Dict[str, Any]:
        # Mock: any password is accepted and unknown users are created
        user = storage.get_user_by_username(request.username)
        if user is None:
            user = storage.create_user(request.username, request.password)
        logger.info("User %s logged in", user.username)
        return {"user": user.public_dict()}

    @app.post("/api/auth/logout")
    def logout() -> Dict[str, bool]:
        return {"success": True}

    # -------------------------------------------------------------------------
    # Attention playground
    # -------------------------------------------------------------------------
    @app.get("/api/attention/defaults")
    def attention_defaults() -> Dict[str, Any]:
        return {
            "sentence": config.default_sentence,
            "head_count": config.default_heads,
            "min_heads": config.min_heads,
            "max_heads": config.max_heads,
            "temperature": config.default_temperature,
            "min_temperature": config.min_temperature,
            "max_temperature": config.max_temperature,
        }

    @app.post("/api/attention")
    def attention(request: AttentionRequest) -> Dict[str, Any]:
        head_count = (
            request.head_count if request.head_count is not None else config.default_heads
        )
        temperature = (
            request.temperature
            if request.temperature is not None
            else config.default_temperature
        )

        if not config.min_heads <= head_count <= config.max_heads:
            raise HTTPException(
                status_code=422,
                detail=f"head_count must be between {config.min_heads} and {config.max_heads}",
            )
        if not config.min_temperature <= temperature <= config.max_temperature:
            raise HTTPException(
                status_code=422,
                detail=(
                    f"temperature must be between {config.min_temperature} "
                    f"and {config.max_temperature}"
                ),
            )

        rng = np.random.default_rng(request.seed)
        try:
            result = generate_attention_weights(
                request.sentence,
                head_count=head_count,
                temperature=temperature,
                split_punctuation=request.split_punctuation,
                rng=rng,
            )
        except ValueError as error:
            logger.warning("Rejected attention request: %s", error)
            raise HTTPException(status_code=422, detail=str(error))

        return result.to_dict()

    logger.info("Transformer Guide API ready (version %s)", __version__)
    return app
