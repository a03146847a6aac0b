"""HTTP API surface for the founder interview."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from pydantic import Field

from .config import Settings
from .errors import AuthError, LLMClientError, RateLimitError, SchemaValidationError, TokenLimitError
from .gap_finder import GapFinder
from .interviewer import Interviewer
from .llm_client import CompletionClient
from .models import Gap, InterviewQuestion, StrictModel
from .service import (
    InterviewService,
    QuestionMismatchError,
    SessionCompletedError,
    SessionNotFoundError,
)
from .session import InterviewSession
from .store import InMemorySessionStore
from .structured import SchemaValidatingCompletion


app = FastAPI(title="Context Pack Interview", version="0.1.0")


class InterviewStartRequest(StrictModel):
    pack_id: str = Field(min_length=1)
    gaps: list[Gap] | None = None
    draft_pack: dict[str, Any] | None = None


class InterviewStartResponse(StrictModel):
    session_id: str
    questions: list[InterviewQuestion]
    completed: bool


class InterviewAnswerRequest(StrictModel):
    session_id: str = Field(min_length=1)
    question_id: str = Field(min_length=1)
    answer: str = ""
    skipped: bool = False


class InterviewAnswerResponse(StrictModel):
    next_question: InterviewQuestion | None
    completed: bool


@lru_cache(maxsize=1)
def get_service() -> InterviewService:
    """Create and cache one service (and its session store) for the process lifetime."""
    settings = Settings.from_env()
    store = InMemorySessionStore()
    if settings.demo_mode:
        return InterviewService(interviewer=Interviewer(completion=None, demo_mode=True), store=store)

    completion = SchemaValidatingCompletion(
        client=CompletionClient.from_settings(settings),
        max_schema_retries=settings.max_schema_retries,
    )
    return InterviewService(
        interviewer=Interviewer(completion=completion),
        store=store,
        gap_finder=GapFinder(completion=completion),
    )


def _llm_error_to_http(err: LLMClientError) -> HTTPException:
    if isinstance(err, RateLimitError):
        return HTTPException(status_code=429, detail="LLM rate limit exceeded. Please try again later.")
    if isinstance(err, AuthError):
        return HTTPException(status_code=502, detail="LLM authentication failed. Check the API key.")
    if isinstance(err, TokenLimitError):
        return HTTPException(status_code=413, detail="Request too large for the model context.")
    if isinstance(err, SchemaValidationError):
        return HTTPException(status_code=502, detail=f"Service degraded: {err.message}")
    return HTTPException(status_code=502, detail=str(err))


@app.get("/healthz")
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/api/interview/start", response_model=InterviewStartResponse)
def start_interview(
    request: InterviewStartRequest,
    service: InterviewService = Depends(get_service),
) -> InterviewStartResponse:
    try:
        started = service.start_interview(
            request.pack_id, request.gaps, draft_pack=request.draft_pack
        )
    except LLMClientError as err:
        raise _llm_error_to_http(err) from err
    except ValueError as err:
        raise HTTPException(status_code=400, detail=str(err)) from err

    return InterviewStartResponse(
        session_id=started.session_id,
        questions=list(started.session.questions),
        completed=started.session.completed,
    )


@app.post("/api/interview/answer", response_model=InterviewAnswerResponse)
def submit_answer(
    request: InterviewAnswerRequest,
    service: InterviewService = Depends(get_service),
) -> InterviewAnswerResponse:
    try:
        outcome = service.submit_answer(
            request.session_id, request.question_id, request.answer, skipped=request.skipped
        )
    except SessionNotFoundError as err:
        raise HTTPException(status_code=404, detail=str(err)) from err
    except (QuestionMismatchError, SessionCompletedError) as err:
        raise HTTPException(status_code=409, detail=str(err)) from err

    return InterviewAnswerResponse(next_question=outcome.next_question, completed=outcome.completed)


@app.get("/api/interview/{session_id}", response_model=InterviewSession)
def get_interview(
    session_id: str,
    service: InterviewService = Depends(get_service),
) -> InterviewSession:
    try:
        return service.snapshot(session_id)
    except SessionNotFoundError as err:
        raise HTTPException(status_code=404, detail=str(err)) from err
