"""
Interview orchestration boundary.

Starts sessions from a generated question batch, records answers and hands
back the next question. This is where the preconditions the session itself
does not check are enforced: the session must exist, must still be in
progress, and the submitted answer must be for the current question.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Mapping
from uuid import uuid4

from .gap_finder import GapFinder
from .interviewer import Interviewer
from .models import Gap, InterviewAnswer, InterviewQuestion, QuestionGenerationRequest
from .session import InterviewSession
from .store import SessionStore

MAX_QUESTIONS = 12


class InterviewServiceError(RuntimeError):
    """Base class for orchestration failures that are not LLM failures."""


class SessionNotFoundError(InterviewServiceError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"Interview session not found: {session_id}")
        self.session_id = session_id


class SessionCompletedError(InterviewServiceError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"Interview session is already completed: {session_id}")
        self.session_id = session_id


class QuestionMismatchError(InterviewServiceError):
    def __init__(self, *, expected: str, received: str) -> None:
        super().__init__(f"Invalid question ID. Expected {expected}, got {received}")
        self.expected = expected
        self.received = received


@dataclass(frozen=True, slots=True)
class StartedInterview:
    session_id: str
    session: InterviewSession

    @property
    def first_question(self) -> InterviewQuestion | None:
        return self.session.current_question


@dataclass(frozen=True, slots=True)
class AnswerOutcome:
    next_question: InterviewQuestion | None
    completed: bool


def new_session_id(pack_id: str) -> str:
    millis = int(time.time() * 1000)
    return f"session-{pack_id}-{millis}-{uuid4().hex[:7]}"


class InterviewService:
    def __init__(
        self,
        *,
        interviewer: Interviewer,
        store: SessionStore,
        gap_finder: GapFinder | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.interviewer = interviewer
        self.store = store
        self.gap_finder = gap_finder
        self.logger = logger or logging.getLogger("context_pack.service")
        self._lock = threading.Lock()

    def start_interview(
        self,
        pack_id: str,
        gaps: list[Gap] | None = None,
        *,
        draft_pack: Mapping[str, Any] | None = None,
    ) -> StartedInterview:
        """Generate the first question batch and store a new session.

        Gaps may be supplied directly; otherwise they are derived from
        `draft_pack` with the configured gap finder.
        """
        if gaps is None:
            gaps = self._analyze(draft_pack)

        self.logger.info(
            "interview_generating_questions",
            extra={"pack_id": pack_id, "gap_count": len(gaps)},
        )
        batch = self.interviewer.generate_questions(
            QuestionGenerationRequest(gaps=gaps, previous_answers=[], max_questions=MAX_QUESTIONS)
        )

        session = InterviewSession.from_batch(pack_id, batch)
        session_id = new_session_id(pack_id)
        self.store.put(session_id, session)

        self.logger.info(
            "interview_started",
            extra={
                "pack_id": pack_id,
                "session_id": session_id,
                "question_count": len(session.questions),
                "completed": session.completed,
            },
        )
        return StartedInterview(session_id=session_id, session=session)

    def submit_answer(
        self,
        session_id: str,
        question_id: str,
        answer: str,
        *,
        skipped: bool = False,
    ) -> AnswerOutcome:
        """Record an answer for the current question and advance the session."""
        with self._lock:
            session = self.get_session(session_id)

            current = session.current_question
            if current is None:
                raise SessionCompletedError(session_id)
            if current.id != question_id:
                raise QuestionMismatchError(expected=current.id, received=question_id)

            recorded = InterviewAnswer(
                question_id=question_id,
                answer="" if skipped else answer,
                skipped=skipped,
            )
            next_question = session.get_next(recorded)
            self.store.put(session_id, session)

        self.logger.info(
            "interview_answer_recorded",
            extra={
                "session_id": session_id,
                "question_id": question_id,
                "skipped": skipped,
                "completed": session.completed,
            },
        )
        return AnswerOutcome(next_question=next_question, completed=session.completed)

    def get_session(self, session_id: str) -> InterviewSession:
        session = self.store.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def snapshot(self, session_id: str) -> InterviewSession:
        """Deep copy of a session, taken while no answer is being applied."""
        with self._lock:
            return self.get_session(session_id).model_copy(deep=True)

    def _analyze(self, draft_pack: Mapping[str, Any] | None) -> list[Gap]:
        if draft_pack is None:
            return []
        if self.gap_finder is None:
            raise ValueError("draft_pack requires a configured gap_finder")
        return self.gap_finder.analyze_gaps(draft_pack).gaps
