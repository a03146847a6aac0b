"""Interview session state machine.

A session walks a fixed, ordered list of questions one answer at a time. It
never decides when to stop: the stop flag comes from whoever generated the
question batch, and the session honors it mechanically. Sessions perform no
I/O and hold no locks; a single writer per session is assumed.
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from .models import InterviewAnswer, InterviewQuestion, QuestionBatch, StrictModel


class SessionState(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class InterviewSession(StrictModel):
    """Storage-agnostic interview state.

    Invariants under correct usage:
    - `current_question_index <= len(questions)`
    - `completed` once the index reaches `len(questions)`, or from the start
      when the batch was empty or flagged to stop
    - `len(answers) == current_question_index`

    The last one is not enforced here. Callers must only submit an answer for
    `current_question` (see `InterviewService.submit_answer`).
    """

    pack_id: str = Field(min_length=1)
    questions: tuple[InterviewQuestion, ...] = ()
    answers: list[InterviewAnswer] = Field(default_factory=list)
    current_question_index: int = Field(default=0, ge=0)
    completed: bool = False

    @classmethod
    def start(
        cls,
        pack_id: str,
        questions: list[InterviewQuestion] | tuple[InterviewQuestion, ...],
        *,
        should_stop: bool = False,
    ) -> InterviewSession:
        """Create a session over `questions`, already completed if there is nothing to ask."""
        ordered = tuple(questions)
        return cls(
            pack_id=pack_id,
            questions=ordered,
            answers=[],
            current_question_index=0,
            completed=should_stop or len(ordered) == 0,
        )

    @classmethod
    def from_batch(cls, pack_id: str, batch: QuestionBatch) -> InterviewSession:
        return cls.start(pack_id, batch.questions, should_stop=batch.should_stop)

    @property
    def state(self) -> SessionState:
        return SessionState.COMPLETED if self.completed else SessionState.IN_PROGRESS

    @property
    def current_question(self) -> InterviewQuestion | None:
        """The question awaiting an answer, without advancing anything."""
        if self.completed or self.current_question_index >= len(self.questions):
            return None
        return self.questions[self.current_question_index]

    @property
    def remaining(self) -> int:
        if self.completed:
            return 0
        return max(len(self.questions) - self.current_question_index, 0)

    def get_next(self, answer: InterviewAnswer | None = None) -> InterviewQuestion | None:
        """Record `answer` (if any) and return the question now awaiting an answer.

        Returns None once the session is completed. Reaching the end of the
        question list flips `completed` on the call that observes it.
        """
        if answer is not None:
            self.answers.append(answer)
            self.current_question_index += 1

        if self.completed:
            return None

        if self.current_question_index >= len(self.questions):
            self.completed = True
            return None

        return self.questions[self.current_question_index]
