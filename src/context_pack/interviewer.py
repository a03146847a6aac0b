"""
Question generation for the founder interview.

Turns ranked gaps and earlier answers into a `QuestionBatch` through a
schema-validated completion. The stop decision is the model's judgment,
expressed through the stopping criteria in the system prompt; sessions built
from the batch simply honor it.
"""

from __future__ import annotations

import logging

from .models import (
    CompletionRequest,
    Gap,
    InterviewAnswer,
    InterviewQuestion,
    QuestionBatch,
    QuestionCategory,
    QuestionGenerationRequest,
)
from .prompts import load_prompt
from .structured import SchemaValidatingCompletion

ANSWER_PREVIEW_CHARS = 200
QUESTION_TEMPERATURE = 0.3

DEMO_QUESTIONS: tuple[InterviewQuestion, ...] = (
    InterviewQuestion(
        id="demo-q1",
        category=QuestionCategory.VISION,
        question="What is your long-term vision for the company over the next 5 years?",
        context="Understanding the vision helps engineers align their work with long-term goals",
        priority=9,
    ),
    InterviewQuestion(
        id="demo-q2",
        category=QuestionCategory.ICP,
        question="What are the top 3 pain points your ideal customers face that your product solves?",
        context="Engineers need to understand customer problems to build the right solutions",
        priority=10,
    ),
    InterviewQuestion(
        id="demo-q3",
        category=QuestionCategory.BUSINESS_MODEL,
        question="What metrics indicate whether a feature is delivering business value?",
        context="Engineers should know how to measure the impact of their work",
        priority=9,
    ),
    InterviewQuestion(
        id="demo-q4",
        category=QuestionCategory.DECISION_RULES,
        question="What types of features should engineers avoid building, and why?",
        context="Clear anti-patterns help engineers make better decisions",
        priority=10,
    ),
    InterviewQuestion(
        id="demo-q5",
        category=QuestionCategory.ENGINEERING_KPIS,
        question="What engineering metrics matter most to the business?",
        context="Engineers need to know what success looks like",
        priority=8,
    ),
)


def format_gaps(gaps: list[Gap]) -> str:
    if not gaps:
        return "No gaps identified - all information is complete."

    ranked = sorted(gaps, key=lambda gap: gap.importance, reverse=True)
    lines = ["IDENTIFIED GAPS (sorted by importance):"]
    for index, gap in enumerate(ranked, start=1):
        lines.extend(
            [
                "",
                f"{index}. Field: {gap.field}",
                f"   Category: {gap.category}",
                f"   Importance: {gap.importance}/10",
                f"   Current Confidence: {gap.current_confidence:.2f}",
                f"   Reason: {gap.reason}",
            ]
        )
    return "\n".join(lines)


def format_previous_answers(answers: list[InterviewAnswer]) -> str:
    if not answers:
        return "PREVIOUS ANSWERS: None - this is the first question generation."

    lines = [f"PREVIOUS ANSWERS ({len(answers)} total):"]
    for index, answer in enumerate(answers, start=1):
        if answer.skipped:
            text = "[SKIPPED]"
        elif len(answer.answer) > ANSWER_PREVIEW_CHARS:
            text = answer.answer[:ANSWER_PREVIEW_CHARS] + "..."
        else:
            text = answer.answer
        lines.extend(
            [
                "",
                f"{index}. Question ID: {answer.question_id}",
                f"   Skipped: {str(answer.skipped).lower()}",
                f"   Answer: {text}",
                f"   Answered At: {answer.answered_at.isoformat()}",
            ]
        )
    lines.extend(["", "NOTE: Consider these answers when generating new questions to avoid redundancy."])
    return "\n".join(lines)


def build_user_prompt(request: QuestionGenerationRequest) -> str:
    return "\n\n".join(
        [
            "Generate interview questions to fill these gaps:",
            format_gaps(request.gaps),
            format_previous_answers(request.previous_answers),
            f"Maximum questions to generate: {request.max_questions}",
            (
                "Generate questions that help engineers understand:\n"
                "1. Who the customers are and what they need (icp)\n"
                "2. What business value different features provide (business-model)\n"
                "3. What to prioritize and what to avoid building (decision-rules)\n"
                "4. What metrics indicate success (engineering-kpis)\n"
                "5. The company's long-term direction (vision)"
            ),
            (
                "Remember to:\n"
                "- Ask specific, actionable questions\n"
                "- Avoid redundancy with previous answers\n"
                "- Prioritize high-importance gaps\n"
                "- Include the stopping criteria assessment"
            ),
        ]
    )


class Interviewer:
    """Generates adaptive question batches from gaps and earlier answers."""

    def __init__(
        self,
        *,
        completion: SchemaValidatingCompletion | None,
        demo_mode: bool = False,
        logger: logging.Logger | None = None,
    ) -> None:
        if completion is None and not demo_mode:
            raise ValueError("completion is required unless demo_mode is enabled")

        self.completion = completion
        self.demo_mode = demo_mode
        self.logger = logger or logging.getLogger("context_pack.interviewer")

    def generate_questions(self, request: QuestionGenerationRequest) -> QuestionBatch:
        """Return the next batch of questions plus the model's stop decision."""
        if self.demo_mode:
            return QuestionBatch(
                questions=list(DEMO_QUESTIONS),
                should_stop=False,
                reason="Demo mode: using pre-defined questions",
            )

        completion_request = CompletionRequest(
            system_prompt=load_prompt("question_generation"),
            user_prompt=build_user_prompt(request),
            temperature=QUESTION_TEMPERATURE,
            json_mode=True,
        )
        batch = self.completion.execute_validated(completion_request, QuestionBatch)

        self.logger.info(
            "questions_generated",
            extra={
                "gap_count": len(request.gaps),
                "previous_answer_count": len(request.previous_answers),
                "question_count": len(batch.questions),
                "should_stop": batch.should_stop,
            },
        )
        return batch
