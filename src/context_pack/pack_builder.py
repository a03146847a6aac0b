"""
Final pack assembly.

Merges the draft pack from the public scan with the founder's interview
answers into a `v1` `ContextPack`. The merge itself is the model's job, guided
by the rules in the `pack_build` prompt; this module composes the prompt,
validates the result and stamps the version.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from .models import (
    CompletionRequest,
    ContextPack,
    InterviewAnswer,
    InterviewQuestion,
    PackBuildRequest,
    PackVersion,
)
from .prompts import load_prompt
from .session import InterviewSession
from .structured import SchemaValidatingCompletion

PACK_TEMPERATURE = 0.2


def format_draft_pack(draft_pack: dict) -> str:
    pack_json = json.dumps(draft_pack, indent=2, ensure_ascii=False, default=str)
    return (
        "DRAFT CONTEXT PACK (from public signal scan):\n"
        f"{pack_json}\n\n"
        "NOTE: This draft pack may have:\n"
        "- Low confidence scores for uncertain information\n"
        "- Missing fields (not all information found on public pages)\n"
        "- URL citations referencing source web pages"
    )


def format_interview(questions: list[InterviewQuestion], answers: list[InterviewAnswer]) -> str:
    if not questions or not answers:
        return "INTERVIEW Q&A: No interview was conducted.\n\nNOTE: Use only the draft pack information."

    by_id = {question.id: question for question in questions}
    pairs = []
    for number, answer in enumerate(answers, start=1):
        question = by_id.get(answer.question_id)
        if question is None:
            pairs.append(f"{number}. [Question not found for answer ID: {answer.question_id}]")
            continue
        lines = [
            f"{number}. CATEGORY: {question.category.value}",
            f"   PRIORITY: {question.priority}/10",
            f"   QUESTION: {question.question}",
        ]
        if question.context:
            lines.append(f"   CONTEXT: {question.context}")
        text = "[SKIPPED - No information provided]" if answer.skipped else answer.answer
        lines.append(f"   ANSWER: {text}")
        lines.append(f"   ANSWERED AT: {answer.answered_at.isoformat()}")
        pairs.append("\n".join(lines))

    return (
        f"INTERVIEW Q&A ({len(answers)} questions):\n\n"
        + "\n\n".join(pairs)
        + "\n\nNOTE: These are the founder's direct answers. They should:\n"
        "- Override any conflicting information from the draft pack\n"
        "- Have high confidence scores (0.9+)\n"
        '- Be cited with type "interview" and the question category as reference\n'
        "- Skipped questions mean no information was provided by the founder"
    )


def build_user_prompt(request: PackBuildRequest) -> str:
    return (
        "Merge the following information into a final context pack:\n\n"
        f"{format_draft_pack(request.draft_pack)}\n\n"
        f"{format_interview(request.questions, request.answers)}\n\n"
        "MERGING INSTRUCTIONS:\n"
        "1. Start with the draft pack structure.\n"
        "2. For each interview answer, update the fields its question category relates to,\n"
        '   set confidence to 0.9+ and add an "interview" citation for the category.\n'
        "3. Keep draft information for fields without an interview answer, or mark them\n"
        '   "Information not available" with confidence 0.0.\n'
        "4. Write a summary that tells engineers what the company builds and why, who the\n"
        "   customers are, how to prioritize work and which metrics indicate success."
    )


class PackBuilder:
    def __init__(
        self,
        *,
        completion: SchemaValidatingCompletion,
        logger: logging.Logger | None = None,
    ) -> None:
        self.completion = completion
        self.logger = logger or logging.getLogger("context_pack.pack_builder")

    def build_final_pack(self, request: PackBuildRequest) -> ContextPack:
        """Return the merged pack as version `v1`, stamped with the current time."""
        completion_request = CompletionRequest(
            system_prompt=load_prompt("pack_build"),
            user_prompt=build_user_prompt(request),
            temperature=PACK_TEMPERATURE,
            json_mode=True,
        )
        pack = self.completion.execute_validated(completion_request, ContextPack)
        pack = pack.model_copy(
            update={"version": PackVersion.FINAL, "updated_at": datetime.now(timezone.utc)}
        )

        self.logger.info(
            "pack_built",
            extra={
                "pack_id": pack.id,
                "answer_count": len(request.answers),
                "skipped_count": sum(1 for answer in request.answers if answer.skipped),
            },
        )
        return pack

    def build_from_session(self, draft_pack: dict, session: InterviewSession) -> ContextPack:
        return self.build_final_pack(
            PackBuildRequest(
                draft_pack=draft_pack,
                questions=list(session.questions),
                answers=list(session.answers),
            )
        )
