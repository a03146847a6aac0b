from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from context_pack.errors import SchemaValidationError
from context_pack.models import (
    CompletionRequest,
    CompletionResponse,
    ContextPack,
    InterviewAnswer,
    InterviewQuestion,
    PackBuildRequest,
    PackVersion,
    QuestionCategory,
)
from context_pack.pack_builder import PACK_TEMPERATURE, PackBuilder, format_interview
from context_pack.session import InterviewSession
from context_pack.structured import SchemaValidatingCompletion


class StubCompletionClient:
    def __init__(self, outputs: list[str]) -> None:
        self._outputs = outputs
        self.calls: list[CompletionRequest] = []

    def execute(self, request: CompletionRequest) -> CompletionResponse:
        self.calls.append(request)
        if not self._outputs:
            raise RuntimeError("No stub output left")
        return CompletionResponse(content=self._outputs.pop(0))


def field(content: str, confidence: float, *citations: dict) -> dict:
    return {"content": content, "confidence": {"value": confidence}, "citations": list(citations)}


def pack_payload(**overrides: object) -> dict:
    unavailable = field("Information not available", 0.0)
    payload: dict = {
        "id": "pack-acme",
        "company_name": "Acme",
        "company_url": "https://acme.example",
        "version": "v0",
        "created_at": "2026-01-05T10:00:00+00:00",
        "updated_at": "2026-01-05T10:00:00+00:00",
        "vision": field(
            "Make freight boring.",
            0.95,
            {"type": "interview", "reference": "vision"},
        ),
        "mission": field("Ship on time.", 0.4, {"type": "url", "reference": "https://acme.example/about"}),
        "values": [],
        "icp": {"segments": [], "evolution": unavailable},
        "business_model": {"revenue_drivers": [], "pricing_model": unavailable, "key_metrics": []},
        "product": {"jobs_to_be_done": [], "key_features": []},
        "decision_rules": {"priorities": [], "anti_patterns": []},
        "engineering_kpis": [],
        "summary": "Acme moves freight.",
    }
    payload.update(overrides)
    return payload


QUESTIONS = [
    InterviewQuestion(
        id="q1",
        category=QuestionCategory.VISION,
        question="Where is the company going?",
        context="Anchors long-term choices",
        priority=9,
    ),
    InterviewQuestion(
        id="q2",
        category=QuestionCategory.BUSINESS_MODEL,
        question="How do you charge?",
        priority=7,
    ),
]

ANSWERED_AT = datetime(2026, 1, 6, 9, 30, tzinfo=timezone.utc)

ANSWERS = [
    InterviewAnswer(question_id="q1", answer="Make freight boring.", answered_at=ANSWERED_AT),
    InterviewAnswer(question_id="q2", skipped=True, answered_at=ANSWERED_AT),
]


def make_builder(outputs: list[str], **kwargs: object) -> tuple[PackBuilder, StubCompletionClient]:
    stub = StubCompletionClient(outputs)
    completion = SchemaValidatingCompletion(client=stub, **kwargs)
    return PackBuilder(completion=completion), stub


def test_build_final_pack_returns_a_v1_pack() -> None:
    builder, stub = make_builder([json.dumps(pack_payload())])
    before = datetime.now(timezone.utc)

    pack = builder.build_final_pack(
        PackBuildRequest(draft_pack={"id": "pack-acme"}, questions=QUESTIONS, answers=ANSWERS)
    )

    assert isinstance(pack, ContextPack)
    assert pack.version == PackVersion.FINAL
    assert pack.updated_at >= before
    assert pack.created_at == datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc)
    assert pack.vision.citations[0].reference == "vision"
    assert stub.calls[0].json_mode is True
    assert stub.calls[0].temperature == PACK_TEMPERATURE
    assert "Founder interview answers ALWAYS override" in stub.calls[0].system_prompt


def test_user_prompt_carries_draft_and_transcript() -> None:
    builder, stub = make_builder([json.dumps(pack_payload())])

    builder.build_final_pack(
        PackBuildRequest(draft_pack={"company_name": "Acme"}, questions=QUESTIONS, answers=ANSWERS)
    )

    prompt = stub.calls[0].user_prompt
    assert '"company_name": "Acme"' in prompt
    assert "INTERVIEW Q&A (2 questions):" in prompt
    assert "CATEGORY: vision" in prompt
    assert "CONTEXT: Anchors long-term choices" in prompt
    assert "ANSWER: Make freight boring." in prompt
    assert "ANSWER: [SKIPPED - No information provided]" in prompt


def test_format_interview_without_answers() -> None:
    assert format_interview(QUESTIONS, []).startswith("INTERVIEW Q&A: No interview was conducted.")
    assert format_interview([], ANSWERS).startswith("INTERVIEW Q&A: No interview was conducted.")


def test_format_interview_flags_unknown_question_ids() -> None:
    text = format_interview(QUESTIONS, [InterviewAnswer(question_id="q9", answer="?")])

    assert "1. [Question not found for answer ID: q9]" in text


def test_incomplete_pack_is_corrected_then_accepted() -> None:
    partial = pack_payload()
    del partial["decision_rules"]
    builder, stub = make_builder([json.dumps(partial), json.dumps(pack_payload())])

    pack = builder.build_final_pack(PackBuildRequest(draft_pack={}))

    assert len(stub.calls) == 2
    assert "decision_rules" in stub.calls[1].system_prompt
    assert pack.decision_rules.priorities == []


def test_out_of_range_confidence_exhausts_schema_retries() -> None:
    bad = pack_payload(mission=field("Ship on time.", 1.5))
    builder, stub = make_builder([json.dumps(bad)], max_schema_retries=0)

    with pytest.raises(SchemaValidationError) as exc:
        builder.build_final_pack(PackBuildRequest(draft_pack={}))

    assert len(stub.calls) == 1
    assert exc.value.last_errors[0]["loc"][:2] == ("mission", "confidence")


def test_build_from_session_uses_its_transcript() -> None:
    session = InterviewSession.start("acme", QUESTIONS)
    session.get_next(ANSWERS[0])
    builder, stub = make_builder([json.dumps(pack_payload())])

    builder.build_from_session({"id": "pack-acme"}, session)

    prompt = stub.calls[0].user_prompt
    assert "INTERVIEW Q&A (1 questions):" in prompt
    assert "QUESTION: How do you charge?" not in prompt
