"""Executable data contracts for the context pack core.

Prompts describe the shape we want from the model; these Pydantic models are
what actually enforces it. Anything that crosses an LLM boundary (requests we
send, responses we accept, question batches and gap analyses we parse) is one
of these contracts.

Design principles used here:
- `extra="forbid"`: unknown keys are rejected rather than carried along.
- Narrow enums/ranges: priorities and importance live on a fixed 1..10 scale.
- Cross-field validators for rules types alone cannot express.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class StrictModel(BaseModel):
    """Shared strict behavior for all contracts.

    `extra="forbid"` stops prompt drift from silently widening a contract and
    `str_strip_whitespace=True` trims model-produced strings before checks.
    """

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


# ---------------------------------------------------------------------
# Completion contracts
# ---------------------------------------------------------------------


class CompletionRequest(StrictModel):
    """One prompt pair sent to the completion API.

    Frozen: a request handed to an attempt is never mutated. Layers that need a
    different prompt derive a new request with `model_copy(update=...)`.
    """

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, frozen=True)

    system_prompt: str = Field(min_length=1)
    user_prompt: str = Field(min_length=1)
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, gt=0)
    json_mode: bool | None = None


class TokenUsage(StrictModel):
    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)


class CompletionResponse(StrictModel):
    """Text output of one successful completion plus its token accounting."""

    content: str
    usage: TokenUsage = Field(default_factory=TokenUsage)


# ---------------------------------------------------------------------
# Gap analysis
# ---------------------------------------------------------------------


class Gap(StrictModel):
    """A missing or low-confidence field of the context pack.

    `field` is a dotted path into the pack (e.g. `icp.segments`). The core
    never interprets it; gaps are opaque input to question generation.
    """

    field: str = Field(min_length=1)
    category: str = Field(min_length=1)
    importance: int = Field(ge=1, le=10)
    reason: str
    current_confidence: float = Field(ge=0.0, le=1.0)


class GapAnalysis(StrictModel):
    """Ranked gaps plus an overall completeness score in [0, 1]."""

    gaps: list[Gap]
    completeness: float = Field(ge=0.0, le=1.0)


# ---------------------------------------------------------------------
# Interview contracts
# ---------------------------------------------------------------------


class QuestionCategory(str, Enum):
    """Fixed set of areas an interview question can target."""

    VISION = "vision"
    ICP = "icp"
    BUSINESS_MODEL = "business-model"
    ENGINEERING_KPIS = "engineering-kpis"
    DECISION_RULES = "decision-rules"


class InterviewQuestion(StrictModel):
    """One question put to the founder.

    `priority` is 1..10 with 10 the most urgent; `context` explains why the
    question matters and may be omitted by the model.
    """

    id: str = Field(min_length=1)
    category: QuestionCategory
    question: str = Field(min_length=1)
    context: str | None = None
    priority: int = Field(ge=1, le=10)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InterviewAnswer(StrictModel):
    """Founder response to one question. Skipped answers carry no text."""

    question_id: str = Field(min_length=1)
    answer: str = ""
    skipped: bool = False
    answered_at: datetime = Field(default_factory=_utcnow)


class QuestionBatch(StrictModel):
    """Output of one question-generation call.

    `should_stop` is the model's judgment that enough information has been
    gathered; sessions honor it as given.
    """

    questions: list[InterviewQuestion]
    should_stop: bool
    reason: str | None = None

    @model_validator(mode="after")
    def validate_unique_ids(self) -> QuestionBatch:
        seen: set[str] = set()
        for question in self.questions:
            if question.id in seen:
                raise ValueError(f"duplicate question id: {question.id}")
            seen.add(question.id)
        return self


class QuestionGenerationRequest(StrictModel):
    """Inputs for one question-generation call."""

    gaps: list[Gap] = Field(default_factory=list)
    previous_answers: list[InterviewAnswer] = Field(default_factory=list)
    max_questions: int = Field(default=12, ge=5, le=12)


# ---------------------------------------------------------------------
# Context pack contracts
# ---------------------------------------------------------------------


class CitationType(str, Enum):
    URL = "url"
    INTERVIEW = "interview"
    SECTION = "section"


class Citation(StrictModel):
    """Where a claim came from: a scanned page, an interview category or a pack section."""

    type: CitationType
    reference: str = Field(min_length=1)
    text: str | None = None


class ConfidenceScore(StrictModel):
    value: float = Field(ge=0.0, le=1.0)
    reason: str | None = None


class ContextField(StrictModel):
    """One piece of pack content with its confidence and sources."""

    content: str
    confidence: ConfidenceScore
    citations: list[Citation] = Field(default_factory=list)


class IcpSegment(StrictModel):
    name: str = Field(min_length=1)
    description: ContextField
    pain_points: list[ContextField] = Field(default_factory=list)


class IdealCustomerProfile(StrictModel):
    segments: list[IcpSegment] = Field(default_factory=list)
    evolution: ContextField


class BusinessModel(StrictModel):
    revenue_drivers: list[ContextField] = Field(default_factory=list)
    pricing_model: ContextField
    key_metrics: list[ContextField] = Field(default_factory=list)


class ProductContext(StrictModel):
    jobs_to_be_done: list[ContextField] = Field(default_factory=list)
    key_features: list[ContextField] = Field(default_factory=list)


class DecisionRules(StrictModel):
    priorities: list[ContextField] = Field(default_factory=list)
    anti_patterns: list[ContextField] = Field(default_factory=list)


class PackVersion(str, Enum):
    DRAFT = "v0"
    FINAL = "v1"


class ContextPack(StrictModel):
    """The onboarding knowledge artifact.

    `v0` is the draft built from the public scan; `v1` merges in the founder
    interview. Every section is present in both; missing knowledge is written
    as "Information not available" with confidence 0.0.
    """

    id: str = Field(min_length=1)
    company_name: str
    company_url: str
    version: PackVersion
    created_at: datetime
    updated_at: datetime
    vision: ContextField
    mission: ContextField
    values: list[ContextField] = Field(default_factory=list)
    icp: IdealCustomerProfile
    business_model: BusinessModel
    product: ProductContext
    decision_rules: DecisionRules
    engineering_kpis: list[ContextField] = Field(default_factory=list)
    summary: str


class PackBuildRequest(StrictModel):
    """Draft pack plus the interview transcript to merge into it.

    The draft may be partial, so it stays plain JSON here.
    """

    draft_pack: dict[str, Any]
    questions: list[InterviewQuestion] = Field(default_factory=list)
    answers: list[InterviewAnswer] = Field(default_factory=list)


# ---------------------------------------------------------------------
# Chat contracts
# ---------------------------------------------------------------------


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(StrictModel):
    """One turn of an engineer's conversation about the pack."""

    role: ChatRole
    content: str = Field(min_length=1)
    citations: list[Citation] | None = None
    why_it_matters: str | None = None
    confidence: ConfidenceScore | None = None
    timestamp: datetime = Field(default_factory=_utcnow)


class ChatResponse(StrictModel):
    """A grounded answer.

    Answers that the pack cannot support say so, carry no citations and have
    confidence 0.0; the prompt asks for this but the contract only bounds it.
    """

    answer: str = Field(min_length=1)
    citations: list[Citation]
    why_it_matters: str = Field(min_length=1)
    confidence: ConfidenceScore

    def to_message(self) -> ChatMessage:
        return ChatMessage(
            role=ChatRole.ASSISTANT,
            content=self.answer,
            citations=self.citations,
            why_it_matters=self.why_it_matters,
            confidence=self.confidence,
        )
