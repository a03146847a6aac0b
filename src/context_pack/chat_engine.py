"""Grounded Q&A over a finished context pack."""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Sequence

from .models import ChatMessage, ChatResponse, ChatRole, CompletionRequest, ContextPack
from .prompts import load_prompt
from .structured import SchemaValidatingCompletion

CHAT_TEMPERATURE = 0.3


def format_history(history: Sequence[ChatMessage]) -> str:
    if not history:
        return ""
    lines = [
        f"{'Engineer' if message.role == ChatRole.USER else 'Assistant'}: {message.content}"
        for message in history
    ]
    return "CONVERSATION HISTORY:\n" + "\n".join(lines)


def build_user_prompt(
    pack: ContextPack | Mapping[str, Any],
    question: str,
    history: Sequence[ChatMessage] = (),
) -> str:
    if isinstance(pack, ContextPack):
        pack_data: dict[str, Any] = pack.model_dump(mode="json")
    else:
        pack_data = dict(pack)
    pack_json = json.dumps(pack_data, indent=2, ensure_ascii=False, default=str)

    sections = [f"CONTEXT PACK:\n{pack_json}"]
    history_text = format_history(history)
    if history_text:
        sections.append(history_text)
    sections.append(f"CURRENT QUESTION: {question}")
    sections.append(
        "Answer the question using only the context pack information. "
        "Follow the format specified in the system prompt."
    )
    return "\n\n".join(sections)


class ChatEngine:
    """Answers engineer questions from the pack alone, with citations and confidence.

    The caller owns the conversation: pass earlier turns as `history` and
    append `ChatResponse.to_message()` to it afterwards.
    """

    def __init__(
        self,
        *,
        completion: SchemaValidatingCompletion,
        logger: logging.Logger | None = None,
    ) -> None:
        self.completion = completion
        self.logger = logger or logging.getLogger("context_pack.chat_engine")

    def answer_question(
        self,
        pack: ContextPack | Mapping[str, Any],
        question: str,
        history: Sequence[ChatMessage] = (),
    ) -> ChatResponse:
        if not question.strip():
            raise ValueError("question must not be empty")

        request = CompletionRequest(
            system_prompt=load_prompt("chat_answer"),
            user_prompt=build_user_prompt(pack, question.strip(), history),
            temperature=CHAT_TEMPERATURE,
            json_mode=True,
        )
        response = self.completion.execute_validated(request, ChatResponse)

        self.logger.info(
            "chat_answered",
            extra={
                "history_length": len(history),
                "citation_count": len(response.citations),
                "confidence": response.confidence.value,
            },
        )
        return response
