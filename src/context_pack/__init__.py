"""Reliable LLM completions, the adaptive founder interview and the context pack built from it."""

from .chat_engine import ChatEngine
from .errors import (
    AuthError,
    ErrorKind,
    FatalLLMError,
    LLMClientError,
    NetworkError,
    RateLimitError,
    RetryableLLMError,
    SchemaValidationError,
    ServerError,
    TokenLimitError,
    UnknownLLMError,
)
from .llm_client import CompletionClient, OpenAIChatTransport, RetryPolicy
from .models import (
    ChatMessage,
    ChatResponse,
    ChatRole,
    Citation,
    CitationType,
    CompletionRequest,
    CompletionResponse,
    ConfidenceScore,
    ContextField,
    ContextPack,
    Gap,
    GapAnalysis,
    InterviewAnswer,
    InterviewQuestion,
    PackBuildRequest,
    PackVersion,
    QuestionBatch,
    QuestionCategory,
    QuestionGenerationRequest,
    TokenUsage,
)
from .pack_builder import PackBuilder
from .session import InterviewSession, SessionState
from .store import InMemorySessionStore, SessionStore
from .structured import SchemaValidatingCompletion

__all__ = [
    "ErrorKind",
    "LLMClientError",
    "RetryableLLMError",
    "FatalLLMError",
    "AuthError",
    "RateLimitError",
    "TokenLimitError",
    "ServerError",
    "NetworkError",
    "UnknownLLMError",
    "SchemaValidationError",
    "CompletionClient",
    "OpenAIChatTransport",
    "RetryPolicy",
    "SchemaValidatingCompletion",
    "CompletionRequest",
    "CompletionResponse",
    "TokenUsage",
    "Gap",
    "GapAnalysis",
    "QuestionCategory",
    "InterviewQuestion",
    "InterviewAnswer",
    "QuestionBatch",
    "QuestionGenerationRequest",
    "InterviewSession",
    "SessionState",
    "SessionStore",
    "InMemorySessionStore",
    "Citation",
    "CitationType",
    "ConfidenceScore",
    "ContextField",
    "ContextPack",
    "PackVersion",
    "PackBuildRequest",
    "PackBuilder",
    "ChatRole",
    "ChatMessage",
    "ChatResponse",
    "ChatEngine",
]
