"""
Common utilities shared across Colory modules.
"""

from .config import StudioSettings
from .errors import (
    AllProvidersExhausted,
    ChatUnavailable,
    ColoryError,
    ConfigurationError,
    DocumentAssemblyFailed,
    GenerationError,
    GenerationInProgress,
    InvalidRequest,
    MissingCredential,
    PlanAborted,
    ReferenceGenerationFailed,
    TextGenerationFailed,
    user_message,
)
from .llm import ChatResult, CompletionCallable, call_chat_completion
from .media import ReferenceImage, decode_data_uri, encode_data_uri, is_data_uri

__all__ = [
    "AllProvidersExhausted",
    "ChatResult",
    "ChatUnavailable",
    "ColoryError",
    "CompletionCallable",
    "ConfigurationError",
    "DocumentAssemblyFailed",
    "GenerationError",
    "GenerationInProgress",
    "InvalidRequest",
    "MissingCredential",
    "PlanAborted",
    "ReferenceGenerationFailed",
    "ReferenceImage",
    "StudioSettings",
    "TextGenerationFailed",
    "call_chat_completion",
    "decode_data_uri",
    "encode_data_uri",
    "is_data_uri",
    "user_message",
]
