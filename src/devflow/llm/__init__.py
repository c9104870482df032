"""LLM integration: chat-completions client and project advisor."""

from .client import LLMError, TextGenerationClient
from .advisor import ProjectAdvisor, Suggestion, default_suggestions, parse_suggestions

__all__ = [
    "LLMError",
    "TextGenerationClient",
    "ProjectAdvisor",
    "Suggestion",
    "default_suggestions",
    "parse_suggestions",
]
