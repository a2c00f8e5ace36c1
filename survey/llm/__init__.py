"""
LLM provider modules for the survey service.

- Anthropic Claude (streaming chat and single-prompt completions)
"""

from .base import LLMProvider, LLMResponse, LLMConfig, Message
from .anthropic_provider import AnthropicProvider

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "LLMConfig",
    "Message",
    "AnthropicProvider"
]
