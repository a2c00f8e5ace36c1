"""
Base classes for LLM providers.

Provides a unified interface for the model backend so the survey routes
never talk to a vendor SDK directly.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Iterator


@dataclass
class LLMConfig:
    """Configuration for an LLM provider."""
    provider_name: str
    model: str
    api_key: Optional[str] = None
    temperature: Optional[float] = None  # None leaves the API default
    max_tokens: int = 1024
    timeout: int = 30


@dataclass
class Message:
    """A single message in a conversation."""
    role: str  # "user" or "assistant"
    content: str

    @classmethod
    def from_dict(cls, data: dict) -> "Message":
        return cls(role=str(data.get("role", "")), content=str(data.get("content", "")))


@dataclass
class LLMResponse:
    """Response from an LLM provider."""
    content: str
    model: str
    provider: str
    usage: Dict[str, int] = field(default_factory=dict)
    finish_reason: str = "stop"
    raw_response: Optional[Any] = None


class LLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    Providers must support a blocking chat call, a single-prompt
    completion and a streamed chat that yields text deltas.
    """

    def __init__(self, config: LLMConfig):
        self.config = config

    @property
    def name(self) -> str:
        return self.config.provider_name

    @property
    def model(self) -> str:
        return self.config.model

    @abstractmethod
    def chat(
        self,
        messages: List[Message],
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> LLMResponse:
        """
        Send a chat completion request.

        Args:
            messages: Conversation turns, oldest first
            system_prompt: Optional system prompt
            max_tokens: Override default max tokens
            **kwargs: Provider-specific parameters

        Returns:
            LLMResponse with the model's response
        """
        pass

    @abstractmethod
    def stream_chat(
        self,
        messages: List[Message],
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> Iterator[str]:
        """
        Stream a chat completion.

        Yields:
            Text deltas in arrival order
        """
        pass

    def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        **kwargs
    ) -> LLMResponse:
        """Simple completion with a single user prompt."""
        return self.chat(
            [Message(role="user", content=prompt)],
            system_prompt=system_prompt,
            **kwargs
        )
