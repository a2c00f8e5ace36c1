"""
Anthropic Claude provider.

Wraps the official ``anthropic`` SDK behind the LLMProvider interface.
The Messages API takes the system prompt as a top-level parameter and
requires the conversation to open with a user turn, so any assistant
turns before the first user turn (the survey greeting) are folded into
the system prompt.
"""

import os
from typing import Optional, List, Iterator, Tuple

import anthropic

from .base import (
    LLMProvider,
    LLMConfig,
    LLMResponse,
    Message
)
from ..config import DEFAULT_ANTHROPIC_MODEL
from ..errors import ConfigurationError, UpstreamTransportError


class AnthropicProvider(LLMProvider):
    """Claude via the Anthropic Messages API."""

    DEFAULT_MODEL = DEFAULT_ANTHROPIC_MODEL

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        **kwargs
    ):
        """
        Initialize the Anthropic provider.

        Args:
            api_key: Anthropic API key (or set ANTHROPIC_API_KEY env var)
            model: Model to use (default: claude-3-haiku-20240307)
            **kwargs: Additional config options (max_tokens, temperature, timeout)
        """
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")

        config = LLMConfig(
            provider_name="anthropic",
            model=model,
            api_key=self.api_key,
            temperature=kwargs.get("temperature"),
            max_tokens=kwargs.get("max_tokens", 1024),
            timeout=kwargs.get("timeout", 30)
        )
        super().__init__(config)

        self._client: Optional[anthropic.Anthropic] = None
        if self.api_key:
            self._client = anthropic.Anthropic(
                api_key=self.api_key,
                timeout=self.config.timeout
            )

    def _require_client(self) -> anthropic.Anthropic:
        if self._client is None:
            raise ConfigurationError("Server configuration error")
        return self._client

    def _request_kwargs(
        self,
        messages: List[Message],
        system_prompt: Optional[str],
        max_tokens: Optional[int],
        **kwargs
    ) -> dict:
        system, conversation = split_messages(messages, system_prompt)
        params = dict(
            model=self.config.model,
            max_tokens=max_tokens or self.config.max_tokens,
            messages=conversation,
            **kwargs
        )
        if self.config.temperature is not None:
            params.setdefault("temperature", self.config.temperature)
        # The API rejects empty system strings
        if system:
            params["system"] = system
        return params

    def chat(
        self,
        messages: List[Message],
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> LLMResponse:
        client = self._require_client()
        params = self._request_kwargs(messages, system_prompt, max_tokens, **kwargs)

        try:
            response = client.messages.create(**params)
        except anthropic.APIError as e:
            raise UpstreamTransportError("Failed to reach the language model", details=str(e))

        text = "".join(
            block.text for block in response.content
            if getattr(block, "type", None) == "text"
        )

        return LLMResponse(
            content=text,
            model=response.model,
            provider="anthropic",
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            },
            finish_reason=response.stop_reason or "stop",
            raw_response=response
        )

    def stream_chat(
        self,
        messages: List[Message],
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> Iterator[str]:
        """
        Stream a chat completion from Claude.

        Nothing is sent until the generator is first advanced.

        Raises:
            UpstreamTransportError: connection failure or API error, before or
                during streaming
        """
        client = self._require_client()
        params = self._request_kwargs(messages, system_prompt, max_tokens, **kwargs)

        try:
            with client.messages.stream(**params) as stream:
                for text in stream.text_stream:
                    if text:
                        yield text
        except anthropic.APIError as e:
            raise UpstreamTransportError("Failed to reach the language model", details=str(e))


def split_messages(
    messages: List[Message],
    system_prompt: Optional[str] = None
) -> Tuple[str, List[dict]]:
    """
    Split survey turns into Anthropic's (system, messages) form.

    Assistant turns before the first user turn become part of the system
    prompt. Unknown roles are dropped.
    """
    system_parts = [system_prompt] if system_prompt else []
    opening = []
    conversation: List[dict] = []

    for msg in messages:
        if msg.role not in ("user", "assistant"):
            continue
        if not conversation and msg.role == "assistant":
            opening.append(msg.content)
            continue
        conversation.append({"role": msg.role, "content": msg.content})

    if opening:
        system_parts.append(
            "You opened the conversation with:\n" + "\n".join(f'"{line}"' for line in opening)
        )

    return "\n\n".join(system_parts), conversation

