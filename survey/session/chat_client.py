"""
HTTP client for the chat stream endpoint.

Posts the ordered turn history plus session context and hands back the
raw response chunks for the StreamDecoder.
"""

from dataclasses import dataclass
from typing import Iterator, List, Optional

import requests

from ..errors import UpstreamTransportError


@dataclass
class SessionContext:
    """Session state sent alongside the chat history."""
    session_duration: int = 0
    should_conclude: bool = False
    ask_final_question: bool = False

    def to_dict(self) -> dict:
        return {
            "sessionDuration": self.session_duration,
            "shouldConclude": self.should_conclude,
            "askFinalQuestion": self.ask_final_question,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SessionContext":
        try:
            duration = int(data.get("sessionDuration") or 0)
        except (TypeError, ValueError):
            duration = 0
        return cls(
            session_duration=max(duration, 0),
            should_conclude=bool(data.get("shouldConclude")),
            ask_final_question=bool(data.get("askFinalQuestion")),
        )


class ChatClient:
    """Streams replies from ``POST {server_url}/api/chat``."""

    def __init__(
        self,
        server_url: str,
        session: Optional[requests.Session] = None,
        timeout: float = 60.0
    ):
        self.url = f"{server_url.rstrip('/')}/api/chat"
        self._session = session or requests.Session()
        self.timeout = timeout

    def stream(self, history: List[dict], context: SessionContext) -> Iterator[bytes]:
        """
        Send the request and return the response body as raw chunks.

        Raises:
            UpstreamTransportError: network failure, non-200 status, or the
                connection dropping mid-stream (raised while iterating)
        """
        payload = {"messages": history, **context.to_dict()}
        try:
            response = self._session.post(
                self.url,
                json=payload,
                stream=True,
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise UpstreamTransportError("Failed to send message", details=str(e))

        if response.status_code != 200:
            response.close()
            raise UpstreamTransportError(
                "Failed to send message",
                details=f"HTTP {response.status_code}"
            )

        return self._iter_body(response)

    @staticmethod
    def _iter_body(response: requests.Response) -> Iterator[bytes]:
        try:
            for chunk in response.iter_content(chunk_size=None):
                if chunk:
                    yield chunk
        except requests.RequestException as e:
            raise UpstreamTransportError("Stream interrupted", details=str(e))
        finally:
            response.close()
