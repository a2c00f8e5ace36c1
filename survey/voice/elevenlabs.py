"""
ElevenLabs conversational-agent client.

Hands out what a voice client needs to open the agent socket, and checks
that the API key works.
"""

from dataclasses import dataclass
from typing import Optional

import requests

from ..errors import DecodeError, UpstreamTransportError

API_BASE = "https://api.elevenlabs.io/v1"
WEBSOCKET_BASE = "wss://api.elevenlabs.io/v1/convai/conversation"


@dataclass
class VoiceCredentials:
    """Connection details for one voice session."""
    agent_id: str
    api_key: str

    @property
    def websocket_url(self) -> str:
        return f"{WEBSOCKET_BASE}?agent_id={self.agent_id}"

    @classmethod
    def from_dict(cls, data: dict) -> "VoiceCredentials":
        try:
            return cls(agent_id=data["agent_id"], api_key=data["api_key"])
        except (KeyError, TypeError):
            raise DecodeError("Invalid voice credentials", details=repr(data))


@dataclass
class SubscriptionInfo:
    tier: Optional[str] = None
    character_count: Optional[int] = None
    character_limit: Optional[int] = None


class ElevenLabsClient:
    """Thin wrapper over the ElevenLabs REST API."""

    def __init__(self, api_key: str, agent_id: str, timeout: int = 30):
        self.api_key = api_key
        self.agent_id = agent_id
        self.timeout = timeout

    @property
    def credentials(self) -> VoiceCredentials:
        return VoiceCredentials(agent_id=self.agent_id, api_key=self.api_key)

    def websocket_url(self) -> str:
        return self.credentials.websocket_url

    def check_subscription(self) -> SubscriptionInfo:
        """
        Call the subscription endpoint to verify the key.

        Raises:
            UpstreamTransportError: network failure or non-2xx answer
        """
        try:
            response = requests.get(
                f"{API_BASE}/user/subscription",
                headers={"Accept": "application/json", "xi-api-key": self.api_key},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise UpstreamTransportError(f"API request failed: {e}")

        if not response.ok:
            raise UpstreamTransportError(
                f"API request failed: {response.status_code} {response.reason}"
            )

        data = response.json()
        return SubscriptionInfo(
            tier=data.get("tier"),
            character_count=data.get("character_count"),
            character_limit=data.get("character_limit"),
        )


def fetch_credentials(server_url: str, timeout: int = 15) -> VoiceCredentials:
    """
    Ask the survey server for voice credentials (``action: start``).

    Raises:
        UpstreamTransportError: the server is unreachable or refused
    """
    try:
        response = requests.post(
            f"{server_url.rstrip('/')}/api/elevenlabs/conversation",
            json={"action": "start"},
            timeout=timeout
        )
    except requests.RequestException as e:
        raise UpstreamTransportError("Failed to start conversation", details=str(e))

    try:
        data = response.json()
    except ValueError:
        data = {}

    if not response.ok:
        raise UpstreamTransportError(data.get("error") or "Failed to start conversation")
    return VoiceCredentials.from_dict(data)
