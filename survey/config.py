"""
Runtime configuration for the survey service and clients.

Settings come from environment variables, optionally seeded from a
``.env`` file at the project root. Presence of credentials is checked
when a request needs them, not at import time, so a missing key only
fails the routes that depend on it.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import ConfigurationError

DEFAULT_ANTHROPIC_MODEL = "claude-3-haiku-20240307"
DEFAULT_SERVER_URL = "http://localhost:5001"
DEFAULT_WORKSHEET = "Sheet1"


def load_dotenv(env_path: Optional[Path] = None):
    """Load a .env file into os.environ without overriding existing values."""
    env_path = env_path or Path(__file__).resolve().parent.parent / ".env"
    if not env_path.exists():
        return
    for line in env_path.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#") and "=" in line:
            key, _, value = line.partition("=")
            os.environ.setdefault(key.strip(), value.strip())


@dataclass
class Settings:
    """Credentials and endpoints read from the environment."""
    anthropic_api_key: Optional[str] = None
    anthropic_model: str = DEFAULT_ANTHROPIC_MODEL

    elevenlabs_api_key: Optional[str] = None
    elevenlabs_agent_id: Optional[str] = None

    sheets_spreadsheet_id: Optional[str] = None
    sheets_client_email: Optional[str] = None
    sheets_private_key: Optional[str] = None
    sheets_worksheet: str = DEFAULT_WORKSHEET

    server_url: str = DEFAULT_SERVER_URL

    @classmethod
    def from_env(cls) -> "Settings":
        private_key = os.environ.get("GOOGLE_SHEETS_PRIVATE_KEY")
        if private_key:
            # Keys pasted into .env files usually carry literal "\n" sequences
            private_key = private_key.replace("\\n", "\n")

        return cls(
            anthropic_api_key=os.environ.get("ANTHROPIC_API_KEY") or None,
            anthropic_model=os.environ.get("ANTHROPIC_MODEL") or DEFAULT_ANTHROPIC_MODEL,
            elevenlabs_api_key=os.environ.get("ELEVENLABS_API_KEY") or None,
            elevenlabs_agent_id=os.environ.get("ELEVENLABS_AGENT_ID") or None,
            sheets_spreadsheet_id=os.environ.get("GOOGLE_SHEETS_SPREADSHEET_ID") or None,
            sheets_client_email=os.environ.get("GOOGLE_SHEETS_CLIENT_EMAIL") or None,
            sheets_private_key=private_key or None,
            sheets_worksheet=os.environ.get("GOOGLE_SHEETS_WORKSHEET") or DEFAULT_WORKSHEET,
            server_url=(os.environ.get("SURVEY_SERVER_URL") or DEFAULT_SERVER_URL).rstrip("/"),
        )

    @property
    def sheets_configured(self) -> bool:
        return bool(
            self.sheets_spreadsheet_id
            and self.sheets_client_email
            and self.sheets_private_key
        )

    def require_anthropic(self) -> str:
        """Return the Anthropic API key or raise ConfigurationError."""
        if not self.anthropic_api_key:
            print("ANTHROPIC_API_KEY is not set")
            raise ConfigurationError("Server configuration error")
        return self.anthropic_api_key

    def require_voice(self) -> tuple[str, str]:
        """Return (api_key, agent_id) for ElevenLabs or raise ConfigurationError."""
        if not self.elevenlabs_api_key or not self.elevenlabs_agent_id:
            raise ConfigurationError("ElevenLabs API key or Agent ID not configured")
        return self.elevenlabs_api_key, self.elevenlabs_agent_id

    def require_sheets(self):
        """Raise ConfigurationError unless all Google Sheets settings are present."""
        if not self.sheets_configured:
            print("Google Sheets credentials not fully configured")
            raise ConfigurationError("Google Sheets not configured")
