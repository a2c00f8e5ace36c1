"""
Error types for the survey service.

Every error carries a user-safe message and the HTTP status a route
should answer with. Routes catch SurveyError and return ``to_dict()``.
"""

from typing import Optional


class SurveyError(Exception):
    """Base error for the survey service."""

    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.message}


class ConfigurationError(SurveyError):
    """A required credential or setting is missing."""
    status_code = 500


class ValidationError(SurveyError):
    """The client sent a malformed payload."""
    status_code = 400


class UpstreamTransportError(SurveyError):
    """A remote API failed at the transport level (network, non-2xx, broken stream)."""
    status_code = 500


class DecodeError(SurveyError):
    """A streamed frame or JSON document could not be decoded."""
    status_code = 500


class PersistenceError(SurveyError):
    """Saving a transcript to the spreadsheet backend failed."""
    status_code = 500
