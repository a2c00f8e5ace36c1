"""
Prompt templates for the startup workflow survey.
"""

from .survey_prompt import (
    SURVEY_SYSTEM_PROMPT,
    INITIAL_GREETING,
    TERMINAL_PHRASE,
    build_system_prompt
)
from .suggestions_prompt import SUGGESTIONS_SYSTEM_PROMPT, create_suggestions_prompt

__all__ = [
    "SURVEY_SYSTEM_PROMPT",
    "INITIAL_GREETING",
    "TERMINAL_PHRASE",
    "build_system_prompt",
    "SUGGESTIONS_SYSTEM_PROMPT",
    "create_suggestions_prompt"
]
