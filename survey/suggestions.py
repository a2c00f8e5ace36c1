"""
Answer suggestions for survey questions.

The model is asked for a JSON object of grouped suggestions. Anything it
returns that is not that shape degrades to an empty group list rather
than an error, since suggestions are a convenience for the user.
"""

import json
import re
from dataclasses import dataclass, field, asdict
from typing import List

from .llm.base import LLMProvider
from .prompts import SUGGESTIONS_SYSTEM_PROMPT, create_suggestions_prompt

MAX_SUGGESTIONS_PER_GROUP = 6
SUGGESTIONS_MAX_TOKENS = 200

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


@dataclass
class SuggestionGroup:
    """Suggestions for one topic of a (possibly compound) question."""
    category: str
    suggestions: List[str] = field(default_factory=list)


def parse_suggestion_groups(text: str) -> List[SuggestionGroup]:
    """
    Parse the model's JSON reply into suggestion groups.

    Malformed JSON, a missing ``groups`` key or wrongly typed entries
    yield an empty list or drop the offending group.
    """
    cleaned = _FENCE_RE.sub("", (text or "").strip())
    try:
        data = json.loads(cleaned)
    except (json.JSONDecodeError, TypeError):
        print(f"Failed to parse suggestions response: {text!r}")
        return []

    if not isinstance(data, dict) or not isinstance(data.get("groups"), list):
        return []

    groups = []
    for entry in data["groups"]:
        if not isinstance(entry, dict):
            continue
        category = entry.get("category")
        suggestions = entry.get("suggestions")
        if not isinstance(category, str) or not isinstance(suggestions, list):
            continue
        items = [s.strip() for s in suggestions if isinstance(s, str) and s.strip()]
        if items:
            groups.append(SuggestionGroup(category=category, suggestions=items[:MAX_SUGGESTIONS_PER_GROUP]))
    return groups


def generate_suggestions(provider: LLMProvider, question: str) -> dict:
    """
    Ask the model for answer suggestions.

    Returns:
        ``{"groups": [{"category": ..., "suggestions": [...]}, ...]}``

    Raises:
        UpstreamTransportError: the model call itself failed
    """
    response = provider.complete(
        create_suggestions_prompt(question),
        system_prompt=SUGGESTIONS_SYSTEM_PROMPT,
        max_tokens=SUGGESTIONS_MAX_TOKENS
    )
    groups = parse_suggestion_groups(response.content)
    return {"groups": [asdict(g) for g in groups]}
