"""
Completion heuristics: deciding when the survey has gathered enough.

Two interchangeable policies:
- KeywordCoveragePolicy (default): scans the user's answers for topic
  keywords and asks the model to conclude once enough topics are covered
- DurationPolicy: winds the session down on a fixed time budget

A policy only *advises* the model; the model may ignore the advice.
Termination is confirmed by spotting the terminal phrase in the model's
reply (``is_conclusion``), or, for the duration policy, by the time
budget running out.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable

from ..prompts import TERMINAL_PHRASE


@dataclass(frozen=True)
class Advice:
    """Flags sent alongside a chat request."""
    should_conclude: bool = False
    ask_final_question: bool = False


class CompletionPolicy(ABC):
    """Decides what to tell the model about wrapping up."""

    name = "base"

    @abstractmethod
    def advise(self, user_texts: list[str], elapsed: int) -> Advice:
        """Advice for the next chat request."""
        pass

    def forces_ending(self, elapsed: int) -> bool:
        """True when the session must end regardless of the model's reply."""
        return False


def is_conclusion(text: str) -> bool:
    """Case-insensitive check for the interviewer's sign-off phrase."""
    normalized = " ".join((text or "").split()).lower()
    return TERMINAL_PHRASE.lower() in normalized


# ── Content-based policy ────────────────────────────────────────────────────

TOPIC_PATTERNS: dict[str, list[str]] = {
    "role_team": [
        r"c[eot]o", r"cpo", r"founder", r"co-?founder", r"engineer\w*",
        r"developer\w*", r"designer\w*", r"product manager", r"pm",
        r"head of \w+", r"vp", r"solo",
        r"\d+\s*-?\s*(?:person|people|employees|engineers|devs)",
        r"team of \w+", r"team size",
    ],
    "location": [
        r"remote", r"hybrid", r"in-?office", r"office", r"on-?site",
        r"in-?person", r"distributed", r"co-?located", r"wfh",
        r"work from home",
    ],
    "tools": [
        r"slack", r"notion", r"jira", r"linear", r"asana", r"trello",
        r"clickup", r"monday\.com", r"confluence", r"github", r"gitlab",
        r"figma", r"discord", r"(?:ms|microsoft) teams", r"zoom", r"google docs",
        r"google meet", r"airtable", r"basecamp", r"loom",
    ],
    "ai_usage": [
        r"ai", r"claude", r"chatgpt", r"gpt-?\d*\w*", r"copilot", r"cursor",
        r"gemini", r"openai", r"anthropic", r"llms?", r"perplexity",
        r"midjourney",
    ],
    "stage_industry": [
        r"pre-?seed", r"seed", r"series [a-e]", r"bootstrapped",
        r"pre-?revenue", r"mvp", r"fintech", r"healthtech", r"edtech",
        r"proptech", r"insurtech", r"biotech", r"climate\w*", r"saas",
        r"b2b", r"b2c", r"e-?commerce", r"marketplace", r"consumer",
        r"enterprise", r"agency", r"hardware", r"devtools?",
    ],
}

MIN_CATEGORIES = 4
MIN_USER_TURNS = 3


def _compile(patterns: dict[str, list[str]]) -> dict[str, re.Pattern]:
    return {
        topic: re.compile(r"\b(?:" + "|".join(items) + r")\b", re.IGNORECASE)
        for topic, items in patterns.items()
    }


_TOPIC_RE = _compile(TOPIC_PATTERNS)


def covered_topics(user_texts: Iterable[str]) -> set[str]:
    """Topics with at least one keyword hit across all user answers."""
    combined = "\n".join(user_texts)
    return {topic for topic, pattern in _TOPIC_RE.items() if pattern.search(combined)}


class KeywordCoveragePolicy(CompletionPolicy):
    """Conclude once enough topics are covered over enough user turns."""

    name = "content"

    def __init__(self, min_categories: int = MIN_CATEGORIES, min_user_turns: int = MIN_USER_TURNS):
        self.min_categories = min_categories
        self.min_user_turns = min_user_turns

    def should_conclude(self, user_texts: list[str]) -> bool:
        if len(user_texts) < self.min_user_turns:
            return False
        return len(covered_topics(user_texts)) >= self.min_categories

    def advise(self, user_texts: list[str], elapsed: int) -> Advice:
        return Advice(should_conclude=self.should_conclude(user_texts))


# ── Duration-based policy ───────────────────────────────────────────────────

WIND_DOWN_SECONDS = 60
FINAL_QUESTION_SECONDS = 50


class DurationPolicy(CompletionPolicy):
    """Final question from 50s, conclude and end at 60s."""

    name = "duration"

    def __init__(
        self,
        wind_down_seconds: int = WIND_DOWN_SECONDS,
        final_question_seconds: int = FINAL_QUESTION_SECONDS
    ):
        if final_question_seconds > wind_down_seconds:
            raise ValueError("final_question_seconds must not exceed wind_down_seconds")
        self.wind_down_seconds = wind_down_seconds
        self.final_question_seconds = final_question_seconds

    def advise(self, user_texts: list[str], elapsed: int) -> Advice:
        if elapsed >= self.wind_down_seconds:
            return Advice(should_conclude=True)
        if elapsed >= self.final_question_seconds:
            return Advice(ask_final_question=True)
        return Advice()

    def forces_ending(self, elapsed: int) -> bool:
        return elapsed >= self.wind_down_seconds


POLICIES = {
    KeywordCoveragePolicy.name: KeywordCoveragePolicy,
    DurationPolicy.name: DurationPolicy,
}


def get_policy(name: str) -> CompletionPolicy:
    try:
        return POLICIES[name]()
    except KeyError:
        raise ValueError(f"Unknown completion policy: {name!r} (choose from {', '.join(POLICIES)})")
