"""
Message store for one survey session.

The conversation is an append-only log of turns that alternates between
assistant and user, starting with the seeded assistant greeting. Only the
most recent assistant turn may be mutated, and only while its reply is
streaming in.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Turn:
    """One message in the conversation."""
    id: int
    role: Role
    content: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_message(self) -> dict:
        """The {role, content} shape the chat endpoint expects."""
        return {"role": self.role.value, "content": self.content}

    def to_dict(self) -> dict:
        return {
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }


class Conversation:
    """
    Ordered, append-only sequence of turns.

    At most one turn is in flight at a time: the empty assistant
    placeholder opened by ``begin_reply`` and closed by ``freeze``.
    """

    def __init__(self, greeting: str):
        self._ids = itertools.count(1)
        self._turns: list[Turn] = []
        self._in_flight: Optional[Turn] = None
        self._append(Role.ASSISTANT, greeting)

    def __len__(self) -> int:
        return len(self._turns)

    @property
    def last(self) -> Turn:
        return self._turns[-1]

    @property
    def in_flight(self) -> Optional[Turn]:
        return self._in_flight

    def user_texts(self) -> list[str]:
        return [t.content for t in self._turns if t.role == Role.USER]

    def _append(self, role: Role, content: str) -> Turn:
        if self._in_flight is not None:
            raise RuntimeError("Cannot append while a reply is streaming")
        if self._turns and self._turns[-1].role == role:
            raise ValueError(f"Turns must alternate; last turn is already {role.value}")
        turn = Turn(id=next(self._ids), role=role, content=content)
        self._turns.append(turn)
        return turn

    def add_user(self, content: str) -> Turn:
        return self._append(Role.USER, content)

    def begin_reply(self) -> Turn:
        """Append the empty assistant placeholder that receives streamed deltas."""
        turn = self._append(Role.ASSISTANT, "")
        self._in_flight = turn
        return turn

    def append_delta(self, delta: str) -> Turn:
        """Concatenate a streamed fragment onto the in-flight turn."""
        if self._in_flight is None:
            raise RuntimeError("No reply is streaming")
        self._in_flight.content += delta
        return self._in_flight

    def fail_reply(self, message: str) -> Turn:
        """Overwrite the in-flight turn with a failure message and freeze it."""
        if self._in_flight is None:
            raise RuntimeError("No reply is streaming")
        self._in_flight.content = message
        return self.freeze()

    def freeze(self) -> Turn:
        """Close the in-flight turn; its content is final from here on."""
        if self._in_flight is None:
            raise RuntimeError("No reply is streaming")
        turn, self._in_flight = self._in_flight, None
        return turn

    def history(self) -> list[dict]:
        """Committed turns as {role, content}; the streaming placeholder is left out."""
        return [t.to_message() for t in self._turns if t is not self._in_flight]

    def transcript(self) -> list[dict]:
        """Committed turns with timestamps, for persistence."""
        return [t.to_dict() for t in self._turns if t is not self._in_flight]
