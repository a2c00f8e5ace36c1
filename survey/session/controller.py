"""
Session Controller - drives one survey conversation.

State machine:

    IDLE ──submit──▶ AWAITING_RESPONSE ──stream done / error──▶ IDLE
      │
      └── terminal phrase, or time budget spent ──▶ ENDING (no more input)

Per user turn the controller appends the user's message and an empty
assistant placeholder, posts the committed history with session context,
and concatenates streamed deltas onto the placeholder. When the stream
completes it auto-saves the transcript, then checks whether the survey
has concluded. Entering ENDING makes exactly one final save.

Persistence calls for one controller share a single session id.
"""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Callable, Optional

from ..errors import UpstreamTransportError
from ..prompts import INITIAL_GREETING
from .chat_client import SessionContext
from .clock import SessionClock
from .completion import CompletionPolicy, KeywordCoveragePolicy, is_conclusion
from .conversation import Conversation, Turn
from .persistence import ExitMode, build_record
from .stream_decoder import StreamDecoder

ERROR_MESSAGE = "I'm sorry, there was an error processing your message. Please try again."

# Greeting + at least one user answer + one reply
AUTO_SAVE_MIN_TURNS = 3


class SessionState(str, Enum):
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"
    ENDING = "ending"


class SessionController:
    """
    Owns the conversation for one session and drives its request cycle.

    Collaborators are injected so the controller can be exercised without
    a network:
        chat_client: has ``stream(history, context) -> Iterable[bytes|str]``
        gateway: has ``save(record)`` and ``send_beacon(record)``
    """

    def __init__(
        self,
        chat_client,
        gateway,
        policy: Optional[CompletionPolicy] = None,
        clock: Optional[SessionClock] = None,
        greeting: str = INITIAL_GREETING,
        on_delta: Optional[Callable[[Turn, str], None]] = None
    ):
        self.chat_client = chat_client
        self.gateway = gateway
        self.policy = policy or KeywordCoveragePolicy()
        self.clock = clock or SessionClock()
        self.conversation = Conversation(greeting)
        self.on_delta = on_delta

        self.session_id = str(uuid.uuid4())
        self._state = SessionState.IDLE
        self._final_saved = False
        self._unloaded = False

    # ── State ────────────────────────────────────────────────────

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def ending(self) -> bool:
        return self._state == SessionState.ENDING

    @property
    def ready_for_input(self) -> bool:
        return self._state == SessionState.IDLE

    @property
    def duration(self) -> int:
        return self.clock.elapsed

    def note_keystroke(self):
        """The user started typing; the session clock starts here."""
        self.clock.start()

    # ── Request cycle ────────────────────────────────────────────

    def submit(self, content: str) -> Optional[Turn]:
        """
        Send one user answer and stream the reply.

        Returns:
            The finished assistant turn, or None if the input was rejected
            (empty, a reply still streaming, or the session is ending)
        """
        if not content or not content.strip():
            return None
        if self._state != SessionState.IDLE:
            return None

        self.clock.start()
        self.conversation.add_user(content.strip())
        context = self._context()
        history = self.conversation.history()
        reply = self.conversation.begin_reply()
        self._state = SessionState.AWAITING_RESPONSE

        try:
            decoder = StreamDecoder(self.chat_client.stream(history, context))
            for delta in decoder:
                self.conversation.append_delta(delta)
                if self.on_delta:
                    self.on_delta(reply, delta)
        except UpstreamTransportError as e:
            print(f"Error sending message: {e.message} {e.details or ''}".rstrip())
            self.conversation.fail_reply(ERROR_MESSAGE)
            self._state = SessionState.IDLE
            return reply

        self.conversation.freeze()
        self._state = SessionState.IDLE
        self._on_stream_complete(reply)
        return reply

    def _context(self) -> SessionContext:
        elapsed = self.clock.elapsed
        advice = self.policy.advise(self.conversation.user_texts(), elapsed)
        return SessionContext(
            session_duration=elapsed,
            should_conclude=advice.should_conclude,
            ask_final_question=advice.ask_final_question,
        )

    def _on_stream_complete(self, reply: Turn):
        if len(self.conversation) >= AUTO_SAVE_MIN_TURNS and self.clock.started:
            self.gateway.send_beacon(self._record(ExitMode.AUTO_SAVE))

        if is_conclusion(reply.content) or self.policy.forces_ending(self.clock.elapsed):
            self._enter_ending()

    # ── Termination ──────────────────────────────────────────────

    def tick(self) -> bool:
        """
        Check the time budget while idle.

        Returns:
            True if this call moved the session into ENDING
        """
        if self._state != SessionState.IDLE or not self.clock.started:
            return False
        if self.policy.forces_ending(self.clock.elapsed):
            self._enter_ending()
            return True
        return False

    def _enter_ending(self):
        self._state = SessionState.ENDING
        if self._final_saved:
            return
        self._final_saved = True
        self.gateway.save(self._record(ExitMode.NORMAL))

    def on_unload(self) -> bool:
        """
        The client is going away (window closed, process interrupted).

        Sends one non-blocking save of the committed transcript if the
        session started and the user said anything.

        Returns:
            True if a beacon was sent
        """
        if self._unloaded:
            return False
        self._unloaded = True
        if not self.clock.started or len(self.conversation.history()) <= 1:
            return False
        self.gateway.send_beacon(self._record(ExitMode.ABRUPT))
        return True

    def _record(self, mode: ExitMode) -> dict:
        return build_record(
            self.conversation.transcript(),
            session_id=self.session_id,
            session_duration=self.clock.elapsed,
            exit_mode=mode
        )
