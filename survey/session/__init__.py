"""
Streamed-conversation session handling.

- StreamDecoder: SSE frames -> text deltas
- Conversation / Turn: append-only message store
- SessionClock: duration from first keystroke
- Completion policies: when to ask the interviewer to wrap up
- PersistenceGateway: best-effort transcript saves
- SessionController: ties the above together per user turn
"""

from .stream_decoder import StreamDecoder, decode_stream, format_frame
from .conversation import Conversation, Turn, Role
from .clock import SessionClock
from .completion import (
    Advice,
    CompletionPolicy,
    KeywordCoveragePolicy,
    DurationPolicy,
    covered_topics,
    is_conclusion,
    get_policy
)
from .chat_client import ChatClient, SessionContext
from .persistence import PersistenceGateway, ExitMode, build_record
from .controller import SessionController, SessionState, ERROR_MESSAGE

__all__ = [
    "StreamDecoder",
    "decode_stream",
    "format_frame",
    "Conversation",
    "Turn",
    "Role",
    "SessionClock",
    "Advice",
    "CompletionPolicy",
    "KeywordCoveragePolicy",
    "DurationPolicy",
    "covered_topics",
    "is_conclusion",
    "get_policy",
    "ChatClient",
    "SessionContext",
    "PersistenceGateway",
    "ExitMode",
    "build_record",
    "SessionController",
    "SessionState",
    "ERROR_MESSAGE",
]
