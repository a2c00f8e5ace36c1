"""
Tests for the conversation store, session clock and session context.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from survey.session.chat_client import SessionContext
from survey.session.clock import SessionClock
from survey.session.conversation import Conversation, Role


class FakeTime:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now


class TestConversation:
    def test_seeded_with_greeting(self):
        conv = Conversation("Hi there")
        assert len(conv) == 1
        assert conv.last.role == Role.ASSISTANT
        assert conv.last.content == "Hi there"

    def test_turns_alternate(self):
        conv = Conversation("Hi")
        conv.add_user("Founder")
        with pytest.raises(ValueError):
            conv.add_user("Again")

    def test_ids_are_unique_and_increasing(self):
        conv = Conversation("Hi")
        ids = [conv.last.id, conv.add_user("a").id, conv.begin_reply().id]
        conv.freeze()
        assert ids == sorted(set(ids))

    def test_streaming_reply_accumulates_deltas(self):
        conv = Conversation("Hi")
        conv.add_user("Founder")
        reply = conv.begin_reply()
        conv.append_delta("Thanks")
        conv.append_delta(", next")
        assert reply.content == "Thanks, next"
        assert conv.in_flight is reply
        conv.freeze()
        assert conv.in_flight is None
        assert conv.last.content == "Thanks, next"

    def test_history_excludes_in_flight_placeholder(self):
        conv = Conversation("Hi")
        conv.add_user("Founder")
        conv.begin_reply()
        conv.append_delta("partial")
        assert conv.history() == [
            {"role": "assistant", "content": "Hi"},
            {"role": "user", "content": "Founder"},
        ]
        assert len(conv.transcript()) == 2

    def test_cannot_append_while_streaming(self):
        conv = Conversation("Hi")
        conv.add_user("Founder")
        conv.begin_reply()
        with pytest.raises(RuntimeError):
            conv.add_user("more")

    def test_delta_without_reply_raises(self):
        conv = Conversation("Hi")
        with pytest.raises(RuntimeError):
            conv.append_delta("x")

    def test_fail_reply_overwrites_and_freezes(self):
        conv = Conversation("Hi")
        conv.add_user("Founder")
        conv.begin_reply()
        conv.append_delta("half an ans")
        turn = conv.fail_reply("Sorry")
        assert turn.content == "Sorry"
        assert conv.in_flight is None

    def test_user_texts(self):
        conv = Conversation("Hi")
        conv.add_user("one")
        conv.begin_reply()
        conv.freeze()
        conv.add_user("two")
        assert conv.user_texts() == ["one", "two"]

    def test_transcript_has_iso_timestamps(self):
        conv = Conversation("Hi")
        entry = conv.transcript()[0]
        assert entry["role"] == "assistant"
        assert "T" in entry["timestamp"]


class TestSessionClock:
    def test_zero_before_start(self):
        clock = SessionClock(now=FakeTime())
        assert not clock.started
        assert clock.elapsed == 0

    def test_start_only_once(self):
        fake = FakeTime()
        clock = SessionClock(now=fake)
        assert clock.start() is True
        fake.now += 10
        assert clock.start() is False
        assert clock.elapsed == 10

    def test_elapsed_is_whole_seconds(self):
        fake = FakeTime()
        clock = SessionClock(now=fake)
        clock.start()
        fake.now += 42.9
        assert clock.elapsed == 42

    def test_has_crossed(self):
        fake = FakeTime()
        clock = SessionClock(now=fake)
        assert not clock.has_crossed(0)
        clock.start()
        fake.now += 60
        assert clock.has_crossed(60)
        assert not clock.has_crossed(61)


class TestSessionContext:
    def test_to_dict_uses_wire_names(self):
        ctx = SessionContext(session_duration=12, should_conclude=True)
        assert ctx.to_dict() == {
            "sessionDuration": 12,
            "shouldConclude": True,
            "askFinalQuestion": False,
        }

    def test_from_dict_tolerates_missing_and_bad_values(self):
        ctx = SessionContext.from_dict({"sessionDuration": "abc"})
        assert ctx == SessionContext()

    def test_from_dict_clamps_negative_duration(self):
        assert SessionContext.from_dict({"sessionDuration": -5}).session_duration == 0
