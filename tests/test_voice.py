"""
Tests for the voice session and PCM codec.

The agent socket is an in-memory fake; asyncio.run drives each test.
"""

import sys
import json
import asyncio
import base64
import io
import wave
from pathlib import Path
from unittest.mock import patch, MagicMock

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from survey.session.clock import SessionClock
from survey.voice import VoiceCredentials, VoiceSession, fetch_credentials
from survey.voice.pcm import (
    audio_level,
    decode_chunk,
    encode_chunk,
    float_to_pcm16,
    pcm16_to_float,
    pcm16_to_wav,
)
from survey.errors import DecodeError, UpstreamTransportError


class FakeSocket:
    def __init__(self, incoming=()):
        self.sent = []
        self.closed = False
        self._incoming = list(incoming)

    async def send(self, data):
        self.sent.append(json.loads(data))

    async def close(self):
        self.closed = True

    def __aiter__(self):
        return self._messages()

    async def _messages(self):
        for message in self._incoming:
            yield message


class FakeGateway:
    def __init__(self):
        self.saves = []
        self.beacons = []

    def save(self, record, timeout=None):
        self.saves.append(record)
        return True

    def send_beacon(self, record):
        self.beacons.append(record)


CREDENTIALS = VoiceCredentials(agent_id="agent-123", api_key="xi-test")


def _session(socket, gateway, **kwargs):
    connect_calls = []

    async def connect(url, **options):
        connect_calls.append((url, options))
        return socket

    session = VoiceSession(CREDENTIALS, gateway, connect=connect, **kwargs)
    session.INIT_DELAY = 0
    session.connect_calls = connect_calls
    return session


def agent_says(text):
    return json.dumps({"agent_response_event": {"agent_response": text}})


def user_says(text):
    return json.dumps({"user_transcription_event": {"user_transcript": text}})


class TestPcm:
    def test_encode_is_little_endian_16_bit(self):
        data = float_to_pcm16(np.array([0.0, 0.5, -1.0], dtype=np.float32))
        assert data == b"\x00\x00\x00\x40\x00\x80"

    def test_clips_out_of_range(self):
        data = float_to_pcm16(np.array([2.0, -2.0]))
        assert np.frombuffer(data, dtype="<i2").tolist() == [32767, -32768]

    def test_decode_chunk(self):
        b64 = base64.b64encode(b"\x00\x40\x00\xc0").decode()
        assert decode_chunk(b64).tolist() == [0.5, -0.5]

    def test_encode_chunk_is_base64(self):
        samples = np.array([0.25, -0.25], dtype=np.float32)
        assert np.allclose(decode_chunk(encode_chunk(samples)), samples, atol=1e-4)

    def test_odd_byte_is_dropped(self):
        assert pcm16_to_float(b"\x00\x40\x01").tolist() == [0.5]

    def test_wav_header(self):
        wav_bytes = pcm16_to_wav(b"\x00\x00" * 160)
        with wave.open(io.BytesIO(wav_bytes)) as wav:
            assert wav.getframerate() == 16000
            assert wav.getnchannels() == 1
            assert wav.getsampwidth() == 2
            assert wav.getnframes() == 160

    def test_audio_level(self):
        assert audio_level(np.array([], dtype=np.float32)) == 0.0
        assert audio_level(np.full(10, 0.5, dtype=np.float32)) == pytest.approx(0.5)


class TestVoiceSessionLifecycle:
    def test_handshake_order(self):
        socket = FakeSocket()
        session = _session(socket, FakeGateway())

        async def scenario():
            async with session:
                pass

        asyncio.run(scenario())

        assert session.connect_calls[0][0] == "wss://api.elevenlabs.io/v1/convai/conversation?agent_id=agent-123"
        assert socket.sent == [
            {"type": "auth", "api_key": "xi-test"},
            {"type": "init_conversation", "agent_id": "agent-123"},
        ]
        assert socket.closed
        assert not session.connected

    def test_normal_end_saves_transcript_once(self):
        socket = FakeSocket([agent_says("Hi! Role?"), user_says("CTO")])
        gateway = FakeGateway()
        session = _session(socket, gateway)

        async def scenario():
            async with session:
                await session.run()
            await session.submit()

        asyncio.run(scenario())

        assert len(gateway.saves) == 1
        assert gateway.beacons == []
        record = gateway.saves[0]
        assert record["conversation"] == [
            {"role": "assistant", "content": "Hi! Role?"},
            {"role": "user", "content": "CTO"},
        ]
        assert record["isAbruptExit"] is False
        assert record["sessionId"] == session.session_id

    def test_error_exit_sends_abrupt_beacon(self):
        socket = FakeSocket([agent_says("Hi!")])
        gateway = FakeGateway()
        session = _session(socket, gateway)

        async def scenario():
            async with session:
                await session.run()
                raise RuntimeError("mic unplugged")

        with pytest.raises(RuntimeError):
            asyncio.run(scenario())

        assert socket.closed
        assert gateway.saves == []
        assert len(gateway.beacons) == 1
        assert gateway.beacons[0]["isAbruptExit"] is True

    def test_empty_transcript_is_not_saved(self):
        gateway = FakeGateway()
        session = _session(FakeSocket(), gateway)

        async def scenario():
            async with session:
                await session.run()

        asyncio.run(scenario())
        assert gateway.saves == [] and gateway.beacons == []

    def test_failed_handshake_closes_socket(self):
        socket = FakeSocket()

        async def broken_send(data):
            raise ConnectionError("reset")

        socket.send = broken_send
        session = _session(socket, FakeGateway())

        async def scenario():
            async with session:
                pass

        with pytest.raises(ConnectionError):
            asyncio.run(scenario())
        assert socket.closed

    def test_send_audio(self):
        socket = FakeSocket()
        session = _session(socket, FakeGateway())

        async def scenario():
            async with session:
                await session.send_audio(np.zeros(4, dtype=np.float32))

        asyncio.run(scenario())
        assert socket.sent[-1] == {"user_audio_chunk": base64.b64encode(b"\x00" * 8).decode()}


class TestHandleFrame:
    def _run(self, session, frame):
        async def scenario():
            session._ws = socket = FakeSocket()
            result = await session.handle_frame(frame)
            return result, socket.sent

        return asyncio.run(scenario())

    def test_agent_and_user_lines(self):
        seen = []
        session = _session(FakeSocket(), FakeGateway(), on_transcript=seen.append)

        assert self._run(session, agent_says("Hi"))[0] == "agent"
        assert self._run(session, user_says("Founder"))[0] == "user"
        assert session.transcript == seen == [
            {"role": "assistant", "content": "Hi"},
            {"role": "user", "content": "Founder"},
        ]

    def test_pending_transcript_ignored(self):
        session = _session(FakeSocket(), FakeGateway())
        assert self._run(session, user_says("..."))[0] is None
        assert session.transcript == []

    def test_audio_passed_to_callback(self):
        played = []
        session = _session(FakeSocket(), FakeGateway(), on_audio=played.append)
        frame = json.dumps({"audio_event": {"audio_base_64": base64.b64encode(b"\x00\x40").decode()}})

        assert self._run(session, frame)[0] == "audio"
        assert played[0].tolist() == [0.5]

    def test_ping_answered_with_pong(self):
        session = _session(FakeSocket(), FakeGateway())
        frame = json.dumps({"ping_event": {"event_id": 7}})

        kind, sent = self._run(session, frame)
        assert kind == "ping"
        assert sent == [{"type": "pong", "event_id": 7}]

    def test_non_json_skipped(self):
        session = _session(FakeSocket(), FakeGateway())
        assert self._run(session, "not json")[0] is None
        assert self._run(session, b"\xff\xfe")[0] is None

    def test_bytes_frame(self):
        session = _session(FakeSocket(), FakeGateway())
        assert self._run(session, agent_says("Hi").encode())[0] == "agent"

    @pytest.mark.parametrize("frame", [
        {"ping_event": "x"},
        {"agent_response_event": ["Hi"]},
        {"user_transcription_event": {"user_transcript": 42}},
        {"audio_event": {"audio_base_64": "abc"}},
        {"audio_event": None},
    ])
    def test_wrongly_typed_payloads_are_ignored(self, frame):
        played = []
        session = _session(FakeSocket(), FakeGateway(), on_audio=played.append)

        kind, sent = self._run(session, json.dumps(frame))

        assert kind is None
        assert sent == []
        assert session.transcript == [] and played == []


class TestFetchCredentials:
    def test_posts_start_action(self):
        response = MagicMock(ok=True)
        response.json.return_value = {"agent_id": "agent-123", "api_key": "xi-test", "success": True}
        with patch("survey.voice.elevenlabs.requests.post", return_value=response) as mock_post:
            creds = fetch_credentials("http://localhost:5001/")

        assert creds == CREDENTIALS
        args, kwargs = mock_post.call_args
        assert args[0] == "http://localhost:5001/api/elevenlabs/conversation"
        assert kwargs["json"] == {"action": "start"}

    def test_server_error(self):
        response = MagicMock(ok=False)
        response.json.return_value = {"error": "ElevenLabs API key or Agent ID not configured"}
        with patch("survey.voice.elevenlabs.requests.post", return_value=response):
            with pytest.raises(UpstreamTransportError) as excinfo:
                fetch_credentials("http://x")
        assert excinfo.value.message == "ElevenLabs API key or Agent ID not configured"

    def test_malformed_answer(self):
        response = MagicMock(ok=True)
        response.json.return_value = {"success": True}
        with patch("survey.voice.elevenlabs.requests.post", return_value=response):
            with pytest.raises(DecodeError):
                fetch_credentials("http://x")


class TestClockIntegration:
    def test_duration_recorded(self):
        now = [100.0]
        gateway = FakeGateway()
        session = _session(FakeSocket([agent_says("Hi")]), gateway, clock=SessionClock(now=lambda: now[0]))

        async def scenario():
            async with session:
                now[0] = 137.0
                await session.run()

        asyncio.run(scenario())
        assert gateway.saves[0]["sessionDuration"] == 37
