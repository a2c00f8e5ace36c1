"""
Voice Session - one conversational-voice exchange with an ElevenLabs agent.

All per-session resources (socket, clock, transcript) live on the
VoiceSession object and are released in ``__aexit__``, whichever way the
session ends: the user stopping, the agent hanging up, an error, or the
task being cancelled. The transcript is submitted exactly once on the way
out.

Usage:
    async with VoiceSession(credentials, gateway, on_audio=play) as session:
        mic_task = asyncio.create_task(stream_mic(session))
        await session.run()
"""

from __future__ import annotations

import asyncio
import json
import uuid
from typing import Awaitable, Callable, Optional, Union

import numpy as np
import websockets

from ..session.clock import SessionClock
from ..session.persistence import ExitMode, build_record
from .elevenlabs import VoiceCredentials
from .pcm import decode_chunk, encode_chunk

# Placeholder the agent sends while it is still transcribing
PENDING_TRANSCRIPT = "..."


def _event_field(event: dict, kind: str, key: str):
    """``event[kind][key]``, or None when the payload is not an object."""
    payload = event.get(kind)
    if not isinstance(payload, dict):
        return None
    return payload.get(key)


class VoiceSession:
    """Owns the agent socket and transcript for one voice conversation."""

    INIT_DELAY = 0.1  # seconds between the auth and init frames

    def __init__(
        self,
        credentials: VoiceCredentials,
        gateway,
        clock: Optional[SessionClock] = None,
        on_audio: Optional[Callable[[np.ndarray], None]] = None,
        on_transcript: Optional[Callable[[dict], None]] = None,
        connect: Optional[Callable[..., Awaitable]] = None
    ):
        """
        Args:
            credentials: agent id and API key from the survey server
            gateway: PersistenceGateway used to submit the transcript
            clock: session clock (started when the socket opens)
            on_audio: called with float32 samples for each agent audio chunk
            on_transcript: called with each new {role, content} entry
            connect: socket factory, defaults to ``websockets.connect``
        """
        self.credentials = credentials
        self.gateway = gateway
        self.clock = clock or SessionClock()
        self.on_audio = on_audio
        self.on_transcript = on_transcript
        self._connect = connect or websockets.connect

        self.session_id = str(uuid.uuid4())
        self.transcript: list[dict] = []
        self._ws = None
        self._submitted = False

    @property
    def connected(self) -> bool:
        return self._ws is not None

    # ── Lifecycle ────────────────────────────────────────────────

    async def __aenter__(self) -> "VoiceSession":
        self._ws = await self._connect(
            self.credentials.websocket_url,
            ping_interval=None,
            close_timeout=5
        )
        try:
            self.clock.start()
            self.transcript = []
            await self._send({"type": "auth", "api_key": self.credentials.api_key})
            await asyncio.sleep(self.INIT_DELAY)
            await self._send({"type": "init_conversation", "agent_id": self.credentials.agent_id})
        except BaseException:
            await self._close_socket()
            raise
        print("Voice conversation active! Start speaking...")
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        try:
            await self._close_socket()
        finally:
            mode = ExitMode.NORMAL if exc_type is None else ExitMode.ABRUPT
            await self.submit(mode)
        return False

    async def _close_socket(self):
        ws, self._ws = self._ws, None
        if ws is not None:
            try:
                await ws.close()
            except websockets.WebSocketException as e:
                print(f"Warning: error closing voice socket: {e}")

    # ── Socket I/O ───────────────────────────────────────────────

    async def _send(self, payload: dict):
        if self._ws is None:
            raise RuntimeError("Voice session is not connected")
        await self._ws.send(json.dumps(payload))

    async def send_audio(self, samples: np.ndarray):
        """Send one chunk of microphone audio (float32, 16 kHz mono)."""
        await self._send({"user_audio_chunk": encode_chunk(samples)})

    async def run(self):
        """Process agent frames until the socket closes."""
        if self._ws is None:
            raise RuntimeError("Voice session is not connected")
        try:
            async for message in self._ws:
                await self.handle_frame(message)
        except websockets.ConnectionClosed:
            pass

    async def handle_frame(self, raw: Union[str, bytes]) -> Optional[str]:
        """
        Dispatch one frame from the agent.

        Returns:
            The kind of frame handled ("agent", "user", "audio", "ping"),
            or None if it was ignored
        """
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        try:
            event = json.loads(raw)
        except json.JSONDecodeError:
            return None
        if not isinstance(event, dict):
            return None

        agent = _event_field(event, "agent_response_event", "agent_response")
        if isinstance(agent, str) and agent:
            self._record_line("assistant", agent)
            return "agent"

        user = _event_field(event, "user_transcription_event", "user_transcript")
        if isinstance(user, str) and user and user != PENDING_TRANSCRIPT:
            self._record_line("user", user)
            return "user"

        audio = _event_field(event, "audio_event", "audio_base_64")
        if isinstance(audio, str) and audio:
            try:
                samples = decode_chunk(audio)
            except ValueError:
                return None
            if self.on_audio:
                self.on_audio(samples)
            return "audio"

        ping = event.get("ping_event")
        if isinstance(ping, dict):
            await self._send({"type": "pong", "event_id": ping.get("event_id")})
            return "ping"

        return None

    def _record_line(self, role: str, content: str):
        entry = {"role": role, "content": content}
        self.transcript.append(entry)
        if self.on_transcript:
            self.on_transcript(entry)

    # ── Persistence ──────────────────────────────────────────────

    async def submit(self, mode: ExitMode = ExitMode.NORMAL) -> bool:
        """
        Submit the transcript once; later calls are no-ops.

        Returns:
            True if a save was attempted by this call
        """
        if self._submitted or not self.transcript:
            return False
        self._submitted = True

        record = build_record(
            list(self.transcript),
            session_id=self.session_id,
            session_duration=self.clock.elapsed,
            exit_mode=mode
        )
        if mode == ExitMode.ABRUPT:
            self.gateway.send_beacon(record)
        else:
            await asyncio.to_thread(self.gateway.save, record)
        return True
