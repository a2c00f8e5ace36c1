"""
Voice interface for the startup workflow survey.

Components:
- ElevenLabsClient: credentials and connectivity check for the voice agent
- PCM helpers: base64 16-bit PCM <-> numpy float32 audio
- VoiceSession: socket, transcript and cleanup for one voice conversation
"""

from .elevenlabs import ElevenLabsClient, VoiceCredentials, SubscriptionInfo, fetch_credentials
from .pcm import SAMPLE_RATE, encode_chunk, decode_chunk, pcm16_to_wav, audio_level
from .session import VoiceSession

__all__ = [
    "ElevenLabsClient",
    "VoiceCredentials",
    "SubscriptionInfo",
    "fetch_credentials",
    "SAMPLE_RATE",
    "encode_chunk",
    "decode_chunk",
    "pcm16_to_wav",
    "audio_level",
    "VoiceSession",
]
