"""
PCM audio codec for the conversational voice socket.

Audio travels both ways as base64-encoded 16-bit little-endian mono PCM
at 16 kHz. Locally, audio is handled as numpy float32 arrays in [-1, 1],
the same representation the microphone and speaker libraries use.
"""

import base64
import io
import wave

import numpy as np

SAMPLE_RATE = 16000
CHANNELS = 1
SAMPLE_WIDTH = 2  # bytes, 16-bit

_PCM_DTYPE = np.dtype("<i2")


def float_to_pcm16(samples: np.ndarray) -> bytes:
    """Convert float samples in [-1, 1] to little-endian 16-bit PCM bytes."""
    samples = np.asarray(samples, dtype=np.float32).reshape(-1)
    scaled = np.clip(samples * 32768.0, -32768, 32767)
    return scaled.astype(_PCM_DTYPE).tobytes()


def pcm16_to_float(data: bytes) -> np.ndarray:
    """Convert little-endian 16-bit PCM bytes to float32 samples in [-1, 1)."""
    if len(data) % SAMPLE_WIDTH:
        # Drop a dangling half-sample rather than fail the whole chunk
        data = data[:-1]
    pcm = np.frombuffer(data, dtype=_PCM_DTYPE)
    return pcm.astype(np.float32) / 32768.0


def encode_chunk(samples: np.ndarray) -> str:
    """Float samples -> base64 PCM string for a ``user_audio_chunk`` frame."""
    return base64.b64encode(float_to_pcm16(samples)).decode("ascii")


def decode_chunk(audio_base64: str) -> np.ndarray:
    """Base64 PCM string from an ``audio_event`` frame -> float samples."""
    return pcm16_to_float(base64.b64decode(audio_base64))


def pcm16_to_wav(data: bytes, sample_rate: int = SAMPLE_RATE) -> bytes:
    """Wrap raw PCM bytes in a WAV container."""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(CHANNELS)
        wav.setsampwidth(SAMPLE_WIDTH)
        wav.setframerate(sample_rate)
        wav.writeframes(data)
    return buffer.getvalue()


def audio_level(samples: np.ndarray) -> float:
    """RMS level of a chunk, clamped to [0, 1]."""
    samples = np.asarray(samples, dtype=np.float32)
    if samples.size == 0:
        return 0.0
    return float(min(np.sqrt(np.mean(np.square(samples))), 1.0))
