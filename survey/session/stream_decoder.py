"""
Decoder for the chat endpoint's server-sent-event stream.

Wire format, one frame per line:

    data: {"text": "Hel"}
    data: {"text": "lo"}
    data: [DONE]

Frames without the ``data: `` prefix are ignored, a frame with a
malformed JSON payload is dropped, and the ``[DONE]`` sentinel ends
decoding even if more bytes follow.
"""

import codecs
import json
from typing import Iterable, Iterator, Optional, Union

from ..errors import UpstreamTransportError

FRAME_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"

Chunk = Union[bytes, str]


def format_frame(payload: Union[dict, str]) -> str:
    """Encode one frame; a dict becomes JSON, a str is sent verbatim."""
    body = payload if isinstance(payload, str) else json.dumps(payload)
    return f"{FRAME_PREFIX}{body}\n\n"


def parse_frame(line: str) -> Optional[dict]:
    """
    Parse a single line.

    Returns:
        ``{"done": True}`` for the sentinel, the decoded JSON object for a
        data frame, or None when the line should be skipped
    """
    line = line.rstrip("\r")
    if not line.startswith(FRAME_PREFIX):
        return None

    data = line[len(FRAME_PREFIX):]
    if data.strip() == DONE_SENTINEL:
        return {"done": True}

    try:
        payload = json.loads(data)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict):
        return None
    return payload


class StreamDecoder:
    """
    Lazily turns raw response chunks into text deltas.

    Chunks may split frames (or multi-byte characters) anywhere; only the
    current partial line is buffered.

    Usage:
        decoder = StreamDecoder(response.iter_content(chunk_size=None))
        for delta in decoder:
            ...
        assert decoder.completed
    """

    def __init__(self, chunks: Iterable[Chunk]):
        self._chunks = chunks
        self.completed = False

    def __iter__(self) -> Iterator[str]:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        buffer = ""

        for chunk in self._chunks:
            if isinstance(chunk, bytes):
                chunk = decoder.decode(chunk)
            buffer += chunk

            while "\n" in buffer:
                line, buffer = buffer.split("\n", 1)
                delta = self._handle(line)
                if self.completed:
                    return
                if delta:
                    yield delta

        # A final frame may arrive without its trailing newline
        buffer += decoder.decode(b"", final=True)
        if buffer:
            delta = self._handle(buffer)
            if self.completed:
                return
            if delta:
                yield delta

        raise UpstreamTransportError("Stream ended before completion")

    def _handle(self, line: str) -> Optional[str]:
        """Process one line and return its text delta, if any."""
        frame = parse_frame(line)
        if frame is None:
            return None
        if frame.get("done"):
            self.completed = True
            return None
        if frame.get("error"):
            raise UpstreamTransportError(str(frame["error"]))
        text = frame.get("text")
        if isinstance(text, str) and text:
            return text
        return None


def decode_stream(chunks: Iterable[Chunk]) -> Iterator[str]:
    """Yield text deltas from a raw event stream until the sentinel."""
    yield from StreamDecoder(chunks)
