"""
Startup Workflow Survey.

Conversational survey about startup workflows and tools:
- Streamed chat with Claude via a Flask relay
- Session controller with wind-down and completion heuristics
- Voice mode via ElevenLabs conversational agents
- Transcripts appended to Google Sheets
"""

__version__ = "0.3.0"
