"""
Voice CLI for the Startup Workflow Survey.

Talks to the ElevenLabs conversational agent from the terminal: the
microphone streams to the agent, the agent's audio plays back, and the
transcript is saved to the sheet when the conversation ends.
"""

import argparse
import asyncio
import sys

import websockets

from .config import Settings, load_dotenv
from .errors import SurveyError
from .session import PersistenceGateway
from .voice import VoiceSession, fetch_credentials
from .voice.pcm import SAMPLE_RATE, CHANNELS

BLOCK_SIZE = 1024


def print_header():
    """Print CLI header."""
    print("""
╔═══════════════════════════════════════════════════════════════╗
║                                                               ║
║     STARTUP WORKFLOW SURVEY - Voice Interview                 ║
║                                                               ║
║     Speak your answers - the agent talks back                 ║
║                                                               ║
╚═══════════════════════════════════════════════════════════════╝
    """)


def check_dependencies():
    """Check if voice dependencies are installed."""
    missing = []

    try:
        import sounddevice
    except (ImportError, OSError):
        missing.append("sounddevice")

    if missing:
        print("Missing voice dependencies:")
        for dep in missing:
            print(f"   - {dep}")
        print("\nInstall with:")
        print("   pip install startup-workflow-survey[voice]")
        return False

    return True


def print_transcript_line(entry: dict):
    speaker = "Interviewer" if entry["role"] == "assistant" else "You"
    print(f"{speaker}: {entry['content']}")


async def stream_microphone(session: VoiceSession):
    """Forward microphone blocks to the agent until cancelled."""
    import sounddevice as sd

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def callback(indata, frames, time, status):
        if status:
            print(f"Audio status: {status}")
        loop.call_soon_threadsafe(queue.put_nowait, indata.copy().flatten())

    with sd.InputStream(
        samplerate=SAMPLE_RATE,
        channels=CHANNELS,
        dtype="float32",
        blocksize=BLOCK_SIZE,
        callback=callback
    ):
        while True:
            chunk = await queue.get()
            await session.send_audio(chunk)


async def run_voice_survey(server_url: str):
    import sounddevice as sd

    credentials = fetch_credentials(server_url)
    gateway = PersistenceGateway(server_url)

    speaker = sd.OutputStream(samplerate=SAMPLE_RATE, channels=CHANNELS, dtype="float32")
    speaker.start()
    try:
        async with VoiceSession(
            credentials,
            gateway,
            on_audio=speaker.write,
            on_transcript=print_transcript_line
        ) as session:
            mic = asyncio.create_task(stream_microphone(session))
            try:
                await session.run()
            finally:
                mic.cancel()
                await asyncio.gather(mic, return_exceptions=True)
            print(f"\nConversation ended after {session.clock.elapsed}s")
    finally:
        speaker.stop()
        speaker.close()
        # Beacons are daemon threads and die with the process
        gateway.flush()


def main():
    """Main CLI entry point."""
    load_dotenv()
    settings = Settings.from_env()

    parser = argparse.ArgumentParser(
        description="Startup Workflow Survey (voice)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start a voice survey against a local server
  survey-voice

  # Point at a deployed server
  survey-voice --server https://survey.example.com
        """
    )

    parser.add_argument(
        "--server", "-s",
        default=settings.server_url,
        help=f"Survey server URL (default: {settings.server_url})"
    )

    args = parser.parse_args()

    print_header()

    if not check_dependencies():
        sys.exit(1)

    print("\n" + "=" * 60)
    print("STARTING VOICE SURVEY")
    print("=" * 60)
    print("  - Speak naturally, the agent will answer")
    print("  - Ctrl+C to end the conversation")
    print("=" * 60 + "\n")

    try:
        asyncio.run(run_voice_survey(args.server))
    except KeyboardInterrupt:
        print("\n\nVoice survey interrupted by user")
        sys.exit(0)
    except SurveyError as e:
        print(f"\nError: {e.message}")
        sys.exit(1)
    except (OSError, websockets.WebSocketException) as e:
        print(f"\nVoice connection failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
