"""
CLI Interface for the Startup Workflow Survey

Runs the text survey in the terminal against a running survey server
(``python3 web_survey.py``). Replies stream in as they arrive.
"""

import argparse
import sys

from .config import Settings, load_dotenv
from .session import (
    ChatClient,
    PersistenceGateway,
    SessionController,
    SessionState,
    ERROR_MESSAGE,
    get_policy
)
from .session.completion import POLICIES


def print_header():
    """Print CLI header."""
    print("""
╔═══════════════════════════════════════════════════════════════╗
║                                                               ║
║     STARTUP WORKFLOW SURVEY - Text Interview                  ║
║                                                               ║
║     A short chat about how your team works                    ║
║                                                               ║
╚═══════════════════════════════════════════════════════════════╝
    """)


def print_delta(turn, delta: str):
    print(delta, end="", flush=True)


def run_survey(controller: SessionController, read=input) -> SessionState:
    """
    Run the question/answer loop until the survey ends.

    Args:
        controller: session controller for this run
        read: prompt function, ``input`` by default

    Returns:
        The controller state when the loop stopped
    """
    print(f"Interviewer: {controller.conversation.last.content}")

    try:
        while not controller.ending:
            answer = read("\nYou: ")
            controller.note_keystroke()

            if controller.tick():
                break
            if not answer.strip():
                continue

            print("\nInterviewer: ", end="", flush=True)
            reply = controller.submit(answer)
            if reply is not None and reply.content == ERROR_MESSAGE:
                print(f"\n{ERROR_MESSAGE}", end="")
            print()
    except (KeyboardInterrupt, EOFError):
        print("\n\nSurvey interrupted.")
        if controller.on_unload():
            print("Saving what we have so far...")
        return controller.state

    print("\nSurvey completing - thank you for your time!")
    print(f"Duration: {controller.duration}s")
    return controller.state


def main():
    """Main CLI entry point."""
    load_dotenv()
    settings = Settings.from_env()

    parser = argparse.ArgumentParser(
        description="Startup Workflow Survey (text)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Take the survey against a local server
  survey-chat

  # Use the fixed time budget instead of topic coverage
  survey-chat --policy duration

  # Point at a deployed server
  survey-chat --server https://survey.example.com
        """
    )

    parser.add_argument(
        "--server", "-s",
        default=settings.server_url,
        help=f"Survey server URL (default: {settings.server_url})"
    )

    parser.add_argument(
        "--policy", "-p",
        default="content",
        choices=sorted(POLICIES),
        help="When to wrap up: topic coverage (content) or time budget (duration)"
    )

    args = parser.parse_args()

    print_header()
    print(f"   Server: {args.server}")
    print(f"   Completion policy: {args.policy}")
    print("   Ctrl+C to leave at any time\n")

    controller = SessionController(
        chat_client=ChatClient(args.server),
        gateway=PersistenceGateway(args.server),
        policy=get_policy(args.policy),
        on_delta=print_delta
    )

    try:
        state = run_survey(controller)
    finally:
        controller.gateway.flush()
    sys.exit(0 if state == SessionState.ENDING else 1)


if __name__ == "__main__":
    main()
