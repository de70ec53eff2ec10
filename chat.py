"""
Realtime text chat
==================

Opens one realtime session in text modality, sends a single prompt and prints
the streamed answer.

What happens
------------
1. ``open_session`` connects to the realtime endpoint (key from ``.env``) and
   pushes the session configuration as the first frame.
2. The prompt goes out as a user conversation item followed by
   ``response.create``.
3. Text deltas are printed as they arrive. The run stops on
   ``response.text.done``, on a server error event, or when the session ends.

Usage
-----
    source .venv/bin/activate
    python chat.py "What is the capital of the Czech Republic?"
"""
from __future__ import annotations

import argparse
import asyncio
import sys
from logging import getLogger, WARNING

from config import OPENAI_API_KEY, REALTIME_INSTRUCTIONS
from rtsession.events import ErrorEvent, ResponseTextDelta, ResponseTextDone, SessionCreated
from rtsession.messages import ConversationItemCreate, ResponseCreate, SessionConfiguration
from rtsession.session import open_session
from rtsession.utils import setup_logging

logger = getLogger(__name__)


async def chat_once(prompt: str, instructions: str) -> int:
    """Run one exchange. Returns the process exit code."""
    configuration = SessionConfiguration(modalities=("text",), instructions=instructions, voice=None,
                                         input_audio_format=None, output_audio_format=None)

    async with open_session(configuration) as session:
        await session.send(ConversationItemCreate.user_text(prompt))
        await session.send(ResponseCreate())

        async for ev in session.events():
            if isinstance(ev, SessionCreated):
                logger.info("Session created.")
            elif isinstance(ev, ResponseTextDelta):
                print(ev.delta, end="", flush=True)
            elif isinstance(ev, ResponseTextDone):
                print()
                return 0
            elif isinstance(ev, ErrorEvent):
                print(f"\nServer error: {ev.message}", file=sys.stderr)
                return 2

    # events() ended without an answer: the transport went away.
    print("\nSession ended before the response was complete.", file=sys.stderr)
    return 1


def main() -> None:
    parser = argparse.ArgumentParser(description="Send one prompt over a realtime session.")
    parser.add_argument("prompt", help="text to send as the user message")
    parser.add_argument("--instructions", default=REALTIME_INSTRUCTIONS, help="system instructions for the session")
    args = parser.parse_args()
    setup_logging(WARNING)

    if not OPENAI_API_KEY:
        logger.error("OPENAI_API_KEY not set. Put it in .env and retry.")
        sys.exit(1)

    sys.exit(asyncio.run(chat_once(args.prompt, args.instructions)))


if __name__ == "__main__":
    main()
