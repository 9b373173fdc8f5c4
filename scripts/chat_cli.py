"""Terminal client for the StudyxAi chat relay."""

from __future__ import annotations

import argparse
import logging
import os
import sys

import httpx

SRC_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from chat_relay.client import ChatSession, HistoryStore, Message  # noqa: E402


def _print(message: Message) -> None:
    who = "you" if message.sender == "user" else "StudyxAi"
    print(f"{who}> {message.text}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Chat with StudyxAi from the terminal.")
    parser.add_argument(
        "--url",
        type=str,
        default=os.environ.get("STUDYX_URL", "http://127.0.0.1:3000"),
        help="Base URL of the relay (default: http://127.0.0.1:3000)",
    )
    parser.add_argument(
        "--history-dir",
        type=str,
        default=os.environ.get("STUDYX_HISTORY_DIR", os.path.expanduser("~/.studyxai")),
        help="Directory holding the persisted chat history",
    )
    parser.add_argument(
        "--no-backfill",
        action="store_true",
        help="Do not copy the greeting into history on the first save",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s - %(message)s")

    store = HistoryStore(args.history_dir)
    # No timeout: a reply takes as long as the provider takes.
    with httpx.Client(base_url=args.url, timeout=None) as http:
        session = ChatSession(store=store, http=http, backfill_greeting=not args.no_backfill)
        for message in session.load():
            _print(message)
        while True:
            try:
                line = input("you> ")
            except (EOFError, KeyboardInterrupt):
                print()
                break
            reply = session.send(line)
            if reply is not None:
                _print(reply)


if __name__ == "__main__":
    main()
