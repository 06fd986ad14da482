"""Terminal chat with TrendSeer AI.

Usage:
    trendseer --url http://localhost:8000 --token <supabase access token>

Commands inside the chat: /clear, /history, /profile, /quit
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import List, Optional

from trendseer.client import SIMPLE_MODE, STREAM_MODE, ChatClientError, TrendChatClient


def _print_token(token: str) -> None:
    sys.stdout.write(token)
    sys.stdout.flush()


def show_history(client: TrendChatClient) -> None:
    turns = client.history()
    if not turns:
        print("No conversations yet.")
        return
    for turn in turns:
        stamp = (turn.get("timestamp") or "")[:16].replace("T", " ")
        print(f"  [{stamp}] {turn.get('user_message', '')[:70]}")


def show_profile(client: TrendChatClient) -> None:
    data = client.profile()
    profile = data.get("profile") or {}
    print(f"  Industries: {', '.join(profile.get('industries') or []) or 'Not specified yet'}")
    print(f"  Audience:   {profile.get('audience') or 'Not specified yet'}")
    print(f"  Goals:      {profile.get('goals') or 'Not specified yet'}")
    print(f"  Trends:     {', '.join(profile.get('trends') or []) or 'None yet'}")
    print(f"  Memories:   {data.get('memoryCount', 0)} ({data.get('databaseStatus', 'unknown')})")


def run_chat(client: TrendChatClient) -> int:
    print("TrendSeer AI - ask about trends, news, or what is popular online.")
    print("Commands: /clear /history /profile /quit\n")
    while True:
        try:
            text = input("you> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return 0

        if not text:
            continue
        if text in ("/quit", "/exit"):
            return 0
        try:
            if text == "/clear":
                client.clear()
                print("Chat cleared (your profile memory is kept).")
                continue
            if text == "/history":
                show_history(client)
                continue
            if text == "/profile":
                show_profile(client)
                continue

            sys.stdout.write("trendseer> ")
            streamed = client.mode == STREAM_MODE
            printed: List[str] = []

            def on_token(token: str) -> None:
                printed.append(token)
                _print_token(token)

            reply = client.send(text, on_token=on_token)
            # Simple mode, including a fallback mid-turn, delivers the reply in one piece.
            fell_back = streamed and client.mode == SIMPLE_MODE
            if reply and (not streamed or fell_back):
                if printed:
                    sys.stdout.write("\n(stream interrupted, retrying)\ntrendseer> ")
                sys.stdout.write(reply["content"])
            sys.stdout.write("\n\n")
        except ChatClientError as exc:
            print(f"\nError: {exc}", file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Chat with TrendSeer AI")
    parser.add_argument("--url", "-u", default=os.getenv("TRENDSEER_URL", "http://localhost:8000"),
                        help="Base URL of the TrendSeer API")
    parser.add_argument("--token", "-t", default=os.getenv("TRENDSEER_TOKEN"),
                        help="Supabase access token for an authenticated session")
    parser.add_argument("--user-id", default=None,
                        help="User ID to chat as without a token "
                             "(default: stored in ~/.trendseer/user_id)")
    parser.add_argument("--simple", action="store_true",
                        help="Use the non-streaming endpoint")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(asctime)s] %(levelname)s - %(message)s",
    )

    with TrendChatClient(
        base_url=args.url,
        user_id=args.user_id,
        access_token=args.token,
        mode=SIMPLE_MODE if args.simple else STREAM_MODE,
    ) as client:
        return run_chat(client)


if __name__ == "__main__":
    sys.exit(main())
