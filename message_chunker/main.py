from __future__ import annotations

from argparse import ArgumentParser
import asyncio
from dataclasses import replace
import json
from pathlib import Path
import sys

from telegram import Bot

from message_chunker.chunker import split_message
from message_chunker.config import Settings, load_settings
from message_chunker.logging_utils import configure_logging
from message_chunker.sender import ChunkDeliveryError, ChunkedSender


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(description="Split long messages into sendable chunks.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    split = subparsers.add_parser("split", help="Print the chunks of a text.")
    split.add_argument("path", nargs="?", help="Input file; stdin when omitted.")
    split.add_argument("--limit", type=int, default=None)
    split.add_argument("--json", action="store_true", dest="as_json")

    send = subparsers.add_parser("send", help="Send a text to a Telegram chat.")
    send.add_argument("path", nargs="?", help="Input file; stdin when omitted.")
    send.add_argument("--chat-id", type=int, default=None)
    send.add_argument("--limit", type=int, default=None)
    send.add_argument("--json", action="store_true", dest="as_json")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = load_settings(require_token=args.command == "send")
        if args.limit is not None:
            settings = replace(settings, message_chunk_limit=args.limit)
        # Chunk output owns stdout.
        configure_logging(settings.log_level, stream=sys.stderr)
        content = _read_input(args.path)

        if args.command == "split":
            chunks = split_message(
                content, settings.message_chunk_limit, settings.chunk_policy()
            )
            _print_chunks(chunks, as_json=args.as_json)
            return 0

        chat_id = args.chat_id if args.chat_id is not None else settings.telegram_chat_id
        if chat_id is None:
            raise ValueError("Missing chat id: pass --chat-id or set TELEGRAM_CHAT_ID.")
        report = asyncio.run(_send(settings, chat_id, content))
        if args.as_json:
            print(
                json.dumps(
                    {
                        "ok": report.ok,
                        "chat_id": report.chat_id,
                        "chunk_count": report.chunk_count,
                        "sent_count": report.sent_count,
                        "trace_id": report.trace_id,
                    },
                    ensure_ascii=False,
                )
            )
        else:
            print(f"[OK] chat={report.chat_id} chunks={report.sent_count}/{report.chunk_count}")
        return 0
    except ChunkDeliveryError as exc:
        return _print_error_and_exit(exc, as_json=args.as_json, sent_count=exc.report.sent_count)
    except Exception as exc:
        return _print_error_and_exit(exc, as_json=args.as_json)


async def _send(settings: Settings, chat_id: int, content: str):
    async with Bot(settings.telegram_bot_token) as bot:
        return await ChunkedSender(bot, settings).send(chat_id, content)


def _read_input(path: str | None) -> str:
    if not path or path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _print_chunks(chunks: list[str], *, as_json: bool) -> None:
    if as_json:
        print(json.dumps({"chunks": chunks, "count": len(chunks)}, ensure_ascii=False))
        return
    total = len(chunks)
    for index, chunk in enumerate(chunks, start=1):
        print(f"--- chunk {index}/{total} ({len(chunk)} chars) ---")
        print(chunk)


def _print_error_and_exit(
    exc: Exception | str,
    *,
    as_json: bool,
    sent_count: int | None = None,
) -> int:
    message = str(exc)
    if as_json:
        payload = {"ok": False, "error": message}
        if sent_count is not None:
            payload["sent_count"] = sent_count
        print(json.dumps(payload, ensure_ascii=False))
    else:
        print(f"ERROR: {message}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
