from __future__ import annotations

from dataclasses import dataclass
import os

from dotenv import load_dotenv
from telegram.constants import ParseMode

from message_chunker.chunker import ChunkPolicy


# Keeps limit + fence_buffer under Telegram's 4096 character cap.
DEFAULT_CHUNK_LIMIT = 3500

_PARSE_MODES = {
    "HTML": ParseMode.HTML,
    "MARKDOWN": ParseMode.MARKDOWN,
    "MARKDOWNV2": ParseMode.MARKDOWN_V2,
}


@dataclass(frozen=True)
class Settings:
    telegram_bot_token: str | None = None
    telegram_chat_id: int | None = None
    telegram_parse_mode: ParseMode | None = None
    message_chunk_limit: int = DEFAULT_CHUNK_LIMIT
    chunk_newline_window: int = 200
    chunk_space_window: int = 100
    chunk_fence_buffer: int = 500
    send_retry_limit: int = 3
    send_chunk_delay_seconds: float = 0.0
    log_level: str = "INFO"

    def chunk_policy(self) -> ChunkPolicy:
        return ChunkPolicy(
            newline_window=self.chunk_newline_window,
            space_window=self.chunk_space_window,
            fence_buffer=self.chunk_fence_buffer,
        )


def _read_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid {name}: expected an integer, got {raw!r}.") from exc


def _read_positive_int(name: str, default: int) -> int:
    value = _read_int(name, default)
    if value <= 0:
        raise ValueError(f"Invalid {name}: must be greater than zero.")
    return value


def _read_non_negative_int(name: str, default: int) -> int:
    value = _read_int(name, default)
    if value < 0:
        raise ValueError(f"Invalid {name}: must not be negative.")
    return value


def _read_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid {name}: expected a number, got {raw!r}.") from exc
    if value < 0:
        raise ValueError(f"Invalid {name}: must not be negative.")
    return value


def _read_optional_str(name: str) -> str | None:
    raw = os.getenv(name, "").strip()
    return raw or None


def _read_optional_int(name: str) -> int | None:
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid {name}: expected an integer chat id.") from exc


def _read_parse_mode(name: str) -> ParseMode | None:
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    mode = _PARSE_MODES.get(raw.upper().replace("_", ""))
    if mode is None:
        raise ValueError(
            f"Invalid {name}: expected HTML, Markdown, MarkdownV2 or empty."
        )
    return mode


def load_settings(require_token: bool = False) -> Settings:
    # Ensure local .env values win over stale shell/system environment values.
    load_dotenv(override=True)

    token = _read_optional_str("TELEGRAM_BOT_TOKEN")
    if require_token and not token:
        raise ValueError("Missing TELEGRAM_BOT_TOKEN in environment.")

    return Settings(
        telegram_bot_token=token,
        telegram_chat_id=_read_optional_int("TELEGRAM_CHAT_ID"),
        telegram_parse_mode=_read_parse_mode("TELEGRAM_PARSE_MODE"),
        message_chunk_limit=_read_positive_int(
            "MESSAGE_CHUNK_LIMIT", DEFAULT_CHUNK_LIMIT
        ),
        chunk_newline_window=_read_non_negative_int("CHUNK_NEWLINE_WINDOW", 200),
        chunk_space_window=_read_non_negative_int("CHUNK_SPACE_WINDOW", 100),
        chunk_fence_buffer=_read_non_negative_int("CHUNK_FENCE_BUFFER", 500),
        send_retry_limit=_read_positive_int("SEND_RETRY_LIMIT", 3),
        send_chunk_delay_seconds=_read_float("SEND_CHUNK_DELAY_SECONDS", 0.0),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )
