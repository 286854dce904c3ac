from __future__ import annotations

import re


# Example: https://api.telegram.org/bot123:ABCDEF/sendMessage
_TELEGRAM_BOT_TOKEN_URL_RE = re.compile(
    r"(api\.telegram\.org/(?:file/)?bot)(\d+:[A-Za-z0-9_-]+)",
    re.IGNORECASE,
)

# Bare bot tokens, e.g. when a Bot repr or an env dump ends up in a log line.
_TELEGRAM_BOT_TOKEN_RE = re.compile(r"\b\d{6,}:[A-Za-z0-9_-]{30,}\b")

_GENERIC_KV_RE = re.compile(
    r"(?i)\b(token|password|secret|api_key)\s*=\s*([^\s&]+)"
)
_GENERIC_COLON_RE = re.compile(
    r"(?i)\b(token|password|secret|api_key)\s*:\s*([^\s]+)"
)


def redact_text(text: str) -> str:
    if not text:
        return text
    value = _TELEGRAM_BOT_TOKEN_URL_RE.sub(r"\1<redacted>", text)
    value = _TELEGRAM_BOT_TOKEN_RE.sub("<redacted>", value)
    value = _GENERIC_KV_RE.sub(r"\1=<redacted>", value)
    value = _GENERIC_COLON_RE.sub(r"\1: <redacted>", value)
    return value
