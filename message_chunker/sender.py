from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import timedelta
import logging
from typing import Any, Awaitable, Callable
import uuid

from telegram import Bot, LinkPreviewOptions, Message
from telegram.error import BadRequest, NetworkError, RetryAfter

from message_chunker.chunker import split_message
from message_chunker.config import Settings


logger = logging.getLogger(__name__)


@dataclass
class SendReport:
    chat_id: int | str
    chunk_count: int
    trace_id: str
    sent_count: int = 0

    @property
    def ok(self) -> bool:
        return self.sent_count == self.chunk_count


class ChunkDeliveryError(RuntimeError):
    def __init__(self, message: str, report: SendReport) -> None:
        super().__init__(message)
        self.report = report


class ChunkedSender:
    """Deliver long texts to a Telegram chat one chunk at a time, in order."""

    RETRY_BACKOFF_SECONDS = 1.0

    def __init__(self, bot: Bot, settings: Settings) -> None:
        self._bot = bot
        self._settings = settings
        self._policy = settings.chunk_policy()

    def split(self, content: str) -> list[str]:
        return split_message(content, self._settings.message_chunk_limit, self._policy)

    async def send(
        self,
        chat_id: int | str,
        content: str,
        trace_id: str | None = None,
    ) -> SendReport:
        async def _send_chunk(chunk: str) -> Any:
            return await self._bot.send_message(
                chat_id=chat_id,
                text=chunk,
                **self._message_options(),
            )

        return await self._deliver(chat_id, content, _send_chunk, trace_id)

    async def reply(
        self,
        message: Message,
        content: str,
        trace_id: str | None = None,
    ) -> SendReport:
        async def _reply_chunk(chunk: str) -> Any:
            return await message.reply_text(chunk, **self._message_options())

        return await self._deliver(message.chat_id, content, _reply_chunk, trace_id)

    def _message_options(self) -> dict[str, Any]:
        return {
            "parse_mode": self._settings.telegram_parse_mode,
            "link_preview_options": LinkPreviewOptions(is_disabled=True),
        }

    async def _deliver(
        self,
        chat_id: int | str,
        content: str,
        send_chunk: Callable[[str], Awaitable[Any]],
        trace_id: str | None,
    ) -> SendReport:
        chunks = self.split(content)
        report = SendReport(
            chat_id=chat_id,
            chunk_count=len(chunks),
            trace_id=trace_id or uuid.uuid4().hex[:12],
        )
        for index, chunk in enumerate(chunks):
            if index and self._settings.send_chunk_delay_seconds > 0:
                await asyncio.sleep(self._settings.send_chunk_delay_seconds)
            try:
                await self._send_with_retry(send_chunk, chunk, report, index)
            except Exception as exc:
                logger.exception(
                    "chunk delivery failed",
                    extra={
                        "event": "chunk_send_error",
                        "trace_id": report.trace_id,
                        "chat_id": chat_id,
                        "chunk_index": index,
                        "chunk_count": report.chunk_count,
                        "status": "error",
                    },
                )
                raise ChunkDeliveryError(
                    f"chunk {index + 1}/{report.chunk_count} not delivered: {exc}",
                    report,
                ) from exc
            report.sent_count += 1

        logger.info(
            "chunked message delivered",
            extra={
                "event": "chunked_message_sent",
                "trace_id": report.trace_id,
                "chat_id": chat_id,
                "chunk_count": report.chunk_count,
                "status": "ok",
            },
        )
        return report

    async def _send_with_retry(
        self,
        send_chunk: Callable[[str], Awaitable[Any]],
        chunk: str,
        report: SendReport,
        index: int,
    ) -> None:
        attempts = max(1, self._settings.send_retry_limit)
        for attempt in range(1, attempts + 1):
            try:
                await send_chunk(chunk)
            except BadRequest:
                # BadRequest subclasses NetworkError and is never retried.
                raise
            except RetryAfter as exc:
                if attempt >= attempts:
                    raise
                delay = _retry_after_seconds(exc)
                self._log_retry(report, index, attempt, f"flood control, waiting {delay}s")
                await asyncio.sleep(delay)
            except NetworkError as exc:
                if attempt >= attempts:
                    raise
                self._log_retry(report, index, attempt, str(exc))
                await asyncio.sleep(self.RETRY_BACKOFF_SECONDS * attempt)
            else:
                logger.debug(
                    "chunk sent",
                    extra={
                        "event": "chunk_sent",
                        "trace_id": report.trace_id,
                        "chat_id": report.chat_id,
                        "chunk_index": index,
                        "chunk_count": report.chunk_count,
                        "chunk_length": len(chunk),
                        "attempt": attempt,
                    },
                )
                return

    def _log_retry(self, report: SendReport, index: int, attempt: int, reason: str) -> None:
        logger.warning(
            "retrying chunk delivery: %s",
            reason,
            extra={
                "event": "chunk_send_retry",
                "trace_id": report.trace_id,
                "chat_id": report.chat_id,
                "chunk_index": index,
                "attempt": attempt,
            },
        )


def _retry_after_seconds(exc: RetryAfter) -> float:
    value = exc.retry_after
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)
