"""Split long messages into size-bounded chunks without breaking code fences."""

from __future__ import annotations

from dataclasses import dataclass
import logging


logger = logging.getLogger(__name__)

CODE_FENCE = "```"


@dataclass(frozen=True)
class ChunkPolicy:
    """Search windows and overflow allowance used by ``split_message``.

    ``newline_window`` and ``space_window`` are measured backward from the
    candidate cut. ``fence_buffer`` is how far past the limit a chunk may grow
    to include the closing fence of a code block.
    """

    newline_window: int = 200
    space_window: int = 100
    fence_buffer: int = 500

    def __post_init__(self) -> None:
        for name in ("newline_window", "space_window", "fence_buffer"):
            if getattr(self, name) < 0:
                raise ValueError(f"Invalid {name}: must be zero or positive.")


DEFAULT_POLICY = ChunkPolicy()


def split_message(
    content: str | None,
    limit: int,
    policy: ChunkPolicy = DEFAULT_POLICY,
) -> list[str]:
    """Split ``content`` into chunks of at most ``limit`` characters.

    Cuts prefer the last newline, then the last space or tab, near the end of
    each window. When a cut would leave a fenced code block open, the chunk is
    extended up to ``limit + policy.fence_buffer`` to take in the closing
    fence, or pulled back to before the block starts. A block that neither
    fits nor can be avoided stays open in its chunk.

    Whitespace between chunks, and leading whitespace of content that needs
    splitting, is dropped, so no chunk is blank. Empty content gives an empty
    list.

    Raises:
        ValueError: if ``limit`` is not positive.
    """
    if limit <= 0:
        raise ValueError(f"Invalid limit {limit}: must be a positive integer.")

    text = content or ""
    chunks: list[str] = []
    while text:
        if len(text) <= limit:
            chunks.append(text)
            break

        # A cut inside leading whitespace would emit a blank chunk.
        head_stripped = text.lstrip()
        if len(head_stripped) != len(text):
            text = head_stripped
            continue

        msg_end = _natural_split(text[:limit], policy)
        if msg_end <= 0:
            msg_end = limit

        unclosed_idx = find_last_unclosed_code_block(text[:msg_end])
        if unclosed_idx >= 0:
            msg_end = _settle_code_block(text, limit, msg_end, unclosed_idx, policy)

        if msg_end <= 0:
            msg_end = limit

        chunks.append(text[:msg_end])
        text = text[msg_end:].strip()
    return chunks


def _natural_split(prefix: str, policy: ChunkPolicy) -> int:
    # Offset 0 is not a usable cut: it would emit an empty chunk.
    split_at = find_last_newline(prefix, policy.newline_window)
    if split_at <= 0:
        split_at = find_last_space(prefix, policy.space_window)
    return split_at


def _settle_code_block(
    text: str,
    limit: int,
    msg_end: int,
    unclosed_idx: int,
    policy: ChunkPolicy,
) -> int:
    extended_limit = limit + policy.fence_buffer
    if len(text) <= extended_limit:
        return len(text)

    closing_idx = find_next_closing_code_block(text, msg_end)
    if 0 < closing_idx <= extended_limit:
        logger.debug(
            "chunk extended to closing code fence",
            extra={"event": "chunk_fence_extended", "chunk_length": closing_idx},
        )
        return closing_idx

    split_at = _natural_split(text[:unclosed_idx], policy)
    if split_at <= 0:
        split_at = unclosed_idx
    logger.debug(
        "chunk cut before open code fence",
        extra={"event": "chunk_fence_retreat", "chunk_length": split_at},
    )
    return split_at


def find_last_unclosed_code_block(text: str) -> int:
    """Return the offset of the fence opening the still-open block, or -1.

    Fences are counted as raw non-overlapping ``` triples; an odd count means
    the last block is unclosed.
    """
    count = 0
    open_idx = -1
    pos = text.find(CODE_FENCE)
    while pos >= 0:
        if count % 2 == 0:
            open_idx = pos
        count += 1
        pos = text.find(CODE_FENCE, pos + len(CODE_FENCE))
    if count % 2 == 1:
        return open_idx
    return -1


def find_next_closing_code_block(text: str, start: int) -> int:
    """Return the offset just past the next fence at or after ``start``, or -1."""
    pos = text.find(CODE_FENCE, max(start, 0))
    if pos < 0:
        return -1
    return pos + len(CODE_FENCE)


def find_last_newline(text: str, window: int) -> int:
    start = max(len(text) - window, 0)
    return text.rfind("\n", start)


def find_last_space(text: str, window: int) -> int:
    start = max(len(text) - window, 0)
    return max(text.rfind(" ", start), text.rfind("\t", start))
