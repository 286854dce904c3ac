"""Split long messages into chunks that fit a chat transport's size limit."""

from message_chunker.chunker import (
    DEFAULT_POLICY,
    ChunkPolicy,
    find_last_newline,
    find_last_space,
    find_last_unclosed_code_block,
    find_next_closing_code_block,
    split_message,
)

__all__ = [
    "DEFAULT_POLICY",
    "ChunkPolicy",
    "find_last_newline",
    "find_last_space",
    "find_last_unclosed_code_block",
    "find_next_closing_code_block",
    "split_message",
]
