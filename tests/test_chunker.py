from __future__ import annotations

import pytest

from message_chunker.chunker import (
    ChunkPolicy,
    find_last_newline,
    find_last_space,
    find_last_unclosed_code_block,
    find_next_closing_code_block,
    split_message,
)


def _visible(text: str) -> str:
    return "".join(text.split())


def _sample_prose() -> str:
    lines = []
    for line_no in range(60):
        words = [f"word{line_no}_{idx}" for idx in range(7)]
        lines.append(" ".join(words))
    return "\n".join(lines)


def test_short_message_returns_single_chunk() -> None:
    content = "a" * 50
    assert split_message(content, 100) == [content]


def test_message_exactly_at_limit_is_not_split() -> None:
    content = "a" * 100
    assert split_message(content, 100) == [content]


def test_empty_message_returns_no_chunks() -> None:
    assert split_message("", 100) == []
    assert split_message(None, 100) == []


@pytest.mark.parametrize("limit", [0, -1, -100])
def test_non_positive_limit_is_rejected(limit: int) -> None:
    with pytest.raises(ValueError, match="limit"):
        split_message("hello", limit)


def test_prefers_newline_inside_window() -> None:
    content = "line1\n" + "x" * 300
    chunks = split_message(content, 100)
    assert chunks == ["line1", "x" * 100, "x" * 100, "x" * 100]


def test_newline_outside_window_is_ignored() -> None:
    content = "a\n" + "b" * 400
    chunks = split_message(content, 300)
    assert chunks == ["a\n" + "b" * 298, "b" * 102]


def test_splits_on_space_boundary() -> None:
    chunks = split_message("alpha beta gamma delta", 10)
    assert chunks == ["alpha", "beta", "gamma", "delta"]


def test_hard_cut_when_no_boundary() -> None:
    content = "abcdefghijklmnop"
    chunks = split_message(content, 5)
    assert chunks == ["abcde", "fghij", "klmno", "p"]
    assert "".join(chunks) == content


def test_whitespace_between_chunks_is_trimmed() -> None:
    chunks = split_message("first line\n   second line", 15)
    assert chunks == ["first line", "second line"]


def test_leading_whitespace_before_long_word_is_dropped() -> None:
    chunks = split_message(" " * 50 + "x" * 200, 100)
    assert chunks == ["x" * 100, "x" * 100]


def test_leading_whitespace_before_oversized_fence_is_dropped() -> None:
    content = "  ```py\n" + "x = 1\n" * 300 + "```\ntail"
    chunks = split_message(content, 100)
    assert chunks[0].startswith("```py\n")
    assert all(chunk.strip() for chunk in chunks)
    assert _visible("".join(chunks)) == _visible(content)


def test_short_message_keeps_leading_whitespace() -> None:
    assert split_message("   padded", 100) == ["   padded"]


def test_whitespace_only_content_over_limit_gives_no_chunks() -> None:
    assert split_message(" \n\t" * 50, 10) == []


@pytest.mark.parametrize(
    "content",
    [
        " " * 50 + "x" * 200,
        "\n\n\n" + "word " * 80,
        "\t  ```py\n" + "x = 1\n" * 300 + "```\ntail",
        "intro\n\n\n\n" + " " * 150 + "```\n" + "y\n" * 400 + "```",
    ],
)
def test_no_chunk_is_blank_after_trimming(content: str) -> None:
    chunks = split_message(content, 100)
    assert chunks
    assert all(chunk.strip() for chunk in chunks)


@pytest.mark.parametrize("limit", [20, 57, 100, 333])
def test_plain_text_chunks_respect_limit_and_keep_content(limit: int) -> None:
    content = _sample_prose()
    chunks = split_message(content, limit)
    assert len(chunks) > 1
    assert all(chunk.strip() for chunk in chunks)
    assert all(len(chunk) <= limit for chunk in chunks)
    assert _visible("".join(chunks)) == _visible(content)


def test_fence_buffer_has_no_effect_without_fences() -> None:
    content = _sample_prose()
    assert split_message(content, 90, ChunkPolicy(fence_buffer=0)) == split_message(
        content, 90
    )


def test_chunk_extends_to_include_closing_fence() -> None:
    prefix = "word " * 52
    block = "```lang\n" + "code line\n" * 59 + "```"
    suffix = "\n" + "tail words " * 100
    content = prefix + block + suffix

    chunks = split_message(content, 500)

    assert chunks[0] == prefix + block
    assert len(chunks[0]) <= 500 + 500
    assert all(find_last_unclosed_code_block(chunk) == -1 for chunk in chunks)
    assert _visible("".join(chunks)) == _visible(content)


def test_split_retreats_before_oversized_code_block() -> None:
    prefix = "word " * 52
    block = "```lang\n" + "code line\n" * 299 + "```"
    suffix = "\n" + "tail words " * 100
    content = prefix + block + suffix

    chunks = split_message(content, 500)

    assert chunks[0] == prefix.rstrip()
    assert "```" not in chunks[0]
    assert chunks[1].startswith("```lang\n")
    assert all(len(chunk) <= 500 + 500 for chunk in chunks)
    assert _visible("".join(chunks)) == _visible(content)


def test_remaining_content_within_fence_buffer_stays_whole() -> None:
    content = "intro text ```py\n" + "x = 1\n" * 100 + "```"
    assert 300 < len(content) <= 300 + 500
    assert split_message(content, 300) == [content]


def test_source_fence_that_never_closes_stays_open_in_last_chunk() -> None:
    content = "intro\n```py\n" + "x = 1\n" * 80
    chunks = split_message(content, 300)
    assert chunks == [content]
    assert find_last_unclosed_code_block(chunks[0]) == 6


def test_unbalanced_fences_still_terminate() -> None:
    content = "intro\n```python\n" + "print('x')\n" * 400 + "``` stray ```" + " end" * 50
    chunks = split_message(content, 200)
    assert chunks
    assert all(chunk for chunk in chunks)
    assert all(len(chunk) <= 200 + 500 for chunk in chunks)
    assert _visible("".join(chunks)) == _visible(content)


def test_custom_newline_window() -> None:
    content = "a\n" + "b" * 20
    assert split_message(content, 10)[0] == "a"
    narrow = ChunkPolicy(newline_window=5, space_window=5)
    assert split_message(content, 10, narrow)[0] == "a\n" + "b" * 8


def test_policy_rejects_negative_values() -> None:
    with pytest.raises(ValueError, match="fence_buffer"):
        ChunkPolicy(fence_buffer=-1)


def test_find_last_unclosed_code_block() -> None:
    assert find_last_unclosed_code_block("no fences here") == -1
    assert find_last_unclosed_code_block("```py\ncode\n```") == -1
    assert find_last_unclosed_code_block("text ```py\ncode") == 5
    assert find_last_unclosed_code_block("```a``` ```b") == 8


def test_find_last_unclosed_code_block_counts_non_overlapping_triples() -> None:
    assert find_last_unclosed_code_block("````") == 0
    assert find_last_unclosed_code_block("``````") == -1


def test_find_next_closing_code_block() -> None:
    text = "```py\nx\n```\nafter"
    assert find_next_closing_code_block(text, 0) == 3
    assert find_next_closing_code_block(text, 3) == 11
    assert find_next_closing_code_block(text, 11) == -1
    assert find_next_closing_code_block("no fence", 0) == -1


def test_find_last_newline_searches_trailing_window_only() -> None:
    assert find_last_newline("abc\ndef", 3) == -1
    assert find_last_newline("abc\ndef", 4) == 3
    assert find_last_newline("abc\ndef\n", 200) == 7
    assert find_last_newline("", 10) == -1


def test_find_last_space_matches_space_and_tab() -> None:
    assert find_last_space("one two\tthree", 100) == 7
    assert find_last_space("one two", 2) == -1
    assert find_last_space("one two", 4) == 3
