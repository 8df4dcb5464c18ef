"""Lexical scanning of raw text for address- and key-shaped hex runs.

A match is a fixed-length run of hex digits (optionally ``0x``-prefixed)
whose neighbours on both sides are not word characters. That boundary
rule keeps a 40-digit window inside a longer hex blob from matching.
"""

from __future__ import annotations

import bisect
import re
from collections.abc import Iterator
from dataclasses import dataclass

from defilens.constants import (
    ADDRESS_HEX_DIGITS,
    HEX_PREFIX,
    PRIVATE_KEY_HEX_DIGITS,
)

# ── Lexer rules ──────────────────────────────────────────

HEX_DIGIT_CLASS = "[0-9a-fA-F]"
# Characters that make up a hover word ("vitalik.eth" is one word).
HOVER_WORD_CHARS = frozenset(
    "0123456789"
    "abcdefghijklmnopqrstuvwxyz"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "."
)


def is_boundary(text: str, index: int) -> bool:
    """True if position ``index`` is outside the text or a non-word char."""
    if index < 0 or index >= len(text):
        return True
    ch = text[index]
    return not (ch.isascii() and (ch.isalnum() or ch == "_"))


@dataclass(frozen=True)
class ScanPattern:
    """A bounded run of ``digits`` hex digits."""

    name: str
    digits: int
    prefix: str | None = None
    prefix_optional: bool = False

    @property
    def regex(self) -> re.Pattern[str]:
        return _compile(self)


def _compile(pattern: ScanPattern) -> re.Pattern[str]:
    cached = _COMPILED.get(pattern)
    if cached is not None:
        return cached
    body = f"{HEX_DIGIT_CLASS}{{{pattern.digits}}}"
    if pattern.prefix:
        prefix = re.escape(pattern.prefix)
        body = (
            f"(?:{prefix})?{body}"
            if pattern.prefix_optional
            else f"{prefix}{body}"
        )
    compiled = re.compile(body)
    _COMPILED[pattern] = compiled
    return compiled


_COMPILED: dict[ScanPattern, re.Pattern[str]] = {}

ADDRESS_PATTERN = ScanPattern(
    name="address", digits=ADDRESS_HEX_DIGITS, prefix=HEX_PREFIX
)
PRIVATE_KEY_PATTERN = ScanPattern(
    name="private_key",
    digits=PRIVATE_KEY_HEX_DIGITS,
    prefix=HEX_PREFIX,
    prefix_optional=True,
)

# ── Coordinates ──────────────────────────────────────────


@dataclass(frozen=True, order=True)
class Position:
    """Zero-based line and UTF-16 column, as editors count them."""

    line: int
    character: int


@dataclass(frozen=True)
class Range:
    """Half-open range between two positions."""

    start: Position
    end: Position


def _utf16_len(text: str) -> int:
    return len(text.encode("utf-16-le")) // 2


class LineIndex:
    """Offset table for one document revision.

    Converts between string offsets and line/UTF-16 column positions.
    """

    def __init__(self, text: str) -> None:
        self._text = text
        self._line_starts = [0]
        for i, ch in enumerate(text):
            if ch == "\n":
                self._line_starts.append(i + 1)

    @property
    def text(self) -> str:
        return self._text

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    def position_at(self, offset: int) -> Position:
        offset = max(0, min(offset, len(self._text)))
        line = bisect.bisect_right(self._line_starts, offset) - 1
        line_start = self._line_starts[line]
        return Position(
            line=line,
            character=_utf16_len(self._text[line_start:offset]),
        )

    def offset_at(self, position: Position) -> int:
        """Inverse of ``position_at``; out-of-range values are clamped."""
        if position.line < 0:
            return 0
        if position.line >= len(self._line_starts):
            return len(self._text)
        start = self._line_starts[position.line]
        end = (
            self._line_starts[position.line + 1] - 1
            if position.line + 1 < len(self._line_starts)
            else len(self._text)
        )
        units = 0
        offset = start
        while offset < end and units < position.character:
            units += 2 if ord(self._text[offset]) > 0xFFFF else 1
            offset += 1
        return offset

    def range_of(self, start: int, end: int) -> Range:
        return Range(self.position_at(start), self.position_at(end))


# ── Spans ────────────────────────────────────────────────


@dataclass(frozen=True)
class TextSpan:
    """A matched substring and its coordinates in one revision."""

    start_offset: int
    end_offset: int
    range: Range
    raw_text: str


def iter_spans(
    text: str, pattern: ScanPattern, index: LineIndex | None = None
) -> Iterator[TextSpan]:
    """Lazily yield non-overlapping bounded matches, leftmost first.

    A raw match that touches a word character on either side is
    rejected and the search resumes one character later.
    """
    line_index = index or LineIndex(text)
    regex = pattern.regex
    pos = 0
    while True:
        m = regex.search(text, pos)
        if m is None:
            return
        start, end = m.span()
        if not (is_boundary(text, start - 1) and is_boundary(text, end)):
            pos = start + 1
            continue
        yield TextSpan(
            start_offset=start,
            end_offset=end,
            range=line_index.range_of(start, end),
            raw_text=m.group(0),
        )
        pos = end


def scan(
    text: str,
    pattern: ScanPattern,
    limit: int | None = None,
    index: LineIndex | None = None,
) -> list[TextSpan]:
    """Collect matches of ``pattern``, stopping after ``limit`` spans."""
    if limit is not None and limit <= 0:
        return []
    spans: list[TextSpan] = []
    for span in iter_spans(text, pattern, index):
        spans.append(span)
        if limit is not None and len(spans) >= limit:
            break
    return spans


def word_at(text: str, offset: int) -> tuple[str, int, int]:
    """Return the hover word touching ``offset`` and its bounds.

    Word characters are ASCII letters, digits and ``.``. Trailing dots
    close a sentence and are left out of the word. An empty word is
    returned when the cursor sits between two separators.
    """
    offset = max(0, min(offset, len(text)))
    start = offset
    while start > 0 and text[start - 1] in HOVER_WORD_CHARS:
        start -= 1
    end = offset
    while end < len(text) and text[end] in HOVER_WORD_CHARS:
        end += 1
    while end > start and text[end - 1] == ".":
        end -= 1
    return text[start:end], start, end
