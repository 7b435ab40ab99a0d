# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Script index: the ordered list of normalized script words with the
character offsets they came from.

Built once per script and never mutated. The matcher searches it and the
highlighting layer uses the offsets to mark text in the original script.
"""

import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

from .text import TOKEN_PATTERN, token_words

# First word character through the last one ("**bold**," -> "bold")
_WORD_SPAN = re.compile(r'\w(?:.*\w)?', re.DOTALL)


class ScriptIndexError(ValueError):
    """Raised when a script index violates its ordering invariants."""


@dataclass(frozen=True)
class WordEntry:
    """A single normalized script word."""
    word: str
    position: int
    start_offset: int  # Character offset of the first word character
    end_offset: int  # Character offset one past the last word character


@dataclass(frozen=True)
class ScriptIndex:
    """Immutable, validated sequence of script words.

    Positions must be contiguous from 0 and offsets must never go
    backwards. Violations raise ScriptIndexError immediately, since they
    mean the index was built by buggy integration code.
    """
    entries: tuple[WordEntry, ...]
    words: tuple[str, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        entries = tuple(self.entries)
        previous_start = 0
        for expected, entry in enumerate(entries):
            if entry.position != expected:
                raise ScriptIndexError(
                    f"Script index positions must be contiguous: expected "
                    f"position {expected}, got {entry.position} ({entry.word!r})")
            if not entry.word:
                raise ScriptIndexError(
                    f"Script index entry {expected} has an empty word")
            if entry.start_offset < 0 or entry.end_offset < entry.start_offset:
                raise ScriptIndexError(
                    f"Script index entry {expected} has an invalid offset range "
                    f"[{entry.start_offset}, {entry.end_offset})")
            if entry.start_offset < previous_start:
                raise ScriptIndexError(
                    f"Script index offsets must be non-decreasing: entry "
                    f"{expected} starts at {entry.start_offset} after "
                    f"{previous_start}")
            previous_start = entry.start_offset
        object.__setattr__(self, 'entries', entries)
        object.__setattr__(self, 'words', tuple(e.word for e in entries))

    @classmethod
    def from_words(cls, words: Sequence[str]) -> 'ScriptIndex':
        """Build an index from pre-normalized words joined by single spaces."""
        entries: list[WordEntry] = []
        offset = 0
        for position, word in enumerate(words):
            entries.append(WordEntry(word, position, offset, offset + len(word)))
            offset += len(word) + 1
        return cls(tuple(entries))

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, position: int) -> WordEntry:
        return self.entries[position]

    def __iter__(self) -> Iterator[WordEntry]:
        return iter(self.entries)

    def clamp(self, position: int) -> int:
        """Clamp a position into [0, N-1] (0 for an empty index)."""
        if not self.entries:
            return 0
        return max(0, min(position, len(self.entries) - 1))

    def offsets_for(self, start_position: int, end_position: int) -> tuple[int, int]:
        """Character range covering the words start_position..end_position."""
        start_position = self.clamp(start_position)
        end_position = self.clamp(end_position)
        if not self.entries:
            return 0, 0
        return (self.entries[start_position].start_offset,
                self.entries[end_position].end_offset)


def _word_span(token: str) -> tuple[int, int]:
    """Span of the word characters inside a raw token."""
    match = _WORD_SPAN.search(token)
    if match is None:
        return 0, len(token)
    return match.start(), match.end()


def build_script_index(script_text: str) -> ScriptIndex:
    """Tokenize a script into a ScriptIndex.

    Each token contributes one entry per spoken word; numerals that expand
    to several words ("1984" -> nineteen eighty four) produce several
    entries sharing the numeral's offsets. Markdown markers and pure
    punctuation contribute nothing.

    Args:
        script_text: The raw script (plain text or Markdown)

    Returns:
        The validated script index
    """
    entries: list[WordEntry] = []
    for match in TOKEN_PATTERN.finditer(script_text):
        words: list[str] = token_words(match.group(0))
        if not words:
            continue
        span_start, span_end = _word_span(match.group(0))
        start: int = match.start() + span_start
        end: int = match.start() + span_end
        for word in words:
            entries.append(WordEntry(word, len(entries), start, end))
    return ScriptIndex(tuple(entries))
