# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Highlight ranges and indexed HTML rendering for the text display.

Words are wrapped in indexed spans in the raw script before the Markdown
pass, so the spans line up with the character offsets of the script index
and survive emphasis, headings and lists.
"""

import html
from dataclasses import dataclass

import markdown

from .matcher import MatchCandidate
from .script_index import ScriptIndex


@dataclass(frozen=True)
class HighlightRange:
    """A character range of the raw script to highlight."""
    start_offset: int
    end_offset: int

    @classmethod
    def from_candidate(cls, candidate: MatchCandidate) -> 'HighlightRange':
        return cls(candidate.start_offset, candidate.end_offset)

    def contains(self, start_offset: int, end_offset: int) -> bool:
        """Check whether a word span overlaps this range."""
        return start_offset < self.end_offset and end_offset > self.start_offset


def phrase_range(
    script_index: ScriptIndex,
    word_index: int,
    phrase_length: int = 3
) -> HighlightRange | None:
    """Range of a short phrase centred on a word.

    Args:
        script_index: Index of the displayed script
        word_index: Word to centre on (clamped into the script)
        phrase_length: Number of words in the phrase

    Returns:
        The range, or None for an empty script
    """
    if not len(script_index):
        return None
    centre: int = script_index.clamp(word_index)
    half: int = max(0, phrase_length - 1) // 2
    start: int = script_index.clamp(centre - half)
    end: int = script_index.clamp(start + max(1, phrase_length) - 1)
    start_offset, end_offset = script_index.offsets_for(start, end)
    return HighlightRange(start_offset, end_offset)


def render_html(
    script_text: str,
    script_index: ScriptIndex,
    current: HighlightRange | None = None,
    read_until: int | None = None
) -> str:
    """Render a script to HTML with every indexed word in a span.

    Each span carries data-word-index (the first position for numerals
    that expand to several words). Words overlapping `current` get the
    "current" class, words before position `read_until` get "read".

    Args:
        script_text: The raw script the index was built from
        script_index: Index built from script_text
        current: Range to mark as the phrase being spoken
        read_until: Position before which words count as already read

    Returns:
        HTML produced by the Markdown renderer
    """
    parts: list[str] = []
    cursor: int = 0
    last_span: tuple[int, int] | None = None

    for entry in script_index:
        span = (entry.start_offset, entry.end_offset)
        if span == last_span:
            # Further words of an expanded numeral
            continue
        last_span = span

        classes: list[str] = ["word"]
        if current is not None and current.contains(*span):
            classes.append("current")
        if read_until is not None and entry.position < read_until:
            classes.append("read")

        parts.append(script_text[cursor:entry.start_offset])
        parts.append(
            f'<span class="{" ".join(classes)}" data-word-index="{entry.position}">'
            f'{html.escape(script_text[entry.start_offset:entry.end_offset], quote=False)}'
            '</span>')
        cursor = entry.end_offset

    parts.append(script_text[cursor:])

    return markdown.markdown(
        ''.join(parts),
        extensions=['nl2br', 'sane_lists']
    )
