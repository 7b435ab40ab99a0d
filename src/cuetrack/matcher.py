# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Stateless phrase matching of spoken fragments against a script index.

Candidates are scored by fuzzy match quality and by how close they are to
the current position, so a nearby occurrence of a phrase always beats an
identical occurrence further away. Only a window of the script around the
current position is searched: matching the whole script is what produces
false jumps on phrases that repeat elsewhere.
"""

import logging
from dataclasses import dataclass, field

from rapidfuzz.distance import Levenshtein

from .profiling import profile_function
from .script_index import ScriptIndex
from .text import tokenize_transcript

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchOptions:
    """Search configuration for find_matches."""
    radius: int = 50  # Words searched either side of the current position
    min_consecutive: int = 2  # Minimum transcript words needed to match
    window_size: int = 3  # Only the most recent words are matched
    distance_weight: float = 0.3  # Score lost at the edge of the radius
    fuzzy_threshold: float = 0.3  # Maximum normalized edit distance per word

    def __post_init__(self) -> None:
        if self.radius < 1:
            raise ValueError(f"radius must be at least 1, got {self.radius}")
        if self.min_consecutive < 1:
            raise ValueError(
                f"min_consecutive must be at least 1, got {self.min_consecutive}")
        if self.window_size < 1:
            raise ValueError(
                f"window_size must be at least 1, got {self.window_size}")
        if not 0.0 <= self.distance_weight <= 1.0:
            raise ValueError(
                f"distance_weight must be in [0, 1], got {self.distance_weight}")
        if not 0.0 <= self.fuzzy_threshold <= 1.0:
            raise ValueError(
                f"fuzzy_threshold must be in [0, 1], got {self.fuzzy_threshold}")


@dataclass(frozen=True)
class MatchCandidate:
    """A script location that the spoken window matched."""
    position: int  # Index of the last matched script word
    start_position: int  # Index of the first matched script word
    match_count: int
    match_quality: float  # 1.0 = every word exact, lower = fuzzier
    distance: int  # |position - current position|
    combined_score: float  # match_quality reduced by the distance penalty
    start_offset: int
    end_offset: int


@dataclass(frozen=True)
class MatchResult:
    """All candidates for one transcript, best first."""
    candidates: tuple[MatchCandidate, ...] = field(default_factory=tuple)

    @property
    def best_match(self) -> MatchCandidate | None:
        return self.candidates[0] if self.candidates else None


NO_MATCH = MatchResult()


def word_distance(spoken: str, scripted: str, threshold: float) -> float | None:
    """Normalized edit distance between two words, or None if too far apart."""
    if spoken == scripted:
        return 0.0
    distance: float = Levenshtein.normalized_distance(
        spoken, scripted, score_cutoff=threshold)
    return distance if distance <= threshold else None


@profile_function("matcher.find_matches")
def find_matches(
    transcript: str,
    script_index: ScriptIndex,
    current_position: int,
    options: MatchOptions | None = None
) -> MatchResult:
    """
    Find where the end of a transcript matches the script near a position.

    Every word of the transcript window must match the script consecutively
    (phrase matching); a single fuzzy miss rejects that start position.

    Args:
        transcript: Raw spoken text, interim or final
        script_index: Index of the script being read
        current_position: Confirmed position; clamped into the script
        options: Search configuration (defaults if None)

    Returns:
        MatchResult with candidates sorted by combined score
    """
    opts: MatchOptions = options or MatchOptions()

    spoken: list[str] = tokenize_transcript(transcript)
    if len(spoken) < opts.min_consecutive or not len(script_index):
        return NO_MATCH

    window: list[str] = spoken[-opts.window_size:]
    current: int = script_index.clamp(current_position)
    words: tuple[str, ...] = script_index.words

    search_start: int = max(0, current - opts.radius)
    search_end: int = min(len(words), current + opts.radius)
    last_start: int = search_end - len(window)

    # Per-call memo; the same script word is compared against the same
    # spoken word once per window slot regardless of how often it repeats
    memo: dict[tuple[int, str], float | None] = {}

    candidates: list[MatchCandidate] = []
    for start in range(search_start, last_start + 1):
        total_distance: float = 0.0
        for offset, spoken_word in enumerate(window):
            scripted: str = words[start + offset]
            key = (offset, scripted)
            if key in memo:
                distance = memo[key]
            else:
                distance = word_distance(spoken_word, scripted, opts.fuzzy_threshold)
                memo[key] = distance
            if distance is None:
                break
            total_distance += distance
        else:
            end: int = start + len(window) - 1
            match_quality: float = 1.0 - total_distance / len(window)
            distance_from_current: int = abs(end - current)
            distance_penalty: float = min(1.0, distance_from_current / opts.radius)
            combined_score: float = match_quality * \
                (1.0 - opts.distance_weight * distance_penalty)
            start_offset, end_offset = script_index.offsets_for(start, end)
            candidates.append(MatchCandidate(
                position=end,
                start_position=start,
                match_count=len(window),
                match_quality=match_quality,
                distance=distance_from_current,
                combined_score=combined_score,
                start_offset=start_offset,
                end_offset=end_offset,
            ))

    candidates.sort(key=lambda c: (-c.combined_score, c.distance, c.position))

    if candidates:
        logger.debug(
            "Matched %r at %d (score %.3f, %d candidates)",
            ' '.join(window), candidates[0].position,
            candidates[0].combined_score, len(candidates))

    return MatchResult(tuple(candidates))
