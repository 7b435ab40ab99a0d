# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Tests for windowed phrase matching.
"""

import pytest

from cuetrack.matcher import (
    NO_MATCH,
    MatchCandidate,
    MatchOptions,
    MatchResult,
    find_matches,
    word_distance,
)
from cuetrack.script_index import ScriptIndex, build_script_index


def filler_script(length: int, phrases: dict[int, str]) -> ScriptIndex:
    """Script of unique filler words with phrases placed at given positions."""
    words: list[str] = [f"w{i}" for i in range(length)]
    for position, phrase in phrases.items():
        for offset, word in enumerate(phrase.split()):
            words[position + offset] = word
    return ScriptIndex.from_words(words)


class TestConcreteScenarios:
    """The reference scenarios for the matcher."""

    def test_four_score(self) -> None:
        """A phrase near the current position matches with a high score."""
        index: ScriptIndex = build_script_index("four score and seven years ago")
        result: MatchResult = find_matches("score and seven", index, 1)

        assert result.best_match is not None
        assert result.best_match.position == 3
        assert result.best_match.start_position == 1
        assert result.best_match.combined_score > 0.9

    def test_repeated_phrase_prefers_nearer(self) -> None:
        """Both occurrences are candidates; the nearer scores higher."""
        index: ScriptIndex = build_script_index(
            "test words here more words test words again")
        result: MatchResult = find_matches(
            "test words", index, 0, MatchOptions(radius=50))

        by_start: dict[int, MatchCandidate] = {
            c.start_position: c for c in result.candidates}
        assert set(by_start) == {0, 5}
        assert by_start[0].combined_score > by_start[5].combined_score
        assert result.best_match == by_start[0]


class TestMatchScoring:
    """Tests for candidate scores and offsets."""

    def test_exact_match_quality(self) -> None:
        index: ScriptIndex = build_script_index("four score and seven years ago")
        best = find_matches("score and seven", index, 1).best_match

        assert best is not None
        assert best.match_quality == 1.0
        assert best.match_count == 3
        assert best.distance == 2
        assert best.combined_score == pytest.approx(1.0 - 0.3 * (2 / 50))

    def test_fuzzy_word_accepted(self) -> None:
        """A small mis-recognition still matches, with lower quality."""
        index: ScriptIndex = build_script_index("we went to the store today")
        best = find_matches("to the stor", index, 0).best_match

        assert best is not None
        assert best.position == 4
        assert best.match_quality == pytest.approx(1.0 - 0.2 / 3)
        assert best.match_quality < 1.0

    def test_fuzzy_threshold_rejects_distant_words(self) -> None:
        """A single word beyond the threshold rejects the whole phrase."""
        index: ScriptIndex = build_script_index("we went to the store today")
        assert find_matches("to the shop", index, 0).best_match is None

    def test_looser_threshold_accepts_more(self) -> None:
        index: ScriptIndex = build_script_index("we are going to the store")
        strict = find_matches("to the stoor", index, 0)
        loose = find_matches(
            "to the stoor", index, 0, MatchOptions(fuzzy_threshold=0.45))

        assert strict.best_match is None
        assert loose.best_match is not None
        assert loose.best_match.position == 5

    def test_offsets_span_matched_words(self) -> None:
        text: str = "Four score, and seven years ago"
        index: ScriptIndex = build_script_index(text)
        best = find_matches("score and seven", index, 0).best_match

        assert best is not None
        assert text[best.start_offset:best.end_offset] == "score, and seven"

    def test_candidates_sorted_by_score(self) -> None:
        index: ScriptIndex = filler_script(100, {5: "alpha beta", 30: "alpha beta", 60: "alpha beta"})
        result = find_matches("alpha beta", index, 20, MatchOptions(radius=60))

        scores = [c.combined_score for c in result.candidates]
        assert len(scores) == 3
        assert scores == sorted(scores, reverse=True)


class TestWindowing:
    """Tests for transcript windowing and the search radius."""

    def test_only_recent_words_are_matched(self) -> None:
        """Older transcript words outside the window are ignored."""
        index: ScriptIndex = build_script_index(
            "the quick brown fox jumps over the lazy dog")
        best = find_matches(
            "something unrelated said earlier fox jumps over", index, 2).best_match

        assert best is not None
        assert best.start_position == 3
        assert best.position == 5

    def test_too_few_words(self) -> None:
        index: ScriptIndex = build_script_index("the quick brown fox")
        assert find_matches("quick", index, 0) is NO_MATCH

    def test_fillers_do_not_count(self) -> None:
        """Filler words don't count towards min_consecutive."""
        index: ScriptIndex = build_script_index("the quick brown fox")
        assert find_matches("um quick uh", index, 0).best_match is None
        assert find_matches("um quick uh brown", index, 0).best_match is not None

    def test_empty_transcript(self) -> None:
        index: ScriptIndex = build_script_index("the quick brown fox")
        assert find_matches("", index, 0).candidates == ()

    def test_empty_script(self) -> None:
        assert find_matches("the quick", ScriptIndex(()), 0) is NO_MATCH

    def test_outside_radius_not_found(self) -> None:
        """Only the window around the current position is searched."""
        index: ScriptIndex = filler_script(300, {10: "alpha beta gamma", 200: "alpha beta gamma"})
        result = find_matches("alpha beta gamma", index, 15)

        assert [c.start_position for c in result.candidates] == [10]

    def test_proximity_preference(self) -> None:
        """An identical phrase nearer the current position scores higher."""
        index: ScriptIndex = filler_script(300, {40: "alpha beta gamma", 120: "alpha beta gamma"})
        result = find_matches("alpha beta gamma", index, 50, MatchOptions(radius=100))

        by_start = {c.start_position: c for c in result.candidates}
        assert set(by_start) == {40, 120}
        assert by_start[40].combined_score > by_start[120].combined_score

    def test_current_position_clamped(self) -> None:
        """Out-of-range positions are clamped rather than rejected."""
        index: ScriptIndex = build_script_index("four score and seven years ago")
        high = find_matches("years ago", index, 1000)
        low = find_matches("four score", index, -20)

        assert high.best_match is not None and high.best_match.position == 5
        assert low.best_match is not None and low.best_match.position == 1

    def test_phrase_at_end_of_script(self) -> None:
        index: ScriptIndex = build_script_index("one two three four five")
        best = find_matches("four five", index, 3).best_match
        assert best is not None
        assert best.position == 4


class TestDeterminism:
    """Matching is a pure function of its inputs."""

    def test_repeated_calls_identical(self) -> None:
        index: ScriptIndex = filler_script(500, {100: "alpha beta gamma", 140: "alpha beta gamma"})
        first = find_matches("alpha beta gamma", index, 120)
        second = find_matches("alpha beta gamma", index, 120)

        assert first == second
        assert first.best_match is not None
        assert first.best_match.position == second.best_match.position
        assert first.best_match.combined_score == second.best_match.combined_score

    def test_equal_scores_prefer_earlier_position(self) -> None:
        """Equidistant identical phrases are ordered by position."""
        index: ScriptIndex = filler_script(100, {40: "alpha beta", 58: "alpha beta"})
        result = find_matches("alpha beta", index, 50)

        assert [c.start_position for c in result.candidates] == [40, 58]


class TestWordDistance:
    """Tests for the per-word distance helper."""

    def test_exact(self) -> None:
        assert word_distance("store", "store", 0.3) == 0.0

    def test_within_threshold(self) -> None:
        assert word_distance("stor", "store", 0.3) == pytest.approx(0.2)

    def test_beyond_threshold(self) -> None:
        assert word_distance("shop", "store", 0.3) is None


class TestMatchOptionsValidation:
    """Invalid options fail at construction."""

    @pytest.mark.parametrize("kwargs", [
        {"radius": 0},
        {"radius": -5},
        {"min_consecutive": 0},
        {"window_size": 0},
        {"distance_weight": 1.5},
        {"fuzzy_threshold": -0.1},
    ])
    def test_invalid(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            MatchOptions(**kwargs)
