# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Position tracker: the single owner of the speaker's confirmed position.

Receives the best match candidate for each transcript and decides whether
it becomes the new truth. Nearby candidates are accepted immediately;
candidates further ahead ("skips") need a streak of consecutive supporting
matches, longer for larger skips. The confirmed position only ever moves
forward through matching; going backwards requires an explicit jump_to().
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from .matcher import MatchCandidate

logger = logging.getLogger(__name__)


class TrackingAction(str, Enum):
    """Outcome of processing one match candidate."""
    ADVANCED = "advanced"
    HOLD = "hold"
    EXPLORING = "exploring"


@dataclass(frozen=True)
class TrackerOptions:
    """Confirmation rules for the position tracker."""
    confidence_threshold: float = 0.7  # Minimum combined score to consider
    nearby_threshold: int = 10  # Advances up to this distance are immediate
    small_skip_consecutive: int = 4  # Streak needed up to large_skip_threshold
    large_skip_consecutive: int = 5  # Streak needed beyond it
    large_skip_threshold: int = 50
    consecutive_gap: int = 2  # Allowed word gap between streak matches

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError(
                f"confidence_threshold must be in [0, 1], got {self.confidence_threshold}")
        if self.nearby_threshold < 0:
            raise ValueError(
                f"nearby_threshold must be non-negative, got {self.nearby_threshold}")
        if self.large_skip_threshold < self.nearby_threshold:
            raise ValueError(
                "large_skip_threshold must not be smaller than nearby_threshold")
        if self.small_skip_consecutive < 1 or self.large_skip_consecutive < 1:
            raise ValueError("skip confirmation counts must be at least 1")
        if self.consecutive_gap < 0:
            raise ValueError(
                f"consecutive_gap must be non-negative, got {self.consecutive_gap}")


@dataclass(frozen=True)
class ProcessResult:
    """What process_match did, plus the streak while exploring a skip."""
    action: TrackingAction
    confirmed_position: int
    candidate_position: int | None = None
    consecutive_count: int | None = None
    required_count: int | None = None


@dataclass(frozen=True)
class TrackerState:
    """Snapshot of the tracker for debugging and display."""
    confirmed_position: int
    streak_position: int | None
    streak_count: int
    last_advance_time: float | None


class PositionTracker:
    """
    Stateful, forward-only position tracker.

    Usage:
        tracker = PositionTracker()
        result = tracker.process_match(find_matches(text, index, tracker.confirmed_position).best_match)
        if result.action is TrackingAction.ADVANCED:
            scroll_to(result.confirmed_position)
    """

    def __init__(
        self,
        options: TrackerOptions | None = None,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.options: TrackerOptions = options or TrackerOptions()
        self._clock: Callable[[], float] = clock

        self._confirmed_position: int = 0
        # End position of the latest candidate in the current skip streak
        self._streak_position: int | None = None
        self._streak_count: int = 0
        self._last_advance_time: float | None = None

    @property
    def confirmed_position(self) -> int:
        """The confirmed word position (the scroll boundary)."""
        return self._confirmed_position

    @property
    def scroll_boundary(self) -> int:
        """Alias of confirmed_position: displays may scroll up to here, not past."""
        return self._confirmed_position

    @property
    def state(self) -> TrackerState:
        return TrackerState(
            confirmed_position=self._confirmed_position,
            streak_position=self._streak_position,
            streak_count=self._streak_count,
            last_advance_time=self._last_advance_time,
        )

    def get_required_consecutive(self, distance: int) -> int:
        """Consecutive matches needed to accept a candidate this far ahead."""
        if distance <= self.options.nearby_threshold:
            return 1
        if distance <= self.options.large_skip_threshold:
            return self.options.small_skip_consecutive
        return self.options.large_skip_consecutive

    def is_consecutive_match(self, candidate: MatchCandidate) -> bool:
        """Check whether a candidate continues the current skip streak.

        The candidate must overlap or follow the previous streak match
        within consecutive_gap words, and must not end before it. Re-matches
        of the same phrase and word-by-word progress both qualify.
        """
        if self._streak_position is None:
            return False
        if candidate.position < self._streak_position:
            return False
        return candidate.start_position <= self._streak_position + self.options.consecutive_gap

    def _reset_streak(self) -> None:
        self._streak_position = None
        self._streak_count = 0

    def _advance(self, position: int) -> ProcessResult:
        logger.debug("Advanced %d -> %d", self._confirmed_position, position)
        self._confirmed_position = position
        self._last_advance_time = self._clock()
        self._reset_streak()
        return ProcessResult(TrackingAction.ADVANCED, position)

    def _hold(self) -> ProcessResult:
        return ProcessResult(TrackingAction.HOLD, self._confirmed_position)

    def process_match(self, candidate: MatchCandidate | None) -> ProcessResult:
        """
        Decide whether a match candidate moves the confirmed position.

        Rules, in order:
        1. No candidate, or score below confidence_threshold: hold
        2. Candidate at or behind the confirmed position: hold
        3. Candidate within nearby_threshold words ahead: advance
        4. Otherwise a skip: advance only once enough consecutive
           candidates have supported it, exploring until then

        Args:
            candidate: Best match from find_matches, or None

        Returns:
            ProcessResult describing the action taken
        """
        if candidate is None:
            return self._hold()

        if candidate.combined_score < self.options.confidence_threshold:
            return self._hold()

        if candidate.position <= self._confirmed_position:
            return self._hold()

        distance: int = candidate.position - self._confirmed_position
        required: int = self.get_required_consecutive(distance)

        if required == 1:
            return self._advance(candidate.position)

        if self.is_consecutive_match(candidate):
            self._streak_count += 1
        else:
            self._streak_count = 1
        self._streak_position = candidate.position

        if self._streak_count >= required:
            logger.debug("Skip confirmed after %d consecutive matches", self._streak_count)
            return self._advance(candidate.position)

        logger.debug(
            "Exploring skip to %d (%d/%d)",
            candidate.position, self._streak_count, required)
        return ProcessResult(
            action=TrackingAction.EXPLORING,
            confirmed_position=self._confirmed_position,
            candidate_position=candidate.position,
            consecutive_count=self._streak_count,
            required_count=required,
        )

    def jump_to(self, position: int) -> None:
        """Explicitly move the confirmed position (either direction).

        This is the only way the confirmed position can move backwards; it
        is meant for user navigation, never for matching results.
        """
        if position < 0:
            raise ValueError(f"Cannot jump to negative position {position}")
        logger.debug("Jump %d -> %d", self._confirmed_position, position)
        self._confirmed_position = position
        self._reset_streak()

    def reset(self) -> None:
        """Reset to the start of the script (script reload or restart)."""
        self._confirmed_position = 0
        self._last_advance_time = None
        self._reset_streak()
