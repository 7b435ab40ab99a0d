# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Velocity-based scroll control for the teleprompter display.

The display scrolls continuously at a speed derived from the speaker's
observed pace, plus a proportional correction towards the scroll offset of
the confirmed position. Integration uses elapsed time rather than frame
counts, so 30 Hz and 60 Hz ticks land in the same place. The display never
moves past the confirmed position.
"""

import asyncio
import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)


class ScrollState(str, Enum):
    """Presentation state: only says whether confirmations keep arriving."""
    TRACKING = "tracking"
    HOLDING = "holding"
    STOPPED = "stopped"


class PositionSource(Protocol):
    """Anything exposing a confirmed word position (the PositionTracker)."""

    @property
    def confirmed_position(self) -> int: ...


@dataclass
class Viewport:
    """Geometry of the scrollable container owned by the rendering layer.

    The content carries top and bottom padding of half the viewport height
    so the first and last words can reach the caret line.
    """
    scroll_height: float
    client_height: float

    @property
    def max_scroll(self) -> float:
        return max(0.0, self.scroll_height - self.client_height)


@dataclass(frozen=True)
class ScrollOptions:
    """Tuning for the scroll controller."""
    caret_percent: float = 33.0  # Caret line as % from the viewport top
    hold_timeout_ms: float = 5000.0  # Silence before switching to holding
    correction_gain: float = 1.5  # px/s of correction per px of error
    max_correction_speed: float = 200.0  # px/s
    sync_deadband: float = 15.0  # px of error ignored by the correction
    correction_smoothing: float = 3.0  # Correction response rate (1/s)
    min_pace: float = 0.5  # words/s
    max_pace: float = 10.0  # words/s
    default_pace: float = 2.5  # words/s (~150 wpm)
    catch_up_multiplier: float = 3.0
    catch_up_distance: int = 10  # Advances larger than this trigger catch-up
    hold_decay_rate: float = 0.5  # Base speed decay while holding (1/s)
    max_frame_gap_ms: float = 100.0  # Longer gaps are stalls, not frames
    pace_gap_s: float = 5.0  # Longer gaps are pauses, not pace samples

    def __post_init__(self) -> None:
        if not 0.0 <= self.caret_percent <= 100.0:
            raise ValueError(
                f"caret_percent must be in [0, 100], got {self.caret_percent}")
        if not 0.0 < self.min_pace <= self.default_pace <= self.max_pace:
            raise ValueError(
                "paces must satisfy 0 < min_pace <= default_pace <= max_pace")
        if self.sync_deadband < 0 or self.max_correction_speed < 0:
            raise ValueError("sync_deadband and max_correction_speed must be non-negative")
        if self.hold_timeout_ms <= 0 or self.max_frame_gap_ms <= 0 or self.pace_gap_s <= 0:
            raise ValueError("timeouts and gaps must be positive")
        if self.catch_up_multiplier < 1:
            raise ValueError(
                f"catch_up_multiplier must be at least 1, got {self.catch_up_multiplier}")


@dataclass(frozen=True)
class ControllerState:
    """Snapshot of the controller's presentation numbers."""
    state: ScrollState
    speaking_pace: float
    is_catching_up: bool
    current_scroll_top: float
    target_scroll_top: float
    last_position_time: float | None

    @property
    def is_tracking(self) -> bool:
        return self.state is ScrollState.TRACKING

    @property
    def is_holding(self) -> bool:
        return self.state is ScrollState.HOLDING

    @property
    def is_stopped(self) -> bool:
        return self.state is ScrollState.STOPPED


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class ScrollController:
    """
    Drives a scroll offset that follows the confirmed speech position.

    Usage:
        controller = ScrollController(viewport, tracker, len(index))
        controller.start()
        # On every 'advanced' result from the tracker:
        controller.on_position_advanced(new_position, old_position)
        # From the animation schedule:
        controller.tick(timestamp_ms)
        render(controller.current_scroll_top)
    """

    def __init__(
        self,
        viewport: Viewport,
        position_source: PositionSource,
        total_words: int,
        options: ScrollOptions | None = None,
        on_state_change: Callable[[ScrollState], None] | None = None,
        clock: Callable[[], float] | None = None
    ) -> None:
        """
        Args:
            viewport: Container geometry (read on every computation)
            position_source: Owner of the confirmed position; only read
            total_words: Number of words in the script
            options: Tuning (defaults if None)
            on_state_change: Called with the new state on every transition
            clock: Millisecond clock for advance timestamps
        """
        if total_words < 0:
            raise ValueError(f"total_words must be non-negative, got {total_words}")
        self.viewport: Viewport = viewport
        self.position_source: PositionSource = position_source
        self.total_words: int = total_words
        self.options: ScrollOptions = options or ScrollOptions()
        self.on_state_change: Callable[[ScrollState], None] | None = on_state_change
        self._clock: Callable[[], float] = clock or _monotonic_ms

        self.caret_percent: float = self.options.caret_percent
        self._state: ScrollState = ScrollState.STOPPED

        self.speaking_pace: float = self.options.default_pace
        self.is_catching_up: bool = False
        self.current_scroll_top: float = self.position_to_scroll_top(0)
        self.target_scroll_top: float = self.current_scroll_top

        self._last_position: int = 0
        self.last_position_time: float | None = None
        self._last_timestamp: float | None = None
        self._last_advance_time: float = 0.0
        self._hold_started: float | None = None
        self._smoothed_correction: float = 0.0

    # State machine

    @property
    def scroll_state(self) -> ScrollState:
        return self._state

    @property
    def state(self) -> ControllerState:
        return ControllerState(
            state=self._state,
            speaking_pace=self.speaking_pace,
            is_catching_up=self.is_catching_up,
            current_scroll_top=self.current_scroll_top,
            target_scroll_top=self.target_scroll_top,
            last_position_time=self.last_position_time,
        )

    def _set_state(self, new_state: ScrollState) -> None:
        if new_state is self._state:
            return
        logger.debug("Scroll state %s -> %s", self._state.value, new_state.value)
        self._state = new_state
        if self.on_state_change is not None:
            self.on_state_change(new_state)

    def start(self, timestamp_ms: float | None = None) -> None:
        """Start following; the next tick measures time from here."""
        now: float = self._clock() if timestamp_ms is None else timestamp_ms
        self._last_timestamp = now
        self._last_advance_time = now
        self._hold_started = None
        self._set_state(ScrollState.TRACKING)

    def stop(self) -> None:
        """Stop following; ticks are ignored and run() returns."""
        self._set_state(ScrollState.STOPPED)

    @property
    def last_frame_time(self) -> float | None:
        """Timestamp of the latest start() or tick(), in the caller's time base."""
        return self._last_timestamp

    def _event_time(self) -> float:
        # Advances must share the frame time base or the hold timeout breaks
        if self._state is not ScrollState.STOPPED and self._last_timestamp is not None:
            return self._last_timestamp
        return self._clock()

    # Geometry

    def _padding(self) -> float:
        return self.viewport.client_height * 0.5

    def pixels_per_word(self) -> float:
        """Pixels of content per script word (0 when there are no words)."""
        if self.total_words == 0:
            return 0.0
        content_height: float = self.viewport.scroll_height - 2 * self._padding()
        return max(0.0, content_height) / self.total_words

    def position_to_scroll_top(self, word_index: float) -> float:
        """
        Scroll offset that puts a word on the caret line.

        Args:
            word_index: Word position (fractional values interpolate)

        Returns:
            Offset clamped to [0, max_scroll]; 0 for non-scrollable
            containers or empty scripts
        """
        max_scroll: float = self.viewport.max_scroll
        if max_scroll <= 0 or self.total_words == 0:
            return 0.0

        word_y: float = self._padding() + word_index * self.pixels_per_word()
        caret_offset: float = (self.caret_percent / 100.0) * self.viewport.client_height
        return max(0.0, min(max_scroll, word_y - caret_offset))

    def set_caret_percent(self, percent: float) -> None:
        """Move the caret line (clamped to 10-90%); correction re-syncs the view."""
        self.caret_percent = max(10.0, min(90.0, percent))

    # Pace

    def update_pace(self, new_position: int, timestamp_ms: float) -> None:
        """
        Fold a position change into the smoothed speaking pace.

        Zero or backward deltas and gaps of pace_gap_s or more (pauses) are
        not pace samples. Samples are clamped to [min_pace, max_pace] and
        blended 70% old / 30% new.
        """
        opts = self.options
        if self.last_position_time is not None and new_position > self._last_position:
            elapsed_s: float = (timestamp_ms - self.last_position_time) / 1000.0
            if 0 < elapsed_s < opts.pace_gap_s:
                instant: float = (new_position - self._last_position) / elapsed_s
                instant = max(opts.min_pace, min(opts.max_pace, instant))
                self.speaking_pace = self.speaking_pace * 0.7 + instant * 0.3

        self._last_position = new_position
        self.last_position_time = timestamp_ms

    def base_speed(self) -> float:
        """Scroll speed in px/s implied by the speaking pace."""
        return self.speaking_pace * self.pixels_per_word()

    # Events

    def on_position_advanced(
        self,
        new_position: int,
        old_position: int,
        timestamp_ms: float | None = None
    ) -> None:
        """
        Notify the controller that the tracker confirmed a new position.

        Args:
            new_position: New confirmed position
            old_position: Confirmed position before the advance
            timestamp_ms: Event time (defaults to the latest frame time while
                running, otherwise the controller clock)
        """
        now: float = self._event_time() if timestamp_ms is None else timestamp_ms
        self.update_pace(new_position, now)
        self.target_scroll_top = self.position_to_scroll_top(new_position)

        if new_position - old_position > self.options.catch_up_distance:
            logger.debug("Catch-up after skip %d -> %d", old_position, new_position)
            self.is_catching_up = True

        self._last_advance_time = now
        if self._state is ScrollState.HOLDING:
            self._hold_started = None
            self._set_state(ScrollState.TRACKING)

    def jump_to(self, word_index: int) -> None:
        """Re-sync after an explicit navigation command."""
        self._last_position = word_index
        self.last_position_time = None
        self.target_scroll_top = self.position_to_scroll_top(word_index)
        self.is_catching_up = True
        self._smoothed_correction = 0.0

    def tick(self, timestamp_ms: float) -> float:
        """
        Advance the scroll position to the given frame time.

        Args:
            timestamp_ms: Frame timestamp from the animation schedule

        Returns:
            The new current_scroll_top
        """
        if self._state is ScrollState.STOPPED:
            return self.current_scroll_top

        opts = self.options
        previous: float | None = self._last_timestamp
        self._last_timestamp = timestamp_ms

        if (self._state is ScrollState.TRACKING
                and timestamp_ms - self._last_advance_time > opts.hold_timeout_ms):
            self._hold_started = timestamp_ms
            self._set_state(ScrollState.HOLDING)

        if previous is None:
            return self.current_scroll_top
        elapsed_ms: float = timestamp_ms - previous
        # A stalled frame would otherwise produce one large jump
        if elapsed_ms <= 0 or elapsed_ms > opts.max_frame_gap_ms:
            return self.current_scroll_top
        dt: float = elapsed_ms / 1000.0

        target: float = self.position_to_scroll_top(self.position_source.confirmed_position)
        self.target_scroll_top = target
        current: float = self.current_scroll_top
        error: float = target - current

        speed: float = self.base_speed()
        if error < -opts.sync_deadband:
            # Ahead of the target (backward jump, caret move): correction alone pulls back
            speed = 0.0
        elif self._state is ScrollState.HOLDING and self._hold_started is not None:
            holding_s: float = (timestamp_ms - self._hold_started) / 1000.0
            speed *= math.exp(-opts.hold_decay_rate * holding_s)

        if self.is_catching_up:
            speed *= opts.catch_up_multiplier
            if abs(error) < opts.sync_deadband * 2:
                self.is_catching_up = False

        target_correction: float = 0.0
        if abs(error) > opts.sync_deadband:
            target_correction = error * opts.correction_gain
            target_correction = max(-opts.max_correction_speed,
                                    min(opts.max_correction_speed, target_correction))

        smoothing: float = 1.0 - math.exp(-opts.correction_smoothing * dt)
        self._smoothed_correction += (target_correction - self._smoothed_correction) * smoothing

        velocity: float = speed + self._smoothed_correction
        new_scroll: float = current + velocity * dt
        if velocity > 0:
            # Never run ahead of the confirmed position
            new_scroll = min(new_scroll, max(target, current))
        new_scroll = max(0.0, min(self.viewport.max_scroll, new_scroll))

        self.current_scroll_top = new_scroll
        return new_scroll

    async def run(self, interval_s: float = 1 / 60) -> None:
        """Tick at a fixed interval until stop() is called."""
        while self._state is not ScrollState.STOPPED:
            self.tick(self._clock())
            await asyncio.sleep(interval_s)

    def reset(self) -> None:
        """Stop and return to the start of the script."""
        self.stop()
        self.speaking_pace = self.options.default_pace
        self.is_catching_up = False
        self._smoothed_correction = 0.0
        self._last_position = 0
        self.last_position_time = None
        self._last_timestamp = None
        self._hold_started = None
        self.current_scroll_top = self.position_to_scroll_top(0)
        self.target_scroll_top = self.current_scroll_top
