# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Follow-along session: wires the matcher, position tracker and scroll
controller together for one script.

Speech-recognition callbacks call handle_transcript() in arrival order;
the animation schedule calls tick() (or awaits run()). Everything runs on
one thread: each transcript is matched and applied before the next.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from . import debug_log
from .config import (DEFAULT_CONFIG, Config, get_session_settings,
                     matcher_options_from_config, scroll_options_from_config,
                     tracker_options_from_config)
from .highlight import HighlightRange, phrase_range, render_html
from .matcher import MatchOptions, MatchResult, find_matches
from .position_tracker import (PositionTracker, ProcessResult,
                               TrackingAction)
from .profiling import profile_section
from .script_index import ScriptIndex, build_script_index
from .scroll_controller import ScrollController, ScrollState, Viewport
from .text import tokenize_transcript

logger = logging.getLogger(__name__)

# Nominal geometry when the host doesn't supply a viewport
DEFAULT_CLIENT_HEIGHT: float = 600.0
DEFAULT_PIXELS_PER_WORD: float = 12.0


def default_viewport(total_words: int) -> Viewport:
    """Viewport with the default height and one nominal row per word."""
    return Viewport(
        scroll_height=DEFAULT_CLIENT_HEIGHT * 2 + total_words * DEFAULT_PIXELS_PER_WORD,
        client_height=DEFAULT_CLIENT_HEIGHT,
    )


@dataclass(frozen=True)
class TranscriptOutcome:
    """Everything one transcript produced."""
    match: MatchResult
    result: ProcessResult
    highlight: HighlightRange | None = None

    @property
    def advanced(self) -> bool:
        return self.result.action is TrackingAction.ADVANCED


class FollowAlongSession:
    """
    One script being read aloud.

    Usage:
        session = FollowAlongSession(script_text)
        session.start()
        outcome = session.handle_transcript("the quick brown", is_final=False)
        session.tick(timestamp_ms)
    """

    def __init__(
        self,
        script_text: str,
        config: Config | None = None,
        viewport: Viewport | None = None,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        """
        Args:
            script_text: Raw script (plain text or Markdown)
            config: Tuning settings (defaults if None)
            viewport: Display geometry; a nominal one is derived if None
            clock: Seconds clock shared by the tracker and controller
        """
        self.config: Config = config if config is not None else DEFAULT_CONFIG
        self.match_options: MatchOptions = matcher_options_from_config(self.config)
        session_settings = get_session_settings(self.config)
        self.skips_require_final: bool = bool(session_settings["skips_require_final"])
        self.highlight_phrase_length: int = int(session_settings["highlight_phrase_length"])

        self._clock: Callable[[], float] = clock
        self._owns_viewport: bool = viewport is None

        self.script_text: str = script_text
        with profile_section("session.build_index"):
            self.script_index: ScriptIndex = build_script_index(script_text)
        self.viewport: Viewport = viewport or default_viewport(len(self.script_index))

        self.tracker: PositionTracker = PositionTracker(
            tracker_options_from_config(self.config), clock=clock)
        self.controller: ScrollController = self._make_controller()
        self.highlight: HighlightRange | None = None

        logger.debug("Session created with %d script words", len(self.script_index))

    def _clock_ms(self) -> float:
        return self._clock() * 1000.0

    def _make_controller(self) -> ScrollController:
        return ScrollController(
            self.viewport,
            self.tracker,
            len(self.script_index),
            options=scroll_options_from_config(self.config),
            on_state_change=self._on_state_change,
            clock=self._clock_ms,
        )

    def _on_state_change(self, state: ScrollState) -> None:
        logger.debug("Scroll controller is now %s", state.value)
        debug_log.log_state_change(
            state.value, self.controller.current_scroll_top, self.controller.speaking_pace)

    @property
    def confirmed_position(self) -> int:
        return self.tracker.confirmed_position

    def _words_between(self, start: int, end: int) -> list[str]:
        return list(self.script_index.words[start:end + 1])

    def handle_transcript(
        self,
        text: str,
        is_final: bool = False,
        timestamp_ms: float | None = None
    ) -> TranscriptOutcome:
        """
        Match one transcript and apply the result.

        Args:
            text: Transcript text from speech recognition
            is_final: Whether the recognizer marked the result final
            timestamp_ms: Arrival time in the tick() time base; defaults to
                the latest frame time once scrolling has started

        Returns:
            TranscriptOutcome with the match, tracker result and highlight
        """
        old_position: int = self.tracker.confirmed_position
        if debug_log.is_enabled():
            debug_log.log_transcript(text, is_final, tokenize_transcript(text))

        match: MatchResult = find_matches(
            text, self.script_index, old_position, self.match_options)
        best = match.best_match

        if (self.skips_require_final and not is_final and best is not None
                and best.position - old_position > self.tracker.options.nearby_threshold):
            # Interim results may still be revised; leave the streak alone
            logger.debug("Ignoring interim skip candidate at %d", best.position)
            result = ProcessResult(TrackingAction.HOLD, old_position)
        else:
            result = self.tracker.process_match(best)

        debug_log.log_match(
            best.position if best else None,
            best.combined_score if best else None,
            len(match.candidates),
            result.action.value,
        )

        highlight: HighlightRange | None = None
        if result.action is TrackingAction.ADVANCED and best is not None:
            new_position: int = result.confirmed_position
            self.controller.on_position_advanced(new_position, old_position, timestamp_ms)
            highlight = HighlightRange.from_candidate(best)
            self.highlight = highlight
            reason: str = ("advance"
                           if new_position - old_position <= self.tracker.options.nearby_threshold
                           else "skip")
            logger.debug("Position %d -> %d (%s)", old_position, new_position, reason)
            debug_log.log_position_change(
                old_position, new_position,
                self._words_between(old_position, new_position), reason)

        return TranscriptOutcome(match=match, result=result, highlight=highlight)

    def jump_to(self, word_index: int) -> int:
        """
        Move to a word explicitly (user navigation), in either direction.

        Returns:
            The position actually jumped to (clamped into the script)
        """
        old_position: int = self.tracker.confirmed_position
        position: int = self.script_index.clamp(word_index)
        self.tracker.jump_to(position)
        self.controller.jump_to(position)
        self.highlight = phrase_range(
            self.script_index, position, self.highlight_phrase_length)
        logger.debug("Jumped %d -> %d", old_position, position)
        debug_log.log_position_change(
            old_position, position,
            self._words_between(min(old_position, position), max(old_position, position)),
            "jump")
        return position

    def load_script(self, script_text: str) -> None:
        """Replace the script; position, pace and scroll start over."""
        self.controller.reset()
        self.script_text = script_text
        with profile_section("session.build_index"):
            self.script_index = build_script_index(script_text)
        if self._owns_viewport:
            self.viewport = default_viewport(len(self.script_index))
        self.tracker.reset()
        self.controller = self._make_controller()
        self.highlight = None
        debug_log.clear_logs()
        logger.debug("Loaded script with %d words", len(self.script_index))

    def start(self, timestamp_ms: float | None = None) -> None:
        self.controller.start(timestamp_ms)

    def stop(self) -> None:
        self.controller.stop()

    def tick(self, timestamp_ms: float) -> float:
        """Advance the scroll animation; returns the scroll offset to render."""
        return self.controller.tick(timestamp_ms)

    async def run(self, interval_s: float = 1 / 60) -> None:
        """Run the scroll animation until stop() is called."""
        await self.controller.run(interval_s)

    def reset(self) -> None:
        """Go back to the start of the script (stops scrolling)."""
        self.tracker.reset()
        self.controller.reset()
        self.highlight = None

    def render_html(self) -> str:
        """Script HTML with the current phrase and already-read words marked."""
        current = self.highlight or phrase_range(
            self.script_index, self.confirmed_position, self.highlight_phrase_length)
        return render_html(
            self.script_text, self.script_index,
            current=current, read_until=self.confirmed_position)

    def snapshot(self) -> dict[str, Any]:
        """Debug snapshot for display; never feed this back into control."""
        tracker_state = self.tracker.state
        controller_state = self.controller.state
        return {
            "confirmed_position": tracker_state.confirmed_position,
            "total_words": len(self.script_index),
            "streak_position": tracker_state.streak_position,
            "streak_count": tracker_state.streak_count,
            "speaking_pace": controller_state.speaking_pace,
            "state": controller_state.state.value,
            "is_catching_up": controller_state.is_catching_up,
            "current_scroll_top": controller_state.current_scroll_top,
            "target_scroll_top": controller_state.target_scroll_top,
        }
