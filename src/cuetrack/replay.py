# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Debug tool for replaying a saved transcript through a follow-along session.

This CLI tool takes a transcript file and a script file, feeds the
transcript through the matcher, tracker and scroll controller on a
simulated clock, and writes a log of every decision to help debug
tracking issues.
"""

import argparse
import logging
import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Literal, TextIO

from .config import Config, load_config
from .position_tracker import TrackingAction
from .profiling import enable_profiling, get_profiler
from .session import FollowAlongSession

logger = logging.getLogger(__name__)

EventType = Literal["advance", "skip", "exploring", "hold"]

# Simulated speaking rate and animation frame interval
SECONDS_PER_WORD: float = 0.4
FRAME_MS: float = 1000.0 / 60.0


@dataclass
class ReplayEvent:
    """A single tracking decision during transcript replay."""
    transcript_line: int
    transcript: str
    event_type: EventType
    position_before: int
    position_after: int
    script_word: str
    score: float | None = None
    is_final: bool = True


class SimulatedClock:
    """Seconds clock that only moves when told to."""

    def __init__(self) -> None:
        self.now: float = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def load_transcript(path: Path) -> list[str]:
    """Load transcript file and extract transcript lines.

    Filters out metadata lines (starting with '===').
    Returns list of transcript text lines.
    """
    lines: list[str] = []
    with open(path, encoding='utf-8') as f:
        for line in f:
            stripped_line: str = line.strip()
            # Skip metadata lines and empty lines
            if stripped_line.startswith('===') or not stripped_line:
                continue
            lines.append(stripped_line)
    return lines


def load_script(path: Path) -> str:
    """Load script file content."""
    with open(path, encoding='utf-8') as f:
        return f.read()


def _animate(session: FollowAlongSession, clock: SimulatedClock, seconds: float) -> None:
    """Advance the simulated clock in frame steps, ticking the controller."""
    remaining: float = seconds * 1000.0
    while remaining > 0:
        step: float = min(FRAME_MS, remaining)
        clock.advance(step / 1000.0)
        session.tick(clock() * 1000.0)
        remaining -= step


def _script_word(session: FollowAlongSession, position: int) -> str:
    words = session.script_index.words
    return words[position] if position < len(words) else "<END>"


def replay_transcript(
    transcript_lines: list[str],
    script_text: str,
    output: TextIO,
    verbose: bool = False,
    word_by_word: bool = False,
    config: Config | None = None
) -> list[ReplayEvent]:
    """Replay a transcript through a session and log its decisions.

    Args:
        transcript_lines: Lines of transcript text
        script_text: The script content
        output: File handle to write log output
        verbose: If True, log every result. If False, only skips and exploring.
        word_by_word: Feed each line as growing interim results, the last
            one final, instead of one final result per line
        config: Tuning settings (defaults if None)

    Returns:
        List of all replay events
    """
    logger.debug("Replaying %d transcript lines", len(transcript_lines))
    clock = SimulatedClock()
    session = FollowAlongSession(script_text, config=config, clock=clock)
    session.start(clock() * 1000.0)
    events: list[ReplayEvent] = []

    mode: str = " (WORD-BY-WORD MODE)" if word_by_word else ""
    output.write("=" * 80 + "\n")
    output.write(f"TRANSCRIPT REPLAY LOG{mode}\n")
    output.write(f"Generated: {datetime.now().isoformat()}\n")
    output.write(f"Script words: {len(session.script_index)}\n")
    output.write(f"Transcript lines: {len(transcript_lines)}\n")
    output.write("=" * 80 + "\n\n")

    if verbose:
        output.write("SCRIPT WORDS:\n")
        output.write("-" * 40 + "\n")
        for entry in session.script_index:
            output.write(f"  [{entry.position:4d}] {entry.word}\n")
        output.write("\n" + "=" * 80 + "\n\n")

    output.write("TRACKING LOG:\n")
    output.write("-" * 40 + "\n")

    for line_num, line in enumerate(transcript_lines, start=1):
        words: list[str] = line.split()
        if not words:
            continue

        line_display: str = f"--- Line {line_num}: \"{line[:60]}"
        line_display += '...' if len(line) > 60 else ''
        line_display += "\" ---"
        output.write(f"\n{line_display}\n")

        if word_by_word:
            feeds = [(" ".join(words[:i + 1]), i == len(words) - 1)
                     for i in range(len(words))]
            step_s: float = SECONDS_PER_WORD
        else:
            feeds = [(line, True)]
            step_s = SECONDS_PER_WORD * len(words)

        for text, is_final in feeds:
            _animate(session, clock, step_s)

            position_before: int = session.confirmed_position
            outcome = session.handle_transcript(text, is_final=is_final)
            position_after: int = outcome.result.confirmed_position
            best = outcome.match.best_match

            event_type: EventType
            if outcome.advanced:
                distance: int = position_after - position_before
                nearby: int = session.tracker.options.nearby_threshold
                event_type = "advance" if distance <= nearby else "skip"
            elif outcome.result.action is TrackingAction.EXPLORING:
                event_type = "exploring"
            else:
                event_type = "hold"

            event = ReplayEvent(
                transcript_line=line_num,
                transcript=text,
                event_type=event_type,
                position_before=position_before,
                position_after=position_after,
                script_word=_script_word(session, position_after),
                score=best.combined_score if best else None,
                is_final=is_final,
            )
            events.append(event)

            if event_type == "skip":
                output.write("  *** SKIP CONFIRMED ***\n")
                output.write(f"      Position: {position_before} -> {position_after}\n")
                output.write(f"      Script word at new position: \"{event.script_word}\"\n")
            elif event_type == "exploring":
                output.write(
                    f"  ? exploring {outcome.result.candidate_position} "
                    f"({outcome.result.consecutive_count}/{outcome.result.required_count})\n")
            elif verbose:
                score: str = f"{event.score:.3f}" if event.score is not None else "-"
                output.write(
                    f"  [{position_after:4d}] \"{event.script_word}\" "
                    f"({event_type}, score={score}, scroll={session.controller.current_scroll_top:.1f})\n")

    snapshot = session.snapshot()
    session.stop()

    output.write("\n" + "=" * 80 + "\n")
    output.write("SUMMARY:\n")
    output.write("-" * 40 + "\n")

    skips: list[ReplayEvent] = [e for e in events if e.event_type == "skip"]
    advances: list[ReplayEvent] = [e for e in events if e.event_type == "advance"]
    holds: list[ReplayEvent] = [e for e in events if e.event_type == "hold"]

    output.write(f"Total results processed: {len(events)}\n")
    output.write(
        f"Final position: {session.confirmed_position} / {len(session.script_index)}\n")
    output.write(f"Advances: {len(advances)}\n")
    output.write(f"Skips: {len(skips)}\n")
    output.write(f"Holds: {len(holds)}\n")
    output.write(f"Speaking pace: {snapshot['speaking_pace']:.2f} words/s\n")

    if skips:
        output.write("\nSkip events:\n")
        for e in skips:
            output.write(
                f"  Line {e.transcript_line}: -> position {e.position_after} "
                f"\"{e.script_word}\"\n"
            )

    return events


def main() -> None:
    """CLI entry point for the transcript replay tool."""
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Debug tracking by replaying a transcript through a follow-along session"
    )

    parser.add_argument(
        "transcript",
        type=Path,
        help="Path to transcript file"
    )

    parser.add_argument(
        "script",
        type=Path,
        help="Path to script file"
    )

    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output log file path (default: stdout)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log every result, not just skips"
    )

    parser.add_argument(
        "-w", "--word-by-word",
        action="store_true",
        help="Feed each line word by word as interim results"
    )

    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Config file (default: .cuetrack.yaml in the working directory)"
    )

    parser.add_argument(
        "--profile",
        action="store_true",
        help="Print matching performance statistics at the end"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    args: argparse.Namespace = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S"
    )

    if args.profile:
        enable_profiling(keep_all_times=True)

    # Validate inputs
    if not args.transcript.exists():
        print(
            f"Error: Transcript file not found: {args.transcript}", file=sys.stderr)
        sys.exit(1)

    if not args.script.exists():
        print(f"Error: Script file not found: {args.script}", file=sys.stderr)
        sys.exit(1)

    # Load files
    try:
        transcript_lines: list[str] = load_transcript(args.transcript)
        script_text: str = load_script(args.script)
    except OSError as e:
        print(f"Error loading files: {e}", file=sys.stderr)
        sys.exit(1)

    if not transcript_lines:
        print("Error: No transcript lines found", file=sys.stderr)
        sys.exit(1)

    config: Config = load_config(args.config)

    try:
        if args.output:
            with open(args.output, 'w', encoding='utf-8') as f:
                replay_transcript(
                    transcript_lines, script_text, f, args.verbose,
                    args.word_by_word, config)
            print(f"Replay log written to: {args.output}")
        else:
            replay_transcript(
                transcript_lines, script_text, sys.stdout, args.verbose,
                args.word_by_word, config)
    except ValueError as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    if args.profile:
        print(get_profiler().format_report())


if __name__ == "__main__":
    main()
