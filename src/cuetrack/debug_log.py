# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Debug file logging of follow-along session events.

Writes one line per transcript, match, position change and scroll state
change to logs/session.log, so a session can be compared against what the
display showed.

Logging is disabled by default. Call enable() to turn it on.
"""

from datetime import datetime
from pathlib import Path

# Log files location (relative to the working directory)
LOG_DIR: Path = Path.cwd() / "logs"
SESSION_LOG_NAME: str = "session.log"

# Global flag to control whether debug logging is enabled
_ENABLED: bool = False  # pylint: disable=invalid-name
_LOG_DIR: Path = LOG_DIR  # pylint: disable=invalid-name


def enable(log_dir: Path | str | None = None) -> None:
    """Enable debug logging, optionally into a different directory."""
    global _ENABLED, _LOG_DIR  # pylint: disable=global-statement
    _ENABLED = True
    _LOG_DIR = Path(log_dir) if log_dir is not None else LOG_DIR


def disable() -> None:
    """Disable debug logging."""
    global _ENABLED  # pylint: disable=global-statement
    _ENABLED = False


def is_enabled() -> bool:
    """Check if debug logging is enabled."""
    return _ENABLED


def log_path() -> Path:
    """Path of the session log file."""
    return _LOG_DIR / SESSION_LOG_NAME


def _ensure_log_dir() -> None:
    """Create log directory if it doesn't exist."""
    _LOG_DIR.mkdir(parents=True, exist_ok=True)


def _timestamp() -> str:
    """Get current timestamp."""
    return datetime.now().strftime("%H:%M:%S.%f")[:-3]


def _write(line: str) -> None:
    _ensure_log_dir()
    with open(log_path(), 'a', encoding='utf-8') as f:
        f.write(f"[{_timestamp()}] {line}\n")


def clear_logs() -> None:
    """Clear the log file for a fresh session."""
    if not _ENABLED:
        return
    _ensure_log_dir()
    with open(log_path(), 'w', encoding='utf-8') as f:
        f.write(
            f"=== New session started at {datetime.now().isoformat()} ===\n\n")


def log_transcript(transcript: str, is_final: bool, words: list[str]) -> None:
    """Log an incoming transcript and its normalized words."""
    if not _ENABLED:
        return
    kind: str = "final" if is_final else "interim"
    _write(f"transcript ({kind}): \"{transcript[-60:]}\" words={words}")


def log_match(
    position: int | None,
    score: float | None,
    candidates: int,
    action: str
) -> None:
    """
    Log the best match for a transcript and what the tracker did with it.

    Args:
        position: Best candidate position, or None when nothing matched
        score: Best candidate combined score
        candidates: Number of candidates found
        action: Tracker action (advanced, hold, exploring)
    """
    if not _ENABLED:
        return
    if position is None:
        _write(f"{action:10} no match")
        return
    _write(f"{action:10} pos={position:4d} score={score:.3f} candidates={candidates}")


def log_position_change(
    old_pos: int,
    new_pos: int,
    words_in_range: list[str],
    reason: str
) -> None:
    """
    Log a confirmed position change.

    Args:
        old_pos: Previous position
        new_pos: New position
        words_in_range: The words between old and new positions
        reason: Why the position changed (advance, skip, jump)
    """
    if not _ENABLED:
        return
    _write(f"POSITION CHANGE: {old_pos} -> {new_pos} ({reason})")
    _ensure_log_dir()
    with open(log_path(), 'a', encoding='utf-8') as f:
        f.write(f"                 words: {words_in_range}\n")


def log_state_change(state: str, scroll_top: float, pace: float) -> None:
    """Log a scroll controller state transition."""
    if not _ENABLED:
        return
    _write(f"STATE: {state} scroll={scroll_top:.1f} pace={pace:.2f}")
