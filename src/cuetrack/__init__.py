"""
cuetrack - Voice-following core for a teleprompter.

Matches speech transcripts against a script, keeps a forward-only confirmed
reading position, and drives a smooth scroll that follows the speaker.
"""

__version__ = "0.1.0"

from .matcher import MatchCandidate, MatchOptions, MatchResult, find_matches
from .position_tracker import PositionTracker, TrackerOptions, TrackingAction
from .script_index import ScriptIndex, WordEntry, build_script_index
from .scroll_controller import ScrollController, ScrollOptions, ScrollState, Viewport
from .session import FollowAlongSession

__all__ = [
    "WordEntry",
    "ScriptIndex",
    "build_script_index",
    "MatchOptions",
    "MatchCandidate",
    "MatchResult",
    "find_matches",
    "TrackerOptions",
    "TrackingAction",
    "PositionTracker",
    "Viewport",
    "ScrollOptions",
    "ScrollState",
    "ScrollController",
    "FollowAlongSession",
]
