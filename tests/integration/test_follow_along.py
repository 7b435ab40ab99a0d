# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
End-to-end tests: simulated speech through a full follow-along session.

Transcripts are built from the script's own words the way a recognizer
delivers them: a growing utterance, mostly interim, occasionally final.
"""

import pytest

from cuetrack.position_tracker import TrackingAction
from cuetrack.session import FollowAlongSession

GETTYSBURG: str = """# The Gettysburg Address

Four score and seven years ago our fathers brought forth on this continent,
a new nation, conceived in Liberty, and dedicated to the proposition that all
men are created equal.

Now we are engaged in a great civil war, testing whether that nation, or any
nation so conceived and so dedicated, can long endure. We are met on a great
battle-field of that war. We have come to dedicate a portion of that field, as
a final resting place for those who here gave their lives that that nation
might live. It is altogether fitting and proper that we should do this.

But, in a larger sense, we can not dedicate -- we can not consecrate -- we can
not hallow -- this ground. The brave men, living and dead, who struggled here,
have consecrated it, far above our poor power to add or detract.
"""

FRAME_MS: float = 1000 / 60


class Simulation:
    """Drives a session with transcripts and animation frames."""

    def __init__(self, script: str) -> None:
        self.now: float = 0.0
        self.session = FollowAlongSession(script, clock=lambda: self.now)
        self.session.start(0.0)
        self.words: tuple[str, ...] = self.session.script_index.words
        self.positions: list[int] = []

    def speak(self, start: int, end: int, is_final: bool = False):
        """Deliver the utterance words[start:end] and animate 0.3 s."""
        outcome = self.session.handle_transcript(
            " ".join(self.words[start:end]), is_final=is_final)
        for _ in range(18):
            self.now += FRAME_MS / 1000
            self.session.tick(self.now * 1000)
            controller = self.session.controller
            limit: float = controller.position_to_scroll_top(self.session.confirmed_position)
            assert controller.current_scroll_top <= limit + 1e-6
        self.positions.append(self.session.confirmed_position)
        return outcome

    def read(self, start: int, stop: int) -> None:
        """Read words[start:stop] one word at a time in six-word utterances."""
        for i in range(start + 2, stop + 1):
            utterance_start: int = max(start, i - 6)
            self.speak(utterance_start, i, is_final=(i - start) % 6 == 0)


class TestFollowAlong:
    """Whole-pipeline behaviour."""

    def test_reads_whole_script(self) -> None:
        sim = Simulation(GETTYSBURG)
        total: int = len(sim.words)
        sim.read(0, total)

        assert sim.session.confirmed_position == total - 1
        assert sim.positions == sorted(sim.positions)
        assert sim.session.controller.current_scroll_top > 0

    def test_repeated_phrases_stay_local(self) -> None:
        """'we can not' repeats three times; each match stays in place."""
        sim = Simulation(GETTYSBURG)
        words = sim.words
        first_we: int = next(
            i for i in range(len(words) - 2)
            if words[i:i + 3] == ("we", "can", "not"))
        sim.read(0, first_we + 12)
        assert sim.session.confirmed_position == first_we + 11

    def test_skip_requires_streak(self) -> None:
        """Skipping a sentence needs several consecutive confirmations."""
        sim = Simulation(GETTYSBURG)
        sim.read(0, 30)
        assert sim.session.confirmed_position == 29

        resume: int = 65
        outcomes = [sim.speak(resume, resume + n, is_final=True) for n in range(2, 10)]

        assert all(o.result.action is not TrackingAction.ADVANCED for o in outcomes[:3])
        assert any(o.result.action is TrackingAction.EXPLORING for o in outcomes[:3])
        assert sim.session.confirmed_position == resume + 8
        assert sim.positions == sorted(sim.positions)

    def test_single_distant_phrase_does_not_jump(self) -> None:
        sim = Simulation(GETTYSBURG)
        sim.read(0, 15)
        before: int = sim.session.confirmed_position

        outcome = sim.speak(45, 48, is_final=True)

        assert outcome.result.action is TrackingAction.EXPLORING
        assert sim.session.confirmed_position == before

    def test_fillers_and_misrecognition(self) -> None:
        sim = Simulation(GETTYSBURG)
        sim.read(0, 8)
        position: int = sim.session.confirmed_position

        outcome = sim.session.handle_transcript(
            f"um {sim.words[position + 1]} uh {sim.words[position + 2]}")
        assert outcome.advanced
        assert sim.session.confirmed_position == position + 2

    def test_holding_after_silence(self) -> None:
        sim = Simulation(GETTYSBURG)
        sim.read(0, 10)
        for _ in range(400):
            sim.now += FRAME_MS / 1000
            sim.session.tick(sim.now * 1000)

        assert sim.session.snapshot()["state"] == "holding"
        sim.speak(9, 12)
        assert sim.session.snapshot()["state"] == "tracking"

    @pytest.mark.parametrize("skips_require_final", [False, True])
    def test_interim_results(self, skips_require_final: bool) -> None:
        """Reading in order works whether or not skips need final results."""
        sim = Simulation(GETTYSBURG)
        sim.session.skips_require_final = skips_require_final
        sim.read(0, 40)
        assert sim.session.confirmed_position == 39
