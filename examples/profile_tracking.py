#!/usr/bin/env python3
# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Example script demonstrating how to profile the follow-along pipeline.

Reads a generated script the way a speaker would (growing interim results,
then a final one per phrase), with a skip ahead in the middle, and prints
where the time went.
"""

from pathlib import Path

from cuetrack.profiling import enable_profiling, get_profiler, profile_section
from cuetrack.session import FollowAlongSession

SENTENCES = [
    "The quick brown fox jumps over the lazy dog.",
    "She sells sea shells by the sea shore.",
    "Peter Piper picked a peck of pickled peppers.",
    "How much wood would a woodchuck chuck if a woodchuck could chuck wood?",
]


def main():
    """Run a profiled follow-along session."""
    script_text = "\n\n".join(SENTENCES * 250)

    print("=" * 80)
    print("FOLLOW-ALONG PERFORMANCE PROFILING")
    print("=" * 80)

    # Enable profiling with percentile tracking
    enable_profiling(keep_all_times=True)

    session = FollowAlongSession(script_text)
    words = session.script_index.words
    print(f"Script loaded: {len(words)} words")
    print()

    session.start(0.0)
    timestamp_ms = 0.0
    max_words = min(400, len(words))
    pos = 0

    with profile_section("example.reading"):
        while pos < max_words:
            chunk = words[pos:pos + 5]
            # Growing interim results, then the final one
            for i in range(1, len(chunk) + 1):
                session.handle_transcript(" ".join(chunk[:i]), is_final=False)
                timestamp_ms += 1000.0 / 60.0
                session.tick(timestamp_ms)
            session.handle_transcript(" ".join(chunk), is_final=True)
            pos += len(chunk)

            if pos == 200:
                print("Simulating a skip of 30 words...")
                pos += 30

    print(f"Final position: {session.confirmed_position} / {len(words)}")
    print()

    print("=" * 80)
    print("PROFILING RESULTS")
    print("=" * 80)
    profiler = get_profiler()
    print(profiler.format_report(top_n=20, sort_by="total"))

    output_dir = Path(__file__).parent.parent / "profiling_results"
    report_path = output_dir / "tracking_profile.json"
    profiler.save_report(report_path)
    print(f"Detailed report saved to: {report_path}")


if __name__ == "__main__":
    main()
