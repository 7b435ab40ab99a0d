# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""Tests for the debug_log module enable/disable functionality."""

from pathlib import Path
from unittest import mock

from cuetrack import debug_log


class TestDebugLogEnableDisable:
    """Test the enable/disable functionality of debug logging."""

    def setup_method(self):
        """Reset debug log state before each test."""
        debug_log.disable()

    def teardown_method(self):
        debug_log.disable()

    def test_disabled_by_default(self):
        """Debug logging should be disabled by default."""
        assert not debug_log.is_enabled()

    def test_enable(self):
        """enable() should turn on debug logging."""
        debug_log.enable()
        assert debug_log.is_enabled()
        assert debug_log.log_path() == debug_log.LOG_DIR / debug_log.SESSION_LOG_NAME

    def test_disable(self):
        """disable() should turn off debug logging."""
        debug_log.enable()
        debug_log.disable()
        assert not debug_log.is_enabled()

    def test_clear_logs_no_op_when_disabled(self):
        """clear_logs() should do nothing when logging is disabled."""
        with mock.patch.object(debug_log, '_ensure_log_dir') as mock_ensure:
            debug_log.clear_logs()
            mock_ensure.assert_not_called()

    def test_log_functions_no_op_when_disabled(self):
        """No log function touches the filesystem when disabled."""
        with mock.patch.object(debug_log, '_ensure_log_dir') as mock_ensure:
            debug_log.log_transcript("the quick", False, ["the", "quick"])
            debug_log.log_match(3, 0.9, 1, "advanced")
            debug_log.log_position_change(0, 3, ["a", "b"], "advance")
            debug_log.log_state_change("holding", 120.0, 2.5)
            mock_ensure.assert_not_called()


class TestDebugLogWriting:
    """Log content when enabled."""

    def setup_method(self):
        debug_log.disable()

    def teardown_method(self):
        debug_log.disable()

    def test_clear_logs_writes_header(self, tmp_path: Path):
        debug_log.enable(tmp_path)
        debug_log.log_match(None, None, 0, "hold")
        debug_log.clear_logs()

        content: str = debug_log.log_path().read_text(encoding="utf-8")
        assert content.startswith("=== New session started at")
        assert "no match" not in content

    def test_log_lines(self, tmp_path: Path):
        debug_log.enable(tmp_path / "nested")
        debug_log.log_transcript("the quick", False, ["the", "quick"])
        debug_log.log_match(3, 0.9, 2, "advanced")
        debug_log.log_match(None, None, 0, "hold")
        debug_log.log_position_change(0, 3, ["the", "quick"], "advance")
        debug_log.log_state_change("holding", 120.0, 2.5)

        content: str = (tmp_path / "nested" / "session.log").read_text(encoding="utf-8")
        assert 'transcript (interim): "the quick"' in content
        assert "pos=   3 score=0.900 candidates=2" in content
        assert "no match" in content
        assert "POSITION CHANGE: 0 -> 3 (advance)" in content
        assert "words: ['the', 'quick']" in content
        assert "STATE: holding scroll=120.0 pace=2.50" in content
