# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Configuration management for cuetrack.
Handles loading and saving tuning settings from a YAML config file.
"""

import copy
import logging
from pathlib import Path
from typing import Any, TypedDict

import yaml

from .matcher import MatchOptions
from .position_tracker import TrackerOptions
from .scroll_controller import ScrollOptions

logger = logging.getLogger(__name__)

CONFIG_FILENAME: str = ".cuetrack.yaml"


class MatcherSettings(TypedDict):
    """Type definition for matcher configuration settings."""
    radius: int
    min_consecutive: int
    window_size: int
    distance_weight: float
    fuzzy_threshold: float


class TrackerSettings(TypedDict):
    """Type definition for position tracker configuration settings."""
    confidence_threshold: float
    nearby_threshold: int
    small_skip_consecutive: int
    large_skip_consecutive: int
    large_skip_threshold: int
    consecutive_gap: int


class ScrollSettings(TypedDict):
    """Type definition for scroll controller configuration settings."""
    caret_percent: float
    hold_timeout_ms: float
    correction_gain: float
    max_correction_speed: float
    sync_deadband: float
    correction_smoothing: float
    min_pace: float
    max_pace: float
    default_pace: float
    catch_up_multiplier: float
    catch_up_distance: int
    hold_decay_rate: float
    max_frame_gap_ms: float
    pace_gap_s: float


class SessionSettings(TypedDict):
    """Type definition for session configuration settings."""
    skips_require_final: bool  # Only final transcripts may build skip streaks
    highlight_phrase_length: int


class Config(TypedDict):
    """Type definition for the complete configuration."""
    matcher: MatcherSettings
    tracker: TrackerSettings
    scroll: ScrollSettings
    session: SessionSettings


# Default configuration values
DEFAULT_CONFIG: Config = {
    "matcher": {
        "radius": 50,
        "min_consecutive": 2,
        "window_size": 3,
        "distance_weight": 0.3,
        "fuzzy_threshold": 0.3,
    },

    # Skip thresholds are starting points; retune against real sessions
    "tracker": {
        "confidence_threshold": 0.7,
        "nearby_threshold": 10,
        "small_skip_consecutive": 4,
        "large_skip_consecutive": 5,
        "large_skip_threshold": 50,
        "consecutive_gap": 2,
    },

    "scroll": {
        "caret_percent": 33.0,
        "hold_timeout_ms": 5000.0,
        "correction_gain": 1.5,
        "max_correction_speed": 200.0,
        "sync_deadband": 15.0,
        "correction_smoothing": 3.0,
        "min_pace": 0.5,
        "max_pace": 10.0,
        "default_pace": 2.5,
        "catch_up_multiplier": 3.0,
        "catch_up_distance": 10,
        "hold_decay_rate": 0.5,
        "max_frame_gap_ms": 100.0,
        "pace_gap_s": 5.0,
    },

    "session": {
        "skips_require_final": False,
        "highlight_phrase_length": 3,
    },
}


def get_config_path() -> Path:
    """Get the path to the config file in the current working directory."""
    return Path.cwd() / CONFIG_FILENAME


def _deep_merge(base, override):
    """
    Deep merge two dictionaries, with override taking precedence.
    Returns a new dictionary without modifying the originals.

    Args:
        base: Base dictionary to merge from.
        override: Dictionary with values that take precedence over base.

    Returns:
        New dictionary with merged values.
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file, merged with defaults.

    A missing file gives the defaults; an unreadable or malformed file is
    logged and also gives the defaults.

    Args:
        config_path: Optional path to config file. If None, uses default location.

    Returns:
        Configuration dictionary with all values (defaults + overrides from file).
    """
    if config_path is None:
        config_path = get_config_path()

    # Start with defaults
    config: dict[str, Any] = copy.deepcopy(DEFAULT_CONFIG)  # type: ignore[arg-type]

    if config_path.exists():
        try:
            with open(config_path, encoding='utf-8') as f:
                file_config: Any = yaml.safe_load(f)
            if isinstance(file_config, dict):
                config = _deep_merge(config, file_config)
            elif file_config is not None:
                logger.warning(
                    "Ignoring config %s: expected a mapping, got %s",
                    config_path, type(file_config).__name__)
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Could not load config from %s: %s", config_path, e)

    return config  # type: ignore[return-value]


def save_config(config: Config, config_path: Path | None = None) -> bool:
    """
    Save configuration to file.

    Args:
        config: Configuration dictionary to save.
        config_path: Optional path to config file. If None, uses default location.

    Returns:
        True if save was successful, False otherwise.
    """
    if config_path is None:
        config_path = get_config_path()

    try:
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(dict(config), f, default_flow_style=False, sort_keys=False)
        return True
    except (OSError, yaml.YAMLError) as e:
        logger.error("Error saving config to %s: %s", config_path, e)
        return False


def get_matcher_settings(config: Config) -> MatcherSettings:
    """Extract matcher settings from config."""
    return {**DEFAULT_CONFIG["matcher"], **config.get("matcher", {})}  # type: ignore[return-value]


def get_tracker_settings(config: Config) -> TrackerSettings:
    """Extract position tracker settings from config."""
    return {**DEFAULT_CONFIG["tracker"], **config.get("tracker", {})}  # type: ignore[return-value]


def get_scroll_settings(config: Config) -> ScrollSettings:
    """Extract scroll controller settings from config."""
    return {**DEFAULT_CONFIG["scroll"], **config.get("scroll", {})}  # type: ignore[return-value]


def get_session_settings(config: Config) -> SessionSettings:
    """Extract session settings from config, defaults filling missing keys."""
    return {**DEFAULT_CONFIG["session"], **config.get("session", {})}  # type: ignore[return-value]


def _known_fields(settings: dict[str, Any], section: str) -> dict[str, Any]:
    """Drop (and log) keys the options class doesn't know about."""
    known = DEFAULT_CONFIG[section].keys()  # type: ignore[literal-required]
    unknown = sorted(set(settings) - set(known))
    if unknown:
        logger.warning("Ignoring unknown %s settings: %s", section, ", ".join(unknown))
    return {k: v for k, v in settings.items() if k in known}


def matcher_options_from_config(config: Config) -> MatchOptions:
    """Build MatchOptions from config (raises ValueError on invalid values)."""
    return MatchOptions(**_known_fields(dict(get_matcher_settings(config)), "matcher"))


def tracker_options_from_config(config: Config) -> TrackerOptions:
    """Build TrackerOptions from config (raises ValueError on invalid values)."""
    return TrackerOptions(**_known_fields(dict(get_tracker_settings(config)), "tracker"))


def scroll_options_from_config(config: Config) -> ScrollOptions:
    """Build ScrollOptions from config (raises ValueError on invalid values)."""
    return ScrollOptions(**_known_fields(dict(get_scroll_settings(config)), "scroll"))


def update_config_section(config: Config, section: str, settings: dict[str, Any]) -> Config:
    """
    Update one section of the config with new settings.
    Returns a new config dict.

    Args:
        config: Current configuration.
        section: Section name ("matcher", "tracker", "scroll" or "session").
        settings: New settings to merge in.

    Returns:
        New configuration with updated settings.
    """
    if section not in DEFAULT_CONFIG:
        raise ValueError(f"Unknown config section: {section}")
    new_config: dict[str, Any] = copy.deepcopy(dict(config))
    new_config[section] = _deep_merge(new_config.get(section, {}), settings)
    return new_config  # type: ignore[return-value]
