"""
Utilities package for Floorball Live.

This package contains utility functions used throughout the application.
"""
from .time_utils import parse_clock, format_clock, absolute_game_seconds, now_ts, now_ms
from .constants import (
    APP_TITLE, DEFAULT_TOTAL_PERIODS, DEFAULT_PERIOD_DURATION_MIN,
    DEFAULT_BREAK_DURATION_MIN, TICK_INTERVAL_SECONDS, CLOCK_ZERO,
    COLLECTIONS, COMMAND_HISTORY_LIMIT, PENALTY_DURATIONS_MIN, DEFAULT_HOST,
    DEFAULT_PORT, DATA_FILE_ENV_VAR
)

__all__ = [
    "parse_clock", "format_clock", "absolute_game_seconds", "now_ts", "now_ms",
    "APP_TITLE", "DEFAULT_TOTAL_PERIODS", "DEFAULT_PERIOD_DURATION_MIN",
    "DEFAULT_BREAK_DURATION_MIN", "TICK_INTERVAL_SECONDS", "CLOCK_ZERO",
    "COLLECTIONS", "COMMAND_HISTORY_LIMIT", "PENALTY_DURATIONS_MIN", "DEFAULT_HOST",
    "DEFAULT_PORT", "DATA_FILE_ENV_VAR"
]
