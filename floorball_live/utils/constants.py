"""
Constants for the Floorball Live match tracker.

This module contains configuration constants used throughout the application.
"""

# Application metadata
APP_TITLE = "Floorball Live"

# Match configuration defaults
DEFAULT_TOTAL_PERIODS = 3
DEFAULT_PERIOD_DURATION_MIN = 20
DEFAULT_BREAK_DURATION_MIN = 15

# Penalty durations offered to the operator (minutes)
PENALTY_DURATIONS_MIN = (2, 5, 10)

# Live clock
TICK_INTERVAL_SECONDS = 1.0
CLOCK_ZERO = "00:00"

# Command history kept by the command manager
COMMAND_HISTORY_LIMIT = 50

# Web server defaults
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 7122
DATA_FILE_ENV_VAR = "FLOORBALL_LIVE_DATA"

# Storage collection names
COLLECTIONS = ("teams", "players", "matches", "tournaments")
