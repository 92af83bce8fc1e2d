"""
Floorball Live

A live match clock and event tracker for floorball: one admin operates the
clock and records goals, penalties and saves while any number of viewers
follow the match with a locally ticking clock.

This package provides the match engine and a Flask web interface.
"""
from .models import Match, MatchStatus, Player, Team
from .services import LiveMatchView, MatchCommandManager, MatchService, PersistenceService
from .ui import create_app, run_web_app
from .utils import format_clock, parse_clock, APP_TITLE

__version__ = "1.0.0"
__author__ = "Floorball Live Development Team"

__all__ = [
    "Match", "MatchStatus", "Player", "Team", "LiveMatchView", "MatchCommandManager",
    "MatchService", "PersistenceService", "create_app", "run_web_app",
    "format_clock", "parse_clock", "APP_TITLE"
]
