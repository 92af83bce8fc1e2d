"""
Models package for Floorball Live.

This package contains the core data models used throughout the application.
"""
from .team import Team
from .player import Player, CareerStats, MatchStats
from .events import (
    EventType, PenaltyStatus, PenaltyExpiry, GoalEvent, PenaltyEvent, SaveEvent,
    MatchEvent, new_event_id
)
from .match import Match, MatchStatus

__all__ = [
    "Team", "Player", "CareerStats", "MatchStats",
    "EventType", "PenaltyStatus", "PenaltyExpiry", "GoalEvent", "PenaltyEvent",
    "SaveEvent", "MatchEvent", "new_event_id", "Match", "MatchStatus"
]
