"""
Services package for Floorball Live.

This package contains the match engine: clock phases, penalties, event log
projection, live clock reconciliation, commands and persistence.
"""
from .persistence_service import PersistenceService, StorageError, IntegrityError
from .match_service import MatchService, MatchConfig, MatchValidationError, MatchNotFoundError
from .match_commands import (
    MatchCommand, MatchCommandManager, CommandResult, AddGoalCommand,
    RemoveLastGoalCommand, AddPenaltyCommand, RemoveLastPenaltyCommand,
    AddSaveCommand, ToggleClockCommand, SetTimeAndPeriodCommand, EndPeriodCommand
)
from .live_clock import (
    LiveMatchView, IntervalScheduler, ThreadingIntervalScheduler, ManualIntervalScheduler
)
from .service_factory import ServiceFactory

__all__ = [
    "PersistenceService", "StorageError", "IntegrityError",
    "MatchService", "MatchConfig", "MatchValidationError", "MatchNotFoundError",
    "MatchCommand", "MatchCommandManager", "CommandResult", "AddGoalCommand",
    "RemoveLastGoalCommand", "AddPenaltyCommand", "RemoveLastPenaltyCommand",
    "AddSaveCommand", "ToggleClockCommand", "SetTimeAndPeriodCommand", "EndPeriodCommand",
    "LiveMatchView", "IntervalScheduler", "ThreadingIntervalScheduler",
    "ManualIntervalScheduler", "ServiceFactory"
]
