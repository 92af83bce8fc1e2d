"""
Match model for the Floorball Live match tracker.

This module contains the Match dataclass which represents the authoritative
state of one match: phase, score, period, clock, configuration, the ordered
event log and the roster snapshots of both teams.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .events import GoalEvent, MatchEvent, PenaltyEvent, SaveEvent
from .player import Player
from .team import Team
from ..utils import (
    CLOCK_ZERO, DEFAULT_BREAK_DURATION_MIN, DEFAULT_PERIOD_DURATION_MIN,
    DEFAULT_TOTAL_PERIODS, parse_clock
)


class MatchStatus(Enum):
    """Phase of a match."""
    UPCOMING = "upcoming"
    LIVE = "live"
    PAUSED = "paused"
    BREAK = "break"
    FINISHED = "finished"

    @classmethod
    def parse(cls, value: Any) -> 'MatchStatus':
        """Parse a stored status, defaulting to upcoming for unknown values."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.UPCOMING


@dataclass
class Match:
    """
    Represents the authoritative state of a floorball match.

    Attributes:
        id: Storage identifier
        team_a: Home team
        team_b: Away team
        status: Current phase
        score_a: Goals of team A (always equal to a replay of the log)
        score_b: Goals of team B
        period: Current period, 1-indexed
        time: Current period-relative clock as ``mm:ss``
        total_periods: Number of regulation periods
        period_duration_minutes: Length of each period
        break_duration_minutes: Length of the break between periods
        break_end_time: Wall-clock end of the break (epoch milliseconds)
        events: Event log in append order
        roster_a: Players of team A taking part in the match
        roster_b: Players of team B taking part in the match
        active_goalie_a_id: Goalie currently in goal for team A
        active_goalie_b_id: Goalie currently in goal for team B
        tournament_id: Optional tournament linkage
        group_id: Optional tournament group linkage
        date: Optional scheduled date (ISO string)
    """
    id: str
    team_a: Team
    team_b: Team
    status: MatchStatus = MatchStatus.UPCOMING
    score_a: int = 0
    score_b: int = 0
    period: int = 1
    time: str = CLOCK_ZERO
    total_periods: int = DEFAULT_TOTAL_PERIODS
    period_duration_minutes: int = DEFAULT_PERIOD_DURATION_MIN
    break_duration_minutes: int = DEFAULT_BREAK_DURATION_MIN
    break_end_time: Optional[int] = None
    events: List[MatchEvent] = field(default_factory=list)
    roster_a: List[Player] = field(default_factory=list)
    roster_b: List[Player] = field(default_factory=list)
    active_goalie_a_id: Optional[str] = None
    active_goalie_b_id: Optional[str] = None
    tournament_id: Optional[str] = None
    group_id: Optional[str] = None
    date: Optional[str] = None

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------
    @property
    def period_duration_seconds(self) -> int:
        return self.period_duration_minutes * 60

    @property
    def clock_seconds(self) -> int:
        return parse_clock(self.time)

    @property
    def is_final_period(self) -> bool:
        return self.period >= self.total_periods

    def opponent_id(self, team_id: str) -> str:
        """Return the id of the team facing ``team_id``."""
        return self.team_b.id if team_id == self.team_a.id else self.team_a.id

    def roster_for(self, team_id: str) -> List[Player]:
        if team_id == self.team_a.id:
            return self.roster_a
        if team_id == self.team_b.id:
            return self.roster_b
        return []

    def active_goalie_for(self, team_id: str) -> Optional[str]:
        if team_id == self.team_a.id:
            return self.active_goalie_a_id
        if team_id == self.team_b.id:
            return self.active_goalie_b_id
        return None

    def goals(self) -> List[GoalEvent]:
        return [e for e in self.events if isinstance(e, GoalEvent)]

    def penalties(self) -> List[PenaltyEvent]:
        return [e for e in self.events if isinstance(e, PenaltyEvent)]

    def saves(self) -> List[SaveEvent]:
        return [e for e in self.events if isinstance(e, SaveEvent)]

    def active_penalties(self) -> List[PenaltyEvent]:
        return [p for p in self.penalties() if p.is_active]

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_document(self) -> Dict[str, Any]:
        """
        Convert the match to its storage document.

        Teams and players are stored as ``{"id": ...}`` references and must be
        hydrated against the teams/players collections when read back.

        Returns:
            Dictionary suitable for JSON serialization
        """
        return {
            "id": self.id,
            "status": self.status.value,
            "team_a": self.team_a.to_ref(),
            "team_b": self.team_b.to_ref(),
            "score_a": self.score_a,
            "score_b": self.score_b,
            "period": self.period,
            "time": self.time,
            "total_periods": self.total_periods,
            "period_duration_minutes": self.period_duration_minutes,
            "break_duration_minutes": self.break_duration_minutes,
            "break_end_time": self.break_end_time,
            "events": [event.to_dict() for event in self.events],
            "roster_a": [p.to_ref() for p in self.roster_a],
            "roster_b": [p.to_ref() for p in self.roster_b],
            "active_goalie_a_id": self.active_goalie_a_id,
            "active_goalie_b_id": self.active_goalie_b_id,
            "tournament_id": self.tournament_id,
            "group_id": self.group_id,
            "date": self.date,
        }

    def to_json(self) -> Dict[str, Any]:
        """Fully expanded representation used by the web API."""
        data = self.to_document()
        data["team_a"] = self.team_a.to_dict()
        data["team_b"] = self.team_b.to_dict()
        data["roster_a"] = [p.to_dict() for p in self.roster_a]
        data["roster_b"] = [p.to_dict() for p in self.roster_b]
        return data
