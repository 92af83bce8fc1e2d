"""
Player model for the Floorball Live match tracker.

A player carries two kinds of statistics that must never be mixed up:

* ``CareerStats`` are running totals stored on the player record and updated
  incrementally by admin actions.
* ``MatchStats`` are per-match figures recomputed from a match's event log by
  the projection service. They are never stored on the player.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class CareerStats:
    """Running career totals owned by a player record."""
    goals: int = 0
    assists: int = 0
    penalty_minutes: int = 0
    saves: int = 0
    goals_against: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "goals": self.goals,
            "assists": self.assists,
            "penalty_minutes": self.penalty_minutes,
            "saves": self.saves,
            "goals_against": self.goals_against,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'CareerStats':
        """Create from dictionary for JSON deserialization."""
        if not data:
            return cls()
        return cls(
            goals=int(data.get("goals", 0) or 0),
            assists=int(data.get("assists", 0) or 0),
            # older documents call the field "penalties"
            penalty_minutes=int(data.get("penalty_minutes", data.get("penalties", 0)) or 0),
            saves=int(data.get("saves", 0) or 0),
            goals_against=int(data.get("goals_against", 0) or 0),
        )


@dataclass
class MatchStats:
    """Statistics of one player within one match, derived by replay."""
    goals: int = 0
    assists: int = 0
    penalty_minutes: int = 0
    saves: int = 0
    goals_against: int = 0

    @property
    def points(self) -> int:
        return self.goals + self.assists

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "goals": self.goals,
            "assists": self.assists,
            "points": self.points,
            "penalty_minutes": self.penalty_minutes,
            "saves": self.saves,
            "goals_against": self.goals_against,
        }


@dataclass
class Player:
    """
    Represents a floorball player.

    Attributes:
        id: Storage identifier
        name: Player's full name
        number: Jersey number
        is_goalie: Whether the player is a goalie
        team_id: Team the player is assigned to, or None for the player bank
        stats: Career-running statistics
    """
    id: str
    name: str
    number: int = 0
    is_goalie: bool = False
    team_id: Optional[str] = None
    stats: CareerStats = field(default_factory=CareerStats)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "number": self.number,
            "is_goalie": self.is_goalie,
            "team_id": self.team_id,
            "stats": self.stats.to_dict(),
        }

    def to_ref(self) -> Dict[str, str]:
        """Reference form stored inside match documents."""
        return {"id": self.id}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Player':
        """Create from dictionary for JSON deserialization."""
        try:
            number = int(data.get("number", 0) or 0)
        except (TypeError, ValueError):
            number = 0
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            number=number,
            is_goalie=bool(data.get("is_goalie", False)),
            team_id=data.get("team_id"),
            stats=CareerStats.from_dict(data.get("stats")),
        )

    def label(self) -> str:
        """Short label used in timelines and penalty boxes."""
        return f"#{self.number} {self.name}"
