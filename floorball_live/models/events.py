"""
Match event models for the Floorball Live match tracker.

Events form a closed union: ``GoalEvent``, ``PenaltyEvent`` and ``SaveEvent``.
Each carries the team it belongs to, the period-relative clock at the moment
of entry and the period. Events are immutable; the only legal change is a
penalty's status, which produces a new event via ``PenaltyEvent.with_status``.

Serialized events reference players by ``{"id": ...}`` only. Turning a stored
event back into a model requires the player registry and is done by the
hydration service.
"""
import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional, Union

from .player import Player


class EventType(Enum):
    """Discriminator stored in the ``type`` field of event documents."""
    GOAL = "goal"
    PENALTY = "penalty"
    SAVE = "save"


class PenaltyStatus(Enum):
    """Serving status of a penalty."""
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


def new_event_id() -> str:
    """Generate a unique event identifier."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class PenaltyExpiry:
    """Period and period-relative clock at which a penalty runs out."""
    period: int
    time: str

    def to_dict(self) -> Dict[str, Any]:
        return {"period": self.period, "time": self.time}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['PenaltyExpiry']:
        if not data:
            return None
        try:
            period = int(data.get("period", 1))
        except (TypeError, ValueError):
            period = 1
        return cls(period=period, time=str(data.get("time", "00:00")))


@dataclass(frozen=True)
class GoalEvent:
    """A goal, optionally assisted, counted against the conceding goalie."""
    id: str
    team_id: str
    time: str
    period: int
    scorer: Player
    assist: Optional[Player] = None
    conceding_goalie_id: Optional[str] = None

    type = EventType.GOAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "id": self.id,
            "team_id": self.team_id,
            "time": self.time,
            "period": self.period,
            "scorer": self.scorer.to_ref(),
            "assist": self.assist.to_ref() if self.assist else None,
            "conceding_goalie_id": self.conceding_goalie_id,
        }


@dataclass(frozen=True)
class PenaltyEvent:
    """A timed penalty served by one player."""
    id: str
    team_id: str
    time: str
    period: int
    player: Player
    duration: int
    status: PenaltyStatus = PenaltyStatus.ACTIVE
    expires_at: Optional[PenaltyExpiry] = None

    type = EventType.PENALTY

    @property
    def is_active(self) -> bool:
        return self.status is PenaltyStatus.ACTIVE

    def with_status(self, status: PenaltyStatus) -> 'PenaltyEvent':
        """Return a copy of this penalty with a new serving status."""
        return replace(self, status=status)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "id": self.id,
            "team_id": self.team_id,
            "time": self.time,
            "period": self.period,
            "player": self.player.to_ref(),
            "duration": self.duration,
            "status": self.status.value,
            "expires_at": self.expires_at.to_dict() if self.expires_at else None,
        }


@dataclass(frozen=True)
class SaveEvent:
    """A save credited to a goalie."""
    id: str
    team_id: str
    time: str
    period: int
    goalie: Player

    type = EventType.SAVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "id": self.id,
            "team_id": self.team_id,
            "time": self.time,
            "period": self.period,
            "goalie": self.goalie.to_ref(),
        }


MatchEvent = Union[GoalEvent, PenaltyEvent, SaveEvent]
