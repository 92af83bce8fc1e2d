"""
Match service for Floorball Live.

Creates matches from a validated configuration, and reads and deletes them
through the persistence service.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..models import Match, MatchStatus, Player, Team
from ..utils import (
    CLOCK_ZERO, DEFAULT_BREAK_DURATION_MIN, DEFAULT_PERIOD_DURATION_MIN,
    DEFAULT_TOTAL_PERIODS
)
from .hydration_service import load_match, load_matches, load_players, load_teams
from .persistence_service import PersistenceService

logger = logging.getLogger(__name__)


class MatchValidationError(ValueError):
    """Raised when a match configuration is invalid."""


class MatchNotFoundError(KeyError):
    """Raised when a match id does not resolve to a stored, hydratable match."""


@dataclass
class MatchConfig:
    """Settings an admin picks when creating a match."""
    team_a_id: str
    team_b_id: str
    total_periods: Any = DEFAULT_TOTAL_PERIODS
    period_duration_minutes: Any = DEFAULT_PERIOD_DURATION_MIN
    break_duration_minutes: Any = DEFAULT_BREAK_DURATION_MIN
    goalie_a_id: Optional[str] = None
    goalie_b_id: Optional[str] = None
    tournament_id: Optional[str] = None
    group_id: Optional[str] = None
    date: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MatchConfig':
        """Create from a JSON request body."""
        return cls(
            team_a_id=data.get("team_a_id") or "",
            team_b_id=data.get("team_b_id") or "",
            total_periods=data.get("total_periods", DEFAULT_TOTAL_PERIODS),
            period_duration_minutes=data.get("period_duration_minutes", DEFAULT_PERIOD_DURATION_MIN),
            break_duration_minutes=data.get("break_duration_minutes", DEFAULT_BREAK_DURATION_MIN),
            goalie_a_id=data.get("goalie_a_id") or None,
            goalie_b_id=data.get("goalie_b_id") or None,
            tournament_id=data.get("tournament_id"),
            group_id=data.get("group_id"),
            date=data.get("date"),
        )


def _parse_int(value: Any, message: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise MatchValidationError(message) from None


def build_match(
    config: MatchConfig,
    teams: Dict[str, Team],
    players: Dict[str, Player],
    match_id: Optional[str] = None,
) -> Match:
    """
    Build a new upcoming match from a configuration.

    Rosters are snapshots of the players assigned to each team right now.

    Args:
        config: Requested settings
        teams: Team registry
        players: Player registry
        match_id: Id to use (generated when omitted)

    Returns:
        New match in the upcoming phase

    Raises:
        MatchValidationError: If the configuration is invalid
    """
    if not config.team_a_id or not config.team_b_id:
        raise MatchValidationError("Please select both teams.")
    if config.team_a_id == config.team_b_id:
        raise MatchValidationError("Teams cannot play against themselves.")

    team_a = teams.get(config.team_a_id)
    team_b = teams.get(config.team_b_id)
    if team_a is None or team_b is None:
        raise MatchValidationError("Unknown team.")

    periods = _parse_int(config.total_periods, "Number of periods must be a positive number.")
    if periods <= 0:
        raise MatchValidationError("Number of periods must be a positive number.")
    duration = _parse_int(config.period_duration_minutes, "Period duration must be a positive number.")
    if duration <= 0:
        raise MatchValidationError("Period duration must be a positive number.")
    break_minutes = _parse_int(config.break_duration_minutes, "Break duration must not be negative.")
    if break_minutes < 0:
        raise MatchValidationError("Break duration must not be negative.")

    roster_a = sorted((p for p in players.values() if p.team_id == team_a.id), key=lambda p: p.number)
    roster_b = sorted((p for p in players.values() if p.team_id == team_b.id), key=lambda p: p.number)

    for goalie_id, roster in ((config.goalie_a_id, roster_a), (config.goalie_b_id, roster_b)):
        if goalie_id and not any(p.id == goalie_id and p.is_goalie for p in roster):
            raise MatchValidationError("Selected goalie is not a goalie of that team.")

    return Match(
        id=match_id or uuid.uuid4().hex,
        team_a=team_a,
        team_b=team_b,
        status=MatchStatus.UPCOMING,
        period=1,
        time=CLOCK_ZERO,
        total_periods=periods,
        period_duration_minutes=duration,
        break_duration_minutes=break_minutes,
        roster_a=roster_a,
        roster_b=roster_b,
        active_goalie_a_id=config.goalie_a_id,
        active_goalie_b_id=config.goalie_b_id,
        tournament_id=config.tournament_id,
        group_id=config.group_id,
        date=config.date,
    )


class MatchService:
    """Service for creating, reading and deleting matches."""

    def __init__(self, store: PersistenceService):
        self.store = store

    def create_match(self, config: MatchConfig) -> Match:
        """
        Validate a configuration and store the new match.

        Raises:
            MatchValidationError: If the configuration is invalid
            StorageError: If the store rejects the write
        """
        match = build_match(config, load_teams(self.store), load_players(self.store))
        self.store.create_match(match.to_document())
        logger.info("Created match %s: %s vs %s", match.id, match.team_a.name, match.team_b.name)
        return match

    def get_match(self, match_id: str) -> Match:
        """
        Load one hydrated match.

        Raises:
            MatchNotFoundError: If the match is missing or its teams are unknown
        """
        match = load_match(self.store, match_id)
        if match is None:
            raise MatchNotFoundError(match_id)
        return match

    def list_matches(self) -> List[Match]:
        """Every resolvable match, ordered by scheduled date."""
        return sorted(load_matches(self.store), key=lambda m: (m.date or "", m.id))

    def delete_match(self, match_id: str) -> None:
        if self.store.get_match_document(match_id) is None:
            raise MatchNotFoundError(match_id)
        self.store.delete_match(match_id)
        logger.info("Deleted match %s", match_id)
