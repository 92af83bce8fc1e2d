"""
Command pattern implementation for admin match actions.

Every admin action is a pure transform ``(match, args) -> new match`` followed
by exactly one full-document ``replace_match`` write. The transforms live at
the top of this module; the ``MatchCommand`` classes wrap them with the id
lookups the operator UI needs, and ``MatchCommandManager`` runs a command as
one read-modify-write against the store.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ..models import (
    GoalEvent, Match, MatchEvent, PenaltyEvent, Player, SaveEvent, new_event_id
)
from ..utils import COMMAND_HISTORY_LIMIT
from .clock_service import (
    can_record_events, copy_match, end_period, set_time_and_period, toggle_clock
)
from .event_log_service import append_event, remove_last_event, rescore
from .hydration_service import load_match, load_players
from .match_service import MatchNotFoundError
from .penalty_service import cancel_penalty_on_goal, create_penalty
from .persistence_service import PersistenceService, StorageError

logger = logging.getLogger(__name__)

CareerDeltas = Dict[str, Dict[str, int]]


# ----------------------------------------------------------------------
# Pure transforms
# ----------------------------------------------------------------------
def _knows_team(match: Match, team_id: str) -> bool:
    return team_id in (match.team_a.id, match.team_b.id)


def add_goal(
    match: Match,
    team_id: str,
    scorer: Player,
    assist: Optional[Player] = None,
    conceding_goalie_id: Optional[str] = None,
) -> Match:
    """
    Record a goal for ``team_id`` at the current clock.

    The goal counts against the opposing team's active goalie unless another
    goalie is named, and cancels at most one active penalty of the conceding
    team (the earliest-expiring one).

    Returns:
        Updated, rescored match, or ``match`` itself when events cannot be
        recorded in the current phase
    """
    if not can_record_events(match) or not _knows_team(match, team_id):
        logger.debug("Goal for %s ignored on match %s (%s)", team_id, match.id, match.status.value)
        return match

    conceding_team_id = match.opponent_id(team_id)
    goal = GoalEvent(
        id=new_event_id(),
        team_id=team_id,
        time=match.time,
        period=match.period,
        scorer=scorer,
        assist=assist,
        conceding_goalie_id=conceding_goalie_id or match.active_goalie_for(conceding_team_id),
    )
    events = append_event(match.events, goal)
    events, _ = cancel_penalty_on_goal(events, conceding_team_id)
    return rescore(copy_match(match, events=events))


def remove_last_goal(match: Match, team_id: Optional[str] = None) -> Match:
    """Remove the most recent goal (optionally of one team) and rescore."""
    if not can_record_events(match):
        return match
    events, removed = remove_last_event(match.events, GoalEvent, team_id)
    if removed is None:
        return match
    return rescore(copy_match(match, events=events))


def add_penalty(match: Match, team_id: str, player: Player, duration_minutes: Any) -> Match:
    """Record a penalty served from the current clock."""
    if not can_record_events(match) or not _knows_team(match, team_id):
        logger.debug("Penalty for %s ignored on match %s (%s)", team_id, match.id, match.status.value)
        return match
    penalty = create_penalty(match, team_id, player, duration_minutes)
    return copy_match(match, events=append_event(match.events, penalty))


def remove_last_penalty(match: Match, team_id: Optional[str] = None) -> Match:
    """Remove the most recent penalty (optionally of one team)."""
    if not can_record_events(match):
        return match
    events, removed = remove_last_event(match.events, PenaltyEvent, team_id)
    if removed is None:
        return match
    return copy_match(match, events=events)


def add_save(match: Match, team_id: str, goalie: Player) -> Match:
    """Credit a save to a goalie."""
    if not can_record_events(match) or not _knows_team(match, team_id) or not goalie.is_goalie:
        logger.debug("Save for %s ignored on match %s", team_id, match.id)
        return match
    save = SaveEvent(
        id=new_event_id(),
        team_id=team_id,
        time=match.time,
        period=match.period,
        goalie=goalie,
    )
    return copy_match(match, events=append_event(match.events, save))


def career_deltas(event: MatchEvent, sign: int = 1) -> CareerDeltas:
    """Changes to players' career statistics caused by adding (or removing) an event."""
    deltas: CareerDeltas = {}

    def bump(player_id: Optional[str], field: str, amount: int) -> None:
        if player_id:
            deltas.setdefault(player_id, {})
            deltas[player_id][field] = deltas[player_id].get(field, 0) + sign * amount

    if isinstance(event, GoalEvent):
        bump(event.scorer.id, "goals", 1)
        if event.assist is not None:
            bump(event.assist.id, "assists", 1)
        bump(event.conceding_goalie_id, "goals_against", 1)
    elif isinstance(event, PenaltyEvent):
        bump(event.player.id, "penalty_minutes", event.duration)
    elif isinstance(event, SaveEvent):
        bump(event.goalie.id, "saves", 1)
    else:
        raise TypeError(f"Unknown match event: {event!r}")
    return deltas


def _new_events(before: Match, after: Match) -> List[MatchEvent]:
    known = {e.id for e in before.events}
    return [e for e in after.events if e.id not in known]


def _removed_events(before: Match, after: Match) -> List[MatchEvent]:
    kept = {e.id for e in after.events}
    return [e for e in before.events if e.id not in kept]


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------
class MatchCommand(ABC):
    """Abstract base class for all admin match commands - Command pattern."""

    def __init__(self):
        self.career_deltas: CareerDeltas = {}

    @abstractmethod
    def apply(self, match: Match) -> Match:
        """
        Apply the command to an authoritative match.

        Returns:
            The new match, or ``match`` itself when the command is a no-op
        """

    @property
    @abstractmethod
    def description(self) -> str:
        """Get human-readable description of the command."""

    def _track_career(self, before: Match, after: Match) -> None:
        self.career_deltas = {}
        changes = [(e, 1) for e in _new_events(before, after)]
        changes += [(e, -1) for e in _removed_events(before, after)]
        for event, sign in changes:
            for player_id, fields in career_deltas(event, sign).items():
                target = self.career_deltas.setdefault(player_id, {})
                for field, amount in fields.items():
                    target[field] = target.get(field, 0) + amount


def _find_player(match: Match, team_id: str, player_id: Optional[str]) -> Optional[Player]:
    if not player_id:
        return None
    return next((p for p in match.roster_for(team_id) if p.id == player_id), None)


class AddGoalCommand(MatchCommand):
    """Command to record a goal."""

    def __init__(
        self,
        team_id: str,
        scorer_id: str,
        assist_id: Optional[str] = None,
        conceding_goalie_id: Optional[str] = None,
    ):
        super().__init__()
        self.team_id = team_id
        self.scorer_id = scorer_id
        self.assist_id = assist_id
        self.conceding_goalie_id = conceding_goalie_id

    def apply(self, match: Match) -> Match:
        scorer = _find_player(match, self.team_id, self.scorer_id)
        if scorer is None:
            logger.warning("Unknown scorer %s for team %s", self.scorer_id, self.team_id)
            return match
        assist = _find_player(match, self.team_id, self.assist_id)
        if assist is not None and assist.id == scorer.id:
            assist = None
        updated = add_goal(match, self.team_id, scorer, assist, self.conceding_goalie_id)
        self._track_career(match, updated)
        return updated

    @property
    def description(self) -> str:
        return f"Goal for {self.team_id}"


class RemoveLastGoalCommand(MatchCommand):
    """Command to remove the most recent goal."""

    def __init__(self, team_id: Optional[str] = None):
        super().__init__()
        self.team_id = team_id

    def apply(self, match: Match) -> Match:
        updated = remove_last_goal(match, self.team_id)
        self._track_career(match, updated)
        return updated

    @property
    def description(self) -> str:
        return "Remove last goal"


class AddPenaltyCommand(MatchCommand):
    """Command to record a penalty."""

    def __init__(self, team_id: str, player_id: str, duration_minutes: Any):
        super().__init__()
        self.team_id = team_id
        self.player_id = player_id
        self.duration_minutes = duration_minutes

    def apply(self, match: Match) -> Match:
        player = _find_player(match, self.team_id, self.player_id)
        if player is None:
            logger.warning("Unknown penalised player %s for team %s", self.player_id, self.team_id)
            return match
        updated = add_penalty(match, self.team_id, player, self.duration_minutes)
        self._track_career(match, updated)
        return updated

    @property
    def description(self) -> str:
        return f"{self.duration_minutes} min penalty for {self.team_id}"


class RemoveLastPenaltyCommand(MatchCommand):
    """Command to remove the most recent penalty."""

    def __init__(self, team_id: Optional[str] = None):
        super().__init__()
        self.team_id = team_id

    def apply(self, match: Match) -> Match:
        updated = remove_last_penalty(match, self.team_id)
        self._track_career(match, updated)
        return updated

    @property
    def description(self) -> str:
        return "Remove last penalty"


class AddSaveCommand(MatchCommand):
    """Command to credit a save."""

    def __init__(self, team_id: str, goalie_id: str):
        super().__init__()
        self.team_id = team_id
        self.goalie_id = goalie_id

    def apply(self, match: Match) -> Match:
        goalie = _find_player(match, self.team_id, self.goalie_id)
        if goalie is None:
            logger.warning("Unknown goalie %s for team %s", self.goalie_id, self.team_id)
            return match
        updated = add_save(match, self.team_id, goalie)
        self._track_career(match, updated)
        return updated

    @property
    def description(self) -> str:
        return f"Save for {self.team_id}"


class ToggleClockCommand(MatchCommand):
    """Command to start or stop the match clock."""

    def __init__(self, displayed_time: Optional[str] = None):
        super().__init__()
        self.displayed_time = displayed_time

    def apply(self, match: Match) -> Match:
        return toggle_clock(match, self.displayed_time)

    @property
    def description(self) -> str:
        return "Toggle clock"


class SetTimeAndPeriodCommand(MatchCommand):
    """Command to set the clock and period by hand."""

    def __init__(self, minutes: Any, seconds: Any, period: Any):
        super().__init__()
        self.minutes = minutes
        self.seconds = seconds
        self.period = period

    def apply(self, match: Match) -> Match:
        return set_time_and_period(match, self.minutes, self.seconds, self.period)

    @property
    def description(self) -> str:
        return "Set time and period"


class EndPeriodCommand(MatchCommand):
    """Command to end the current period."""

    def __init__(self, now: Optional[int] = None):
        super().__init__()
        self.now = now

    def apply(self, match: Match) -> Match:
        return end_period(match, now=self.now)

    @property
    def description(self) -> str:
        return "End period"


# ----------------------------------------------------------------------
# Execution
# ----------------------------------------------------------------------
@dataclass
class CommandResult:
    """Outcome of running a command against the store."""
    match: Match
    applied: bool
    error: Optional[str] = None


class MatchCommandManager:
    """
    Runs match commands as atomic read-modify-write cycles against the store.

    Writes are whole documents and the last write wins. When a write fails the
    operator is notified, nothing is kept in memory, and the match is re-read
    from the store so callers continue from what was actually persisted.
    """

    def __init__(
        self,
        store: PersistenceService,
        notifier: Optional[Callable[[str], None]] = None,
        max_history: int = COMMAND_HISTORY_LIMIT,
    ):
        """
        Initialize command manager.

        Args:
            store: Authoritative document store
            notifier: Called with a message when a write fails
            max_history: Maximum number of commands to keep in history
        """
        self.store = store
        self.notifier = notifier
        self.max_history = max_history
        self._command_history: List[str] = []

    def execute(self, match_id: str, command: MatchCommand) -> CommandResult:
        """
        Execute a command against the stored match.

        Raises:
            MatchNotFoundError: If the match cannot be loaded
            StorageError: If the match cannot even be read
        """
        match = load_match(self.store, match_id)
        if match is None:
            raise MatchNotFoundError(match_id)

        updated = command.apply(match)
        if updated is match:
            logger.debug("%s had no effect on match %s", command.description, match_id)
            return CommandResult(match=match, applied=False)

        try:
            self.store.replace_match(updated.to_document())
        except StorageError as exc:
            message = f"Could not save '{command.description}': {exc}"
            logger.error(message)
            self._notify(message)
            return CommandResult(match=self.resync(match_id, fallback=match), applied=False, error=message)

        self._record(command.description)
        logger.info("%s applied to match %s", command.description, match_id)

        if command.career_deltas:
            self._apply_career_deltas(command.career_deltas)
        return CommandResult(match=updated, applied=True)

    def resync(self, match_id: str, fallback: Optional[Match] = None) -> Optional[Match]:
        """Re-read a match from the store, falling back when the read fails."""
        try:
            return load_match(self.store, match_id) or fallback
        except StorageError:
            logger.exception("Re-sync of match %s failed", match_id)
            return fallback

    def _apply_career_deltas(self, deltas: CareerDeltas) -> None:
        players = load_players(self.store)
        for player_id, fields in deltas.items():
            player = players.get(player_id)
            if player is None:
                continue
            for field, amount in fields.items():
                setattr(player.stats, field, max(0, getattr(player.stats, field) + amount))
            try:
                self.store.upsert_player(player.to_dict())
            except StorageError as exc:
                message = f"Could not update career stats of {player.name}: {exc}"
                logger.error(message)
                self._notify(message)

    def _notify(self, message: str) -> None:
        if self.notifier is not None:
            self.notifier(message)

    def _record(self, description: str) -> None:
        self._command_history.append(description)
        if len(self._command_history) > self.max_history:
            self._command_history.pop(0)

    def get_command_history(self) -> List[str]:
        """Get history of command descriptions."""
        return list(self._command_history)

    def clear_history(self) -> None:
        """Clear command history."""
        self._command_history.clear()
