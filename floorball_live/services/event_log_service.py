"""
Event log and derived statistics for Floorball Live.

The event log is append/remove-only. Everything shown about a match that
depends on it (score, per-player match statistics, timeline) is computed here
by replaying the log in append order. None of these functions mutate their
inputs.
"""
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Tuple, Type

from ..models import (
    GoalEvent, Match, MatchEvent, MatchStats, MatchStatus, PenaltyEvent,
    Player, SaveEvent
)


@dataclass
class RosterLine:
    """A roster player together with the statistics of one match."""
    player: Player
    stats: MatchStats

    def to_dict(self) -> dict:
        data = self.player.to_dict()
        data.pop("stats", None)
        data["match_stats"] = self.stats.to_dict()
        return data


@dataclass
class MatchProjection:
    """Result of replaying a match's event log."""
    score_a: int = 0
    score_b: int = 0
    roster_a: List[RosterLine] = field(default_factory=list)
    roster_b: List[RosterLine] = field(default_factory=list)

    def stats_for(self, player_id: str) -> Optional[MatchStats]:
        for line in self.roster_a + self.roster_b:
            if line.player.id == player_id:
                return line.stats
        return None


@dataclass
class TimelineEntry:
    """One row of the public event timeline."""
    event: MatchEvent
    team_name: str
    is_home: bool
    description: str

    def to_dict(self) -> dict:
        return {
            "id": self.event.id,
            "type": self.event.type.value,
            "team_id": self.event.team_id,
            "team_name": self.team_name,
            "is_home": self.is_home,
            "period": self.event.period,
            "time": self.event.time,
            "description": self.description,
        }


# ----------------------------------------------------------------------
# Log mutation helpers
# ----------------------------------------------------------------------
def append_event(events: List[MatchEvent], event: MatchEvent) -> List[MatchEvent]:
    """Return a new log with ``event`` appended."""
    return list(events) + [event]


def remove_last_event(
    events: List[MatchEvent],
    event_class: Type,
    team_id: Optional[str] = None,
) -> Tuple[List[MatchEvent], Optional[MatchEvent]]:
    """
    Remove the most recently appended event of a kind.

    Args:
        events: Current event log
        event_class: Event class to look for (e.g. ``GoalEvent``)
        team_id: Restrict the search to one team's events

    Returns:
        Tuple of the new log and the removed event (None if nothing matched)
    """
    for index in range(len(events) - 1, -1, -1):
        event = events[index]
        if isinstance(event, event_class) and (team_id is None or event.team_id == team_id):
            return list(events[:index]) + list(events[index + 1:]), event
    return list(events), None


# ----------------------------------------------------------------------
# Projection
# ----------------------------------------------------------------------
def _blank_lines(roster: Iterable[Player]) -> List[RosterLine]:
    return [RosterLine(player=player, stats=MatchStats()) for player in roster]


def project_match(match: Match) -> MatchProjection:
    """
    Replay the event log of a match.

    Walks the log in append order. Goals increment the team score, the
    scorer's goals, the assister's assists and the conceding goalie's goals
    against. Penalties add their duration to penalty minutes whatever their
    current status. Saves credit the goalie.

    Args:
        match: Hydrated match

    Returns:
        Fresh projection; the match and its players are left untouched
    """
    projection = MatchProjection(
        roster_a=_blank_lines(match.roster_a),
        roster_b=_blank_lines(match.roster_b),
    )
    lines: Dict[str, MatchStats] = {
        line.player.id: line.stats for line in projection.roster_a + projection.roster_b
    }

    goals_by_team = replay_events(match.events, lines)
    projection.score_a = goals_by_team.get(match.team_a.id, 0)
    projection.score_b = goals_by_team.get(match.team_b.id, 0)
    return projection


def replay_events(events: Iterable[MatchEvent], ledger: Dict[str, object]) -> Dict[str, int]:
    """
    Credit every event of a log to the statistics held in ``ledger``.

    ``ledger`` maps player ids to objects with ``goals``, ``assists``,
    ``penalty_minutes``, ``saves`` and ``goals_against`` counters. Ids missing
    from the ledger are skipped.

    Returns:
        Number of goals per team id
    """
    goals_by_team: Dict[str, int] = {}

    def credit(player_id: Optional[str], attribute: str, amount: int = 1) -> None:
        stats = ledger.get(player_id) if player_id else None
        if stats is not None:
            setattr(stats, attribute, getattr(stats, attribute) + amount)

    for event in events:
        if isinstance(event, GoalEvent):
            goals_by_team[event.team_id] = goals_by_team.get(event.team_id, 0) + 1
            credit(event.scorer.id, "goals")
            if event.assist is not None:
                credit(event.assist.id, "assists")
            credit(event.conceding_goalie_id, "goals_against")
        elif isinstance(event, PenaltyEvent):
            credit(event.player.id, "penalty_minutes", event.duration)
        elif isinstance(event, SaveEvent):
            credit(event.goalie.id, "saves")
        else:
            raise TypeError(f"Unknown match event: {event!r}")

    return goals_by_team


def rescore(match: Match) -> Match:
    """Return a copy of ``match`` whose stored score agrees with its event log."""
    projection = project_match(match)
    return replace(match, score_a=projection.score_a, score_b=projection.score_b)


# ----------------------------------------------------------------------
# Read-only views
# ----------------------------------------------------------------------
def describe_event(event: MatchEvent) -> str:
    """Human readable one-line description of an event."""
    if isinstance(event, GoalEvent):
        text = f"Goal by {event.scorer.name}"
        if event.assist is not None:
            text += f", assist by {event.assist.name}"
        return text
    if isinstance(event, PenaltyEvent):
        return f"{event.duration} min penalty for {event.player.name}"
    if isinstance(event, SaveEvent):
        return f"Save by {event.goalie.name}"
    raise TypeError(f"Unknown match event: {event!r}")


def build_timeline(match: Match) -> List[TimelineEntry]:
    """
    Events ordered for display, newest first.

    Sorted by period descending, then clock descending. This ordering is for
    display only and is never used for projection.
    """
    ordered = sorted(match.events, key=lambda e: (e.period, e.time), reverse=True)
    entries = []
    for event in ordered:
        is_home = event.team_id == match.team_a.id
        team = match.team_a if is_home else match.team_b
        entries.append(
            TimelineEntry(
                event=event,
                team_name=team.name,
                is_home=is_home,
                description=describe_event(event),
            )
        )
    return entries


@dataclass
class CareerSummary:
    """Totals of one player across all finished matches."""
    games_played: int = 0
    goals: int = 0
    assists: int = 0
    penalty_minutes: int = 0
    saves: int = 0
    goals_against: int = 0

    def to_dict(self) -> dict:
        return {
            "games_played": self.games_played,
            "goals": self.goals,
            "assists": self.assists,
            "points": self.goals + self.assists,
            "penalty_minutes": self.penalty_minutes,
            "saves": self.saves,
            "goals_against": self.goals_against,
        }


def aggregate_career_stats(
    matches: Iterable[Match],
    players: Iterable[Player],
) -> Dict[str, CareerSummary]:
    """
    Aggregate per-player totals over finished matches.

    A player has played a match when they appear in one of its rosters.
    Players unknown to ``players`` are ignored.

    Args:
        matches: Hydrated matches in any status
        players: Player registry

    Returns:
        Mapping of player id to summary, with an entry for every known player
    """
    summaries: Dict[str, CareerSummary] = {p.id: CareerSummary() for p in players}

    for match in matches:
        if match.status is not MatchStatus.FINISHED:
            continue
        for player_id in {p.id for p in match.roster_a + match.roster_b}:
            if player_id in summaries:
                summaries[player_id].games_played += 1
        replay_events(match.events, summaries)

    return summaries
