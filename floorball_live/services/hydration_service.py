"""
Hydration of stored documents into Floorball Live models.

Stored matches reference teams and players by id only. Before anything is
projected the references are resolved against the teams and players
collections. Collections may arrive partially (teams before players before
matches), so every unresolvable reference is dropped instead of failing:

* a match whose team cannot be resolved is left out of the match list,
* an event whose player cannot be resolved is left out of the match,
* an assist whose player cannot be resolved is removed from its goal.

Scores are re-derived from the hydrated log.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from ..models import (
    GoalEvent, Match, MatchEvent, MatchStatus, PenaltyEvent, PenaltyExpiry,
    PenaltyStatus, Player, SaveEvent, Team
)
from ..utils import CLOCK_ZERO, DEFAULT_BREAK_DURATION_MIN, DEFAULT_PERIOD_DURATION_MIN, DEFAULT_TOTAL_PERIODS
from .event_log_service import rescore
from .persistence_service import PersistenceService

logger = logging.getLogger(__name__)


def _ref_id(ref: Any) -> Optional[str]:
    """Accept ``{"id": ...}`` references, fully expanded documents or bare ids."""
    if isinstance(ref, dict):
        value = ref.get("id")
        return str(value) if value is not None else None
    if isinstance(ref, str) and ref:
        return ref
    return None


def _int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


def _optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def index_teams(documents: Iterable[Dict[str, Any]]) -> Dict[str, Team]:
    return {str(doc["id"]): Team.from_dict(doc) for doc in documents if doc.get("id")}


def index_players(documents: Iterable[Dict[str, Any]]) -> Dict[str, Player]:
    return {str(doc["id"]): Player.from_dict(doc) for doc in documents if doc.get("id")}


def hydrate_event(
    document: Dict[str, Any],
    players: Dict[str, Player],
    team_ids: Iterable[str],
) -> Optional[MatchEvent]:
    """
    Turn a stored event into a model.

    Returns:
        The event, or None when its team or player cannot be resolved
    """
    kind = document.get("type")
    team_id = document.get("team_id")
    if team_id not in set(team_ids):
        logger.warning("Dropping %s event %s for unknown team %s", kind, document.get("id"), team_id)
        return None

    common = {
        "id": str(document.get("id", "")),
        "team_id": team_id,
        "time": document.get("time") or CLOCK_ZERO,
        "period": _int(document.get("period"), 1),
    }

    def resolve(field: str) -> Optional[Player]:
        player_id = _ref_id(document.get(field))
        return players.get(player_id) if player_id else None

    if kind == "goal":
        scorer = resolve("scorer")
        if scorer is None:
            logger.warning("Dropping goal %s with unknown scorer", common["id"])
            return None
        return GoalEvent(
            scorer=scorer,
            assist=resolve("assist"),
            conceding_goalie_id=document.get("conceding_goalie_id"),
            **common,
        )

    if kind == "penalty":
        player = resolve("player")
        if player is None:
            logger.warning("Dropping penalty %s with unknown player", common["id"])
            return None
        try:
            status = PenaltyStatus(document.get("status", PenaltyStatus.ACTIVE.value))
        except ValueError:
            status = PenaltyStatus.ACTIVE
        return PenaltyEvent(
            player=player,
            duration=max(0, _int(document.get("duration"), 0)),
            status=status,
            expires_at=PenaltyExpiry.from_dict(document.get("expires_at")),
            **common,
        )

    if kind == "save":
        goalie = resolve("goalie")
        if goalie is None:
            logger.warning("Dropping save %s with unknown goalie", common["id"])
            return None
        return SaveEvent(goalie=goalie, **common)

    logger.warning("Dropping event %s of unknown type %r", common["id"], kind)
    return None


def hydrate_match(
    document: Dict[str, Any],
    teams: Dict[str, Team],
    players: Dict[str, Player],
) -> Optional[Match]:
    """
    Turn a stored match into a model.

    Args:
        document: Match document with id references
        teams: Team registry
        players: Player registry

    Returns:
        Hydrated match with a replayed score, or None if a team is unknown
    """
    team_a = teams.get(_ref_id(document.get("team_a")) or "")
    team_b = teams.get(_ref_id(document.get("team_b")) or "")
    if team_a is None or team_b is None:
        logger.debug("Match %s skipped until both teams are known", document.get("id"))
        return None

    def roster(field: str) -> List[Player]:
        resolved = []
        for ref in document.get(field) or []:
            player = players.get(_ref_id(ref) or "")
            if player is not None:
                resolved.append(player)
        return resolved

    events = []
    for event_doc in document.get("events") or []:
        event = hydrate_event(event_doc, players, (team_a.id, team_b.id))
        if event is not None:
            events.append(event)

    match = Match(
        id=str(document["id"]),
        team_a=team_a,
        team_b=team_b,
        status=MatchStatus.parse(document.get("status")),
        period=max(1, _int(document.get("period"), 1)),
        time=document.get("time") or CLOCK_ZERO,
        total_periods=max(1, _int(document.get("total_periods"), DEFAULT_TOTAL_PERIODS)),
        period_duration_minutes=max(1, _int(document.get("period_duration_minutes"), DEFAULT_PERIOD_DURATION_MIN)),
        break_duration_minutes=max(0, _int(document.get("break_duration_minutes"), DEFAULT_BREAK_DURATION_MIN)),
        break_end_time=_optional_int(document.get("break_end_time")),
        events=events,
        roster_a=roster("roster_a"),
        roster_b=roster("roster_b"),
        active_goalie_a_id=document.get("active_goalie_a_id"),
        active_goalie_b_id=document.get("active_goalie_b_id"),
        tournament_id=document.get("tournament_id"),
        group_id=document.get("group_id"),
        date=document.get("date"),
    )
    return rescore(match)


def hydrate_matches(
    match_documents: Iterable[Dict[str, Any]],
    team_documents: Iterable[Dict[str, Any]],
    player_documents: Iterable[Dict[str, Any]],
) -> List[Match]:
    """Hydrate every match that can be resolved with the collections at hand."""
    teams = index_teams(team_documents)
    players = index_players(player_documents)
    matches = []
    for document in match_documents:
        match = hydrate_match(document, teams, players)
        if match is not None:
            matches.append(match)
    return matches


# ----------------------------------------------------------------------
# Store helpers
# ----------------------------------------------------------------------
def load_match(store: PersistenceService, match_id: str) -> Optional[Match]:
    """Read and hydrate one match from the store."""
    document = store.get_match_document(match_id)
    if document is None:
        return None
    return hydrate_match(
        document,
        index_teams(store.list_documents("teams")),
        index_players(store.list_documents("players")),
    )


def load_matches(store: PersistenceService) -> List[Match]:
    """Read and hydrate every resolvable match from the store."""
    return hydrate_matches(
        store.list_documents("matches"),
        store.list_documents("teams"),
        store.list_documents("players"),
    )


def load_players(store: PersistenceService) -> Dict[str, Player]:
    return index_players(store.list_documents("players"))


def load_teams(store: PersistenceService) -> Dict[str, Team]:
    return index_teams(store.list_documents("teams"))
