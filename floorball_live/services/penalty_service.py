"""
Penalty lifecycle for Floorball Live.

Penalties are created with an expiry expressed as ``(period, mm:ss)`` in the
period where the time actually runs out, cancelled early when the penalised
team concedes, and expired once game time reaches the expiry. All functions
return new event lists instead of changing events in place.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..models import (
    Match, MatchEvent, PenaltyEvent, PenaltyExpiry, PenaltyStatus, Player,
    new_event_id
)
from ..utils import absolute_game_seconds, format_clock, parse_clock

logger = logging.getLogger(__name__)


@dataclass
class ActivePenaltyView:
    """An active penalty with the time its player still has to serve."""
    penalty: PenaltyEvent
    seconds_left: int

    @property
    def time_left(self) -> str:
        return format_clock(self.seconds_left)

    def to_dict(self) -> dict:
        return {
            "id": self.penalty.id,
            "team_id": self.penalty.team_id,
            "player": self.penalty.player.to_dict(),
            "player_label": self.penalty.player.label(),
            "duration": self.penalty.duration,
            "seconds_left": self.seconds_left,
            "time_left": self.time_left,
        }


# ----------------------------------------------------------------------
# Expiry arithmetic
# ----------------------------------------------------------------------
def compute_expiry(
    period: int,
    clock_seconds: int,
    duration_minutes: int,
    period_duration_seconds: int,
) -> PenaltyExpiry:
    """
    Work out when a penalty issued now runs out.

    The running total wraps into the next period every time it reaches a
    full period, so a penalty issued late in a period expires in a later one.

    Example:
        >>> compute_expiry(1, 1170, 2, 1200)
        PenaltyExpiry(period=2, time='01:30')
    """
    remaining = clock_seconds + duration_minutes * 60
    expiry_period = period
    while period_duration_seconds > 0 and remaining >= period_duration_seconds:
        remaining -= period_duration_seconds
        expiry_period += 1
    return PenaltyExpiry(period=expiry_period, time=format_clock(remaining))


def expiry_seconds(penalty: PenaltyEvent, period_duration_seconds: int) -> Optional[int]:
    """Absolute game second at which ``penalty`` expires, if it has an expiry."""
    if penalty.expires_at is None:
        return None
    return absolute_game_seconds(
        penalty.expires_at.period,
        parse_clock(penalty.expires_at.time),
        period_duration_seconds,
    )


def is_due(penalty: PenaltyEvent, period: int, clock_seconds: int, period_duration_seconds: int) -> bool:
    """Return True when game time has reached the penalty's expiry."""
    expires = expiry_seconds(penalty, period_duration_seconds)
    if expires is None:
        return False
    now = absolute_game_seconds(period, clock_seconds, period_duration_seconds)
    return now >= expires


def seconds_left(penalty: PenaltyEvent, match: Match) -> int:
    """Seconds of the penalty still to be served at the match's current clock."""
    expires = expiry_seconds(penalty, match.period_duration_seconds)
    if expires is None:
        return 0
    now = absolute_game_seconds(match.period, match.clock_seconds, match.period_duration_seconds)
    return expires - now


# ----------------------------------------------------------------------
# Lifecycle operations
# ----------------------------------------------------------------------
def create_penalty(match: Match, team_id: str, player: Player, duration_minutes: int) -> PenaltyEvent:
    """
    Build a new active penalty stamped with the match's current clock.

    Args:
        match: Match the penalty belongs to
        team_id: Team of the offending player
        player: Offending player
        duration_minutes: Penalty length; malformed values clamp to 1 minute

    Returns:
        New PenaltyEvent with its expiry computed
    """
    try:
        duration = max(1, int(duration_minutes))
    except (TypeError, ValueError):
        duration = 1

    expires_at = compute_expiry(
        match.period, match.clock_seconds, duration, match.period_duration_seconds
    )
    return PenaltyEvent(
        id=new_event_id(),
        team_id=team_id,
        time=match.time,
        period=match.period,
        player=player,
        duration=duration,
        status=PenaltyStatus.ACTIVE,
        expires_at=expires_at,
    )


def _expiry_order(penalty: PenaltyEvent) -> Tuple[float, str]:
    # mm:ss strings are zero padded, so string order is clock order
    if penalty.expires_at is None:
        return (float("inf"), "")
    return (penalty.expires_at.period, penalty.expires_at.time)


def cancel_penalty_on_goal(
    events: List[MatchEvent],
    conceding_team_id: str,
) -> Tuple[List[MatchEvent], Optional[PenaltyEvent]]:
    """
    Cancel the conceding team's earliest-expiring active penalty.

    At most one penalty is cancelled per goal, however many are active.

    Args:
        events: Event log after the goal was appended
        conceding_team_id: Team the goal was scored against

    Returns:
        Tuple of the new log and the cancelled penalty (None when none active)
    """
    candidates = [
        e for e in events
        if isinstance(e, PenaltyEvent) and e.is_active and e.team_id == conceding_team_id
    ]
    if not candidates:
        return list(events), None

    target = min(candidates, key=_expiry_order)
    cancelled = target.with_status(PenaltyStatus.CANCELLED)
    logger.info("Penalty %s cancelled by goal against team %s", target.id, conceding_team_id)
    return [cancelled if e.id == target.id else e for e in events], cancelled


def expire_due_penalties(
    events: List[MatchEvent],
    period: int,
    clock_seconds: int,
    period_duration_seconds: int,
) -> Tuple[List[MatchEvent], List[str]]:
    """
    Expire every active penalty whose expiry has been reached.

    Returns:
        Tuple of the new log and the ids of the penalties that expired
    """
    expired_ids: List[str] = []
    updated: List[MatchEvent] = []
    for event in events:
        if (
            isinstance(event, PenaltyEvent)
            and event.is_active
            and is_due(event, period, clock_seconds, period_duration_seconds)
        ):
            updated.append(event.with_status(PenaltyStatus.EXPIRED))
            expired_ids.append(event.id)
        else:
            updated.append(event)
    if expired_ids:
        logger.debug("Expired penalties %s at P%s %s", expired_ids, period, format_clock(clock_seconds))
    return updated, expired_ids


def force_expire_all(events: List[MatchEvent]) -> List[MatchEvent]:
    """Expire every remaining active penalty regardless of time left."""
    return [
        e.with_status(PenaltyStatus.EXPIRED)
        if isinstance(e, PenaltyEvent) and e.is_active else e
        for e in events
    ]


# ----------------------------------------------------------------------
# Views
# ----------------------------------------------------------------------
def active_penalty_board(match: Match) -> Dict[str, List[ActivePenaltyView]]:
    """
    Active penalties per team with the time still to serve.

    Penalties with nothing left to serve are hidden even when their status
    has not been flipped yet.

    Returns:
        Mapping of both team ids to their penalty views, earliest first
    """
    board: Dict[str, List[ActivePenaltyView]] = {match.team_a.id: [], match.team_b.id: []}
    for penalty in match.active_penalties():
        left = seconds_left(penalty, match)
        if left <= 0:
            continue
        board.setdefault(penalty.team_id, []).append(ActivePenaltyView(penalty=penalty, seconds_left=left))
    for views in board.values():
        views.sort(key=lambda view: view.seconds_left)
    return board
