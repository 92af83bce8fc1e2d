"""
Match phase state machine for Floorball Live.

Phases: upcoming -> live <-> paused, live/paused -> break -> live, and
live/paused -> finished after the final period. Each transition is a pure
function ``(match, args) -> match``. A transition that is not legal in the
current phase returns the very same match object, which callers use to tell a
no-op apart from a change.
"""
import logging
from dataclasses import replace
from typing import Any, Dict, Optional

from ..models import Match, MatchStatus
from ..utils import CLOCK_ZERO, format_clock, now_ms, parse_clock
from .penalty_service import expire_due_penalties, force_expire_all

logger = logging.getLogger(__name__)

EVENT_ENTRY_STATUSES = frozenset({MatchStatus.UPCOMING, MatchStatus.PAUSED})
MANUAL_SET_STATUSES = frozenset({MatchStatus.UPCOMING, MatchStatus.PAUSED})
PERIOD_END_STATUSES = frozenset({MatchStatus.LIVE, MatchStatus.PAUSED})


def copy_match(match: Match, **changes: Any) -> Match:
    """Shallow copy of a match with its own event and roster lists."""
    changes.setdefault("events", list(match.events))
    changes.setdefault("roster_a", list(match.roster_a))
    changes.setdefault("roster_b", list(match.roster_b))
    return replace(match, **changes)


def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            return default


def clamp_clock(seconds: int, period_duration_seconds: int) -> int:
    """Keep a clock value inside ``[0, period duration]``."""
    return max(0, min(int(seconds), period_duration_seconds))


# ------------------------------------------------------------------
# Phase predicates
# ------------------------------------------------------------------
def can_record_events(match: Match) -> bool:
    """Goals, penalties and saves are entered with the clock stopped."""
    return match.status in EVENT_ENTRY_STATUSES


def can_set_clock(match: Match) -> bool:
    """Manual clock/period edits are only allowed before the start or while paused."""
    return match.status in MANUAL_SET_STATUSES


def allowed_actions(match: Match) -> Dict[str, bool]:
    """Which operator controls make sense in the match's current phase."""
    entry = can_record_events(match)
    return {
        "add_goal": entry,
        "remove_last_goal": entry,
        "add_penalty": entry,
        "remove_last_penalty": entry,
        "add_save": entry,
        "toggle_clock": match.status is not MatchStatus.FINISHED,
        "set_time_and_period": can_set_clock(match),
        "end_period": match.status in PERIOD_END_STATUSES,
    }


# ------------------------------------------------------------------
# Transitions
# ------------------------------------------------------------------
def toggle_clock(match: Match, displayed_time: Optional[str] = None) -> Match:
    """
    Start or stop the match clock.

    ``live -> paused`` stores the time the operator was looking at (the
    locally ticked clock) as the authoritative time and expires penalties that
    ran out up to that point. ``upcoming/paused -> live`` only flips the
    phase. ``break -> live`` starts the next period from zero.

    Args:
        match: Current authoritative match
        displayed_time: Locally ticked clock captured when pausing

    Returns:
        Updated match, or ``match`` itself when finished
    """
    if match.status is MatchStatus.FINISHED:
        logger.debug("Ignoring clock toggle on finished match %s", match.id)
        return match

    if match.status is MatchStatus.LIVE:
        captured = match.time if displayed_time is None else displayed_time
        seconds = clamp_clock(parse_clock(captured), match.period_duration_seconds)
        events, _ = expire_due_penalties(
            match.events, match.period, seconds, match.period_duration_seconds
        )
        logger.info("Match %s paused at P%s %s", match.id, match.period, format_clock(seconds))
        return copy_match(match, status=MatchStatus.PAUSED, time=format_clock(seconds), events=events)

    if match.status is MatchStatus.BREAK:
        logger.info("Match %s starts period %s", match.id, match.period)
        return copy_match(match, status=MatchStatus.LIVE, time=CLOCK_ZERO, break_end_time=None)

    logger.info("Match %s clock running from P%s %s", match.id, match.period, match.time)
    return copy_match(match, status=MatchStatus.LIVE)


def end_period(match: Match, now: Optional[int] = None) -> Match:
    """
    End the current period.

    Before the final period the match goes to a break: the period advances,
    the clock resets and a wall-clock break deadline is set. Active penalties
    carry over. Ending the final period finishes the match, expires every
    active penalty and shows the clock as full.

    Args:
        match: Current authoritative match
        now: Wall-clock time in epoch milliseconds (defaults to the current time)

    Returns:
        Updated match, or ``match`` itself when not live or paused
    """
    if match.status not in PERIOD_END_STATUSES:
        logger.debug("Ignoring end of period for match %s in %s", match.id, match.status.value)
        return match

    duration = match.period_duration_seconds

    if match.is_final_period:
        logger.info("Match %s finished %s-%s", match.id, match.score_a, match.score_b)
        return copy_match(
            match,
            status=MatchStatus.FINISHED,
            time=format_clock(duration),
            break_end_time=None,
            events=force_expire_all(match.events),
        )

    # the next period starts where this one would have ended on the absolute timeline
    events, _ = expire_due_penalties(match.events, match.period, duration, duration)
    current = now if now is not None else now_ms()
    break_end = current + match.break_duration_minutes * 60 * 1000
    logger.info("Match %s: period %s over, break until %s", match.id, match.period, break_end)
    return copy_match(
        match,
        status=MatchStatus.BREAK,
        period=match.period + 1,
        time=CLOCK_ZERO,
        break_end_time=break_end,
        events=events,
    )


def set_time_and_period(match: Match, minutes: Any, seconds: Any, period: Any) -> Match:
    """
    Manually set the clock and period.

    Malformed values are clamped rather than rejected: minutes to
    ``[0, period duration]``, seconds to ``[0, 59]`` and period to
    ``[1, total periods]``. A clock at the full period duration has zero
    seconds.

    Returns:
        Updated match, or ``match`` itself when the phase forbids editing
    """
    if not can_set_clock(match):
        logger.debug("Ignoring manual clock edit for match %s in %s", match.id, match.status.value)
        return match

    mins = max(0, min(_to_int(minutes), match.period_duration_minutes))
    secs = max(0, min(_to_int(seconds), 59))
    if mins == match.period_duration_minutes:
        secs = 0
    new_period = max(1, min(_to_int(period, match.period), match.total_periods))

    logger.info("Match %s clock set to P%s %s", match.id, new_period, format_clock(mins * 60 + secs))
    return copy_match(match, time=format_clock(mins * 60 + secs), period=new_period)


# ------------------------------------------------------------------
# Query helpers
# ------------------------------------------------------------------
def break_seconds_left(match: Match, now: Optional[int] = None) -> Optional[int]:
    """Return remaining break seconds when in a break, floored at zero."""
    if match.status is not MatchStatus.BREAK or match.break_end_time is None:
        return None
    current = now if now is not None else now_ms()
    return max(0, (match.break_end_time - current) // 1000)


def is_break_over(match: Match, now: Optional[int] = None) -> bool:
    """Return True when the current break has run out."""
    remaining = break_seconds_left(match, now)
    return remaining is not None and remaining == 0
