"""Tests for event log replay and derived views."""
import pytest

from floorball_live.models import (
    GoalEvent, Match, MatchStatus, PenaltyEvent, PenaltyExpiry, PenaltyStatus,
    Player, SaveEvent, Team
)
from floorball_live.services.event_log_service import (
    aggregate_career_stats, build_timeline, project_match, remove_last_event,
    replay_events, rescore
)

ANNA = Player(id="a1", name="Anna", number=10, team_id="a")
ALMA = Player(id="a2", name="Alma", number=7, team_id="a")
AGNES = Player(id="ag", name="Agnes", number=1, is_goalie=True, team_id="a")
BOB = Player(id="b1", name="Bob", number=4, team_id="b")
BEA = Player(id="bg", name="Bea", number=1, is_goalie=True, team_id="b")


def goal(event_id, team_id, scorer, period=1, time="05:00", assist=None, goalie=None):
    return GoalEvent(id=event_id, team_id=team_id, time=time, period=period,
                     scorer=scorer, assist=assist, conceding_goalie_id=goalie)


def penalty(event_id, player, team_id="b", duration=2, status=PenaltyStatus.ACTIVE, period=1, time="06:00"):
    return PenaltyEvent(id=event_id, team_id=team_id, time=time, period=period, player=player,
                        duration=duration, status=status, expires_at=PenaltyExpiry(1, "08:00"))


def save(event_id, team_id, goalie, period=1, time="07:00"):
    return SaveEvent(id=event_id, team_id=team_id, time=time, period=period, goalie=goalie)


def make_match(events, status=MatchStatus.PAUSED, match_id="m1") -> Match:
    return Match(
        id=match_id,
        team_a=Team("a", "Alpha"),
        team_b=Team("b", "Bravo"),
        status=status,
        events=list(events),
        roster_a=[AGNES, ALMA, ANNA],
        roster_b=[BEA, BOB],
    )


def test_projection_derives_score_and_match_stats():
    match = make_match([
        goal("g1", "a", ANNA, assist=ALMA, goalie="bg"),
        penalty("p1", BOB, duration=5, status=PenaltyStatus.CANCELLED),
        save("s1", "b", BEA),
        goal("g2", "b", BOB, goalie="ag"),
        goal("g3", "a", ANNA, goalie="bg"),
    ])

    projection = project_match(match)

    assert (projection.score_a, projection.score_b) == (2, 1)
    assert projection.stats_for("a1").goals == 2
    assert projection.stats_for("a1").points == 2
    assert projection.stats_for("a2").assists == 1
    assert projection.stats_for("b1").penalty_minutes == 5
    assert projection.stats_for("bg").saves == 1
    assert projection.stats_for("bg").goals_against == 2
    assert projection.stats_for("ag").goals_against == 1
    assert projection.stats_for("nobody") is None


def test_projection_is_idempotent_and_leaves_match_untouched():
    match = make_match([goal("g1", "a", ANNA), save("s1", "b", BEA)])
    first = project_match(match)
    second = project_match(match)
    assert first == second
    assert match.score_a == 0
    assert ANNA.stats.goals == 0


def test_rescore_matches_goal_count():
    match = rescore(make_match([goal("g1", "a", ANNA), goal("g2", "b", BOB), goal("g3", "b", BOB)]))
    assert match.score_a == len([g for g in match.goals() if g.team_id == "a"])
    assert match.score_b == 2


def test_rescore_leaves_input_untouched():
    original = make_match([goal("g1", "a", ANNA), goal("g2", "b", BOB)])
    original.score_a, original.score_b = 5, 5

    rescored = rescore(original)

    assert (original.score_a, original.score_b) == (5, 5)
    assert (rescored.score_a, rescored.score_b) == (1, 1)
    assert rescored is not original


def test_replay_rejects_unknown_events():
    with pytest.raises(TypeError):
        replay_events([object()], {})


def test_remove_last_event_respects_kind_and_team():
    events = [goal("g1", "a", ANNA), goal("g2", "b", BOB), save("s1", "b", BEA)]

    remaining, removed = remove_last_event(events, GoalEvent)
    assert removed.id == "g2"
    assert [e.id for e in remaining] == ["g1", "s1"]

    remaining, removed = remove_last_event(events, GoalEvent, team_id="a")
    assert removed.id == "g1"

    remaining, removed = remove_last_event(events, PenaltyEvent)
    assert removed is None
    assert remaining == events


def test_timeline_is_newest_first_with_descriptions():
    match = make_match([
        goal("g1", "a", ANNA, period=1, time="05:00", assist=ALMA),
        penalty("p1", BOB, period=2, time="01:00"),
        save("s1", "b", BEA, period=1, time="10:00"),
    ])

    timeline = build_timeline(match)

    assert [entry.event.id for entry in timeline] == ["p1", "s1", "g1"]
    assert timeline[0].description == "2 min penalty for Bob"
    assert timeline[1].description == "Save by Bea"
    assert timeline[2].description == "Goal by Anna, assist by Alma"
    assert timeline[2].is_home is True
    assert timeline[0].to_dict()["team_name"] == "Bravo"


def test_timeline_does_not_reorder_the_log():
    match = make_match([goal("g1", "a", ANNA, time="09:00"), goal("g2", "a", ANNA, time="01:00")])
    build_timeline(match)
    assert [e.id for e in match.events] == ["g1", "g2"]


def test_career_stats_only_count_finished_matches():
    finished = make_match([
        goal("g1", "a", ANNA, assist=ALMA, goalie="bg"),
        penalty("p1", BOB, duration=2, status=PenaltyStatus.EXPIRED),
        save("s1", "b", BEA),
    ], status=MatchStatus.FINISHED)
    live = make_match([goal("g9", "a", ANNA)], status=MatchStatus.LIVE, match_id="m2")
    bench = Player(id="x1", name="Xena", number=99)

    summaries = aggregate_career_stats([finished, live], [ANNA, ALMA, AGNES, BOB, BEA, bench])

    assert summaries["a1"].games_played == 1
    assert summaries["a1"].goals == 1
    assert summaries["a2"].assists == 1
    assert summaries["b1"].penalty_minutes == 2
    assert summaries["bg"].saves == 1
    assert summaries["bg"].goals_against == 1
    assert summaries["x1"].games_played == 0
    assert summaries["a1"].to_dict()["points"] == 1
