"""Tests for the match phase state machine."""
import unittest
from unittest.mock import patch

from floorball_live.models import (
    Match, MatchStatus, PenaltyEvent, PenaltyExpiry, PenaltyStatus, Player, Team
)
from floorball_live.services.clock_service import (
    allowed_actions, break_seconds_left, end_period, is_break_over,
    set_time_and_period, toggle_clock
)

BOB = Player(id="b1", name="Bob", number=4, team_id="b")


def make_match(**changes) -> Match:
    fields = dict(id="m1", team_a=Team("a", "Alpha"), team_b=Team("b", "Bravo"))
    fields.update(changes)
    return Match(**fields)


def make_penalty(penalty_id, period, time):
    return PenaltyEvent(
        id=penalty_id, team_id="b", time="00:00", period=1, player=BOB,
        duration=2, expires_at=PenaltyExpiry(period, time),
    )


class ToggleClockTests(unittest.TestCase):
    def test_upcoming_goes_live_without_touching_clock(self) -> None:
        match = make_match()
        live = toggle_clock(match)
        self.assertIs(live.status, MatchStatus.LIVE)
        self.assertEqual(live.time, "00:00")
        self.assertEqual(live.period, 1)
        self.assertIs(match.status, MatchStatus.UPCOMING)

    def test_pause_stores_displayed_time(self) -> None:
        match = make_match(status=MatchStatus.LIVE, time="00:00")
        paused = toggle_clock(match, "05:10")
        self.assertIs(paused.status, MatchStatus.PAUSED)
        self.assertEqual(paused.time, "05:10")

    def test_pause_clamps_displayed_time_to_period(self) -> None:
        match = make_match(status=MatchStatus.LIVE)
        self.assertEqual(toggle_clock(match, "25:00").time, "20:00")
        self.assertEqual(toggle_clock(match, "bogus").time, "00:00")

    def test_pause_expires_due_penalties(self) -> None:
        match = make_match(status=MatchStatus.LIVE, events=[make_penalty("p1", 1, "05:00")])
        paused = toggle_clock(match, "05:00")
        self.assertIs(paused.events[0].status, PenaltyStatus.EXPIRED)
        self.assertTrue(match.events[0].is_active)

    def test_break_resumes_next_period_from_zero(self) -> None:
        match = make_match(status=MatchStatus.BREAK, period=2, break_end_time=901000)
        live = toggle_clock(match)
        self.assertIs(live.status, MatchStatus.LIVE)
        self.assertEqual(live.period, 2)
        self.assertEqual(live.time, "00:00")
        self.assertIsNone(live.break_end_time)

    def test_finished_is_a_no_op(self) -> None:
        match = make_match(status=MatchStatus.FINISHED)
        self.assertIs(toggle_clock(match), match)


class EndPeriodTests(unittest.TestCase):
    def test_non_final_period_starts_break(self) -> None:
        carried = make_penalty("p1", 2, "01:30")
        at_boundary = make_penalty("p2", 2, "00:00")
        match = make_match(status=MatchStatus.LIVE, time="20:00", events=[carried, at_boundary])

        broken = end_period(match, now=1000)

        self.assertIs(broken.status, MatchStatus.BREAK)
        self.assertEqual(broken.period, 2)
        self.assertEqual(broken.time, "00:00")
        self.assertEqual(broken.break_end_time, 1000 + 15 * 60 * 1000)
        self.assertEqual([e.status for e in broken.events], [PenaltyStatus.ACTIVE, PenaltyStatus.EXPIRED])

    def test_break_deadline_uses_wall_clock(self) -> None:
        match = make_match(status=MatchStatus.PAUSED, break_duration_minutes=1)
        with patch("floorball_live.services.clock_service.now_ms", return_value=5000):
            broken = end_period(match)
        self.assertEqual(broken.break_end_time, 65000)

    def test_final_period_finishes_match(self) -> None:
        match = make_match(
            status=MatchStatus.LIVE, period=3, time="17:12",
            events=[make_penalty("p1", 3, "19:00")],
        )
        finished = end_period(match, now=0)
        self.assertIs(finished.status, MatchStatus.FINISHED)
        self.assertEqual(finished.period, 3)
        self.assertEqual(finished.time, "20:00")
        self.assertFalse(any(p.is_active for p in finished.penalties()))

    def test_other_phases_are_no_ops(self) -> None:
        for status in (MatchStatus.UPCOMING, MatchStatus.BREAK, MatchStatus.FINISHED):
            match = make_match(status=status)
            self.assertIs(end_period(match, now=0), match)


class SetTimeAndPeriodTests(unittest.TestCase):
    def test_sets_clock_and_period_while_paused(self) -> None:
        match = make_match(status=MatchStatus.PAUSED)
        updated = set_time_and_period(match, 5, 30, 2)
        self.assertEqual(updated.time, "05:30")
        self.assertEqual(updated.period, 2)

    def test_out_of_range_values_are_clamped(self) -> None:
        match = make_match(status=MatchStatus.UPCOMING)
        high = set_time_and_period(match, 99, 99, 9)
        self.assertEqual((high.time, high.period), ("20:00", 3))
        low = set_time_and_period(match, "x", -4, 0)
        self.assertEqual((low.time, low.period), ("00:00", 1))

    def test_full_period_forces_zero_seconds(self) -> None:
        match = make_match(status=MatchStatus.PAUSED)
        self.assertEqual(set_time_and_period(match, 20, 45, 1).time, "20:00")

    def test_rejected_while_running(self) -> None:
        for status in (MatchStatus.LIVE, MatchStatus.BREAK, MatchStatus.FINISHED):
            match = make_match(status=status)
            self.assertIs(set_time_and_period(match, 1, 0, 1), match)


class PhaseQueryTests(unittest.TestCase):
    def test_allowed_actions_follow_phase(self) -> None:
        live = allowed_actions(make_match(status=MatchStatus.LIVE))
        self.assertFalse(live["add_goal"])
        self.assertFalse(live["set_time_and_period"])
        self.assertTrue(live["end_period"])

        paused = allowed_actions(make_match(status=MatchStatus.PAUSED))
        self.assertTrue(paused["add_goal"])
        self.assertTrue(paused["set_time_and_period"])

        finished = allowed_actions(make_match(status=MatchStatus.FINISHED))
        self.assertFalse(any(finished.values()))

    def test_break_countdown(self) -> None:
        match = make_match(status=MatchStatus.BREAK, break_end_time=901000)
        self.assertEqual(break_seconds_left(match, now=1000), 900)
        self.assertEqual(break_seconds_left(match, now=2000000), 0)
        self.assertTrue(is_break_over(match, now=901000))
        self.assertFalse(is_break_over(match, now=1000))
        self.assertIsNone(break_seconds_left(make_match(status=MatchStatus.LIVE), now=0))


if __name__ == "__main__":
    unittest.main()
