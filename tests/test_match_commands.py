"""
Unit tests for admin match commands.

Tests the pure transforms, career statistic bookkeeping and the command
manager's read-modify-write cycle against the store.
"""
import unittest
from unittest.mock import patch

from floorball_live.models import MatchStatus, PenaltyExpiry, PenaltyStatus
from floorball_live.services import (
    AddGoalCommand, AddPenaltyCommand, AddSaveCommand, EndPeriodCommand,
    MatchCommandManager, MatchConfig, MatchNotFoundError, MatchService,
    RemoveLastGoalCommand, RemoveLastPenaltyCommand, SetTimeAndPeriodCommand,
    StorageError, ToggleClockCommand
)
from floorball_live.services.clock_service import copy_match
from floorball_live.services.hydration_service import load_match, load_players
from floorball_live.services.match_commands import (
    add_goal, add_penalty, add_save, career_deltas, remove_last_goal
)
from floorball_live.services.persistence_service import PersistenceService


def seed_store() -> PersistenceService:
    store = PersistenceService()
    store.upsert_team({"id": "a", "name": "Alpha"})
    store.upsert_team({"id": "b", "name": "Bravo"})
    store.upsert_player({"id": "a1", "name": "Anna", "number": 10, "team_id": "a"})
    store.upsert_player({"id": "a2", "name": "Alma", "number": 7, "team_id": "a"})
    store.upsert_player({"id": "ag", "name": "Agnes", "number": 1, "is_goalie": True, "team_id": "a"})
    store.upsert_player({"id": "b1", "name": "Bob", "number": 4, "team_id": "b"})
    store.upsert_player({"id": "b2", "name": "Ben", "number": 8, "team_id": "b"})
    store.upsert_player({"id": "bg", "name": "Bea", "number": 30, "is_goalie": True, "team_id": "b"})
    return store


class TransformTests(unittest.TestCase):
    """Test cases for the pure match transforms."""

    def setUp(self) -> None:
        store = seed_store()
        created = MatchService(store).create_match(MatchConfig("a", "b", goalie_a_id="ag", goalie_b_id="bg"))
        self.match = copy_match(created, status=MatchStatus.PAUSED, time="10:00")
        self.players = load_players(store)

    def test_goal_counts_against_active_goalie_and_cancels_one_penalty(self) -> None:
        match = add_penalty(self.match, "b", self.players["b1"], 2)
        match = add_penalty(match, "b", self.players["b2"], 5)

        scored = add_goal(match, "a", self.players["a1"], self.players["a2"])

        self.assertEqual((scored.score_a, scored.score_b), (1, 0))
        self.assertEqual(scored.goals()[0].conceding_goalie_id, "bg")
        statuses = [p.status for p in scored.penalties()]
        self.assertEqual(statuses, [PenaltyStatus.CANCELLED, PenaltyStatus.ACTIVE])
        self.assertEqual(match.score_a, 0)

    def test_goal_does_not_cancel_scoring_teams_penalty(self) -> None:
        match = add_penalty(self.match, "a", self.players["a2"], 2)
        scored = add_goal(match, "a", self.players["a1"])
        self.assertTrue(scored.penalties()[0].is_active)

    def test_removing_goal_rescores_but_keeps_cancellation(self) -> None:
        match = add_penalty(self.match, "b", self.players["b1"], 2)
        match = add_goal(match, "a", self.players["a1"])
        match = add_goal(match, "b", self.players["b1"])

        undone = remove_last_goal(match, "a")

        self.assertEqual((undone.score_a, undone.score_b), (0, 1))
        self.assertIs(undone.penalties()[0].status, PenaltyStatus.CANCELLED)
        self.assertIs(remove_last_goal(self.match), self.match)

    def test_penalty_expiry_is_computed_from_clock(self) -> None:
        match = add_penalty(copy_match(self.match, time="19:30"), "b", self.players["b1"], 2)
        self.assertEqual(match.penalties()[0].expires_at, PenaltyExpiry(2, "01:30"))

    def test_events_are_rejected_while_clock_runs(self) -> None:
        for status in (MatchStatus.LIVE, MatchStatus.BREAK, MatchStatus.FINISHED):
            match = copy_match(self.match, status=status)
            self.assertIs(add_goal(match, "a", self.players["a1"]), match)
            self.assertIs(add_penalty(match, "b", self.players["b1"], 2), match)
            self.assertIs(add_save(match, "b", self.players["bg"]), match)

    def test_save_needs_a_goalie(self) -> None:
        self.assertIs(add_save(self.match, "b", self.players["b1"]), self.match)
        saved = add_save(self.match, "b", self.players["bg"])
        self.assertEqual(saved.saves()[0].goalie.id, "bg")

    def test_unknown_team_is_ignored(self) -> None:
        self.assertIs(add_goal(self.match, "ghost", self.players["a1"]), self.match)

    def test_career_deltas(self) -> None:
        scored = add_goal(self.match, "a", self.players["a1"], self.players["a2"])
        goal = scored.goals()[0]
        self.assertEqual(career_deltas(goal), {
            "a1": {"goals": 1},
            "a2": {"assists": 1},
            "bg": {"goals_against": 1},
        })
        self.assertEqual(career_deltas(goal, sign=-1)["a1"], {"goals": -1})
        with self.assertRaises(TypeError):
            career_deltas(object())


class CommandManagerTests(unittest.TestCase):
    """Test cases for MatchCommandManager."""

    def setUp(self) -> None:
        self.store = seed_store()
        self.match_id = MatchService(self.store).create_match(
            MatchConfig("a", "b", goalie_a_id="ag", goalie_b_id="bg")
        ).id
        self.notes = []
        self.manager = MatchCommandManager(self.store, notifier=self.notes.append)

    def stored(self):
        return load_match(self.store, self.match_id)

    def career(self, player_id):
        return load_players(self.store)[player_id].stats

    def test_goal_is_written_and_credited_to_careers(self) -> None:
        result = self.manager.execute(self.match_id, AddGoalCommand("a", "a1", assist_id="a2"))

        self.assertTrue(result.applied)
        self.assertEqual(self.stored().score_a, 1)
        self.assertEqual(self.store.get_match_document(self.match_id)["score_a"], 1)
        self.assertEqual(self.career("a1").goals, 1)
        self.assertEqual(self.career("a2").assists, 1)
        self.assertEqual(self.career("bg").goals_against, 1)
        self.assertEqual(self.manager.get_command_history(), ["Goal for a"])

    def test_assist_by_scorer_is_dropped(self) -> None:
        self.manager.execute(self.match_id, AddGoalCommand("a", "a1", assist_id="a1"))
        self.assertIsNone(self.stored().goals()[0].assist)
        self.assertEqual(self.career("a1").assists, 0)

    def test_removal_reverses_career_stats(self) -> None:
        self.manager.execute(self.match_id, AddGoalCommand("a", "a1"))
        self.manager.execute(self.match_id, AddPenaltyCommand("b", "b1", 5))
        self.manager.execute(self.match_id, AddSaveCommand("b", "bg"))
        self.assertEqual(self.career("b1").penalty_minutes, 5)
        self.assertEqual(self.career("bg").saves, 1)

        self.manager.execute(self.match_id, RemoveLastGoalCommand())
        self.manager.execute(self.match_id, RemoveLastPenaltyCommand("b"))

        self.assertEqual(self.stored().score_a, 0)
        self.assertEqual(self.career("a1").goals, 0)
        self.assertEqual(self.career("b1").penalty_minutes, 0)
        self.assertEqual(self.career("bg").goals_against, 0)

    def test_no_op_is_not_written(self) -> None:
        self.manager.execute(self.match_id, ToggleClockCommand())
        seen = []
        self.store.subscribe(lambda c, i, d: seen.append(c))

        result = self.manager.execute(self.match_id, AddGoalCommand("a", "a1"))

        self.assertFalse(result.applied)
        self.assertIsNone(result.error)
        self.assertEqual(seen, [])
        self.assertEqual(self.manager.get_command_history(), ["Toggle clock"])

    def test_unknown_player_is_a_no_op(self) -> None:
        result = self.manager.execute(self.match_id, AddGoalCommand("a", "b1"))
        self.assertFalse(result.applied)

    def test_unknown_match(self) -> None:
        with self.assertRaises(MatchNotFoundError):
            self.manager.execute("ghost", ToggleClockCommand())

    def test_failed_write_notifies_and_resyncs(self) -> None:
        with patch.object(self.store, "replace_match", side_effect=StorageError("disk full")):
            result = self.manager.execute(self.match_id, AddGoalCommand("a", "a1"))

        self.assertFalse(result.applied)
        self.assertIn("disk full", result.error)
        self.assertEqual(len(self.notes), 1)
        self.assertEqual(result.match.events, [])
        self.assertEqual(result.match, self.stored())
        self.assertEqual(self.career("a1").goals, 0)
        self.assertEqual(self.manager.get_command_history(), [])

    def test_history_is_bounded(self) -> None:
        manager = MatchCommandManager(self.store, max_history=2)
        manager.execute(self.match_id, AddSaveCommand("b", "bg"))
        manager.execute(self.match_id, AddSaveCommand("a", "ag"))
        manager.execute(self.match_id, ToggleClockCommand())
        self.assertEqual(manager.get_command_history(), ["Save for a", "Toggle clock"])
        manager.clear_history()
        self.assertEqual(manager.get_command_history(), [])

    def test_penalty_carries_into_next_period_and_expires_there(self) -> None:
        self.manager.execute(self.match_id, ToggleClockCommand())
        self.manager.execute(self.match_id, ToggleClockCommand(displayed_time="19:30"))
        self.manager.execute(self.match_id, AddPenaltyCommand("b", "b1", 2))
        self.assertEqual(self.stored().penalties()[0].expires_at, PenaltyExpiry(2, "01:30"))

        self.manager.execute(self.match_id, EndPeriodCommand(now=0))
        match = self.stored()
        self.assertEqual((match.status, match.period, match.time), (MatchStatus.BREAK, 2, "00:00"))
        self.assertEqual(match.break_end_time, 15 * 60 * 1000)
        self.assertTrue(match.penalties()[0].is_active)

        self.manager.execute(self.match_id, ToggleClockCommand())
        self.manager.execute(self.match_id, ToggleClockCommand(displayed_time="01:29"))
        self.assertTrue(self.stored().penalties()[0].is_active)

        self.manager.execute(self.match_id, ToggleClockCommand())
        self.manager.execute(self.match_id, ToggleClockCommand(displayed_time="01:30"))
        self.assertIs(self.stored().penalties()[0].status, PenaltyStatus.EXPIRED)

    def test_final_period_finishes_match(self) -> None:
        self.manager.execute(self.match_id, AddPenaltyCommand("a", "a1", 10))
        self.manager.execute(self.match_id, SetTimeAndPeriodCommand(17, 12, 3))
        self.manager.execute(self.match_id, ToggleClockCommand())
        self.manager.execute(self.match_id, EndPeriodCommand(now=0))

        match = self.stored()
        self.assertIs(match.status, MatchStatus.FINISHED)
        self.assertEqual((match.period, match.time), (3, "20:00"))
        self.assertFalse(match.active_penalties())

        result = self.manager.execute(self.match_id, ToggleClockCommand())
        self.assertFalse(result.applied)


if __name__ == "__main__":
    unittest.main()
