"""
Unit tests for MatchService functionality.

Tests configuration validation, roster snapshots and match storage.
"""
import unittest

from floorball_live.models import MatchStatus
from floorball_live.services import MatchConfig, MatchNotFoundError, MatchService, MatchValidationError
from floorball_live.services.persistence_service import PersistenceService


def seed_store() -> PersistenceService:
    store = PersistenceService()
    store.upsert_team({"id": "a", "name": "Alpha"})
    store.upsert_team({"id": "b", "name": "Bravo"})
    store.upsert_player({"id": "a1", "name": "Anna", "number": 10, "team_id": "a"})
    store.upsert_player({"id": "ag", "name": "Agnes", "number": 1, "is_goalie": True, "team_id": "a"})
    store.upsert_player({"id": "b1", "name": "Bob", "number": 4, "team_id": "b"})
    store.upsert_player({"id": "bg", "name": "Bea", "number": 30, "is_goalie": True, "team_id": "b"})
    store.upsert_player({"id": "x1", "name": "Xena", "number": 9})
    return store


class TestMatchService(unittest.TestCase):
    """Test cases for MatchService."""

    def setUp(self) -> None:
        self.store = seed_store()
        self.service = MatchService(self.store)

    def assertInvalid(self, message: str, **settings) -> None:
        with self.assertRaises(MatchValidationError) as ctx:
            self.service.create_match(MatchConfig(**settings))
        self.assertEqual(str(ctx.exception), message)

    def test_create_match_with_defaults(self) -> None:
        match = self.service.create_match(MatchConfig("a", "b", goalie_a_id="ag", goalie_b_id="bg"))

        self.assertIs(match.status, MatchStatus.UPCOMING)
        self.assertEqual((match.period, match.time), (1, "00:00"))
        self.assertEqual((match.total_periods, match.period_duration_minutes, match.break_duration_minutes), (3, 20, 15))
        self.assertEqual([p.id for p in match.roster_a], ["ag", "a1"])
        self.assertEqual([p.id for p in match.roster_b], ["b1", "bg"])
        self.assertEqual(match.active_goalie_b_id, "bg")
        self.assertEqual(self.service.get_match(match.id), match)

    def test_config_from_request_body(self) -> None:
        config = MatchConfig.from_dict({"team_a_id": "a", "team_b_id": "b", "total_periods": "2", "goalie_a_id": ""})
        match = self.service.create_match(config)
        self.assertEqual(match.total_periods, 2)
        self.assertIsNone(match.active_goalie_a_id)

    def test_validation_messages(self) -> None:
        self.assertInvalid("Please select both teams.", team_a_id="a", team_b_id="")
        self.assertInvalid("Teams cannot play against themselves.", team_a_id="a", team_b_id="a")
        self.assertInvalid("Unknown team.", team_a_id="a", team_b_id="ghost")
        self.assertInvalid("Number of periods must be a positive number.", team_a_id="a", team_b_id="b", total_periods=0)
        self.assertInvalid("Period duration must be a positive number.", team_a_id="a", team_b_id="b",
                           period_duration_minutes="abc")
        self.assertInvalid("Break duration must not be negative.", team_a_id="a", team_b_id="b",
                           break_duration_minutes=-1)
        self.assertInvalid("Selected goalie is not a goalie of that team.", team_a_id="a", team_b_id="b",
                           goalie_a_id="a1")
        self.assertInvalid("Selected goalie is not a goalie of that team.", team_a_id="a", team_b_id="b",
                           goalie_b_id="ag")
        self.assertEqual(self.store.list_documents("matches"), [])

    def test_zero_minute_break_is_allowed(self) -> None:
        match = self.service.create_match(MatchConfig("a", "b", break_duration_minutes=0))
        self.assertEqual(match.break_duration_minutes, 0)

    def test_list_orders_by_date(self) -> None:
        late = self.service.create_match(MatchConfig("a", "b", date="2024-05-02"))
        early = self.service.create_match(MatchConfig("b", "a", date="2024-05-01"))
        self.assertEqual([m.id for m in self.service.list_matches()], [early.id, late.id])

    def test_missing_match(self) -> None:
        with self.assertRaises(MatchNotFoundError):
            self.service.get_match("ghost")
        with self.assertRaises(MatchNotFoundError):
            self.service.delete_match("ghost")

    def test_delete_match(self) -> None:
        match = self.service.create_match(MatchConfig("a", "b"))
        self.service.delete_match(match.id)
        self.assertIsNone(self.store.get_match_document(match.id))


if __name__ == "__main__":
    unittest.main()
