"""
Web application module for Floorball Live.

This module contains the Flask web server that provides the JSON API used by
the admin console and the public live pages.
"""
import logging
import threading
import uuid
from typing import Any, Callable, Dict, List, Optional

from flask import Flask, jsonify, request

from ..models import Match, MatchStatus, Player, Team
from ..services import (
    AddGoalCommand, AddPenaltyCommand, AddSaveCommand, CommandResult,
    EndPeriodCommand, IntegrityError, IntervalScheduler, LiveMatchView,
    MatchCommand, MatchConfig, MatchNotFoundError, MatchValidationError,
    PersistenceService, RemoveLastGoalCommand, RemoveLastPenaltyCommand,
    ServiceFactory, SetTimeAndPeriodCommand, StorageError, ToggleClockCommand
)
from ..services.clock_service import allowed_actions, break_seconds_left
from ..services.event_log_service import aggregate_career_stats, build_timeline, project_match
from ..services.hydration_service import load_matches, load_players, load_teams
from ..services.penalty_service import active_penalty_board
from ..utils import (
    APP_TITLE, DEFAULT_BREAK_DURATION_MIN, DEFAULT_HOST, DEFAULT_PERIOD_DURATION_MIN,
    DEFAULT_PORT, DEFAULT_TOTAL_PERIODS, PENALTY_DURATIONS_MIN
)

logger = logging.getLogger(__name__)


class WebAppState:
    """
    State holder for the web application.

    Owns the store, the services built around it, one live view per match
    that has been looked at or started, and the notifications raised by
    failed writes.
    """

    def __init__(
        self,
        store: Optional[PersistenceService] = None,
        scheduler: Optional[IntervalScheduler] = None,
    ):
        self.service_factory = ServiceFactory(store=store, scheduler=scheduler)
        services = self.service_factory.create_complete_service_suite()
        self.store = services["store"]
        self.match_service = services["matches"]
        self.notifications: List[str] = []
        self.command_manager = self.service_factory.create_command_manager(notifier=self.notifications.append)
        self._views: Dict[str, LiveMatchView] = {}
        self._views_lock = threading.Lock()

    def live_view(self, match_id: str) -> LiveMatchView:
        """Get (or start) the live view following one match."""
        with self._views_lock:
            view = self._views.get(match_id)
            if view is None:
                view = self.service_factory.create_live_view(match_id)
                self._views[match_id] = view
            return view

    def existing_view(self, match_id: str) -> Optional[LiveMatchView]:
        with self._views_lock:
            return self._views.get(match_id)

    def drop_view(self, match_id: str) -> None:
        with self._views_lock:
            view = self._views.pop(match_id, None)
        if view is not None:
            view.close()

    def close(self) -> None:
        """Stop every live view."""
        with self._views_lock:
            views = list(self._views.values())
            self._views.clear()
        for view in views:
            view.close()


def _error(message: str, status: int):
    return jsonify({"success": False, "error": message}), status


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _match_detail(match: Match) -> Dict[str, Any]:
    """Everything the admin console and the public page show for one match."""
    projection = project_match(match)
    board = active_penalty_board(match)
    return {
        "match": match.to_json(),
        "roster_a": [line.to_dict() for line in projection.roster_a],
        "roster_b": [line.to_dict() for line in projection.roster_b],
        "timeline": [entry.to_dict() for entry in build_timeline(match)],
        "active_penalties": {
            team_id: [view.to_dict() for view in views] for team_id, views in board.items()
        },
        "break_seconds_left": break_seconds_left(match),
        "allowed_actions": allowed_actions(match),
    }


def create_app(
    store: Optional[PersistenceService] = None,
    scheduler: Optional[IntervalScheduler] = None,
) -> Flask:
    """
    Create and configure the Flask application with API endpoints.

    Args:
        store: Document store to serve (a fresh in-memory store by default)
        scheduler: Interval scheduler for live views (threads by default)

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)
    app_state = WebAppState(store=store, scheduler=scheduler)
    app.config["APP_STATE"] = app_state

    def _run(match_id: str, command: MatchCommand, on_success: Optional[Callable[[Match], None]] = None):
        try:
            result: CommandResult = app_state.command_manager.execute(match_id, command)
        except MatchNotFoundError:
            return _error("Match not found", 404)
        except StorageError as e:
            return _error(str(e), 503)

        if result.error:
            return jsonify({
                "success": False,
                "error": result.error,
                "match": result.match.to_json() if result.match else None,
            }), 503
        if on_success is not None:
            on_success(result.match)
        return jsonify({
            "success": True,
            "applied": result.applied,
            "description": command.description,
            **_match_detail(result.match),
        })

    @app.route("/api/config", methods=["GET"])
    def get_config():
        """Defaults and choices offered by the admin dialogs."""
        return jsonify({
            "success": True,
            "title": APP_TITLE,
            "total_periods": DEFAULT_TOTAL_PERIODS,
            "period_duration_minutes": DEFAULT_PERIOD_DURATION_MIN,
            "break_duration_minutes": DEFAULT_BREAK_DURATION_MIN,
            "penalty_durations": list(PENALTY_DURATIONS_MIN),
        })

    # ==================== Teams & players ==================== #

    @app.route("/api/teams", methods=["GET"])
    def get_teams():
        teams = sorted(load_teams(app_state.store).values(), key=lambda t: t.name)
        return jsonify({"success": True, "teams": [t.to_dict() for t in teams]})

    @app.route("/api/teams", methods=["POST"])
    def upsert_team():
        """Create or rename a team."""
        data = _json_body()
        name = str(data.get("name", "")).strip()
        if not name:
            return _error("Team name is required", 400)
        team = Team(id=str(data.get("id") or uuid.uuid4().hex), name=name, logo=str(data.get("logo", "")))
        try:
            app_state.store.upsert_team(team.to_dict())
        except StorageError as e:
            return _error(str(e), 503)
        return jsonify({"success": True, "team": team.to_dict()})

    @app.route("/api/teams/<team_id>", methods=["DELETE"])
    def delete_team(team_id: str):
        try:
            app_state.store.delete_team(team_id)
        except IntegrityError as e:
            return _error(str(e), 409)
        except StorageError as e:
            return _error(str(e), 503)
        return jsonify({"success": True})

    @app.route("/api/players", methods=["GET"])
    def get_players():
        players = sorted(load_players(app_state.store).values(), key=lambda p: (p.team_id or "", p.number))
        return jsonify({
            "success": True,
            "players": [p.to_dict() for p in players],
            "count": len(players)
        })

    @app.route("/api/players", methods=["POST"])
    def upsert_player():
        """Create or update a player; career statistics are kept on update."""
        data = _json_body()
        name = str(data.get("name", "")).strip()
        if not name:
            return _error("Player name is required", 400)
        try:
            number = int(data.get("number", 0) or 0)
        except (TypeError, ValueError):
            return _error("Jersey number must be a number", 400)

        player_id = str(data.get("id") or uuid.uuid4().hex)
        existing = load_players(app_state.store).get(player_id)
        player = Player(
            id=player_id,
            name=name,
            number=number,
            is_goalie=bool(data.get("is_goalie", False)),
            team_id=data.get("team_id") or None,
        )
        if existing is not None:
            player.stats = existing.stats
        try:
            app_state.store.upsert_player(player.to_dict())
        except StorageError as e:
            return _error(str(e), 503)
        return jsonify({"success": True, "player": player.to_dict()})

    @app.route("/api/players/<player_id>", methods=["DELETE"])
    def delete_player(player_id: str):
        try:
            app_state.store.delete_player(player_id)
        except StorageError as e:
            return _error(str(e), 503)
        return jsonify({"success": True})

    # ==================== Matches ==================== #

    @app.route("/api/matches", methods=["GET"])
    def get_matches():
        matches = app_state.match_service.list_matches()
        return jsonify({"success": True, "matches": [m.to_json() for m in matches]})

    @app.route("/api/matches", methods=["POST"])
    def create_match():
        """Create a new upcoming match from the admin's settings."""
        try:
            match = app_state.match_service.create_match(MatchConfig.from_dict(_json_body()))
        except MatchValidationError as e:
            return _error(str(e), 400)
        except StorageError as e:
            return _error(str(e), 503)
        return jsonify({"success": True, **_match_detail(match)}), 201

    @app.route("/api/matches/<match_id>", methods=["GET"])
    def get_match(match_id: str):
        try:
            match = app_state.match_service.get_match(match_id)
        except MatchNotFoundError:
            return _error("Match not found", 404)
        return jsonify({"success": True, **_match_detail(match)})

    @app.route("/api/matches/<match_id>", methods=["DELETE"])
    def delete_match(match_id: str):
        try:
            app_state.match_service.delete_match(match_id)
        except MatchNotFoundError:
            return _error("Match not found", 404)
        except StorageError as e:
            return _error(str(e), 503)
        app_state.drop_view(match_id)
        return jsonify({"success": True})

    @app.route("/api/matches/<match_id>/live", methods=["GET"])
    def get_live(match_id: str):
        """Locally ticked view of a match, as a public viewer sees it."""
        view = app_state.live_view(match_id)
        if view.local is None:
            app_state.drop_view(match_id)
            return _error("Match not found", 404)
        return jsonify({"success": True, **view.to_dict()})

    # ==================== Match events ==================== #

    @app.route("/api/matches/<match_id>/goals", methods=["POST"])
    def add_goal(match_id: str):
        data = _json_body()
        return _run(match_id, AddGoalCommand(
            team_id=data.get("team_id", ""),
            scorer_id=data.get("scorer_id", ""),
            assist_id=data.get("assist_id") or None,
            conceding_goalie_id=data.get("conceding_goalie_id") or None,
        ))

    @app.route("/api/matches/<match_id>/goals/last", methods=["DELETE"])
    def remove_last_goal(match_id: str):
        return _run(match_id, RemoveLastGoalCommand(team_id=request.args.get("team_id") or None))

    @app.route("/api/matches/<match_id>/penalties", methods=["POST"])
    def add_penalty(match_id: str):
        data = _json_body()
        return _run(match_id, AddPenaltyCommand(
            team_id=data.get("team_id", ""),
            player_id=data.get("player_id", ""),
            duration_minutes=data.get("duration", 2),
        ))

    @app.route("/api/matches/<match_id>/penalties/last", methods=["DELETE"])
    def remove_last_penalty(match_id: str):
        return _run(match_id, RemoveLastPenaltyCommand(team_id=request.args.get("team_id") or None))

    @app.route("/api/matches/<match_id>/saves", methods=["POST"])
    def add_save(match_id: str):
        data = _json_body()
        return _run(match_id, AddSaveCommand(
            team_id=data.get("team_id", ""),
            goalie_id=data.get("goalie_id", ""),
        ))

    # ==================== Clock ==================== #

    @app.route("/api/matches/<match_id>/clock/toggle", methods=["POST"])
    def toggle_clock(match_id: str):
        """
        Start or stop the clock.

        When pausing, the time the operator saw is taken from the request, or
        from the server's own locally ticked view of the match. Starting the
        clock opens that view so a later pause always has one to read.
        """
        def follow_if_live(match: Match) -> None:
            if match.status is MatchStatus.LIVE:
                app_state.live_view(match_id)

        displayed_time = _json_body().get("displayed_time")
        if displayed_time is None:
            view = app_state.existing_view(match_id)
            if view is not None and view.local is not None:
                displayed_time = view.local.time
        return _run(match_id, ToggleClockCommand(displayed_time=displayed_time), on_success=follow_if_live)

    @app.route("/api/matches/<match_id>/clock/set", methods=["POST"])
    def set_clock(match_id: str):
        data = _json_body()
        return _run(match_id, SetTimeAndPeriodCommand(
            minutes=data.get("minutes", 0),
            seconds=data.get("seconds", 0),
            period=data.get("period", 1),
        ))

    @app.route("/api/matches/<match_id>/period/end", methods=["POST"])
    def end_period(match_id: str):
        return _run(match_id, EndPeriodCommand())

    # ==================== Statistics ==================== #

    @app.route("/api/stats/players", methods=["GET"])
    def get_player_stats():
        """Career totals over finished matches, best scorers first."""
        players = load_players(app_state.store)
        summaries = aggregate_career_stats(load_matches(app_state.store), players.values())
        rows = []
        for player_id, summary in summaries.items():
            row = players[player_id].to_dict()
            row.pop("stats", None)
            row.update(summary.to_dict())
            rows.append(row)
        rows.sort(key=lambda r: (-r["points"], -r["goals"], r["name"]))
        return jsonify({"success": True, "players": rows})

    @app.route("/api/command-history", methods=["GET"])
    def get_command_history():
        return jsonify({
            "success": True,
            "history": app_state.command_manager.get_command_history(),
            "notifications": list(app_state.notifications),
        })

    return app


def run_web_app(
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    store: Optional[PersistenceService] = None,
) -> None:
    """
    Run the web application.

    Args:
        host: Host address to bind to (default: localhost only)
        port: Port number to listen on
        store: Document store to serve
    """
    app = create_app(store=store)
    logger.info("Serving Floorball Live on http://%s:%s", host, port)
    app.run(host=host, port=port, debug=False)
