"""
Service factory for dependency injection.

This module provides a factory for creating properly configured service
instances around one shared document store.
"""
from typing import Callable, Dict, Optional

from ..models import Match
from .live_clock import IntervalScheduler, LiveMatchView, ThreadingIntervalScheduler
from .match_commands import MatchCommandManager
from .match_service import MatchService
from .persistence_service import PersistenceService


class ServiceFactory:
    """
    Factory for creating service instances with proper dependency injection.

    The store and the scheduler are created once and shared by every service
    the factory hands out.
    """

    def __init__(
        self,
        store: Optional[PersistenceService] = None,
        scheduler: Optional[IntervalScheduler] = None,
    ):
        """Initialize factory with an optional store and scheduler."""
        self._store = store
        self._scheduler = scheduler

    def get_store(self) -> PersistenceService:
        """Get singleton document store."""
        if self._store is None:
            self._store = PersistenceService()
        return self._store

    def get_scheduler(self) -> IntervalScheduler:
        """Get singleton interval scheduler."""
        if self._scheduler is None:
            self._scheduler = ThreadingIntervalScheduler()
        return self._scheduler

    def create_match_service(self) -> MatchService:
        return MatchService(self.get_store())

    def create_command_manager(self, notifier: Optional[Callable[[str], None]] = None) -> MatchCommandManager:
        """
        Create MatchCommandManager writing to the shared store.

        Args:
            notifier: Called with a message whenever a write fails
        """
        return MatchCommandManager(self.get_store(), notifier=notifier)

    def create_live_view(
        self,
        match_id: str,
        on_change: Optional[Callable[[Optional[Match]], None]] = None,
    ) -> LiveMatchView:
        """
        Create a LiveMatchView already following ``match_id`` in the store.
        """
        view = LiveMatchView(self.get_scheduler(), on_change=on_change)
        view.attach(self.get_store(), match_id)
        return view

    def create_complete_service_suite(self) -> Dict[str, object]:
        """
        Create a complete suite of services with proper dependencies.

        Returns:
            Dictionary containing all configured services
        """
        return {
            "store": self.get_store(),
            "matches": self.create_match_service(),
            "scheduler": self.get_scheduler(),
        }
