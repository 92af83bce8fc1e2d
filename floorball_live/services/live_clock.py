"""
Live clock reconciliation for Floorball Live viewers.

Every viewer (admin or public) owns one ``LiveMatchView``. It keeps two
separate slots:

* ``authoritative``: the last match snapshot confirmed by the store,
* ``local``: the viewer's own copy, advanced by a one-second interval.

Two effects act on them. The sync effect (``sync``) overwrites ``local`` from
every new authoritative snapshot and restarts the interval. The tick effect
advances ``local`` only. While live it counts the period clock up and
expires penalties locally; while in a break it refreshes a countdown anchored
to the wall-clock deadline. The two are different strategies picked by phase.

A view owns at most one interval at any moment: the old one is always
cancelled before a new one is scheduled, and ``close`` cancels it for good.
"""
import functools
import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Tuple

from ..models import Match, MatchStatus
from ..utils import CLOCK_ZERO, TICK_INTERVAL_SECONDS, format_clock, now_ms
from .clock_service import break_seconds_left, copy_match
from .hydration_service import load_match
from .penalty_service import ActivePenaltyView, active_penalty_board, expire_due_penalties
from .persistence_service import PersistenceService

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# Interval schedulers
# ----------------------------------------------------------------------
class IntervalHandle(ABC):
    """A repeating callback that can be cancelled."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop the callback; safe to call more than once."""

    @property
    @abstractmethod
    def active(self) -> bool:
        """Whether the callback is still scheduled."""


class IntervalScheduler(ABC):
    """Source of repeating callbacks for live views."""

    @abstractmethod
    def call_every(self, interval: float, callback: Callable[[], None]) -> IntervalHandle:
        """Call ``callback`` every ``interval`` seconds until cancelled."""

    @property
    @abstractmethod
    def active_count(self) -> int:
        """Number of intervals currently scheduled."""


class _ThreadInterval(IntervalHandle):
    def __init__(self, interval: float, callback: Callable[[], None], on_cancel: Callable[['_ThreadInterval'], None]):
        self.interval = interval
        self.callback = callback
        self._on_cancel = on_cancel
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, name="live-clock", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def _run(self) -> None:
        while not self._stopped.wait(self.interval):
            try:
                self.callback()
            except Exception:
                logger.exception("Live clock callback failed")

    def cancel(self) -> None:
        if not self._stopped.is_set():
            self._stopped.set()
            self._on_cancel(self)

    @property
    def active(self) -> bool:
        return not self._stopped.is_set()


class ThreadingIntervalScheduler(IntervalScheduler):
    """
    Wall-clock scheduler backed by one daemon thread per interval.

    Timing drift of up to about a second is accepted; callbacks are
    serialized by the views themselves.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._handles: List[_ThreadInterval] = []

    def call_every(self, interval: float, callback: Callable[[], None]) -> IntervalHandle:
        handle = _ThreadInterval(interval, callback, self._forget)
        with self._lock:
            self._handles.append(handle)
        handle.start()
        return handle

    def _forget(self, handle: _ThreadInterval) -> None:
        with self._lock:
            if handle in self._handles:
                self._handles.remove(handle)

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._handles)


class _ManualInterval(IntervalHandle):
    def __init__(self, interval: float, callback: Callable[[], None], next_due: float):
        self.interval = interval
        self.callback = callback
        self.next_due = next_due
        self._active = True

    def cancel(self) -> None:
        self._active = False

    @property
    def active(self) -> bool:
        return self._active


class ManualIntervalScheduler(IntervalScheduler):
    """
    Deterministic scheduler driven by ``advance``.

    Used by tests and by pollers that want to drive the clock themselves.
    """

    def __init__(self):
        self.now = 0.0
        self._handles: List[_ManualInterval] = []

    def call_every(self, interval: float, callback: Callable[[], None]) -> IntervalHandle:
        handle = _ManualInterval(interval, callback, self.now + interval)
        self._handles.append(handle)
        return handle

    @property
    def active_count(self) -> int:
        return sum(1 for h in self._handles if h.active)

    def advance(self, seconds: float) -> None:
        """Move time forward, firing every callback that falls due in order."""
        target = self.now + seconds
        while True:
            self._handles = [h for h in self._handles if h.active]
            due = [h for h in self._handles if h.next_due <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.next_due)
            self.now = handle.next_due
            handle.next_due += handle.interval
            handle.callback()
        self.now = target


# ----------------------------------------------------------------------
# Timer strategies
# ----------------------------------------------------------------------
class PeriodClockStrategy:
    """Tick-counted period clock: one second per tick, frozen at the boundary."""

    @staticmethod
    def advance(local: Match) -> Tuple[Match, List[str], bool]:
        """
        Advance a live snapshot by one second.

        Returns:
            Tuple of the new snapshot, ids of penalties expired locally, and
            whether the clock can keep running
        """
        duration = local.period_duration_seconds
        current = local.clock_seconds
        if current >= duration:
            return local, [], False

        seconds = current + 1
        events, expired = expire_due_penalties(local.events, local.period, seconds, duration)
        advanced = copy_match(local, time=format_clock(seconds), events=events)
        return advanced, expired, seconds < duration


class BreakCountdownStrategy:
    """Wall-clock countdown to the end of a break."""

    @staticmethod
    def seconds_left(local: Match, now: int) -> int:
        return break_seconds_left(local, now) or 0

    @classmethod
    def display(cls, local: Match, now: int) -> str:
        return format_clock(cls.seconds_left(local, now))


# ----------------------------------------------------------------------
# Live view
# ----------------------------------------------------------------------
class LiveMatchView:
    """
    A viewer's locally ticking copy of one match.

    Attributes:
        authoritative: Last snapshot received from the store
        local: Snapshot shown to the viewer, ticked locally
    """

    def __init__(
        self,
        scheduler: IntervalScheduler,
        on_change: Optional[Callable[[Optional[Match]], None]] = None,
        clock: Callable[[], int] = now_ms,
        interval: float = TICK_INTERVAL_SECONDS,
    ):
        """
        Args:
            scheduler: Source of the one-second interval
            on_change: Called with the local snapshot after every change
            clock: Wall-clock source in epoch milliseconds (break countdown)
            interval: Seconds between ticks
        """
        self.scheduler = scheduler
        self.on_change = on_change
        self.clock = clock
        self.interval = interval
        self.authoritative: Optional[Match] = None
        self.local: Optional[Match] = None
        self._handle: Optional[IntervalHandle] = None
        self._generation = 0
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._closed = False
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Sync effect
    # ------------------------------------------------------------------
    def sync(self, match: Optional[Match]) -> bool:
        """
        Accept an authoritative snapshot.

        A snapshot whose stored document equals the current authoritative one
        changes nothing, so repeated pushes of the same state never rewind the
        local clock.

        Returns:
            True when the snapshot replaced the local state
        """
        with self._lock:
            if self._closed:
                return False
            if match is not None and self._same_document(match):
                return False
            self.authoritative = match
            self.local = copy_match(match) if match is not None else None
            self._restart_timer()
            snapshot = self.local
        self._emit(snapshot)
        return True

    def _same_document(self, match: Match) -> bool:
        # stored references only; player stat updates must not rewind the clock
        return self.authoritative is not None and match.to_document() == self.authoritative.to_document()

    def poll(self, fetch: Callable[[], Optional[Match]]) -> bool:
        """Request/response variant of the sync effect."""
        return self.sync(fetch())

    def attach(self, store: PersistenceService, match_id: str) -> None:
        """
        Follow a match in the store by subscription.

        The current state is loaded at once; later writes to the match, or to
        the teams and players it references, trigger a reload.
        """
        def fetch() -> Optional[Match]:
            return load_match(store, match_id)

        def listener(collection: str, doc_id: str, document) -> None:
            if collection == "matches" and doc_id != match_id:
                return
            if collection == "tournaments":
                return
            self.poll(fetch)

        with self._lock:
            if self._unsubscribe is not None:
                self._unsubscribe()
            self._unsubscribe = store.subscribe(listener)
        self.poll(fetch)

    # ------------------------------------------------------------------
    # Tick effect
    # ------------------------------------------------------------------
    def _restart_timer(self) -> None:
        self._cancel_timer()
        local = self.local
        if local is None:
            return
        generation = self._generation
        if local.status is MatchStatus.LIVE and local.clock_seconds < local.period_duration_seconds:
            self._handle = self.scheduler.call_every(
                self.interval, functools.partial(self._tick, generation)
            )
        elif local.status is MatchStatus.BREAK and local.break_end_time is not None:
            self._handle = self.scheduler.call_every(
                self.interval, functools.partial(self._refresh_break, generation)
            )

    def _cancel_timer(self) -> None:
        # callbacks already in flight for the old interval see a new generation
        self._generation += 1
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _is_stale(self, generation: int) -> bool:
        return self._closed or generation != self._generation

    def _tick(self, generation: int) -> None:
        with self._lock:
            if self._is_stale(generation):
                return
            local = self.local
            if local is None or local.status is not MatchStatus.LIVE:
                self._cancel_timer()
                return
            advanced, expired, running = PeriodClockStrategy.advance(local)
            self.local = advanced
            if expired:
                logger.debug("Penalties %s expired locally on match %s", expired, local.id)
            if not running:
                # the phase change itself arrives later from the store
                self._cancel_timer()
            snapshot = self.local
        self._emit(snapshot)

    def _refresh_break(self, generation: int) -> None:
        with self._lock:
            if self._is_stale(generation):
                return
            local = self.local
            if local is None or local.status is not MatchStatus.BREAK:
                self._cancel_timer()
                return
            if BreakCountdownStrategy.seconds_left(local, self.clock()) == 0:
                self._cancel_timer()
            snapshot = self.local
        self._emit(snapshot)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------
    @property
    def display_time(self) -> str:
        """Clock shown to the viewer: break countdown during breaks."""
        with self._lock:
            local = self.local
        if local is None:
            return CLOCK_ZERO
        if local.status is MatchStatus.BREAK:
            return BreakCountdownStrategy.display(local, self.clock())
        return local.time

    @property
    def ticking(self) -> bool:
        with self._lock:
            return self._handle is not None and self._handle.active

    def active_penalties(self) -> Dict[str, List[ActivePenaltyView]]:
        """Active penalties with remaining time, from the local snapshot."""
        with self._lock:
            local = self.local
        if local is None:
            return {}
        return active_penalty_board(local)

    def to_dict(self) -> dict:
        with self._lock:
            local = self.local
        if local is None:
            return {"match": None, "display_time": CLOCK_ZERO, "active_penalties": {}}
        board = active_penalty_board(local)
        return {
            "match": local.to_json(),
            "display_time": self.display_time,
            "ticking": self.ticking,
            "active_penalties": {
                team_id: [view.to_dict() for view in views] for team_id, views in board.items()
            },
        }

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------
    def close(self) -> None:
        """Stop ticking and following the store."""
        with self._lock:
            self._closed = True
            self._cancel_timer()
            if self._unsubscribe is not None:
                self._unsubscribe()
                self._unsubscribe = None

    def _emit(self, snapshot: Optional[Match]) -> None:
        if self.on_change is not None:
            self.on_change(snapshot)
