"""Activity Poller - keeps the dashboard's now-playing and recent tracks fresh.

Hey future me - this worker used to be a UI hook with setInterval + two copy-pasted
try/catch blocks. Now it's a plain object with start/stop/refresh_now that any UI glue
(or a test) can drive without rendering anything.

Lifecycle (one PollHandle at a time, ever):
    IDLE --start(session)--> POLLING --tick--> TICKING --done--> POLLING
    any state --stop()/logout--> IDLE

Each tick:
1. Freshness check. Token stale -> SessionManager.refresh(). Refresh failed -> skip the
   whole tick (never call Spotify with a token we KNOW is stale). Timer stays armed.
2. now-playing + recently-played concurrently (asyncio.gather, independent reads).
3. A 401 from either -> refresh once, retry that one call once. Still 401 -> no data for
   that call this tick. That policy lives in ONE helper (_fetch_with_refresh_retry).
4. Publish whatever we got. Partial success is fine.

Teardown: stop() cancels the timer task synchronously. A tick that still finishes after
that (refresh_now from another task) sees its handle is dead and throws the result away.
"""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, TypeVar

from moodring.application.services.session_manager import SessionManager
from moodring.application.services.token_freshness import TokenFreshness
from moodring.domain.entities import (
    ActivitySnapshot,
    AuthFailure,
    Session,
    SessionEvent,
    SessionEventKind,
)
from moodring.domain.exceptions import TokenExpiredError
from moodring.domain.ports import IActivityClient, IClock
from moodring.infrastructure.observability import log_worker_health, set_correlation_id

logger = logging.getLogger(__name__)

T = TypeVar("T")
SnapshotListener = Callable[[ActivitySnapshot], None]


class PollerState(str, Enum):
    """Poller lifecycle state."""

    IDLE = "idle"  # no session, no timer
    POLLING = "polling"  # timer armed, waiting for next tick
    TICKING = "ticking"  # a fetch is in flight


@dataclass(eq=False)
class PollHandle:
    """One active poll loop for one (user, token) pair."""

    user_id: int
    access_token: str = field(repr=False)
    started_at: datetime
    task: asyncio.Task[None] | None = field(default=None, repr=False)
    active: bool = True

    @property
    def key(self) -> tuple[int, str]:
        return (self.user_id, self.access_token)


class ActivityPoller:
    """Periodic Spotify activity fetcher driven by SessionManager events."""

    WORKER_NAME = "activity_poller"

    def __init__(
        self,
        session_manager: SessionManager,
        activity_client: IActivityClient,
        freshness: TokenFreshness,
        clock: IClock,
        interval_seconds: float = 30.0,
        recent_tracks_limit: int = 10,
        health_log_every: int = 10,
    ) -> None:
        """Initialize the poller.

        Args:
            session_manager: Source of the current session and of refreshes
            activity_client: Spotify activity reads
            freshness: Token freshness predicate (shares the clock)
            clock: Time source and sleeper for the timer
            interval_seconds: Period between scheduled ticks (default: 30)
            recent_tracks_limit: How many recent tracks to fetch (default: 10)
            health_log_every: Emit worker.health every N scheduled ticks
        """
        self._manager = session_manager
        self._client = activity_client
        self._freshness = freshness
        self._clock = clock
        self._interval = timedelta(seconds=interval_seconds)
        self._recent_tracks_limit = recent_tracks_limit
        self._health_log_every = health_log_every

        self._handle: PollHandle | None = None
        self._snapshot = ActivitySnapshot()
        self._subscribers: list[SnapshotListener] = []
        self._ticks_in_flight = 0
        self._manual_refreshes = 0
        self._stats: dict[str, Any] = {
            "ticks_completed": 0,
            "ticks_skipped": 0,
            "ticks_discarded": 0,
            "errors_total": 0,
            "refreshes_requested": 0,
            "last_tick_at": None,
        }

    # ------------------------------------------------------------------ wiring

    def attach(self) -> None:
        """Follow SessionManager: adopt -> start, logout -> stop."""
        self._manager.add_listener(self._on_session_event)

    def detach(self) -> None:
        self._manager.remove_listener(self._on_session_event)

    def _on_session_event(self, event: SessionEvent) -> None:
        if event.kind is SessionEventKind.ADOPTED and event.session is not None:
            self.start(event.session)
        elif event.kind is SessionEventKind.CLEARED:
            self.stop()
        # REFRESHED: same user, new tokens. The running loop reads the current session
        # on every tick, so restarting would only cause an extra immediate tick.

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Get called with every published snapshot. Returns an unsubscribe function."""
        self._subscribers.append(listener)

        def unsubscribe() -> None:
            if listener in self._subscribers:
                self._subscribers.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------ state

    @property
    def state(self) -> PollerState:
        if self._handle is None:
            return PollerState.IDLE
        if self._ticks_in_flight:
            return PollerState.TICKING
        return PollerState.POLLING

    @property
    def handle(self) -> PollHandle | None:
        return self._handle

    @property
    def snapshot(self) -> ActivitySnapshot:
        """Last published activity (empty while idle)."""
        return self._snapshot

    @property
    def is_refreshing(self) -> bool:
        """True while a manual refresh_now() is running (pull-to-refresh spinner)."""
        return self._manual_refreshes > 0

    def get_stats(self) -> dict[str, Any]:
        return {
            **self._stats,
            "state": self.state.value,
            "interval_seconds": self._interval.total_seconds(),
        }

    # ------------------------------------------------------------------ lifecycle

    def start(self, session: Session) -> PollHandle:
        """Start polling for `session`, replacing any other loop.

        Idempotent for the same (user, token) pair. Must be called from a running loop.
        """
        if self._handle is not None and self._handle.key == session.poll_key:
            return self._handle

        self.stop()

        handle = PollHandle(
            user_id=session.user_id,
            access_token=session.access_token,
            started_at=self._clock.now(),
        )
        handle.task = asyncio.create_task(
            self._run_loop(handle), name=f"{self.WORKER_NAME}-{session.user_id}"
        )
        self._handle = handle
        logger.info(
            "worker.started",
            extra={
                "worker": self.WORKER_NAME,
                "user_id": session.user_id,
                "interval_seconds": self._interval.total_seconds(),
            },
        )
        return handle

    def stop(self) -> None:
        """Cancel the timer and drop the handle. Synchronous: no tick starts after this."""
        handle = self._handle
        if handle is None:
            return

        self._handle = None
        handle.active = False
        if handle.task is not None and not handle.task.done():
            handle.task.cancel()

        self._publish(ActivitySnapshot())
        logger.info(
            "worker.stopped",
            extra={
                "worker": self.WORKER_NAME,
                "user_id": handle.user_id,
                "ticks_completed": self._stats["ticks_completed"],
            },
        )

    async def shutdown(self) -> None:
        """stop() and wait until the cancelled loop task has unwound."""
        task = self._handle.task if self._handle is not None else None
        self.stop()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def refresh_now(self) -> ActivitySnapshot:
        """Out-of-cycle tick (pull-to-refresh). Leaves the periodic timer alone.

        Returns:
            The snapshot after the tick (unchanged if idle or if the tick was skipped)
        """
        handle = self._handle
        if handle is None:
            return self._snapshot

        self._manual_refreshes += 1
        try:
            await self._run_tick(handle)
        finally:
            self._manual_refreshes -= 1
        return self._snapshot

    # ------------------------------------------------------------------ loop

    async def _run_loop(self, handle: PollHandle) -> None:
        # Fixed-rate schedule: tick N is due at started_at + N * interval, so a slow
        # tick doesn't push every later tick back.
        next_tick_at = self._clock.now()
        cycles = 0

        while handle.active:
            set_correlation_id()
            try:
                await self._run_tick(handle)
            except Exception as e:
                # Log but don't crash - the next tick gets a fresh chance
                self._stats["errors_total"] += 1
                logger.exception("activity_poller.tick_crashed: %s", e)

            cycles += 1
            if cycles % self._health_log_every == 0:
                log_worker_health(
                    logger,
                    self.WORKER_NAME,
                    cycles_completed=cycles,
                    errors_total=self._stats["errors_total"],
                    uptime_seconds=(self._clock.now() - handle.started_at).total_seconds(),
                    extra_stats={"ticks_skipped": self._stats["ticks_skipped"]},
                )

            next_tick_at += self._interval
            now = self._clock.now()
            if next_tick_at <= now:
                missed = int((now - next_tick_at) / self._interval) + 1
                next_tick_at += self._interval * missed
            await self._clock.sleep((next_tick_at - now).total_seconds())

    async def _run_tick(self, handle: PollHandle) -> ActivitySnapshot | None:
        self._ticks_in_flight += 1
        try:
            session = self._session_for(handle)
            if session is None:
                return None

            if self._freshness.is_expired(session):
                logger.debug("activity_poller.token_stale", extra={"user_id": session.user_id})
                self._stats["refreshes_requested"] += 1
                refreshed = await self._manager.refresh(session.user_id)
                if isinstance(refreshed, AuthFailure):
                    self._stats["ticks_skipped"] += 1
                    logger.info(
                        "activity_poller.tick_skipped",
                        extra={"user_id": session.user_id, "reason": str(refreshed)},
                    )
                    return None
                session = refreshed

            limit = self._recent_tracks_limit
            currently_playing, recent_tracks = await asyncio.gather(
                self._fetch_with_refresh_retry(
                    session, self._client.get_currently_playing, None, "currently_playing"
                ),
                self._fetch_with_refresh_retry(
                    session,
                    lambda token: self._client.get_recent_tracks(token, limit),
                    [],
                    "recent_tracks",
                ),
            )

            snapshot = ActivitySnapshot(
                currently_playing=currently_playing,
                recent_tracks=tuple(recent_tracks),
                updated_at=self._clock.now(),
            )

            if not handle.active or self._handle is not handle:
                # Logged out / restarted while we were fetching - don't resurrect old data
                self._stats["ticks_discarded"] += 1
                logger.debug("activity_poller.tick_discarded", extra={"user_id": handle.user_id})
                return None

            self._stats["ticks_completed"] += 1
            self._stats["last_tick_at"] = snapshot.updated_at
            self._publish(snapshot)
            return snapshot
        finally:
            self._ticks_in_flight -= 1

    def _session_for(self, handle: PollHandle) -> Session | None:
        session = self._manager.current
        if session is None or session.user_id != handle.user_id:
            return None
        return session

    async def _fetch_with_refresh_retry(
        self,
        session: Session,
        fetch: Callable[[str], Awaitable[T]],
        fallback: T,
        endpoint: str,
    ) -> T:
        """Call `fetch`; on 401 refresh once and retry once; give up with `fallback`.

        The token looked fresh but Spotify disagreed (clock skew, early revocation).
        """
        try:
            return await fetch(session.spotify_token)
        except TokenExpiredError:
            logger.info(
                "activity_poller.token_rejected",
                extra={"user_id": session.user_id, "endpoint": endpoint},
            )

        self._stats["refreshes_requested"] += 1
        refreshed = await self._manager.refresh(session.user_id)
        if isinstance(refreshed, AuthFailure):
            return fallback

        try:
            return await fetch(refreshed.spotify_token)
        except TokenExpiredError:
            logger.warning(
                "activity_poller.token_rejected_after_refresh",
                extra={"user_id": session.user_id, "endpoint": endpoint},
            )
            return fallback

    def _publish(self, snapshot: ActivitySnapshot) -> None:
        self._snapshot = snapshot
        for listener in list(self._subscribers):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("activity_poller.subscriber_failed")
