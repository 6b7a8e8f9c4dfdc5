"""Shared fixtures: controllable clock and session builders."""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta

import pytest

from moodring.domain.entities import Session, UserProfile
from moodring.domain.ports import IClock

START = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)


class FakeClock(IClock):
    """Clock whose time only moves when the test calls advance().

    sleep() parks the caller until advance() moves time past its deadline, so timer
    behaviour can be tested without real waiting.
    """

    def __init__(self, start: datetime = START) -> None:
        self._now = start
        self._sleepers: list[tuple[datetime, asyncio.Future[None]]] = []

    def now(self) -> datetime:
        return self._now

    async def sleep(self, seconds: float) -> None:
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._sleepers.append((self._now + timedelta(seconds=seconds), future))
        await future

    @property
    def pending_sleepers(self) -> int:
        return sum(1 for _, future in self._sleepers if not future.done())

    async def advance(self, seconds: float) -> None:
        self._now += timedelta(seconds=seconds)
        still_waiting = []
        for deadline, future in self._sleepers:
            if future.done():
                continue
            if deadline <= self._now:
                future.set_result(None)
            else:
                still_waiting.append((deadline, future))
        self._sleepers = still_waiting
        await settle()


async def settle(rounds: int = 20) -> None:
    """Let every ready task run until the loop goes quiet."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_session(clock: FakeClock) -> Callable[..., Session]:
    """Factory for sessions whose expiry is relative to the fake clock."""

    def _make(
        user_id: int = 42,
        expires_in: timedelta | None = timedelta(hours=1),
        access_token: str = "backend-jwt",
        spotify_token: str | None = "spotify-token",
    ) -> Session:
        return Session(
            user=UserProfile(
                id=user_id,
                spotify_id=f"spotify-{user_id}",
                email=f"user{user_id}@example.com",
                display_name="Test User",
                spotify_access_token=spotify_token,
                spotify_refresh_token="refresh-token",
                token_expires_at=clock.now() + expires_in if expires_in is not None else None,
            ),
            access_token=access_token,
        )

    return _make


@pytest.fixture
def settle_loop() -> Callable[[], Awaitable[None]]:
    return settle
