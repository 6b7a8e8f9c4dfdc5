"""Real clock backed by datetime and asyncio."""

import asyncio
from datetime import UTC, datetime

from moodring.domain.ports import IClock


class SystemClock(IClock):
    """Wall-clock time and asyncio.sleep."""

    def now(self) -> datetime:
        return datetime.now(UTC)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
