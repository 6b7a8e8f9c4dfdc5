"""Reference implementations of the opaque session blob store.

On the phone this is secure storage; these two cover tests, desktop tooling and
scripts. Both store a single string and know nothing about its contents.
"""

import asyncio
import logging
import os
import tempfile
from pathlib import Path

from moodring.domain.exceptions import SessionStoreError
from moodring.domain.ports import ISessionStore

logger = logging.getLogger(__name__)


class InMemorySessionStore(ISessionStore):
    """Process-local store. Lost on exit."""

    def __init__(self, blob: str | None = None) -> None:
        self._blob = blob

    async def get(self) -> str | None:
        return self._blob

    async def set(self, blob: str) -> None:
        self._blob = blob

    async def delete(self) -> None:
        self._blob = None


class JsonFileSessionStore(ISessionStore):
    """File-backed store with atomic replace.

    Hey future me - set() writes to a temp file in the SAME directory and then
    os.replace()s it over the target. That rename is atomic on POSIX and Windows, so a
    crash mid-write leaves either the old blob or the new one, never half of each.
    File IO runs in a worker thread so the event loop never blocks on disk.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    async def get(self) -> str | None:
        return await asyncio.to_thread(self._read)

    async def set(self, blob: str) -> None:
        await asyncio.to_thread(self._write, blob)

    async def delete(self) -> None:
        await asyncio.to_thread(self._unlink)

    def _read(self) -> str | None:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise SessionStoreError(f"Cannot read session file {self.path}: {e}") from e

    def _write(self, blob: str) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(blob)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.chmod(tmp_name, 0o600)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise SessionStoreError(f"Cannot write session file {self.path}: {e}") from e

    def _unlink(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise SessionStoreError(f"Cannot delete session file {self.path}: {e}") from e


def create_session_store(path: Path | None) -> ISessionStore:
    """File store when a path is configured, memory otherwise."""
    if path is None:
        logger.debug("session_store.memory")
        return InMemorySessionStore()
    logger.debug("session_store.file", extra={"path": str(path)})
    return JsonFileSessionStore(path)
