"""
Loading of the compiled account/status snapshot.

The snapshot is produced ahead of time and never changes while the service
runs. It is read fresh on every request so that a newly published snapshot is
picked up without a restart.
"""

from pathlib import Path
from typing import Optional

import httpx
from pydantic import ValidationError

from services.common.http_errors import StorageUnavailableError
from services.common.logging_config import get_logger
from services.octodon.schemas.status import Snapshot
from services.octodon.settings import Settings, get_settings

logger = get_logger(__name__)

DATA_NOT_FOUND = "Data not found"
FAILED_TO_LOAD = "Failed to load data"


class SnapshotStore:
    """Reads the snapshot from a local file or an http(s) object URL."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    @property
    def source(self) -> str:
        return self.settings.snapshot_source

    @property
    def is_remote(self) -> bool:
        return self.source.startswith(("http://", "https://"))

    async def load_snapshot(self) -> Snapshot:
        """
        Load and validate the snapshot.

        Raises:
            StorageUnavailableError: "Data not found" when the source does
                not exist, "Failed to load data" for any other failure
        """
        raw = await (self._fetch_remote() if self.is_remote else self._read_file())
        try:
            snapshot = Snapshot.model_validate_json(raw)
        except ValidationError as e:
            logger.error(
                "Snapshot failed validation",
                source=self.source,
                error_count=e.error_count(),
            )
            raise StorageUnavailableError(FAILED_TO_LOAD, store="snapshot")

        logger.debug(
            "Snapshot loaded", source=self.source, status_count=len(snapshot.statuses)
        )
        return snapshot

    async def _fetch_remote(self) -> bytes:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    self.source, timeout=self.settings.http_timeout_seconds
                )
        except httpx.HTTPError as e:
            logger.error("Snapshot fetch failed", source=self.source, error=str(e))
            raise StorageUnavailableError(FAILED_TO_LOAD, store="snapshot")

        if response.status_code == 404:
            logger.error("Snapshot not found", source=self.source)
            raise StorageUnavailableError(DATA_NOT_FOUND, store="snapshot")
        if response.is_error:
            logger.error(
                "Snapshot fetch failed",
                source=self.source,
                status_code=response.status_code,
            )
            raise StorageUnavailableError(FAILED_TO_LOAD, store="snapshot")
        return response.content

    async def _read_file(self) -> bytes:
        path = Path(self.source)
        if not path.is_file():
            logger.error("Snapshot not found", source=self.source)
            raise StorageUnavailableError(DATA_NOT_FOUND, store="snapshot")
        try:
            return path.read_bytes()
        except OSError as e:
            logger.error("Snapshot read failed", source=self.source, error=str(e))
            raise StorageUnavailableError(FAILED_TO_LOAD, store="snapshot")


# Global store instance
_snapshot_store: Optional[SnapshotStore] = None


def get_snapshot_store() -> SnapshotStore:
    """Get the global snapshot store, creating it if necessary."""
    global _snapshot_store
    if _snapshot_store is None:
        _snapshot_store = SnapshotStore()
    return _snapshot_store


def reset_snapshot_store() -> None:
    """Drop the cached snapshot store (for testing)."""
    global _snapshot_store
    _snapshot_store = None
