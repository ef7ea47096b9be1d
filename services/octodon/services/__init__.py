"""
Services package for the Octodon service.

Exports the snapshot and content store adapters and the status write service.
"""

from services.octodon.services.content_store import (
    ContentStore,
    get_content_store,
)
from services.octodon.services.snapshot_store import (
    SnapshotStore,
    get_snapshot_store,
)
from services.octodon.services.status_service import StatusService

__all__ = [
    "ContentStore",
    "SnapshotStore",
    "StatusService",
    "get_content_store",
    "get_snapshot_store",
]
