"""
Pydantic schemas for the Octodon service.
"""

from services.octodon.schemas.instance import HealthStatus, Instance, InstanceStats
from services.octodon.schemas.oauth import (
    Application,
    AppRegistrationRequest,
    TokenRequest,
    TokenResponse,
)
from services.octodon.schemas.status import (
    Account,
    Snapshot,
    Status,
    StatusCreateRequest,
    Visibility,
)

__all__ = [
    "Account",
    "Application",
    "AppRegistrationRequest",
    "HealthStatus",
    "Instance",
    "InstanceStats",
    "Snapshot",
    "Status",
    "StatusCreateRequest",
    "TokenRequest",
    "TokenResponse",
    "Visibility",
]
