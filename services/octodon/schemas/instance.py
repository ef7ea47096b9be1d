"""
Instance, preferences and health schemas.
"""

from typing import Any, Dict, List

from pydantic import BaseModel, Field


class InstanceStats(BaseModel):
    user_count: int = 1
    status_count: int
    domain_count: int = 1


class Instance(BaseModel):
    """Response of ``GET /api/v1/instance`` (Mastodon v1 shape)."""

    uri: str
    title: str
    short_description: str
    description: str
    email: str
    version: str
    languages: List[str]
    registrations: bool = False
    approval_required: bool = False
    invites_enabled: bool = False
    urls: Dict[str, str] = Field(default_factory=lambda: {"streaming_api": ""})
    stats: InstanceStats
    thumbnail: str = ""
    contact_account: Dict[str, Any]


class HealthStatus(BaseModel):
    status: str
    service: str
    version: str
    timestamp: str
    environment: str
