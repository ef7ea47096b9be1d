"""
Pydantic schemas for Mastodon account and status entities.

Snapshot records are passed through to clients unchanged, so both models keep
fields they do not declare.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)


class Visibility(str, Enum):
    """Mastodon status visibility levels."""

    PUBLIC = "public"
    UNLISTED = "unlisted"
    PRIVATE = "private"
    DIRECT = "direct"


def format_timestamp(value: datetime) -> str:
    """Render an instant the way Mastodon does: UTC, milliseconds, ``Z``."""
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


class Account(BaseModel):
    """The single owner account."""

    model_config = ConfigDict(extra="allow")

    id: str
    username: str
    acct: str = ""
    display_name: str = ""
    locked: bool = False
    bot: bool = False
    discoverable: bool = True
    group: bool = False
    created_at: Optional[str] = None
    note: str = ""
    url: str = ""
    avatar: str = ""
    avatar_static: str = ""
    header: str = ""
    header_static: str = ""
    followers_count: int = 0
    following_count: int = 0
    statuses_count: int = 0
    last_status_at: Optional[str] = None
    emojis: List[Any] = Field(default_factory=list)
    fields: List[Any] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        return str(v)


class Status(BaseModel):
    """A post from the snapshot."""

    model_config = ConfigDict(extra="allow")

    id: str
    created_at: datetime
    in_reply_to_id: Optional[str] = None
    in_reply_to_account_id: Optional[str] = None
    sensitive: bool = False
    spoiler_text: str = ""
    visibility: Visibility = Visibility.PUBLIC
    language: Optional[str] = None
    uri: str = ""
    url: Optional[str] = None
    replies_count: int = 0
    reblogs_count: int = 0
    favourites_count: int = 0
    content: str = ""
    reblog: Optional[Any] = None
    account: Optional[Any] = None
    media_attachments: List[Any] = Field(default_factory=list)
    mentions: List[Any] = Field(default_factory=list)
    tags: List[Any] = Field(default_factory=list)
    emojis: List[Any] = Field(default_factory=list)
    card: Optional[Any] = None
    poll: Optional[Any] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        return str(v)

    @field_validator(
        "in_reply_to_id", "in_reply_to_account_id", "url", mode="before"
    )
    @classmethod
    def coerce_optional_id(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)

    @field_validator("uri", mode="before")
    @classmethod
    def coerce_uri(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("created_at")
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        return format_timestamp(value)


def sort_newest_first(statuses: List[Status]) -> List[Status]:
    """Order by created_at descending, ties broken by id descending."""
    return sorted(statuses, key=lambda s: (s.created_at, s.id), reverse=True)


class Snapshot(BaseModel):
    """
    The compiled account and its posts, newest first.

    Compiled snapshots use the key ``statuses``; ``posts`` is accepted too.
    """

    account: Account
    statuses: List[Status] = Field(
        default_factory=list,
        validation_alias=AliasChoices("statuses", "posts"),
    )

    @field_validator("statuses")
    @classmethod
    def order_statuses(cls, v: List[Status]) -> List[Status]:
        return sort_newest_first(v)

    def find_status(self, status_id: str) -> Optional[Status]:
        """Look up a status by id."""
        return next((s for s in self.statuses if s.id == status_id), None)

    def owns_account_id(self, account_id: str) -> bool:
        """Clients address the owner either by its id or by ``1``."""
        return account_id in (self.account.id, "1")


class StatusCreateRequest(BaseModel):
    """Body of ``POST /api/v1/statuses``."""

    status: Optional[str] = Field(default=None, description="Post text (markdown)")
    visibility: Optional[str] = Field(default=None, description="Visibility level")
    sensitive: bool = Field(default=False, description="Mark media as sensitive")
    spoiler_text: str = Field(default="", description="Content warning")
    language: Optional[str] = Field(default=None, description="ISO 639 language")
    in_reply_to_id: Optional[str] = Field(default=None, description="Replied post")
