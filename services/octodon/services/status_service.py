"""
Owner write path: turn a new post into a markdown document, commit it to the
content store, and answer with the status the client expects.

The committed document is compiled into the snapshot by the build pipeline
later; the running service does not see it until the snapshot is republished.
"""

import html
import json
from datetime import datetime, timezone
from typing import Optional

from services.common.http_errors import BadRequestError
from services.common.logging_config import get_logger
from services.octodon.schemas.status import (
    Account,
    Status,
    StatusCreateRequest,
    Visibility,
    format_timestamp,
)
from services.octodon.services.content_store import ContentStore, get_content_store
from services.octodon.settings import Settings, get_settings

logger = get_logger(__name__)


def render_post_document(
    status_id: str,
    created_at: datetime,
    text: str,
    visibility: Visibility,
    sensitive: bool = False,
    spoiler_text: str = "",
    language: Optional[str] = None,
) -> str:
    """Markdown document with YAML frontmatter, as read by the snapshot build."""
    lines = [
        "---",
        f"id: {json.dumps(status_id)}",
        f"created_at: {json.dumps(format_timestamp(created_at))}",
        f"visibility: {visibility.value}",
        f"sensitive: {'true' if sensitive else 'false'}",
        f"spoiler_text: {json.dumps(spoiler_text)}",
    ]
    if language:
        lines.append(f"language: {json.dumps(language)}")
    lines.append("---")
    return "\n".join(lines) + "\n\n" + text.strip() + "\n"


def render_html(text: str) -> str:
    """Minimal HTML for the echoed status: paragraphs and line breaks."""
    paragraphs = [p for p in text.strip().split("\n\n") if p.strip()]
    return "".join(
        "<p>" + html.escape(p.strip()).replace("\n", "<br />") + "</p>"
        for p in paragraphs
    )


class StatusService:
    """Creates posts on behalf of the instance owner."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        content_store: Optional[ContentStore] = None,
    ):
        self.settings = settings or get_settings()
        self.content_store = content_store or get_content_store()

    def owner_account(self, login: str) -> Account:
        base = self.settings.public_base_url.rstrip("/")
        return Account(
            id="1",
            username=login,
            acct=login,
            display_name=login,
            url=f"{base}/@{login}",
        )

    @staticmethod
    def parse_visibility(raw: Optional[str]) -> Visibility:
        if not raw:
            return Visibility.PUBLIC
        try:
            return Visibility(raw)
        except ValueError:
            raise BadRequestError(
                f"Unknown visibility: {raw}", field="visibility"
            )

    async def create_status(
        self,
        request: StatusCreateRequest,
        login: str,
        access_token: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Status:
        """
        Commit a new post and return its synthesized status.

        Args:
            request: Client-supplied post fields
            login: Verified owner login
            access_token: Owner's bearer token, used to commit when no store
                token is configured
            now: Creation time (defaults to the clock)

        Raises:
            BadRequestError: Empty text or unknown visibility
            StorageUnavailableError: The commit failed
        """
        text = (request.status or "").strip()
        if not text:
            raise BadRequestError("Status text cannot be empty", field="status")
        visibility = self.parse_visibility(request.visibility)

        created_at = now or datetime.now(timezone.utc)
        status_id = str(int(created_at.timestamp() * 1000))
        path = f"{self.settings.content_store_path.strip('/')}/{status_id}.md"

        document = render_post_document(
            status_id,
            created_at,
            text,
            visibility,
            sensitive=request.sensitive,
            spoiler_text=request.spoiler_text,
            language=request.language,
        )
        await self.content_store.commit_post(
            path, document, token=access_token, message=f"Add post {status_id}"
        )
        logger.info("Status created", status_id=status_id, visibility=visibility.value)

        base = self.settings.public_base_url.rstrip("/")
        return Status(
            id=status_id,
            created_at=created_at,
            content=render_html(text),
            visibility=visibility,
            sensitive=request.sensitive,
            spoiler_text=request.spoiler_text,
            language=request.language,
            in_reply_to_id=request.in_reply_to_id,
            uri=f"{base}/statuses/{status_id}",
            url=f"{base}/@{login}/{status_id}",
            account=self.owner_account(login).model_dump(),
        )
