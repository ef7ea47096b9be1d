"""
Commits post documents to the source repository through the GitHub contents API.
"""

import base64
from typing import Optional

import httpx

from services.common.http_errors import StorageUnavailableError
from services.common.logging_config import get_logger
from services.octodon.settings import Settings, get_settings

logger = get_logger(__name__)


class ContentStore:
    """Thin adapter over ``PUT /repos/{repo}/contents/{path}``."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def contents_url(self, path: str) -> str:
        repo = self.settings.content_store_repo
        if not repo:
            raise StorageUnavailableError(
                "Content store repository is not configured", store="content"
            )
        base = self.settings.content_store_api_url.rstrip("/")
        return f"{base}/repos/{repo}/contents/{path.lstrip('/')}"

    async def commit_post(
        self,
        path: str,
        content: str,
        token: Optional[str] = None,
        message: Optional[str] = None,
    ) -> None:
        """
        Create ``path`` in the repository with ``content``.

        Args:
            path: Repository-relative file path
            content: File text
            token: Credential to commit with when no store token is configured
            message: Commit message

        Raises:
            StorageUnavailableError: Not configured, transport error or non-2xx
        """
        url = self.contents_url(path)
        credential = self.settings.content_store_token or token
        if not credential:
            raise StorageUnavailableError(
                "No credential available for the content store", store="content"
            )

        body = {
            "message": message or f"Add {path}",
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": self.settings.content_store_branch,
        }

        try:
            async with httpx.AsyncClient() as client:
                response = await client.put(
                    url,
                    json=body,
                    headers={
                        "Authorization": f"Bearer {credential}",
                        "Accept": "application/vnd.github+json",
                        "User-Agent": "octodon",
                    },
                    timeout=self.settings.http_timeout_seconds,
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Content store rejected commit",
                path=path,
                status_code=e.response.status_code,
            )
            raise StorageUnavailableError(
                f"Content store rejected the commit ({e.response.status_code})",
                store="content",
            )
        except httpx.HTTPError as e:
            logger.error("Content store request failed", path=path, error=str(e))
            raise StorageUnavailableError(
                "Content store is unreachable", store="content"
            )

        logger.info("Post committed", path=path, branch=body["branch"])


# Global store instance
_content_store: Optional[ContentStore] = None


def get_content_store() -> ContentStore:
    """Get the global content store, creating it if necessary."""
    global _content_store
    if _content_store is None:
        _content_store = ContentStore()
    return _content_store


def reset_content_store() -> None:
    """Drop the cached content store (for testing)."""
    global _content_store
    _content_store = None
