"""
Bearer token extraction and owner verification for write endpoints.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from services.common.http_errors import AuthError
from services.common.logging_config import get_logger
from services.octodon.integrations.oauth_bridge import get_oauth_bridge

logger = get_logger(__name__)

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class OwnerCredential:
    """A bearer token that the provider confirmed belongs to the owner."""

    login: str
    access_token: str


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    The token from ``Authorization: Bearer <token>``.

    Raises:
        AuthError: Header missing, not a bearer scheme, or empty token
    """
    if not credentials or not credentials.credentials.strip():
        logger.warning("No bearer credentials provided")
        raise AuthError()
    return credentials.credentials.strip()


async def require_owner(token: str = Depends(get_bearer_token)) -> OwnerCredential:
    """
    Re-validate the bearer token with the identity provider.

    Raises:
        AuthError: The provider rejected the token
        ForbiddenError: The token belongs to someone other than the owner
    """
    login = await get_oauth_bridge().require_owner(token)
    return OwnerCredential(login=login, access_token=token)
