"""
GitHub as the identity provider behind the OAuth bridge.

Only three provider operations are needed: build the authorize URL, exchange
an authorization code for an access token, and read the login that token
belongs to. Provider tokens are never logged.
"""

from typing import Optional
from urllib.parse import urlencode

import httpx
import structlog

from services.common.http_errors import AuthError, ProviderAuthError
from services.octodon.settings import Settings, get_settings

logger = structlog.get_logger(__name__)

PROVIDER_NAME = "github"
USER_AGENT = "octodon"


class GitHubIdentityProvider:
    """OAuth client for GitHub's web application flow."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.logger = logger.bind(provider=PROVIDER_NAME)

    @property
    def is_configured(self) -> bool:
        return self.settings.provider_configured

    def build_authorize_url(self, state: str) -> str:
        """Provider authorize URL that sends the user back to the bridge callback."""
        params = {
            "client_id": self.settings.github_client_id or "",
            "redirect_uri": self.settings.oauth_callback_url,
            "scope": self.settings.provider_scope,
            "state": state,
        }
        return f"{self.settings.github_authorize_url}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> str:
        """
        Exchange an authorization code for a provider access token.

        GitHub reports a bad code with HTTP 200 and an ``error`` field, so the
        body is checked for ``access_token`` rather than relying on the status.

        Raises:
            ProviderAuthError: Transport failure, non-2xx or no access token
        """
        token_params = {
            "client_id": self.settings.github_client_id,
            "client_secret": self.settings.github_client_secret,
            "code": code,
            "redirect_uri": self.settings.oauth_callback_url,
        }

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self.settings.github_token_url,
                    data=token_params,
                    headers={
                        "Accept": "application/json",
                        "User-Agent": USER_AGENT,
                    },
                    timeout=self.settings.http_timeout_seconds,
                )
                response.raise_for_status()
                token_data = response.json()
        except httpx.HTTPError as e:
            self.logger.error("oauth_token_exchange_failed", error=str(e))
            raise ProviderAuthError(
                f"Failed to exchange authorization code: {str(e)}",
                provider=PROVIDER_NAME,
            )
        except ValueError as e:
            self.logger.error("oauth_token_exchange_failed", error=str(e))
            raise ProviderAuthError(
                "Identity provider returned an unreadable token response",
                provider=PROVIDER_NAME,
            )

        access_token = (
            token_data.get("access_token") if isinstance(token_data, dict) else None
        )
        if not access_token:
            provider_error = (
                token_data.get("error_description") or token_data.get("error")
                if isinstance(token_data, dict)
                else None
            )
            self.logger.warning(
                "oauth_token_exchange_rejected", provider_error=provider_error
            )
            raise ProviderAuthError(
                "Identity provider did not return an access token",
                provider=PROVIDER_NAME,
                details={"provider_error": provider_error} if provider_error else None,
            )

        self.logger.info("oauth_tokens_exchanged")
        return str(access_token)

    async def fetch_login(self, access_token: str) -> str:
        """
        Read the login of the account a provider token belongs to.

        Raises:
            AuthError: The provider rejected the token (401/403)
            ProviderAuthError: Any other failure
        """
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    self.settings.github_user_url,
                    headers={
                        "Authorization": f"Bearer {access_token}",
                        "Accept": "application/vnd.github+json",
                        "User-Agent": USER_AGENT,
                    },
                    timeout=self.settings.http_timeout_seconds,
                )
                if response.status_code in (401, 403):
                    self.logger.warning(
                        "oauth_token_rejected", status_code=response.status_code
                    )
                    raise AuthError()
                response.raise_for_status()
                user_info = response.json()
        except httpx.HTTPError as e:
            self.logger.error("oauth_user_info_failed", error=str(e))
            raise ProviderAuthError(
                f"Failed to retrieve user info: {str(e)}", provider=PROVIDER_NAME
            )
        except ValueError as e:
            self.logger.error("oauth_user_info_failed", error=str(e))
            raise ProviderAuthError(
                "Identity provider returned an unreadable user response",
                provider=PROVIDER_NAME,
            )

        login = user_info.get("login") if isinstance(user_info, dict) else None
        if not isinstance(login, str) or not login:
            raise ProviderAuthError(
                "Identity provider response has no login", provider=PROVIDER_NAME
            )

        self.logger.info("oauth_user_info_retrieved", login=login)
        return login
