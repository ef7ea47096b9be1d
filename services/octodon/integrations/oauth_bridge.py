"""
Stateless OAuth bridge between Mastodon clients and the identity provider.

Mastodon clients speak the Mastodon OAuth dialect against this server; the
bridge forwards the user to GitHub, checks that the person who came back is
the instance owner, and hands the client a token it can present later. No
step stores anything server side: the client's redirect URI travels through
the provider inside a signed state, and the issued token is the provider
token itself (optionally wrapped in an encrypted envelope).
"""

import hashlib
import json
import secrets
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import structlog

from services.common.http_errors import (
    AuthError,
    BadRequestError,
    ForbiddenError,
    InvalidGrantError,
    ProviderAuthError,
    StateInvalidError,
)
from services.octodon.integrations.github import GitHubIdentityProvider
from services.octodon.schemas.oauth import (
    AppRegistrationRequest,
    Application,
    TokenRequest,
    TokenResponse,
)
from services.octodon.security.encryption import TokenEncryption
from services.octodon.security.state import BridgeState, now_ms
from services.octodon.settings import Settings, get_settings

logger = structlog.get_logger(__name__)

AUTHORIZATION_CODE_GRANT = "authorization_code"


def append_query(url: str, **params: Optional[str]) -> str:
    """Add query parameters to ``url``, keeping any it already has."""
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend((k, v) for k, v in params.items() if v is not None)
    return urlunsplit(parts._replace(query=urlencode(query)))


class OAuthBridge:
    """
    The five bridge steps: app registration, authorize, provider callback,
    token exchange and the owner check used by the write path.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        provider: Optional[GitHubIdentityProvider] = None,
    ):
        self.settings = settings or get_settings()
        self.provider = provider or GitHubIdentityProvider(self.settings)
        self.logger = logger

    @property
    def state_secret(self) -> str:
        secret = self.settings.oauth_state_secret
        if not secret:
            raise RuntimeError("OAUTH_STATE_SECRET is not configured")
        return secret

    def _code_encryption(self) -> TokenEncryption:
        return TokenEncryption(self.settings.token_encryption_key or self.state_secret)

    def register_app(self, request: AppRegistrationRequest) -> Application:
        """
        Register a client application.

        Every client gets the same public credentials; they identify nothing
        and authorize nothing on their own.
        """
        app_id = hashlib.sha256(request.client_name.encode("utf-8")).hexdigest()[:16]
        application = Application(
            id=app_id,
            name=request.client_name,
            website=request.website,
            redirect_uri=request.redirect_uri,
            client_id=self.settings.oauth_client_id,
            client_secret=self.settings.oauth_client_secret,
        )
        self.logger.info(
            "oauth_app_registered",
            client_name=application.name,
            redirect_uri=application.redirect_uri,
        )
        return application

    def build_authorize_redirect(
        self,
        redirect_uri: Optional[str],
        client_state: Optional[str] = None,
        now: Optional[int] = None,
    ) -> str:
        """
        Where to send the browser for ``GET /oauth/authorize``.

        With a provider configured this is the provider's authorize URL with a
        freshly signed bridge state. Without one, the client gets an anonymous
        code straight away; anonymous tokens cannot write because the write
        path re-validates every token with the provider.

        Raises:
            BadRequestError: ``redirect_uri`` missing
        """
        if not redirect_uri:
            raise BadRequestError("redirect_uri is required", field="redirect_uri")

        if not self.provider.is_configured:
            self.logger.info("oauth_anonymous_code_issued", redirect_uri=redirect_uri)
            return append_query(
                redirect_uri, code=secrets.token_urlsafe(32), state=client_state
            )

        state = BridgeState(
            client_redirect_uri=redirect_uri,
            issued_at=now_ms() if now is None else now,
            client_state=client_state,
        )
        self.logger.info("oauth_state_issued", redirect_uri=redirect_uri)
        return self.provider.build_authorize_url(state.sign(self.state_secret))

    async def handle_callback(
        self,
        code: Optional[str],
        state: Optional[str],
        error: Optional[str] = None,
        now: Optional[int] = None,
    ) -> str:
        """
        Finish the provider round trip and return the client redirect URL.

        Raises:
            ProviderAuthError: Provider reported an error or the exchange failed
            BadRequestError: ``code`` or ``state`` missing
            StateInvalidError / StateExpiredError: Bad bridge state
            ForbiddenError: The authenticated login is not the owner
        """
        if error:
            self.logger.warning("oauth_provider_error", provider_error=error)
            raise ProviderAuthError(
                f"Identity provider returned an error: {error}", provider="github"
            )
        if not code:
            raise BadRequestError("code is required", field="code")
        if not state:
            raise BadRequestError("state is required", field="state")

        bridge_state = BridgeState.verify(
            state,
            self.state_secret,
            now=now,
            ttl_seconds=self.settings.oauth_state_ttl_seconds,
        )

        access_token = await self.provider.exchange_code(code)
        try:
            login = await self.provider.fetch_login(access_token)
        except AuthError:
            raise ProviderAuthError(
                "Identity provider rejected the token it just issued",
                provider="github",
            )

        self._check_owner(login)

        issued_code = access_token
        if self.settings.wrap_authorization_code:
            issued_code = self.wrap_code(access_token, now=now)

        self.logger.info(
            "oauth_callback_completed",
            redirect_uri=bridge_state.client_redirect_uri,
            wrapped=self.settings.wrap_authorization_code,
        )
        return append_query(
            bridge_state.client_redirect_uri,
            code=issued_code,
            state=bridge_state.client_state,
        )

    def wrap_code(self, access_token: str, now: Optional[int] = None) -> str:
        """Encrypt a provider token with its issue time into an opaque code."""
        payload = {"token": access_token, "ts": now_ms() if now is None else now}
        return self._code_encryption().encrypt(
            json.dumps(payload, separators=(",", ":"))
        )

    def unwrap_code(self, code: str, now: Optional[int] = None) -> str:
        """
        Recover the provider token from a wrapped code.

        Raises:
            InvalidGrantError: Undecryptable, malformed or expired wrapper
        """
        try:
            payload = json.loads(self._code_encryption().decrypt(code))
        except (StateInvalidError, ValueError):
            raise InvalidGrantError("Invalid authorization code")

        token = payload.get("token") if isinstance(payload, dict) else None
        issued_at = payload.get("ts") if isinstance(payload, dict) else None
        if not isinstance(token, str) or not isinstance(issued_at, int):
            raise InvalidGrantError("Invalid authorization code")

        current = now_ms() if now is None else now
        if current - issued_at > self.settings.oauth_state_ttl_seconds * 1000:
            raise InvalidGrantError("Authorization code expired")
        return token

    def exchange_token(
        self, request: TokenRequest, now: Optional[int] = None
    ) -> TokenResponse:
        """
        ``POST /oauth/token``: turn the code into an access token.

        Raises:
            InvalidGrantError: Unsupported grant type, missing or bad code
        """
        if request.grant_type != AUTHORIZATION_CODE_GRANT:
            self.logger.info("oauth_grant_rejected", grant_type=request.grant_type)
            raise InvalidGrantError(
                f"Unsupported grant_type: {request.grant_type}"
                if request.grant_type
                else "grant_type is required"
            )
        if not request.code:
            raise InvalidGrantError("code is required")

        access_token = request.code
        if self.settings.wrap_authorization_code:
            access_token = self.unwrap_code(request.code, now=now)

        current = now_ms() if now is None else now
        self.logger.info("oauth_token_issued")
        return TokenResponse(
            access_token=access_token,
            scope=self.settings.oauth_scope,
            created_at=current // 1000,
        )

    async def require_owner(self, access_token: str) -> str:
        """
        Re-validate a bearer token with the provider and require the owner.

        Raises:
            AuthError: Provider rejected the token
            ProviderAuthError: Provider could not be reached
            ForbiddenError: Valid token, but not the owner's
        """
        login = await self.provider.fetch_login(access_token)
        self._check_owner(login)
        return login

    def _check_owner(self, login: str) -> None:
        owner = self.settings.owner_login
        if not owner or login != owner:
            self.logger.warning("oauth_owner_mismatch", login=login)
            raise ForbiddenError(details={"login": login})


# Global bridge instance
_oauth_bridge: Optional[OAuthBridge] = None


def get_oauth_bridge() -> OAuthBridge:
    """Get the global OAuth bridge, creating it if necessary."""
    global _oauth_bridge
    if _oauth_bridge is None:
        _oauth_bridge = OAuthBridge()
    return _oauth_bridge


def reset_oauth_bridge() -> None:
    """Drop the cached OAuth bridge (for testing)."""
    global _oauth_bridge
    _oauth_bridge = None
