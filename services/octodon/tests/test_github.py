"""
Unit tests for the GitHub identity provider client.
"""

from unittest.mock import AsyncMock, MagicMock, patch
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from services.common.http_errors import AuthError, ProviderAuthError
from services.octodon.integrations.github import GitHubIdentityProvider
from services.octodon.settings import Settings


def make_settings(**overrides) -> Settings:
    values = dict(
        github_client_id="gh-client-id",
        github_client_secret="gh-client-secret",
        public_base_url="https://octodon.test",
        http_timeout_seconds=5.0,
        github_scope="read:user",
        github_write_scope="public_repo",
        write_enabled=False,
        content_store_token=None,
    )
    values.update(overrides)
    return Settings(**values)


def mock_async_client(mock_client):
    """Patch httpx.AsyncClient so ``async with`` yields ``mock_client``."""
    patcher = patch("services.octodon.integrations.github.httpx.AsyncClient")
    mock_class = patcher.start()
    mock_class.return_value.__aenter__ = AsyncMock(return_value=mock_client)
    mock_class.return_value.__aexit__ = AsyncMock(return_value=None)
    return patcher


def make_response(status_code=200, json_data=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = json_data
    if status_code >= 400:
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            f"HTTP {status_code}", request=MagicMock(), response=response
        )
    return response


class TestAuthorizeUrl:
    def test_authorize_url_carries_bridge_parameters(self):
        provider = GitHubIdentityProvider(make_settings())
        url = provider.build_authorize_url("signed-state")

        parts = urlsplit(url)
        assert f"{parts.scheme}://{parts.netloc}{parts.path}" == (
            "https://github.com/login/oauth/authorize"
        )
        query = parse_qs(parts.query)
        assert query["client_id"] == ["gh-client-id"]
        assert query["redirect_uri"] == ["https://octodon.test/oauth/provider/callback"]
        assert query["scope"] == ["read:user"]
        assert query["state"] == ["signed-state"]

    def test_owner_token_commits_request_write_scope(self):
        provider = GitHubIdentityProvider(make_settings(write_enabled=True))
        query = parse_qs(urlsplit(provider.build_authorize_url("s")).query)
        assert query["scope"] == ["read:user public_repo"]

    def test_store_token_keeps_read_scope(self):
        provider = GitHubIdentityProvider(
            make_settings(write_enabled=True, content_store_token="ghp_store")
        )
        query = parse_qs(urlsplit(provider.build_authorize_url("s")).query)
        assert query["scope"] == ["read:user"]

    def test_custom_write_scope(self):
        provider = GitHubIdentityProvider(
            make_settings(write_enabled=True, github_write_scope="repo")
        )
        query = parse_qs(urlsplit(provider.build_authorize_url("s")).query)
        assert query["scope"] == ["read:user repo"]

    def test_is_configured(self):
        assert GitHubIdentityProvider(make_settings()).is_configured
        assert not GitHubIdentityProvider(
            make_settings(github_client_id=None)
        ).is_configured


class TestExchangeCode:
    def setup_method(self):
        self.provider = GitHubIdentityProvider(make_settings())
        self.mock_client = AsyncMock()
        self.patcher = mock_async_client(self.mock_client)

    def teardown_method(self):
        self.patcher.stop()

    @pytest.mark.asyncio
    async def test_success(self):
        self.mock_client.post.return_value = make_response(
            json_data={"access_token": "gho_abc", "token_type": "bearer"}
        )

        assert await self.provider.exchange_code("code-123") == "gho_abc"

        call = self.mock_client.post.call_args
        assert call.args[0] == "https://github.com/login/oauth/access_token"
        assert call.kwargs["data"]["code"] == "code-123"
        assert call.kwargs["data"]["client_secret"] == "gh-client-secret"
        assert call.kwargs["headers"]["Accept"] == "application/json"
        assert call.kwargs["timeout"] == 5.0

    @pytest.mark.asyncio
    async def test_error_body_without_token(self):
        self.mock_client.post.return_value = make_response(
            json_data={"error": "bad_verification_code"}
        )

        with pytest.raises(ProviderAuthError) as exc_info:
            await self.provider.exchange_code("stale")
        assert exc_info.value.details["provider_error"] == "bad_verification_code"
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_http_error(self):
        self.mock_client.post.return_value = make_response(status_code=502)

        with pytest.raises(ProviderAuthError):
            await self.provider.exchange_code("code")

    @pytest.mark.asyncio
    async def test_transport_error(self):
        self.mock_client.post.side_effect = httpx.ConnectError("connection refused")

        with pytest.raises(ProviderAuthError):
            await self.provider.exchange_code("code")

    @pytest.mark.asyncio
    async def test_unreadable_body(self):
        response = make_response()
        response.json.side_effect = ValueError("not json")
        self.mock_client.post.return_value = response

        with pytest.raises(ProviderAuthError):
            await self.provider.exchange_code("code")


class TestFetchLogin:
    def setup_method(self):
        self.provider = GitHubIdentityProvider(make_settings())
        self.mock_client = AsyncMock()
        self.patcher = mock_async_client(self.mock_client)

    def teardown_method(self):
        self.patcher.stop()

    @pytest.mark.asyncio
    async def test_success(self):
        self.mock_client.get.return_value = make_response(
            json_data={"login": "octo-owner", "id": 1}
        )

        assert await self.provider.fetch_login("gho_abc") == "octo-owner"
        headers = self.mock_client.get.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer gho_abc"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [401, 403])
    async def test_rejected_token(self, status_code):
        self.mock_client.get.return_value = make_response(status_code=status_code)

        with pytest.raises(AuthError):
            await self.provider.fetch_login("revoked")

    @pytest.mark.asyncio
    async def test_server_error(self):
        self.mock_client.get.return_value = make_response(status_code=500)

        with pytest.raises(ProviderAuthError):
            await self.provider.fetch_login("gho_abc")

    @pytest.mark.asyncio
    async def test_missing_login(self):
        self.mock_client.get.return_value = make_response(json_data={"id": 1})

        with pytest.raises(ProviderAuthError):
            await self.provider.fetch_login("gho_abc")
