"""
Endpoint tests for app registration and the OAuth bridge.
"""

from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, urlsplit

from services.common.http_errors import ProviderAuthError
from services.octodon.security.state import BridgeState, now_ms
from services.octodon.tests.test_base import (
    PROVIDER_ENV,
    TEST_OWNER,
    TEST_STATE_SECRET,
    BaseOctodonIntegrationTest,
)

PROVIDER = "services.octodon.integrations.github.GitHubIdentityProvider"


def query_of(url: str) -> dict:
    return {k: v[0] for k, v in parse_qs(urlsplit(url).query).items()}


class TestAppRegistration(BaseOctodonIntegrationTest):
    def test_register_with_json(self):
        response = self.client.post(
            "/api/v1/apps",
            json={"client_name": "Elk", "redirect_uris": "https://elk.zone/cb"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Elk"
        assert data["redirect_uri"] == "https://elk.zone/cb"
        assert data["client_id"]
        assert data["client_secret"]
        assert data["vapid_key"] == ""

    def test_register_with_form(self):
        response = self.client.post(
            "/api/v1/apps",
            data={
                "client_name": "Ivory",
                "redirect_uris": "ivory://cb",
                "scopes": "read write",
                "website": "https://ivory.test",
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Ivory"
        assert data["redirect_uri"] == "ivory://cb"
        assert data["website"] == "https://ivory.test"

    def test_register_with_defaults(self):
        response = self.client.post("/api/v1/apps", json={})
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Unknown App"
        assert data["redirect_uri"] == "urn:ietf:wg:oauth:2.0:oob"

    def test_register_with_list_of_redirect_uris(self):
        response = self.client.post(
            "/api/v1/apps",
            json={"redirect_uris": ["https://a.test/cb", "https://b.test/cb"]},
        )
        assert response.json()["redirect_uri"] == "https://a.test/cb\nhttps://b.test/cb"

    def test_invalid_json_body(self):
        response = self.client.post(
            "/api/v1/apps",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "BAD_REQUEST"


class TestAuthorizeWithoutProvider(BaseOctodonIntegrationTest):
    def test_redirects_to_client_with_code(self):
        response = self.client.get(
            "/oauth/authorize",
            params={
                "redirect_uri": "https://elk.zone/cb",
                "response_type": "code",
                "client_id": "x",
            },
        )
        assert response.status_code == 302
        assert response.headers["location"].startswith("https://elk.zone/cb?code=")

    def test_client_state_is_echoed(self):
        response = self.client.get(
            "/oauth/authorize",
            params={"redirect_uri": "https://elk.zone/cb", "state": "abc"},
        )
        assert query_of(response.headers["location"])["state"] == "abc"

    def test_missing_redirect_uri(self):
        response = self.client.get("/oauth/authorize", params={"client_id": "x"})
        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "BAD_REQUEST"
        assert "redirect_uri" in data["error"]


class TestAuthorizeWithProvider(BaseOctodonIntegrationTest):
    extra_env = PROVIDER_ENV

    def test_redirects_to_github(self):
        response = self.client.get(
            "/oauth/authorize",
            params={"redirect_uri": "https://elk.zone/cb", "state": "abc"},
        )
        assert response.status_code == 302
        location = response.headers["location"]
        assert location.startswith("https://github.com/login/oauth/authorize?")

        query = query_of(location)
        assert query["client_id"] == "gh-client-id"
        assert query["redirect_uri"] == "https://octodon.test/oauth/provider/callback"
        state = BridgeState.verify(query["state"], TEST_STATE_SECRET)
        assert state.client_redirect_uri == "https://elk.zone/cb"
        assert state.client_state == "abc"


class TestProviderCallback(BaseOctodonIntegrationTest):
    extra_env = PROVIDER_ENV

    def signed_state(self, issued_at=None, redirect_uri="https://elk.zone/cb"):
        issued = now_ms() if issued_at is None else issued_at
        return BridgeState(redirect_uri, issued, client_state="abc").sign(
            TEST_STATE_SECRET
        )

    def test_success(self):
        with patch(
            f"{PROVIDER}.exchange_code", new=AsyncMock(return_value="gho_abc")
        ), patch(f"{PROVIDER}.fetch_login", new=AsyncMock(return_value=TEST_OWNER)):
            response = self.client.get(
                "/oauth/provider/callback",
                params={"code": "gh-code", "state": self.signed_state()},
            )

        assert response.status_code == 302
        location = response.headers["location"]
        assert location.startswith("https://elk.zone/cb?")
        assert query_of(location) == {"code": "gho_abc", "state": "abc"}

    def test_non_owner_is_forbidden(self):
        with patch(
            f"{PROVIDER}.exchange_code", new=AsyncMock(return_value="gho_abc")
        ), patch(f"{PROVIDER}.fetch_login", new=AsyncMock(return_value="intruder")):
            response = self.client.get(
                "/oauth/provider/callback",
                params={"code": "gh-code", "state": self.signed_state()},
            )

        assert response.status_code == 403
        assert response.json()["code"] == "ACCESS_DENIED"

    def test_tampered_state(self):
        forged = BridgeState("https://evil.example/cb", now_ms()).sign("guess")
        response = self.client.get(
            "/oauth/provider/callback", params={"code": "c", "state": forged}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "STATE_INVALID"

    def test_garbage_state(self):
        response = self.client.get(
            "/oauth/provider/callback", params={"code": "c", "state": "%%%"}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "STATE_INVALID"

    def test_expired_state(self):
        state = self.signed_state(issued_at=now_ms() - 601_000)
        response = self.client.get(
            "/oauth/provider/callback", params={"code": "c", "state": state}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "STATE_EXPIRED"

    def test_missing_code(self):
        response = self.client.get(
            "/oauth/provider/callback", params={"state": self.signed_state()}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "BAD_REQUEST"

    def test_provider_error_parameter(self):
        response = self.client.get(
            "/oauth/provider/callback",
            params={"error": "access_denied", "state": self.signed_state()},
        )
        assert response.status_code == 500
        assert response.json()["code"] == "PROVIDER_AUTH_FAILED"

    def test_exchange_failure(self):
        with patch(
            f"{PROVIDER}.exchange_code",
            new=AsyncMock(side_effect=ProviderAuthError("no token", provider="github")),
        ):
            response = self.client.get(
                "/oauth/provider/callback",
                params={"code": "gh-code", "state": self.signed_state()},
            )
        assert response.status_code == 500
        assert response.json()["code"] == "PROVIDER_AUTH_FAILED"


class TestTokenEndpoint(BaseOctodonIntegrationTest):
    def test_json_grant(self):
        response = self.client.post(
            "/oauth/token",
            json={
                "grant_type": "authorization_code",
                "code": "gho_abc",
                "client_id": "octodon-public-client",
                "redirect_uri": "https://elk.zone/cb",
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["access_token"] == "gho_abc"
        assert data["token_type"] == "Bearer"
        assert data["scope"] == "read write follow push"
        assert isinstance(data["created_at"], int)

    def test_form_grant(self):
        response = self.client.post(
            "/oauth/token",
            data={"grant_type": "authorization_code", "code": "gho_abc"},
        )
        assert response.status_code == 200
        assert response.json()["access_token"] == "gho_abc"

    def test_client_credentials_rejected(self):
        response = self.client.post(
            "/oauth/token", json={"grant_type": "client_credentials"}
        )
        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "invalid_request"
        assert "client_credentials" in data["error_description"]

    def test_missing_code(self):
        response = self.client.post(
            "/oauth/token", json={"grant_type": "authorization_code"}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"


class TestWrappedCodeFlow(BaseOctodonIntegrationTest):
    extra_env = {**PROVIDER_ENV, "WRAP_AUTHORIZATION_CODE": "true"}

    def test_full_flow(self):
        authorize = self.client.get(
            "/oauth/authorize", params={"redirect_uri": "https://elk.zone/cb"}
        )
        state = query_of(authorize.headers["location"])["state"]

        with patch(
            f"{PROVIDER}.exchange_code", new=AsyncMock(return_value="gho_abc")
        ), patch(f"{PROVIDER}.fetch_login", new=AsyncMock(return_value=TEST_OWNER)):
            callback = self.client.get(
                "/oauth/provider/callback", params={"code": "gh", "state": state}
            )

        code = query_of(callback.headers["location"])["code"]
        assert code != "gho_abc"

        token = self.client.post(
            "/oauth/token", json={"grant_type": "authorization_code", "code": code}
        )
        assert token.status_code == 200
        assert token.json()["access_token"] == "gho_abc"

    def test_garbage_code(self):
        response = self.client.post(
            "/oauth/token",
            json={"grant_type": "authorization_code", "code": "not-a-wrapper"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"
