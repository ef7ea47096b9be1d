"""
Endpoint tests for the owner write path.
"""

from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, urlsplit

from services.common.http_errors import AuthError, StorageUnavailableError
from services.octodon.tests.test_base import (
    PROVIDER_ENV,
    TEST_OWNER,
    BaseOctodonIntegrationTest,
)

FETCH_LOGIN = "services.octodon.integrations.github.GitHubIdentityProvider.fetch_login"
COMMIT_POST = "services.octodon.services.content_store.ContentStore.commit_post"

AUTH = {"Authorization": "Bearer gho_owner"}


class TestWriteDisabled(BaseOctodonIntegrationTest):
    def test_write_disabled_is_forbidden(self):
        response = self.client.post(
            "/api/v1/statuses", json={"status": "hello"}, headers=AUTH
        )
        assert response.status_code == 403
        assert response.json()["code"] == "WRITE_DISABLED"

    def test_write_disabled_checked_before_credentials(self):
        response = self.client.post("/api/v1/statuses", json={"status": "hello"})
        assert response.status_code == 403


class TestWriteEnabled(BaseOctodonIntegrationTest):
    extra_env = {
        **PROVIDER_ENV,
        "WRITE_ENABLED": "true",
        "CONTENT_STORE_REPO": "octo-owner/toots",
    }

    def setup_method(self):
        super().setup_method()
        self.fetch_login = AsyncMock(return_value=TEST_OWNER)
        self.commit_post = AsyncMock(return_value=None)
        self.patches = [
            patch(FETCH_LOGIN, new=self.fetch_login),
            patch(COMMIT_POST, new=self.commit_post),
        ]
        for p in self.patches:
            p.start()

    def teardown_method(self):
        for p in self.patches:
            p.stop()
        super().teardown_method()

    def test_missing_authorization(self):
        response = self.client.post("/api/v1/statuses", json={"status": "hello"})
        assert response.status_code == 401
        assert response.json()["code"] == "AUTH_FAILED"
        self.fetch_login.assert_not_awaited()

    def test_malformed_authorization(self):
        response = self.client.post(
            "/api/v1/statuses",
            json={"status": "hello"},
            headers={"Authorization": "Basic dXNlcjpwYXNz"},
        )
        assert response.status_code == 401

    def test_rejected_token(self):
        self.fetch_login.side_effect = AuthError()
        response = self.client.post(
            "/api/v1/statuses", json={"status": "hello"}, headers=AUTH
        )
        assert response.status_code == 401

    def test_other_login_is_forbidden(self):
        self.fetch_login.return_value = "intruder"
        response = self.client.post(
            "/api/v1/statuses", json={"status": "hello"}, headers=AUTH
        )
        assert response.status_code == 403
        assert response.json()["code"] == "ACCESS_DENIED"
        self.commit_post.assert_not_awaited()

    def test_create_status(self):
        response = self.client.post(
            "/api/v1/statuses",
            json={"status": "Hello **world**", "visibility": "unlisted"},
            headers=AUTH,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["id"].isdigit()
        assert data["visibility"] == "unlisted"
        assert data["sensitive"] is False
        assert "Hello **world**" in data["content"]
        assert data["account"]["username"] == TEST_OWNER
        self.fetch_login.assert_awaited_once_with("gho_owner")

        path, document = self.commit_post.await_args.args
        assert path == f"toots/{data['id']}.md"
        assert document.startswith("---\n")
        assert f'id: "{data["id"]}"' in document
        assert "visibility: unlisted" in document
        assert "sensitive: false" in document
        assert document.rstrip().endswith("Hello **world**")
        assert self.commit_post.await_args.kwargs["token"] == "gho_owner"

    def test_create_status_from_form(self):
        response = self.client.post(
            "/api/v1/statuses",
            data={"status": "From a form", "sensitive": "true", "spoiler_text": "cw"},
            headers=AUTH,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["sensitive"] is True
        assert data["spoiler_text"] == "cw"
        assert data["visibility"] == "public"

    def test_empty_status(self):
        response = self.client.post(
            "/api/v1/statuses", json={"status": "   "}, headers=AUTH
        )
        assert response.status_code == 400
        self.commit_post.assert_not_awaited()

    def test_unknown_visibility(self):
        response = self.client.post(
            "/api/v1/statuses",
            json={"status": "hi", "visibility": "everyone"},
            headers=AUTH,
        )
        assert response.status_code == 400
        assert response.json()["details"]["field"] == "visibility"

    def test_store_failure(self):
        self.commit_post.side_effect = StorageUnavailableError(
            "Content store is unreachable", store="content"
        )
        response = self.client.post(
            "/api/v1/statuses", json={"status": "hello"}, headers=AUTH
        )
        assert response.status_code == 500
        assert response.json()["code"] == "STORAGE_UNAVAILABLE"

    def test_snapshot_is_not_updated(self):
        self.client.post("/api/v1/statuses", json={"status": "hello"}, headers=AUTH)
        timeline = self.client.get("/api/v1/timelines/public").json()
        assert len(timeline) == 5

    def test_authorize_requests_commit_scope(self):
        response = self.client.get(
            "/oauth/authorize", params={"redirect_uri": "https://elk.zone/cb"}
        )
        query = parse_qs(urlsplit(response.headers["location"]).query)
        assert query["scope"] == ["read:user public_repo"]
