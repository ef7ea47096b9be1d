"""
Settings and configuration for the Octodon service.

Uses the common BaseSettings to read environment variables and .env files.
"""

from typing import List, Optional

from services.common.settings import (
    AliasChoices,
    BaseSettings,
    Field,
    SettingsConfigDict,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Service Configuration
    service_name: str = Field(default="octodon", description="Service name")
    host: str = Field(default="0.0.0.0", description="Host to bind to")
    port: int = Field(default=8080, description="Port to bind to")
    debug: bool = Field(default=False, description="Debug mode")
    environment: str = Field(
        default="development",
        description="Environment (development, staging, production)",
    )
    public_base_url: str = Field(
        default="http://localhost:8080",
        description="Externally visible base URL, used for callbacks and links",
    )

    # CORS Configuration
    cors_origins: List[str] = Field(
        default=["*"], description="Allowed CORS origins"
    )

    # Instance description
    instance_title: str = Field(default="Octodon", description="Instance title")
    instance_description: str = Field(
        default="A static Mastodon instance powered by markdown",
        description="Instance description",
    )
    instance_version: str = Field(
        default="4.2.0 (compatible)",
        description="Mastodon version reported to clients",
    )
    instance_languages: List[str] = Field(
        default=["en"], description="Languages the instance posts in"
    )
    instance_email: str = Field(default="", description="Contact email")

    # OAuth bridge
    owner_login: Optional[str] = Field(
        default=None,
        description="Identity provider login of the single instance owner",
        validation_alias=AliasChoices("OWNER_LOGIN", "GITHUB_OWNER"),
    )
    oauth_state_secret: Optional[str] = Field(
        default=None,
        description="Secret used to sign OAuth bridge state",
        validation_alias=AliasChoices("OAUTH_STATE_SECRET", "STATE_SECRET"),
    )
    oauth_client_id: str = Field(
        default="octodon-public-client",
        description="Fixed client_id handed to every registered app",
    )
    oauth_client_secret: str = Field(
        default="octodon-public-secret",
        description="Fixed client_secret handed to every registered app",
    )
    oauth_scope: str = Field(
        default="read write follow push",
        description="Scope string reported on issued tokens",
    )
    oauth_state_ttl_seconds: int = Field(
        default=600, description="Lifetime of OAuth bridge state in seconds"
    )
    wrap_authorization_code: bool = Field(
        default=False,
        description="Encrypt the provider token before handing it out as the code",
    )
    token_encryption_key: Optional[str] = Field(
        default=None,
        description="Key for code wrapping; falls back to the state secret",
    )

    # Identity provider (GitHub)
    github_client_id: Optional[str] = Field(
        default=None, description="GitHub OAuth app client ID"
    )
    github_client_secret: Optional[str] = Field(
        default=None, description="GitHub OAuth app client secret"
    )
    github_authorize_url: str = Field(
        default="https://github.com/login/oauth/authorize",
        description="GitHub authorization endpoint",
    )
    github_token_url: str = Field(
        default="https://github.com/login/oauth/access_token",
        description="GitHub token endpoint",
    )
    github_user_url: str = Field(
        default="https://api.github.com/user",
        description="GitHub authenticated-user endpoint",
    )
    github_scope: str = Field(default="read:user", description="Scope requested")
    github_write_scope: str = Field(
        default="public_repo",
        description="Extra scope requested when owner tokens commit posts",
    )

    # Snapshot and content store
    snapshot_source: str = Field(
        default="dist/posts.json",
        description="File path or http(s) URL of the compiled snapshot",
    )
    write_enabled: bool = Field(
        default=False, description="Allow the owner to post through the API"
    )
    content_store_repo: Optional[str] = Field(
        default=None, description="owner/repo holding the post documents"
    )
    content_store_branch: str = Field(default="main", description="Branch to commit to")
    content_store_path: str = Field(
        default="toots", description="Directory for new post documents"
    )
    content_store_token: Optional[str] = Field(
        default=None,
        description="Token for commits; the owner's bearer token is used if unset",
    )
    content_store_api_url: str = Field(
        default="https://api.github.com", description="GitHub API base URL"
    )

    # Outbound HTTP
    http_timeout_seconds: float = Field(
        default=30.0, description="Timeout for calls to external services"
    )

    # Pagination
    pagination_default_page_size: int = Field(
        default=20, description="Page size when limit is absent or invalid"
    )
    pagination_max_page_size: int = Field(
        default=40, description="Maximum page size"
    )

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format (json or text)")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def provider_configured(self) -> bool:
        """Whether the identity provider credentials are present."""
        return bool(self.github_client_id and self.github_client_secret)

    @property
    def commits_with_owner_token(self) -> bool:
        """Whether posts are committed with the owner's bearer token."""
        return self.write_enabled and not self.content_store_token

    @property
    def provider_scope(self) -> str:
        """Scope to request; the owner token must be able to commit posts."""
        if self.commits_with_owner_token:
            return f"{self.github_scope} {self.github_write_scope}".strip()
        return self.github_scope

    @property
    def oauth_callback_url(self) -> str:
        """Bridge-owned callback registered with the identity provider."""
        return f"{self.public_base_url.rstrip('/')}/oauth/provider/callback"


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance, creating it if necessary."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings (for testing)."""
    global _settings
    _settings = None
