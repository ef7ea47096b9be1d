"""
Octodon - Integrations Package

The GitHub identity provider and the OAuth bridge that Mastodon clients
authenticate through.
"""

from services.octodon.integrations.github import GitHubIdentityProvider
from services.octodon.integrations.oauth_bridge import (
    OAuthBridge,
    get_oauth_bridge,
    reset_oauth_bridge,
)

__all__ = [
    "GitHubIdentityProvider",
    "OAuthBridge",
    "get_oauth_bridge",
    "reset_oauth_bridge",
]
