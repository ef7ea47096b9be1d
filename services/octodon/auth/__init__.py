"""
Authentication package for the Octodon service.
"""

from .bearer import OwnerCredential, get_bearer_token, require_owner

__all__ = ["OwnerCredential", "get_bearer_token", "require_owner"]
