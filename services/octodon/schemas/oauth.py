"""
Request and response schemas for app registration and the OAuth bridge.
"""

from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator

OOB_REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"


class AppRegistrationRequest(BaseModel):
    """Body of ``POST /api/v1/apps``."""

    client_name: str = Field(default="Unknown App", description="Application name")
    redirect_uris: Union[str, List[str]] = Field(
        default=OOB_REDIRECT_URI, description="Where to send users after authorizing"
    )
    scopes: Optional[str] = Field(default=None, description="Requested scopes")
    website: Optional[str] = Field(default=None, description="Application homepage")

    @field_validator("client_name", mode="before")
    @classmethod
    def default_name(cls, v: Optional[str]) -> str:
        return v or "Unknown App"

    @property
    def redirect_uri(self) -> str:
        """Mastodon reports several redirect URIs as one newline-joined string."""
        if isinstance(self.redirect_uris, list):
            return "\n".join(self.redirect_uris) or OOB_REDIRECT_URI
        return self.redirect_uris or OOB_REDIRECT_URI


class Application(BaseModel):
    """Application descriptor returned on registration."""

    id: str
    name: str
    website: Optional[str] = None
    redirect_uri: str
    client_id: str
    client_secret: str
    vapid_key: str = ""


class TokenRequest(BaseModel):
    """Body of ``POST /oauth/token``."""

    grant_type: Optional[str] = None
    code: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    redirect_uri: Optional[str] = None
    scope: Optional[str] = None


class TokenResponse(BaseModel):
    """Issued access token."""

    access_token: str
    token_type: str = "Bearer"
    scope: str
    created_at: int
