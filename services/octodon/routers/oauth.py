"""
OAuth endpoints bridging Mastodon clients to the identity provider.
"""

from typing import Optional

from fastapi import APIRouter, Query, Request, status
from fastapi.responses import RedirectResponse
from pydantic import ValidationError

from services.common.http_errors import InvalidGrantError
from services.octodon.integrations.oauth_bridge import get_oauth_bridge
from services.octodon.routers.dependencies import read_body
from services.octodon.schemas.oauth import TokenRequest, TokenResponse

router = APIRouter(prefix="/oauth", tags=["OAuth"])


@router.get(
    "/authorize",
    summary="Start authorization",
    description="Redirects to the identity provider with a signed state.",
    status_code=status.HTTP_302_FOUND,
    response_class=RedirectResponse,
)
async def authorize(
    redirect_uri: Optional[str] = Query(None, description="Client redirect URI"),
    state: Optional[str] = Query(None, description="Opaque client state"),
    response_type: Optional[str] = Query(None, description="Always 'code'"),
    client_id: Optional[str] = Query(None, description="Registered client ID"),
    scope: Optional[str] = Query(None, description="Requested scopes"),
) -> RedirectResponse:
    location = get_oauth_bridge().build_authorize_redirect(
        redirect_uri, client_state=state
    )
    return RedirectResponse(location, status_code=status.HTTP_302_FOUND)


@router.get(
    "/provider/callback",
    summary="Identity provider callback",
    description="Verifies the state and the owner, then redirects to the client.",
    status_code=status.HTTP_302_FOUND,
    response_class=RedirectResponse,
)
async def provider_callback(
    code: Optional[str] = Query(None, description="Provider authorization code"),
    state: Optional[str] = Query(None, description="Signed bridge state"),
    error: Optional[str] = Query(None, description="Provider error"),
) -> RedirectResponse:
    location = await get_oauth_bridge().handle_callback(code, state, error=error)
    return RedirectResponse(location, status_code=status.HTTP_302_FOUND)


@router.post(
    "/token",
    response_model=TokenResponse,
    summary="Obtain an access token",
    status_code=status.HTTP_200_OK,
)
async def token(request: Request) -> TokenResponse:
    body = await read_body(request)
    try:
        token_request = TokenRequest.model_validate(body)
    except ValidationError:
        raise InvalidGrantError("Malformed token request")
    return get_oauth_bridge().exchange_token(token_request)
