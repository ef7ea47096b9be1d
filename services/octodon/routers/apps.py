"""
Client application registration.
"""

from fastapi import APIRouter, Request, status
from pydantic import ValidationError

from services.common.http_errors import BadRequestError
from services.octodon.integrations.oauth_bridge import get_oauth_bridge
from services.octodon.routers.dependencies import read_body
from services.octodon.schemas.oauth import AppRegistrationRequest, Application

router = APIRouter(prefix="/api/v1/apps", tags=["Apps"])


@router.post(
    "",
    response_model=Application,
    summary="Register a client application",
    description="Accepts JSON or form bodies. Every app receives the same "
    "public client credentials.",
    status_code=status.HTTP_200_OK,
)
async def create_app(request: Request) -> Application:
    body = await read_body(request)
    try:
        registration = AppRegistrationRequest.model_validate(body)
    except ValidationError as e:
        raise BadRequestError(
            "Invalid app registration",
            details={"errors": [err["msg"] for err in e.errors()]},
        )
    return get_oauth_bridge().register_app(registration)
