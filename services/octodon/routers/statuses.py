"""
Status endpoints: read one status, and let the owner post.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from pydantic import ValidationError

from services.common.http_errors import (
    BadRequestError,
    ErrorCode,
    ForbiddenError,
    NotFoundError,
)
from services.octodon.auth.bearer import OwnerCredential, require_owner
from services.octodon.routers.dependencies import get_snapshot, read_body
from services.octodon.schemas.status import Snapshot, Status, StatusCreateRequest
from services.octodon.services.status_service import StatusService
from services.octodon.settings import get_settings

router = APIRouter(prefix="/api/v1/statuses", tags=["Statuses"])


def require_write_enabled() -> None:
    """Reject writes before any credential check when posting is switched off."""
    if not get_settings().write_enabled:
        raise ForbiddenError(
            "Write support is disabled on this instance",
            code=ErrorCode.WRITE_DISABLED,
        )


@router.post(
    "",
    response_model=Status,
    summary="Publish a status",
    description="Commits a new post to the content store. Owner only.",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_write_enabled)],
)
async def create_status(
    request: Request,
    owner: Annotated[OwnerCredential, Depends(require_owner)],
) -> Status:
    body = await read_body(request)
    try:
        create_request = StatusCreateRequest.model_validate(body)
    except ValidationError as e:
        raise BadRequestError(
            "Invalid status", details={"errors": [err["msg"] for err in e.errors()]}
        )
    return await StatusService().create_status(
        create_request, owner.login, access_token=owner.access_token
    )


@router.get(
    "/{status_id}",
    response_model=Status,
    summary="View a single status",
    status_code=status.HTTP_200_OK,
)
async def get_status(
    status_id: str,
    snapshot: Annotated[Snapshot, Depends(get_snapshot)],
) -> Status:
    found = snapshot.find_status(status_id)
    if found is None:
        raise NotFoundError("Status", status_id)
    return found
