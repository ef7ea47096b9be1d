"""
Timeline endpoints.

A single-user instance has one timeline, so public and home return the same
statuses.
"""

from typing import Annotated, List

from fastapi import APIRouter, Depends, Request, Response, status

from services.octodon.routers.dependencies import (
    get_pagination_params,
    get_snapshot,
    paginated_statuses,
)
from services.octodon.schemas.status import Snapshot, Status
from services.octodon.utils.pagination import PaginationParams

router = APIRouter(prefix="/api/v1/timelines", tags=["Timelines"])


@router.get(
    "/public",
    response_model=List[Status],
    summary="Public timeline",
    status_code=status.HTTP_200_OK,
)
async def public_timeline(
    request: Request,
    response: Response,
    snapshot: Annotated[Snapshot, Depends(get_snapshot)],
    params: Annotated[PaginationParams, Depends(get_pagination_params)],
) -> List[Status]:
    return paginated_statuses(request, response, snapshot.statuses, params)


@router.get(
    "/home",
    response_model=List[Status],
    summary="Home timeline",
    status_code=status.HTTP_200_OK,
)
async def home_timeline(
    request: Request,
    response: Response,
    snapshot: Annotated[Snapshot, Depends(get_snapshot)],
    params: Annotated[PaginationParams, Depends(get_pagination_params)],
) -> List[Status]:
    return paginated_statuses(request, response, snapshot.statuses, params)
