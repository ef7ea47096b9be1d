"""
Account endpoints for the single owner account.
"""

from typing import Annotated, List

from fastapi import APIRouter, Depends, Request, Response, status

from services.common.http_errors import NotFoundError
from services.octodon.routers.dependencies import (
    get_pagination_params,
    get_snapshot,
    paginated_statuses,
)
from services.octodon.schemas.status import Account, Snapshot, Status
from services.octodon.utils.pagination import PaginationParams

router = APIRouter(prefix="/api/v1/accounts", tags=["Accounts"])


@router.get(
    "/verify_credentials",
    response_model=Account,
    summary="Current account",
    description="Always the instance owner; reading is not authenticated.",
    status_code=status.HTTP_200_OK,
)
async def verify_credentials(
    snapshot: Annotated[Snapshot, Depends(get_snapshot)],
) -> Account:
    return snapshot.account


@router.get(
    "/{account_id}",
    response_model=Account,
    summary="Get account",
    status_code=status.HTTP_200_OK,
)
async def get_account(
    account_id: str,
    snapshot: Annotated[Snapshot, Depends(get_snapshot)],
) -> Account:
    if not snapshot.owns_account_id(account_id):
        raise NotFoundError("Account", account_id)
    return snapshot.account


@router.get(
    "/{account_id}/statuses",
    response_model=List[Status],
    summary="Statuses posted by an account",
    status_code=status.HTTP_200_OK,
)
async def get_account_statuses(
    account_id: str,
    request: Request,
    response: Response,
    snapshot: Annotated[Snapshot, Depends(get_snapshot)],
    params: Annotated[PaginationParams, Depends(get_pagination_params)],
) -> List[Status]:
    if not snapshot.owns_account_id(account_id):
        raise NotFoundError("Account", account_id)
    return paginated_statuses(request, response, snapshot.statuses, params)
