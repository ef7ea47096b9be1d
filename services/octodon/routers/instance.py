"""
Instance metadata and user preferences.
"""

from typing import Annotated, Any, Dict

from fastapi import APIRouter, Depends, Request, status

from services.octodon.routers.dependencies import get_snapshot
from services.octodon.schemas.instance import Instance, InstanceStats
from services.octodon.schemas.status import Snapshot
from services.octodon.settings import get_settings

router = APIRouter(prefix="/api/v1", tags=["Instance"])

DEFAULT_PREFERENCES: Dict[str, Any] = {
    "posting:default:visibility": "public",
    "posting:default:sensitive": False,
    "posting:default:language": "en",
    "reading:expand:media": "default",
    "reading:expand:spoilers": False,
}


@router.get(
    "/instance",
    response_model=Instance,
    summary="Instance information",
    status_code=status.HTTP_200_OK,
)
async def get_instance(
    request: Request,
    snapshot: Annotated[Snapshot, Depends(get_snapshot)],
) -> Instance:
    settings = get_settings()
    return Instance(
        uri=request.url.hostname or "",
        title=settings.instance_title,
        short_description=settings.instance_description,
        description=settings.instance_description,
        email=settings.instance_email,
        version=settings.instance_version,
        languages=settings.instance_languages,
        stats=InstanceStats(status_count=len(snapshot.statuses)),
        contact_account=snapshot.account.model_dump(),
    )


@router.get(
    "/preferences",
    summary="User preferences",
    description="Fixed defaults; the instance has no per-user settings.",
    status_code=status.HTTP_200_OK,
)
async def get_preferences() -> Dict[str, Any]:
    return dict(DEFAULT_PREFERENCES)
