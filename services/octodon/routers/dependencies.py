"""
Shared request dependencies for the Mastodon API routers.
"""

import json
from typing import Any, Dict, List, Optional

from fastapi import Query, Request, Response

from services.common.http_errors import BadRequestError
from services.octodon.schemas.status import Snapshot, Status
from services.octodon.services.snapshot_store import get_snapshot_store
from services.octodon.settings import get_settings
from services.octodon.utils.pagination import (
    PaginationParams,
    build_link_header,
    paginate,
    parse_limit,
)

FORM_CONTENT_TYPES = {"application/x-www-form-urlencoded", "multipart/form-data"}


async def get_snapshot() -> Snapshot:
    """Load the snapshot for this request."""
    return await get_snapshot_store().load_snapshot()


def get_pagination_params(
    limit: Optional[str] = Query(None, description="Maximum number of results"),
    max_id: Optional[str] = Query(None, description="Return results older than ID"),
    since_id: Optional[str] = Query(None, description="Return results newer than ID"),
    min_id: Optional[str] = Query(
        None, description="Return results immediately newer than ID"
    ),
) -> PaginationParams:
    return PaginationParams(
        limit=limit, max_id=max_id, since_id=since_id, min_id=min_id
    )


def paginated_statuses(
    request: Request,
    response: Response,
    statuses: List[Status],
    params: PaginationParams,
) -> List[Status]:
    """Page ``statuses`` and attach the Link header to ``response``."""
    settings = get_settings()
    page = paginate(
        statuses,
        params,
        default_page_size=settings.pagination_default_page_size,
        max_page_size=settings.pagination_max_page_size,
    )
    limit = parse_limit(
        params.limit,
        settings.pagination_default_page_size,
        settings.pagination_max_page_size,
    )
    link = build_link_header(str(request.url.replace(query="")), page, limit)
    if link:
        response.headers["Link"] = link
    return page


async def read_body(request: Request) -> Dict[str, Any]:
    """
    Request body as a dict, whether sent as JSON or as a form.

    Mastodon clients use either encoding for app registration, token and
    status requests.

    Raises:
        BadRequestError: Body is not a JSON object or cannot be parsed
    """
    content_type = request.headers.get("content-type", "").split(";")[0].strip()
    if content_type in FORM_CONTENT_TYPES:
        form = await request.form()
        return {key: _form_value(form.getlist(key)) for key in form.keys()}

    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        raise BadRequestError("Request body is not valid JSON")
    if not isinstance(data, dict):
        raise BadRequestError("Request body must be a JSON object")
    return data


def _form_value(values: List[Any]) -> Any:
    return values[0] if len(values) == 1 else values
