"""
Router package for the Octodon service.

Exports all API routers for registration with the FastAPI application.
"""

from services.octodon.routers.accounts import router as accounts_router
from services.octodon.routers.apps import router as apps_router
from services.octodon.routers.instance import router as instance_router
from services.octodon.routers.oauth import router as oauth_router
from services.octodon.routers.statuses import router as statuses_router
from services.octodon.routers.timelines import router as timelines_router

__all__ = [
    "accounts_router",
    "apps_router",
    "instance_router",
    "oauth_router",
    "statuses_router",
    "timelines_router",
]
