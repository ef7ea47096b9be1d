"""
Common utilities shared by Octodon services: settings, logging and HTTP errors.
"""

from services.common.http_errors import (
    ErrorCode,
    ErrorResponse,
    OctodonAPIException,
    register_octodon_exception_handlers,
)
from services.common.logging_config import get_logger, setup_service_logging

__all__ = [
    "ErrorCode",
    "ErrorResponse",
    "OctodonAPIException",
    "register_octodon_exception_handlers",
    "get_logger",
    "setup_service_logging",
]
