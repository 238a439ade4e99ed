"""
DRF exception handler for application errors.

Configured as REST_FRAMEWORK["EXCEPTION_HANDLER"]. Application errors are
rendered with the status their class declares; everything else is left
to DRF's default handler.
"""

from __future__ import annotations

import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import BaseApplicationError

logger = logging.getLogger(__name__)


def api_exception_handler(exc, context):
    if isinstance(exc, BaseApplicationError):
        view = context.get("view")
        logger.info(
            "Application error returned to client",
            extra={
                "error_code": exc.error_code,
                "status_code": exc.http_status,
                "view": view.__class__.__name__ if view else None,
            },
        )
        return Response(exc.to_dict(), status=exc.http_status)

    return exception_handler(exc, context)
