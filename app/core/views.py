"""
Infrastructure endpoints that sit outside the API versioning.
"""

import logging

from django.core.cache import cache
from django.db import DatabaseError, connection
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Liveness probe for load balancers and container orchestration.

    The database is required; the cache is reported but a cache outage
    does not fail the probe.

    Returns:
        200 {"status": "healthy", "database": "connected", "cache": ...}
        503 when the database cannot be reached
    """
    payload = {"status": "healthy", "database": "connected", "cache": "connected"}

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
    except DatabaseError:
        logger.error("Health check: database unreachable", exc_info=True)
        payload["database"] = "disconnected"
        payload["status"] = "unhealthy"

    try:
        cache.set("health_check", "ok", timeout=1)
        if cache.get("health_check") != "ok":
            payload["cache"] = "disconnected"
    except Exception:
        logger.warning("Health check: cache unreachable", exc_info=True)
        payload["cache"] = "disconnected"

    status_code = 200 if payload["status"] == "healthy" else 503
    return JsonResponse(payload, status=status_code)
