import structlog
from django.db import connection
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

logger = structlog.get_logger(__name__)


@require_http_methods(["GET"])
def healthz(request):
    """Liveness probe: the database answers"""
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
    except Exception as exc:
        logger.error("healthz.fail", error=str(exc))
        return JsonResponse({"status": "unhealthy", "error": str(exc)}, status=503)

    logger.info("healthz.ok", database="connected")
    return JsonResponse({"status": "healthy", "database": "connected"}, status=200)
