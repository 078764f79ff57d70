from django.db import DatabaseError, connection
from django.http import JsonResponse

from core.http import api_view
from core.logging_utils import get_core_logger
from core.middleware import get_client_ip

# Get centralized logger
logger = get_core_logger()


@api_view(['GET'], login_required=False)
def health(request):
    """Liveness probe that also checks the database connection."""
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
    except DatabaseError as exc:
        logger.critical("Health check database failure", extra_data={
            "ip": get_client_ip(request), "error": str(exc),
        })
        return JsonResponse({'status': 'error', 'database': 'unavailable'}, status=503)
    return JsonResponse({'status': 'ok', 'database': 'ok'})
