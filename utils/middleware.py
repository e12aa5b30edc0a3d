"""
Middleware that records booking and search requests in MongoDB.
"""
import logging
import time

from utils.mongo import log_api_request

logger = logging.getLogger(__name__)


def _query_params(request):
    # Repeated keys keep all their values
    return {
        key: values[0] if len(values) == 1 else values
        for key, values in request.GET.lists()
    }


def _results_count(response):
    data = getattr(response, 'data', None)
    if isinstance(data, dict) and isinstance(data.get('results'), list):
        return len(data['results'])
    if isinstance(data, list):
        return len(data)
    return None


class APILoggingMiddleware:
    """Times requests under LOGGED_PREFIXES and writes one log entry per request."""

    LOGGED_PREFIXES = ('/bookings', '/trains/search')

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if not request.path.startswith(self.LOGGED_PREFIXES):
            return self.get_response(request)

        started = time.perf_counter()
        response = self.get_response(request)
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

        user = getattr(request, 'user', None)
        try:
            log_api_request(
                endpoint=request.path,
                method=request.method,
                user_id=user.pk if user is not None and user.is_authenticated else None,
                request_params=_query_params(request) if request.method == 'GET' else {},
                response_status=response.status_code,
                execution_time_ms=elapsed_ms,
                results_count=_results_count(response),
            )
        except Exception:
            # A broken log store must not turn into a failed request
            logger.exception("Could not record %s %s", request.method, request.path)

        return response
