import logging
import time
import uuid

logger = logging.getLogger('emr.requests')


class RequestLogMiddleware:
    """Log one line per API request and echo an ``X-Request-ID`` header."""
    LOGGED_PREFIXES = ('/api/',)

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        path = request.path or ''
        if not any(path.startswith(p) for p in self.LOGGED_PREFIXES):
            return self.get_response(request)
        request_id = request.META.get('HTTP_X_REQUEST_ID') or uuid.uuid4().hex
        request.request_id = request_id
        started = time.monotonic()
        response = self.get_response(request)
        elapsed_ms = (time.monotonic() - started) * 1000
        user = getattr(request, 'user', None)
        logger.info(
            '%s %s %s %.1fms user=%s rid=%s',
            request.method, path, response.status_code, elapsed_ms,
            getattr(user, 'id', None), request_id,
        )
        response['X-Request-ID'] = request_id
        return response
