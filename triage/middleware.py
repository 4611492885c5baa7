import logging
import time
import uuid

logger = logging.getLogger("hms.request")


class RequestLogMiddleware:
    """Emit one JSON access-log record per request."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        start_time = time.time()
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        request.request_id = request_id

        response = self.get_response(request)

        duration = f"{time.time() - start_time:.3f}"
        forwarded = request.META.get("HTTP_X_FORWARDED_FOR")
        real_ip = forwarded.split(",")[0] if forwarded else request.META.get("REMOTE_ADDR")

        user = getattr(request, "user", None)
        user_info = f"{user.id}:{user.username}" if user is not None and user.is_authenticated else "-"

        logger.info({
            "event": "http_request",
            "request": f"{request.method} {request.get_full_path()}",
            "status": response.status_code,
            "request_time": duration,
            "real_ip": real_ip,
            "request_id": request_id,
            "user": user_info,
        })
        response["X-Request-ID"] = request_id
        return response
