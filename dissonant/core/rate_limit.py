"""Rate limiting configuration using slowapi."""

from slowapi import Limiter
from starlette.requests import Request

# Applied to the client-facing endpoints that call out to the courier.
CLIENT_ENDPOINT_LIMIT = "30/minute"


def _client_ip(request: Request) -> str:
    """Client IP behind the Cloud Run / load balancer proxy."""
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "127.0.0.1"


limiter = Limiter(key_func=_client_ip)
