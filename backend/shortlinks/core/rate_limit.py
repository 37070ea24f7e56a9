"""Rate limiting configuration using slowapi."""

from slowapi import Limiter
from starlette.requests import Request

from ..config import settings
from ..utils.validators import get_client_ip


def client_ip_key(request: Request) -> str:
    """Rate-limit key; same extraction policy as click analytics."""
    return get_client_ip(
        request.headers.get("X-Forwarded-For"),
        request.client.host if request.client else None,
    )


limiter = Limiter(key_func=client_ip_key, enabled=settings.RATE_LIMIT_ENABLED)
