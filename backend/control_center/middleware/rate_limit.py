from slowapi import Limiter
from starlette.requests import Request


def get_client_key(request: Request) -> str:
    """Rate-limit key: the first X-Forwarded-For hop, else the peer address."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


limiter = Limiter(key_func=get_client_key)
