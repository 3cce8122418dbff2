import os

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from firebase_admin import auth as firebase_auth  # type: ignore
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

# memory:// keeps a single instance working without Redis
storage_uri = os.getenv("REDIS_URL", "memory://")


def get_user_or_ip(request: Request) -> str:
    """
    Rate limit key: Firebase UID for signed-in users, client IP otherwise.
    """
    auth_header = request.headers.get("Authorization")

    if auth_header and auth_header.startswith("Bearer "):
        token = auth_header.split("Bearer ")[1]
        try:
            decoded_token = firebase_auth.verify_id_token(token)
            return f"user:{decoded_token['uid']}"
        except Exception:
            pass  # Invalid token, limited by IP

    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_user_or_ip,
    default_limits=["1000 per day", "200 per hour"],
    storage_uri=storage_uri,
)


def retry_after_seconds(detail: str) -> int:
    """'60 per 1 minute' -> 60"""
    if "second" in detail:
        return 1
    if "minute" in detail:
        return 60
    if "hour" in detail:
        return 3600
    if "day" in detail:
        return 86400
    return 60


def custom_rate_limit_handler(request: Request, exc: RateLimitExceeded) -> Response:
    retry_seconds = retry_after_seconds(str(exc.detail))
    return JSONResponse(
        status_code=429,
        content={
            "error": "Rate limit exceeded",
            "message": f"Too many requests. Please try again in {retry_seconds} seconds.",
            "retry_after": retry_seconds,
        },
        headers={"Retry-After": str(retry_seconds)},
    )
