from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from shared.config import settings
from .jwt_handler import verify_access_token


def user_id_or_ip(request: Request) -> str:
    """
    SlowAPI key function. Signed-in callers are bucketed by identity subject;
    guests and payment return pages by client address.
    """
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and token:
        claims = verify_access_token(token)
        if claims and claims.get("sub"):
            return f"user:{claims['sub']}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(key_func=user_id_or_ip, enabled=settings.RATE_LIMIT_ENABLED)
