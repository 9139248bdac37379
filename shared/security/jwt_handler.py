"""
Access tokens of storefront customers and back-office staff.

Claims: ``sub`` (identity subject), ``role`` and optionally ``email``. Only
the ``admin`` role unlocks back-office endpoints.
"""
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from shared.config import settings


def create_access_token(
    subject: str,
    *,
    email: str | None = None,
    role: str = "customer",
    expires_delta: timedelta | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta if expires_delta is not None else timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    claims = {"sub": subject, "role": role, "exp": expire}
    if email:
        claims["email"] = email
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def verify_access_token(token: str) -> dict | None:
    """Returns the claims of a valid token; None if it is malformed, forged or expired."""
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
