from dataclasses import dataclass

from fastapi import Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordBearer
from .jwt_handler import verify_access_token

# Defines the expected header format (Bearer <token>), issued by the identity provider
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class Identity:
    """Claims of the authenticated caller. The identity provider itself is opaque."""

    subject: str
    email: str | None = None
    role: str = "customer"

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


async def get_current_identity(request: Request, token: str = Depends(oauth2_scheme)) -> Identity:
    """Dependency to validate the JWT and return the caller's identity claims."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    
    if not token:
        raise credentials_exception
        
    payload = verify_access_token(token)
    if payload is None:
        raise credentials_exception
        
    user_id: str = payload.get("sub")
    if user_id is None:
        raise credentials_exception
        
    # Store in request state for downstream use (like rate limiting)
    request.state.user_id = user_id
    return Identity(
        subject=str(user_id),
        email=payload.get("email"),
        role=payload.get("role", "customer"),
    )

async def require_admin(identity: Identity = Depends(get_current_identity)) -> Identity:
    """Dependency for back-office endpoints."""
    if not identity.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return identity
