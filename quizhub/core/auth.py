"""
FastAPI authentication dependencies.
"""
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from quizhub.core.error_responses import (
    ErrorMessages,
    raise_forbidden,
    raise_unauthorized,
)
from quizhub.core.security import decode_token, verify_token_type
from quizhub.models import User, get_db

# HTTP Bearer token scheme
security = HTTPBearer()


def _decode_user_id(token: str) -> str:
    """
    Decode an access token and return its user_id claim.

    Raises:
        HTTPException: 401 if the token is invalid, of the wrong type or has no user_id
    """
    payload = decode_token(token)
    if payload is None:
        raise_unauthorized(ErrorMessages.INVALID_TOKEN)

    if not verify_token_type(payload, "access"):
        raise_unauthorized(ErrorMessages.INVALID_TOKEN_TYPE)

    user_id = payload.get("user_id")
    if not user_id:
        raise_unauthorized(ErrorMessages.INVALID_TOKEN_PAYLOAD)

    return str(user_id)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Get the current authenticated user from the bearer token.

    Raises:
        HTTPException: 401 if token is invalid or user not found
    """
    user_id = _decode_user_id(credentials.credentials)
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise_unauthorized(ErrorMessages.USER_NOT_FOUND_AUTH)
    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """
    Allow only administrators through.

    Raises:
        ServiceError: ACCESS_DENIED for non-admin users
    """
    if not current_user.is_admin:
        raise_forbidden(ErrorMessages.ADMIN_ONLY)
    return current_user
