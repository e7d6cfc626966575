from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import structlog
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

import storage
from config import settings
from errors import AuthorizationError

logger = structlog.get_logger(__name__)

security = HTTPBearer(auto_error=False)


def create_token(subject: str, claims: Optional[dict] = None, expires_in: Optional[timedelta] = None) -> str:
    exp = datetime.now(timezone.utc) + (expires_in or timedelta(days=settings.token_days))
    to_encode = {**(claims or {}), "sub": subject, "exp": exp}
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algo)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algo])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


def get_claims(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> dict:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    payload = decode_token(credentials.credentials)
    if not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid token payload")
    return payload


def get_current_user_id(claims: dict = Depends(get_claims)) -> str:
    return str(claims["sub"])


def require_admin(user_id: str = Depends(get_current_user_id)) -> dict:
    """Route dependency: the caller must have a user record flagged is_admin."""
    user = storage.get_user(user_id)
    if not user or not user.get("is_admin"):
        logger.info("admin_denied", user_id=user_id)
        raise AuthorizationError("Admin access required")
    return user


def is_admin(user_id: str) -> bool:
    user = storage.get_user(user_id)
    return bool(user and user.get("is_admin"))
