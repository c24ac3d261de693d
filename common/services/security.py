from typing import Optional
from datetime import datetime, timedelta, timezone
import logging
from jose import JWTError, jwt
from pydantic import ValidationError
from common.core.config import settings
from common.schemas.auth import AuthContext, UserRole

logger = logging.getLogger(__name__)

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.
    Uses common configuration for Secret Key and Algorithm.
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=15)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    return encoded_jwt

def create_user_token(user_id: str, role: UserRole = UserRole.READ_ONLY, expires_delta: Optional[timedelta] = None) -> str:
    return create_access_token({"sub": user_id, "role": role.value}, expires_delta)

def decode_access_token(token: Optional[str]) -> Optional[AuthContext]:
    """
    Verify a bearer token and build the caller's AuthContext from its
    `sub` and `role` claims. Returns None for missing or invalid tokens.
    """
    if not token:
        return None
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM], options={"verify_aud": False})
    except JWTError as e:
        logger.debug(f"Rejected bearer token: {e}")
        return None

    sub = payload.get("sub")
    if not sub:
        return None

    try:
        return AuthContext(user_id=str(sub), role=payload.get("role") or UserRole.READ_ONLY)
    except ValidationError:
        logger.warning(f"Token for {sub} carries unknown role {payload.get('role')!r}")
        return None
