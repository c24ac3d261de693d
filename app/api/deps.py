from typing import Annotated
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from common.schemas.auth import AuthContext, UserRole
from common.services.security import decode_access_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")

async def get_auth_context(token: Annotated[str, Depends(oauth2_scheme)]) -> AuthContext:
    ctx = decode_access_token(token)
    if ctx is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return ctx

async def require_admin(ctx: Annotated[AuthContext, Depends(get_auth_context)]) -> AuthContext:
    if not ctx.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "FORBIDDEN", "message": "Administrator role required"},
        )
    return ctx

async def require_editor(ctx: Annotated[AuthContext, Depends(get_auth_context)]) -> AuthContext:
    if ctx.role not in (UserRole.ADMINISTRATOR, UserRole.EDITOR):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "FORBIDDEN", "message": "Editor role required"},
        )
    return ctx
