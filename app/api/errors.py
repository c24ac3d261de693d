from typing import Optional
from fastapi import BackgroundTasks, HTTPException
from fastapi.responses import JSONResponse
from common.core.database import AsyncSessionLocal
from common.exceptions import GeoAuthorizationError, AuthorizationDenied
from common.schemas.auth import AuthContext
from common.services.audit import log_authorization_denial, denial_entry

def _detail(e: GeoAuthorizationError) -> dict:
    return {"code": e.code, "message": e.message}

def http_error(e: GeoAuthorizationError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=_detail(e))

def denial_response(
    e: AuthorizationDenied,
    ctx: AuthContext,
    action: str,
    background_tasks: Optional[BackgroundTasks] = None
) -> JSONResponse:
    """
    A denial, shaped like an HTTPException body. The audit task rides on the
    returned response since a raised exception would drop background tasks.
    """
    if background_tasks is not None:
        background_tasks.add_task(log_authorization_denial, denial_entry(ctx.user_id, action, e), AsyncSessionLocal)
    return JSONResponse(
        status_code=e.status_code,
        content={"detail": _detail(e)},
        background=background_tasks,
    )
