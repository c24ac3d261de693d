from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from common.core.database import get_db
from common.schemas.auth import AuthContext
from common.schemas.authorization import AuthorizationRuleCreate, AuthorizationRuleRead, AuthorizedArea
from common.application.rule_service import RuleService
from common.application.authorization_summarizer import AuthorizationSummarizer
from common.exceptions import GeoAuthorizationError
from app.api.deps import require_admin
from app.api.errors import http_error

router = APIRouter()

# --- Geographic Authorization Rules (administrators only) ---
@router.get("/users/{user_id}/geographic-authorizations", response_model=List[AuthorizationRuleRead])
async def list_geographic_authorizations(
    user_id: str,
    admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    service = RuleService(db)
    try:
        return await service.list_rules(user_id)
    except GeoAuthorizationError as e:
        raise http_error(e)

@router.post("/users/{user_id}/geographic-authorizations", response_model=AuthorizationRuleRead, status_code=201)
async def create_geographic_authorization(
    user_id: str,
    rule_in: AuthorizationRuleCreate,
    admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    service = RuleService(db)
    try:
        return await service.create_rule(user_id, rule_in, created_by=admin.user_id)
    except GeoAuthorizationError as e:
        raise http_error(e)

@router.delete("/users/{user_id}/geographic-authorizations/{rule_id}", status_code=204)
async def delete_geographic_authorization(
    user_id: str,
    rule_id: str,
    admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    service = RuleService(db)
    try:
        await service.delete_rule(user_id, rule_id)
    except GeoAuthorizationError as e:
        raise http_error(e)

@router.get("/users/{user_id}/authorized-areas", response_model=List[AuthorizedArea])
async def list_authorized_areas(
    user_id: str,
    admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Every area the user can reach, with the access level and how it was granted."""
    service = AuthorizationSummarizer(db)
    try:
        return await service.authorized_areas(AuthContext(user_id=user_id))
    except GeoAuthorizationError as e:
        raise http_error(e)
