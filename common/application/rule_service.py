from typing import Optional, List
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from common.core.config import settings
from common.models import AuthorizationRule
from common.schemas.authorization import AuthorizationRuleCreate, AuthorizationRuleRead
from common.services.cache import CacheService
from common.services.validation import validate_area_id
from common.application.area_store import AreaStore
from common.exceptions import NotFound, DuplicateRule

logger = logging.getLogger(__name__)

class RuleService:
    """Per-user ALLOW/DENY rules. Data access only, no evaluation."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_rules(self, user_id: str) -> List[AuthorizationRuleRead]:
        if settings.RULE_CACHE_ENABLED:
            try:
                cached = await CacheService.get_user_rules(user_id)
                if cached is not None:
                    return cached
            except Exception as e:
                logger.warning(f"Rule cache read failed for user {user_id}, falling back to DB: {e}")

        stmt = (
            select(AuthorizationRule)
            .where(AuthorizationRule.user_id == user_id)
            .order_by(AuthorizationRule.created_at, AuthorizationRule.id)
        )
        rules = [AuthorizationRuleRead.model_validate(r) for r in (await self.session.execute(stmt)).scalars().all()]

        if settings.RULE_CACHE_ENABLED:
            try:
                await CacheService.set_user_rules(user_id, rules)
            except Exception as e:
                logger.warning(f"Rule cache write failed for user {user_id}: {e}")
        return rules

    async def has_rules(self, user_id: str) -> bool:
        return len(await self.list_rules(user_id)) > 0

    async def get_rule(self, user_id: str, rule_id: str) -> Optional[AuthorizationRule]:
        stmt = select(AuthorizationRule).where(
            AuthorizationRule.id == rule_id,
            AuthorizationRule.user_id == user_id
        )
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def find_by_user_and_area(self, user_id: str, area_id: str) -> Optional[AuthorizationRule]:
        stmt = select(AuthorizationRule).where(
            AuthorizationRule.user_id == user_id,
            AuthorizationRule.geographic_area_id == area_id
        )
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def create_rule(self, user_id: str, rule_in: AuthorizationRuleCreate, created_by: str) -> AuthorizationRule:
        area_id = validate_area_id(rule_in.geographic_area_id)

        if not await AreaStore(self.session).exists_area(area_id):
            raise NotFound("Geographic area not found")

        if await self.find_by_user_and_area(user_id, area_id):
            raise DuplicateRule()

        rule = AuthorizationRule(
            user_id=user_id,
            geographic_area_id=area_id,
            rule_type=rule_in.rule_type,
            created_by=created_by
        )
        self.session.add(rule)
        try:
            await self.session.commit()
        except IntegrityError:
            # Lost a race against a concurrent create for the same pair.
            await self.session.rollback()
            raise DuplicateRule()
        await self.session.refresh(rule)

        await self._invalidate(user_id)
        logger.info(f"Created {rule.rule_type.value} rule {rule.id} for user {user_id} on area {area_id} (by {created_by})")
        return rule

    async def delete_rule(self, user_id: str, rule_id: str) -> None:
        rule = await self.get_rule(user_id, rule_id)
        if not rule:
            raise NotFound("Authorization rule not found")
        await self.session.delete(rule)
        await self.session.commit()

        await self._invalidate(user_id)
        logger.info(f"Deleted rule {rule_id} for user {user_id}")

    async def _invalidate(self, user_id: str):
        if not settings.RULE_CACHE_ENABLED:
            return
        try:
            await CacheService.invalidate_user_rules(user_id)
        except Exception as e:
            logger.error(f"Failed to invalidate rule cache for user {user_id}: {e}")
