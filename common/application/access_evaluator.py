from typing import Optional, List
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from common.models import RuleType
from common.schemas.auth import AuthContext
from common.schemas.authorization import AccessLevel, AuthorizationRuleRead
from common.services.validation import validate_area_id
from common.application.area_tree import AreaTree
from common.application.rule_service import RuleService
from common.exceptions import AuthorizationDenied

logger = logging.getLogger(__name__)

class AccessEvaluator:
    def __init__(self, session: AsyncSession, tree: Optional[AreaTree] = None, rules: Optional[RuleService] = None):
        self.session = session
        self.tree = tree or AreaTree(session)
        self.rules = rules or RuleService(session)

    async def has_restrictions(self, ctx: AuthContext) -> bool:
        return await self.rules.has_rules(ctx.user_id)

    async def evaluate(self, ctx: AuthContext, area_id: str, rules: Optional[List[AuthorizationRuleRead]] = None) -> AccessLevel:
        """
        Access level of `ctx.user_id` on one area.

        A DENY on the area or any ancestor wins over every ALLOW. An ALLOW on
        the area or an ancestor grants FULL; an ALLOW on a descendant grants
        READ_ONLY so the area can be shown as navigation context.
        """
        area_id = validate_area_id(area_id)
        if rules is None:
            rules = await self.rules.list_rules(ctx.user_id)

        if not rules:
            return AccessLevel.FULL

        allow_rules = [r for r in rules if r.rule_type == RuleType.ALLOW]
        deny_rules = [r for r in rules if r.rule_type == RuleType.DENY]

        # One frontier walk covers the target's chain and every ALLOW target's chain.
        parent_map = await self.tree.batch_ancestors([area_id] + [r.geographic_area_id for r in allow_rules])
        ancestor_ids = await self.tree.ancestor_ids(area_id, parent_map)
        ancestor_set = set(ancestor_ids)

        for rule in deny_rules:
            if rule.geographic_area_id == area_id or rule.geographic_area_id in ancestor_set:
                return AccessLevel.NONE

        highest = AccessLevel.NONE
        for rule in allow_rules:
            if rule.geographic_area_id == area_id:
                return AccessLevel.FULL

            # area_id lies under the rule's area
            if rule.geographic_area_id in ancestor_set:
                return AccessLevel.FULL

            # area_id lies above the rule's area; a later rule may still grant FULL
            if area_id in await self.tree.ancestor_ids(rule.geographic_area_id, parent_map):
                highest = AccessLevel.READ_ONLY

        return highest

    async def require_access(self, ctx: AuthContext, area_id: str, required: AccessLevel = AccessLevel.FULL) -> AccessLevel:
        level = await self.evaluate(ctx, area_id)

        if required == AccessLevel.FULL and level != AccessLevel.FULL:
            denied = True
        elif required == AccessLevel.READ_ONLY and level == AccessLevel.NONE:
            denied = True
        else:
            denied = False

        if denied:
            logger.warning(f"User {ctx.user_id} denied {required.value} access to area {area_id} (holds {level.value})")
            raise AuthorizationDenied(details={"geographic_area_id": area_id, "access_level": level.value})
        return level

    async def validate_create_area(self, ctx: AuthContext, parent_id: Optional[str]) -> None:
        """Restricted users may only create areas beneath a parent they hold FULL access to."""
        if not await self.has_restrictions(ctx):
            return

        if parent_id is None:
            raise AuthorizationDenied(
                "Users with geographic restrictions cannot create top-level geographic areas",
                details={"reason": "CANNOT_CREATE_TOP_LEVEL_AREA"}
            )

        level = await self.evaluate(ctx, parent_id)
        if level != AccessLevel.FULL:
            raise AuthorizationDenied(
                "You do not have permission to create geographic areas under this parent area",
                details={"geographic_area_id": parent_id, "access_level": level.value}
            )
