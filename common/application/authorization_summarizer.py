from typing import Optional, List, Set
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from common.models import RuleType
from common.schemas.auth import AuthContext
from common.schemas.authorization import AccessLevel, AuthorizationInfo, AuthorizedArea, AuthorizationRuleRead
from common.application.area_tree import AreaTree
from common.application.rule_service import RuleService

logger = logging.getLogger(__name__)

class AuthorizationSummarizer:
    """
    Builds a user's full authorized / read-only area sets in one pass over
    the rules, instead of evaluating every area on its own.
    """

    def __init__(self, session: AsyncSession, tree: Optional[AreaTree] = None, rules: Optional[RuleService] = None):
        self.session = session
        self.tree = tree or AreaTree(session)
        self.rules = rules or RuleService(session)

    async def summarize(self, ctx: AuthContext, rules: Optional[List[AuthorizationRuleRead]] = None) -> AuthorizationInfo:
        if rules is None:
            rules = await self.rules.list_rules(ctx.user_id)

        if not rules:
            return AuthorizationInfo.unrestricted()

        allow_roots = {r.geographic_area_id for r in rules if r.rule_type == RuleType.ALLOW}
        deny_roots = {r.geographic_area_id for r in rules if r.rule_type == RuleType.DENY}

        authorized: Set[str] = set(allow_roots)
        authorized |= await self.tree.batch_descendants(allow_roots)

        ancestors: Set[str] = set()
        if allow_roots:
            parent_map = await self.tree.batch_ancestors(allow_roots)
            for root in allow_roots:
                ancestors.update(await self.tree.ancestor_ids(root, parent_map))

        # DENY is applied after every ALLOW has been unioned in.
        denied = await self._denied_area_ids(deny_roots)
        authorized -= denied
        read_only = ancestors - denied

        logger.debug(
            f"Summarized {len(rules)} rules for user {ctx.user_id}: "
            f"{len(authorized)} authorized, {len(read_only)} read-only, {len(denied)} denied"
        )
        return AuthorizationInfo(
            has_restrictions=True,
            authorized_area_ids=authorized,
            read_only_area_ids=read_only,
        )

    async def authorized_areas(self, ctx: AuthContext) -> List[AuthorizedArea]:
        """
        Per-area report of what a user can reach, for administration screens.
        Denied subtrees are listed with NONE so the effect of DENY rules is visible.
        """
        rules = await self.rules.list_rules(ctx.user_id)

        if not rules:
            return [
                AuthorizedArea(
                    geographic_area_id=area.id,
                    geographic_area_name=area.name,
                    area_type=area.area_type,
                    access_level=AccessLevel.FULL,
                )
                for area in await self.tree.store.find_all()
            ]

        info = await self.summarize(ctx, rules)
        allow_roots = {r.geographic_area_id for r in rules if r.rule_type == RuleType.ALLOW}
        denied = await self._denied_area_ids({r.geographic_area_id for r in rules if r.rule_type == RuleType.DENY})

        area_ids = info.authorized_area_ids | info.read_only_area_ids | denied
        result = []
        for area in await self.tree.store.find_by_ids(area_ids):
            level = AccessLevel.NONE if area.id in denied else info.access_level(area.id)
            result.append(AuthorizedArea(
                geographic_area_id=area.id,
                geographic_area_name=area.name,
                area_type=area.area_type,
                access_level=level,
                is_descendant=level == AccessLevel.FULL and area.id not in allow_roots,
                is_ancestor=level != AccessLevel.NONE and info.is_ancestor_context(area.id),
            ))
        return result

    async def _denied_area_ids(self, deny_roots: Set[str]) -> Set[str]:
        if not deny_roots:
            return set()
        return set(deny_roots) | await self.tree.batch_descendants(deny_roots)
