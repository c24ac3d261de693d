from typing import Optional, List, Set, Iterable
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, false, and_
from sqlalchemy.orm import aliased
from sqlalchemy.sql.elements import ColumnElement
from common.core.config import settings
from common.models import GeographicArea, Venue, RuleType
from common.schemas.authorization import AuthorizationRuleRead
from common.services.validation import validate_area_ids, chunked
from common.exceptions import InvalidInput

logger = logging.getLogger(__name__)

class ScalableSetExpander:
    """
    Subtree membership evaluated inside the database.

    Roots are passed as bound parameters and expanded by a recursive CTE over
    `parent_id`, so a statement carries root-count parameters no matter how
    many descendants the roots have.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    @property
    def chunk_size(self) -> int:
        return settings.MAX_QUERY_PARAMETERS

    def subtree_select(self, root_ids: Iterable[str], name: str = "subtree"):
        """SELECT of the roots and all their descendants."""
        roots = validate_area_ids(root_ids)
        if not roots:
            return select(GeographicArea.id).where(false())
        if len(roots) > self.chunk_size:
            raise InvalidInput(f"Cannot expand more than {self.chunk_size} root areas in one statement")

        anchor = select(GeographicArea.id.label("id")).where(GeographicArea.id.in_(roots))
        tree = anchor.cte(name=name, recursive=True)
        child = aliased(GeographicArea)
        # UNION (not UNION ALL) drops rows already seen, so a parent cycle terminates.
        tree = tree.union(select(child.id).where(child.parent_id == tree.c.id))
        return select(tree.c.id)

    def authorized_select(self, rules: List[AuthorizationRuleRead]):
        """ALLOW subtrees minus DENY subtrees, matching AuthorizationInfo.authorized_area_ids."""
        allow_ids = [r.geographic_area_id for r in rules if r.rule_type == RuleType.ALLOW]
        deny_ids = [r.geographic_area_id for r in rules if r.rule_type == RuleType.DENY]

        allowed = self.subtree_select(allow_ids, name="allow_subtree")
        if not allow_ids or not deny_ids:
            return allowed
        return allowed.except_(self.subtree_select(deny_ids, name="deny_subtree"))

    async def expand_areas(self, root_ids: Iterable[str]) -> Set[str]:
        expanded: Set[str] = set()
        for batch in chunked(validate_area_ids(root_ids), self.chunk_size):
            expanded.update((await self.session.execute(self.subtree_select(batch))).scalars().all())
        return expanded

    async def authorized_areas(self, rules: List[AuthorizationRuleRead]) -> Set[str]:
        if not rules:
            raise InvalidInput("An unrestricted user has no bounded authorized set")
        return set((await self.session.execute(self.authorized_select(rules))).scalars().all())

    def venue_filter(self, root_ids: Optional[Iterable[str]], rules: Optional[List[AuthorizationRuleRead]] = None) -> ColumnElement:
        """
        Predicate on Venue rows: inside the roots' subtrees (when roots are
        given) and inside the authorized set (when rules are given).
        """
        clauses = []
        if root_ids is not None:
            clauses.append(Venue.geographic_area_id.in_(self.subtree_select(root_ids, name="root_subtree")))
        if rules:
            clauses.append(Venue.geographic_area_id.in_(self.authorized_select(rules)))
        if not clauses:
            return Venue.geographic_area_id.isnot(None)
        if len(clauses) == 1:
            return clauses[0]
        return and_(*clauses)

    async def venue_ids(self, root_ids: Optional[Iterable[str]], rules: Optional[List[AuthorizationRuleRead]] = None) -> Set[str]:
        return {venue.id for venue in await self.venues(root_ids, rules)}

    async def venues(self, root_ids: Optional[Iterable[str]], rules: Optional[List[AuthorizationRuleRead]] = None) -> List[Venue]:
        if root_ids is None:
            batches = [None]
        else:
            batches = list(chunked(validate_area_ids(root_ids), self.chunk_size))

        found = {}
        for batch in batches:
            stmt = select(Venue).where(self.venue_filter(batch, rules)).order_by(Venue.name, Venue.id)
            for venue in (await self.session.execute(stmt)).scalars().all():
                found[venue.id] = venue

        logger.debug(f"Venue expansion over {len(batches)} statements matched {len(found)} venues")
        return sorted(found.values(), key=lambda v: (v.name, v.id))
