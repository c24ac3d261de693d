from typing import Optional, List, Set, Iterable
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from common.schemas.authorization import AuthorizationInfo
from common.services.validation import validate_area_id, validate_area_ids
from common.application.area_tree import AreaTree
from common.exceptions import NotFound, AuthorizationDenied

logger = logging.getLogger(__name__)

class EffectiveFilterResolver:
    """
    Combines an optional user-supplied area filter with the caller's
    AuthorizationInfo into the set of area IDs a query may touch.

    A result of None means "unrestricted": the caller should not filter.
    """

    def __init__(self, session: AsyncSession, tree: Optional[AreaTree] = None):
        self.session = session
        self.tree = tree or AreaTree(session)

    async def resolve(self, explicit_area_id: Optional[str], info: AuthorizationInfo) -> Optional[Set[str]]:
        if explicit_area_id is None:
            if not info.has_restrictions:
                return None
            # Already expanded by the summarizer.
            return set(info.authorized_area_ids)

        return await self.resolve_many([explicit_area_id], info)

    async def resolve_many(self, explicit_area_ids: Iterable[str], info: AuthorizationInfo) -> Optional[Set[str]]:
        """
        Multi-root filter: every root is checked, then all subtrees are unioned.
        An empty root list is no filter at all, same as `resolve(None, info)`.
        """
        roots = validate_area_ids(explicit_area_ids)
        if not roots:
            return await self.resolve(None, info)
        await self.check_roots(roots, info)

        expanded: Set[str] = set(roots)
        expanded |= await self.tree.batch_descendants(roots)

        if info.has_restrictions:
            expanded &= info.authorized_area_ids

        logger.debug(f"Resolved filter over {len(roots)} roots to {len(expanded)} areas")
        return expanded

    async def resolve_for_listing(self, explicit_area_id: Optional[str], info: AuthorizationInfo) -> Optional[Set[str]]:
        """
        As `resolve`, plus the ancestor context a listing shows so results can
        be placed in the hierarchy.
        """
        area_ids = await self.resolve(explicit_area_id, info)
        if area_ids is None:
            return None

        if explicit_area_id is not None:
            area_ids |= set(await self.tree.ancestor_ids(validate_area_id(explicit_area_id)))
        else:
            area_ids |= info.read_only_area_ids
        return area_ids

    async def check_roots(self, roots: List[str], info: AuthorizationInfo):
        """Every root must exist and, for restricted users, be FULL-access."""
        existing = await self.tree.store.find_parent_pointers(roots)
        for root in roots:
            if root not in existing:
                raise NotFound(f"Geographic area {root} not found")
            if info.has_restrictions and root not in info.authorized_area_ids:
                logger.warning(f"Filter on area {root} falls outside the authorized set")
                raise AuthorizationDenied(details={"geographic_area_id": root})
