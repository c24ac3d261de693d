import logging
import json
from typing import List, Optional
from common.core.redis import RedisClient
from common.core.config import settings
from common.schemas.authorization import AuthorizationRuleRead

logger = logging.getLogger(__name__)

class CacheService:
    """
    Redis cache for per-user authorization rule lists.

    Only the raw rule list is cached, never a computed AuthorizationInfo:
    the summary depends on the tree as well, which changes independently.
    """

    @staticmethod
    def _rules_key(user_id: str) -> str:
        return f"geo_rules:{user_id}"

    @staticmethod
    async def get_user_rules(user_id: str) -> Optional[List[AuthorizationRuleRead]]:
        redis_client = RedisClient.get_instance()
        data = await redis_client.get(CacheService._rules_key(user_id))
        if data is None:
            return None
        return [AuthorizationRuleRead.model_validate(item) for item in json.loads(data)]

    @staticmethod
    async def set_user_rules(user_id: str, rules: List[AuthorizationRuleRead], ttl: int = None):
        redis_client = RedisClient.get_instance()
        payload = json.dumps([rule.model_dump(mode="json") for rule in rules])
        await redis_client.set(CacheService._rules_key(user_id), payload, ex=ttl or settings.RULE_CACHE_TTL)

    @staticmethod
    async def invalidate_user_rules(user_id: str):
        redis_client = RedisClient.get_instance()
        await redis_client.delete(CacheService._rules_key(user_id))
