import pytest
import json
import uuid
from unittest.mock import AsyncMock
from common.application.rule_service import RuleService
from common.core.redis import RedisClient
from common.models import RuleType
from common.schemas.authorization import AuthorizationRuleCreate
from common.exceptions import DuplicateRule, NotFound, InvalidInput

@pytest.fixture
def redis_mock(monkeypatch):
    monkeypatch.setenv("GEOAUTH_RULE_CACHE_ENABLED", "true")
    client = AsyncMock()
    client.get.return_value = None
    monkeypatch.setattr(RedisClient, "get_instance", lambda: client)
    return client

@pytest.mark.asyncio
async def test_create_and_list_rules(session, world, user_ctx):
    service = RuleService(session)

    allow = await service.create_rule(user_ctx.user_id, AuthorizationRuleCreate(geographic_area_id=world["bc"], rule_type=RuleType.ALLOW), "admin-1")
    deny = await service.create_rule(user_ctx.user_id, AuthorizationRuleCreate(geographic_area_id=world["victoria"], rule_type=RuleType.DENY), "admin-1")

    rules = await service.list_rules(user_ctx.user_id)
    assert {r.id for r in rules} == {allow.id, deny.id}
    assert all(r.created_by == "admin-1" for r in rules)
    assert await service.has_rules(user_ctx.user_id)
    assert not await service.has_rules(str(uuid.uuid4()))

@pytest.mark.asyncio
async def test_duplicate_rule_rejected(session, world, user_ctx):
    service = RuleService(session)
    rule_in = AuthorizationRuleCreate(geographic_area_id=world["bc"], rule_type=RuleType.ALLOW)
    await service.create_rule(user_ctx.user_id, rule_in, "admin-1")

    # Same pair with the opposite type is still a duplicate
    with pytest.raises(DuplicateRule):
        await service.create_rule(user_ctx.user_id, AuthorizationRuleCreate(geographic_area_id=world["bc"], rule_type=RuleType.DENY), "admin-1")

    # Another user may hold a rule on the same area
    await service.create_rule(str(uuid.uuid4()), rule_in, "admin-1")

@pytest.mark.asyncio
async def test_rule_on_unknown_area(session, user_ctx):
    service = RuleService(session)

    with pytest.raises(NotFound):
        await service.create_rule(user_ctx.user_id, AuthorizationRuleCreate(geographic_area_id=str(uuid.uuid4()), rule_type=RuleType.ALLOW), "admin-1")

    with pytest.raises(InvalidInput):
        await service.create_rule(user_ctx.user_id, AuthorizationRuleCreate(geographic_area_id="not-a-uuid", rule_type=RuleType.ALLOW), "admin-1")

@pytest.mark.asyncio
async def test_delete_rule_is_scoped_to_user(session, world, user_ctx):
    service = RuleService(session)
    rule = await service.create_rule(user_ctx.user_id, AuthorizationRuleCreate(geographic_area_id=world["bc"], rule_type=RuleType.ALLOW), "admin-1")

    with pytest.raises(NotFound):
        await service.delete_rule(str(uuid.uuid4()), rule.id)

    await service.delete_rule(user_ctx.user_id, rule.id)
    assert await service.list_rules(user_ctx.user_id) == []

    with pytest.raises(NotFound):
        await service.delete_rule(user_ctx.user_id, rule.id)

@pytest.mark.asyncio
async def test_list_rules_served_from_cache(session, world, user_ctx, redis_mock):
    service = RuleService(session)
    rule = await service.create_rule(user_ctx.user_id, AuthorizationRuleCreate(geographic_area_id=world["bc"], rule_type=RuleType.ALLOW), "admin-1")

    # Miss: read from DB and populate
    rules = await service.list_rules(user_ctx.user_id)
    key, payload = redis_mock.set.call_args.args
    assert key == f"geo_rules:{user_ctx.user_id}"
    assert json.loads(payload)[0]["id"] == rule.id
    assert redis_mock.set.call_args.kwargs["ex"] == 300

    # Hit: the cached list is returned as-is
    redis_mock.get.return_value = payload
    cached = await service.list_rules(user_ctx.user_id)
    assert cached == rules

@pytest.mark.asyncio
async def test_mutations_invalidate_cache(session, world, user_ctx, redis_mock):
    service = RuleService(session)

    rule = await service.create_rule(user_ctx.user_id, AuthorizationRuleCreate(geographic_area_id=world["bc"], rule_type=RuleType.ALLOW), "admin-1")
    redis_mock.delete.assert_awaited_with(f"geo_rules:{user_ctx.user_id}")

    redis_mock.delete.reset_mock()
    await service.delete_rule(user_ctx.user_id, rule.id)
    redis_mock.delete.assert_awaited_once_with(f"geo_rules:{user_ctx.user_id}")

@pytest.mark.asyncio
async def test_cache_failure_falls_back_to_db(session, world, user_ctx, redis_mock, make_rule):
    await make_rule(user_ctx.user_id, world["bc"])
    redis_mock.get.side_effect = ConnectionError("redis down")
    redis_mock.set.side_effect = ConnectionError("redis down")

    rules = await RuleService(session).list_rules(user_ctx.user_id)

    assert [r.geographic_area_id for r in rules] == [world["bc"]]
