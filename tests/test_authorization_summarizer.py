import pytest
from common.application.access_evaluator import AccessEvaluator
from common.application.authorization_summarizer import AuthorizationSummarizer
from common.models import RuleType
from common.schemas.authorization import AccessLevel

@pytest.mark.asyncio
async def test_no_rules_means_unrestricted_not_empty(session, world, user_ctx):
    info = await AuthorizationSummarizer(session).summarize(user_ctx)

    assert info.has_restrictions is False
    assert info.authorized_area_ids == set()
    assert info.access_level(world["james_bay"]) == AccessLevel.FULL

@pytest.mark.asyncio
async def test_only_deny_rules_leave_nothing_authorized(session, world, user_ctx, make_rule):
    await make_rule(user_ctx.user_id, world["victoria"], RuleType.DENY)

    info = await AuthorizationSummarizer(session).summarize(user_ctx)

    assert info.has_restrictions is True
    assert info.authorized_area_ids == set()
    assert info.read_only_area_ids == set()

@pytest.mark.asyncio
async def test_allow_and_deny_sets(session, world, user_ctx, make_rule):
    await make_rule(user_ctx.user_id, world["canada"], RuleType.ALLOW)
    await make_rule(user_ctx.user_id, world["victoria"], RuleType.DENY)

    info = await AuthorizationSummarizer(session).summarize(user_ctx)

    assert info.authorized_area_ids == {
        world["canada"], world["bc"], world["vancouver"], world["downtown"], world["kitsilano"]
    }
    assert info.read_only_area_ids == {world["na"], world["world"]}

@pytest.mark.asyncio
async def test_deny_strips_read_only_context(session, world, user_ctx, make_rule):
    await make_rule(user_ctx.user_id, world["downtown"], RuleType.ALLOW)
    await make_rule(user_ctx.user_id, world["bc"], RuleType.DENY)

    info = await AuthorizationSummarizer(session).summarize(user_ctx)

    assert info.authorized_area_ids == set()
    assert info.read_only_area_ids == {world["canada"], world["na"], world["world"]}

@pytest.mark.asyncio
@pytest.mark.parametrize("rules", [
    [("canada", RuleType.ALLOW), ("victoria", RuleType.DENY)],
    [("vancouver", RuleType.ALLOW), ("james_bay", RuleType.ALLOW)],
    [("downtown", RuleType.ALLOW), ("bc", RuleType.DENY)],
    [("bc", RuleType.ALLOW), ("vancouver", RuleType.ALLOW), ("kitsilano", RuleType.DENY)],
])
async def test_summary_matches_per_area_evaluation(session, world, user_ctx, make_rule, rules):
    """The batched summary and the per-area evaluator must agree on every area."""
    for name, rule_type in rules:
        await make_rule(user_ctx.user_id, world[name], rule_type)

    info = await AuthorizationSummarizer(session).summarize(user_ctx)
    evaluator = AccessEvaluator(session)

    for area_id in world.values():
        level = await evaluator.evaluate(user_ctx, area_id)
        assert (area_id in info.authorized_area_ids) == (level == AccessLevel.FULL)
        assert info.access_level(area_id) == level

@pytest.mark.asyncio
async def test_full_area_is_also_ancestor_context(session, world, user_ctx, make_rule):
    """ALLOW(Province) then ALLOW(child): Province stays FULL and is flagged as ancestor context."""
    await make_rule(user_ctx.user_id, world["bc"])
    await make_rule(user_ctx.user_id, world["vancouver"])

    info = await AuthorizationSummarizer(session).summarize(user_ctx)

    assert world["bc"] in info.authorized_area_ids
    assert info.access_level(world["bc"]) == AccessLevel.FULL
    assert info.is_ancestor_context(world["bc"])

@pytest.mark.asyncio
async def test_authorized_areas_report(session, world, user_ctx, make_rule):
    await make_rule(user_ctx.user_id, world["bc"])
    await make_rule(user_ctx.user_id, world["vancouver"])
    await make_rule(user_ctx.user_id, world["victoria"], RuleType.DENY)

    report = {a.geographic_area_id: a for a in await AuthorizationSummarizer(session).authorized_areas(user_ctx)}

    assert report[world["bc"]].access_level == AccessLevel.FULL
    assert report[world["bc"]].is_ancestor is True
    assert report[world["bc"]].is_descendant is False
    assert report[world["downtown"]].is_descendant is True
    assert report[world["canada"]].access_level == AccessLevel.READ_ONLY
    assert report[world["victoria"]].access_level == AccessLevel.NONE
    assert report[world["james_bay"]].access_level == AccessLevel.NONE

@pytest.mark.asyncio
async def test_authorized_areas_unrestricted_lists_everything(session, world, user_ctx):
    report = await AuthorizationSummarizer(session).authorized_areas(user_ctx)

    assert len(report) == len(world)
    assert all(a.access_level == AccessLevel.FULL for a in report)
