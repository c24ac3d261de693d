import pytest
import uuid
from common.models import RuleType

@pytest.mark.asyncio
async def test_rule_crud_by_admin(ac, world, admin_ctx, auth_headers):
    headers = auth_headers(admin_ctx)
    user_id = str(uuid.uuid4())
    base = f"/api/v1/users/{user_id}/geographic-authorizations"

    # 1. Create
    res = await ac.post(base, json={"geographic_area_id": world["bc"], "rule_type": "ALLOW"}, headers=headers)
    assert res.status_code == 201
    rule = res.json()
    assert rule["user_id"] == user_id
    assert rule["created_by"] == admin_ctx.user_id
    assert rule["rule_type"] == "ALLOW"

    # 2. Duplicate pair
    res = await ac.post(base, json={"geographic_area_id": world["bc"], "rule_type": "DENY"}, headers=headers)
    assert res.status_code == 409
    assert res.json()["detail"]["code"] == "DUPLICATE_AUTHORIZATION_RULE"

    # 3. List
    res = await ac.get(base, headers=headers)
    assert [r["id"] for r in res.json()] == [rule["id"]]

    # 4. Delete
    res = await ac.delete(f"{base}/{rule['id']}", headers=headers)
    assert res.status_code == 204

    res = await ac.delete(f"{base}/{rule['id']}", headers=headers)
    assert res.status_code == 404

    res = await ac.get(base, headers=headers)
    assert res.json() == []

@pytest.mark.asyncio
async def test_create_rule_validation(ac, world, admin_ctx, auth_headers):
    headers = auth_headers(admin_ctx)
    base = f"/api/v1/users/{uuid.uuid4()}/geographic-authorizations"

    res = await ac.post(base, json={"geographic_area_id": str(uuid.uuid4()), "rule_type": "ALLOW"}, headers=headers)
    assert res.status_code == 404

    res = await ac.post(base, json={"geographic_area_id": "bc", "rule_type": "ALLOW"}, headers=headers)
    assert res.status_code == 400
    assert res.json()["detail"]["code"] == "VALIDATION_ERROR"

    # Unknown rule type is rejected by request validation
    res = await ac.post(base, json={"geographic_area_id": world["bc"], "rule_type": "MAYBE"}, headers=headers)
    assert res.status_code == 422

@pytest.mark.asyncio
async def test_rule_endpoints_require_admin(ac, world, user_ctx, auth_headers):
    base = f"/api/v1/users/{user_ctx.user_id}/geographic-authorizations"

    res = await ac.post(base, json={"geographic_area_id": world["bc"], "rule_type": "ALLOW"}, headers=auth_headers(user_ctx))
    assert res.status_code == 403

    res = await ac.get(base, headers=auth_headers(user_ctx))
    assert res.status_code == 403

@pytest.mark.asyncio
async def test_authorized_areas_endpoint(ac, world, admin_ctx, auth_headers, make_rule):
    user_id = str(uuid.uuid4())
    await make_rule(user_id, world["vancouver"])
    await make_rule(user_id, world["kitsilano"], RuleType.DENY)

    res = await ac.get(f"/api/v1/users/{user_id}/authorized-areas", headers=auth_headers(admin_ctx))
    assert res.status_code == 200
    levels = {a["geographic_area_id"]: a["access_level"] for a in res.json()}
    assert levels[world["vancouver"]] == "FULL"
    assert levels[world["downtown"]] == "FULL"
    assert levels[world["kitsilano"]] == "NONE"
    assert levels[world["bc"]] == "READ_ONLY"
    assert world["victoria"] not in levels

@pytest.mark.asyncio
async def test_new_rule_applies_to_next_request(ac, world, admin_ctx, user_ctx, auth_headers):
    res = await ac.get(f"/api/v1/geographic-areas/{world['victoria']}", headers=auth_headers(user_ctx))
    assert res.status_code == 200

    res = await ac.post(
        f"/api/v1/users/{user_ctx.user_id}/geographic-authorizations",
        json={"geographic_area_id": world["vancouver"], "rule_type": "ALLOW"},
        headers=auth_headers(admin_ctx)
    )
    assert res.status_code == 201

    res = await ac.get(f"/api/v1/geographic-areas/{world['victoria']}", headers=auth_headers(user_ctx))
    assert res.status_code == 403
