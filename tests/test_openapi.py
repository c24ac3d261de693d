import pytest
from httpx import AsyncClient

@pytest.mark.asyncio
async def test_openapi_schema(ac: AsyncClient):
    response = await ac.get("/openapi.json")
    assert response.status_code == 200, "Failed to fetch openapi.json"

    data = response.json()
    assert data.get('info', {}).get('title') == "Geographic Authorization Engine"
    assert 'version' in data.get('info', {})

    expected_tags = {"geographic-areas", "geographic-authorizations", "map"}
    found_tags = {t['name'] for t in data.get('tags', [])}
    assert expected_tags.issubset(found_tags), f"Missing tags. Found: {found_tags}"

    paths = data.get('paths', {})
    assert "/api/v1/geographic-areas/batch-ancestors" in paths
    assert "/api/v1/users/{user_id}/geographic-authorizations/{rule_id}" in paths
    assert "/api/v1/map/venues" in paths
