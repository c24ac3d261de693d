import os
import tempfile

os.environ["GEOAUTH_TESTING"] = "true"  # Must be before imports
os.environ.setdefault("GEOAUTH_RULE_CACHE_ENABLED", "false")
os.environ.setdefault("GEOAUTH_AUDIT_ENABLED", "false")

# Default to a throwaway SQLite file; point GEOAUTH_DATABASE_URL at PostgreSQL to run against a real server.
if "GEOAUTH_DATABASE_URL" not in os.environ:
    _db_dir = tempfile.mkdtemp(prefix="geoauth-tests-")
    os.environ["GEOAUTH_DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_db_dir, 'test.db')}"

import uuid
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from common.core.database import engine, AsyncSessionLocal
from common.models import Base, GeographicArea, Venue, AuthorizationRule, AreaType, RuleType
from common.schemas.auth import AuthContext, UserRole
from common.services.security import create_user_token
from app.main import app

@pytest.fixture
def anyio_backend():
    return "asyncio"

@pytest_asyncio.fixture(scope="function", autouse=True)
async def reset_schema():
    await engine.dispose()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()

@pytest_asyncio.fixture(scope="function")
async def session():
    async with AsyncSessionLocal() as s:
        yield s

@pytest_asyncio.fixture(scope="function")
async def ac():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

@pytest.fixture
def make_area(session):
    """Create and commit one area; returns its ID."""
    async def _make(name: str, area_type: AreaType = AreaType.CITY, parent_id: str = None) -> str:
        area = GeographicArea(id=str(uuid.uuid4()), name=name, area_type=area_type, parent_id=parent_id)
        session.add(area)
        await session.commit()
        return area.id
    return _make

@pytest.fixture
def make_rule(session):
    async def _make(user_id: str, area_id: str, rule_type: RuleType = RuleType.ALLOW) -> str:
        rule = AuthorizationRule(
            user_id=user_id,
            geographic_area_id=area_id,
            rule_type=rule_type,
            created_by="test-admin"
        )
        session.add(rule)
        await session.commit()
        return rule.id
    return _make

@pytest.fixture
def make_venue(session):
    async def _make(name: str, area_id: str) -> str:
        venue = Venue(id=str(uuid.uuid4()), name=name, geographic_area_id=area_id, latitude=49.28, longitude=-123.12)
        session.add(venue)
        await session.commit()
        return venue.id
    return _make

@pytest_asyncio.fixture(scope="function")
async def world(make_area):
    """
    World -> North America -> Canada -> British Columbia
      -> Vancouver -> {Downtown, Kitsilano}
      -> Victoria -> {James Bay}
    """
    ids = {}
    ids["world"] = await make_area("World", AreaType.WORLD)
    ids["na"] = await make_area("North America", AreaType.CONTINENT, ids["world"])
    ids["canada"] = await make_area("Canada", AreaType.COUNTRY, ids["na"])
    ids["bc"] = await make_area("British Columbia", AreaType.PROVINCE, ids["canada"])
    ids["vancouver"] = await make_area("Vancouver", AreaType.CITY, ids["bc"])
    ids["downtown"] = await make_area("Downtown", AreaType.NEIGHBOURHOOD, ids["vancouver"])
    ids["kitsilano"] = await make_area("Kitsilano", AreaType.NEIGHBOURHOOD, ids["vancouver"])
    ids["victoria"] = await make_area("Victoria", AreaType.CITY, ids["bc"])
    ids["james_bay"] = await make_area("James Bay", AreaType.NEIGHBOURHOOD, ids["victoria"])
    return ids

@pytest.fixture
def user_ctx():
    return AuthContext(user_id=str(uuid.uuid4()), role=UserRole.EDITOR)

@pytest.fixture
def auth_headers():
    def _headers(ctx: AuthContext) -> dict:
        return {"Authorization": f"Bearer {create_user_token(ctx.user_id, ctx.role)}"}
    return _headers

@pytest.fixture
def admin_ctx():
    return AuthContext(user_id=str(uuid.uuid4()), role=UserRole.ADMINISTRATOR)
