from fastapi import FastAPI
from contextlib import asynccontextmanager
import logging
import asyncio
from common.core.config import settings
from common.core.database import AsyncSessionLocal

# Configure logging to show INFO logs from the application
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    force=True  # Remove any existing handlers to prevent duplicates
)
from app.api.v1.geographic_areas import router as geographic_areas_router
from app.api.v1.authorizations import router as authorizations_router
from app.api.v1.map_data import router as map_data_router

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    # Drain the denial audit queue in production only
    audit_task = None
    if settings.AUDIT_ENABLED and not settings.TESTING:
        from common.services.audit import process_audit_queue
        audit_task = asyncio.create_task(process_audit_queue(AsyncSessionLocal))

    yield

    # Shutdown
    from common.core.redis import RedisClient
    await RedisClient.close()

    if audit_task:
        audit_task.cancel()
        try:
            await audit_task
        except asyncio.CancelledError:
            pass

tags_metadata = [
    {
        "name": "geographic-areas",
        "description": "Area hierarchy reads filtered through the caller's geographic authorization.",
    },
    {
        "name": "geographic-authorizations",
        "description": "Per-user ALLOW/DENY rules. Administrators only.",
    },
    {
        "name": "map",
        "description": "Venue markers scoped by area subtree.",
    },
]

app = FastAPI(
    title="Geographic Authorization Engine",
    description="Hierarchical area authorization and filtering service.",
    version="1.0.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.include_router(geographic_areas_router, prefix="/api/v1", tags=["geographic-areas"])
app.include_router(authorizations_router, prefix="/api/v1", tags=["geographic-authorizations"])
app.include_router(map_data_router, prefix="/api/v1", tags=["map"])

@app.get("/")
async def root():
    return {"message": "Geographic Authorization Engine Running"}
