from datetime import datetime, timezone
from pydantic import BaseModel
from typing import Optional, Callable
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession
from common.models import AuthorizationLog
from common.core.redis import RedisClient
import logging
import os

logger = logging.getLogger(__name__)

AUDIT_QUEUE = "geo_audit_queue"

class AuditEntry(BaseModel):
    user_id: str
    action: str
    entity_type: str = "geographic_area"
    entity_id: Optional[str] = None
    reason: Optional[str] = None
    timestamp: Optional[datetime] = None

def _is_testing() -> bool:
    from common.core.config import settings
    return settings.TESTING or "pytest" in os.getenv("_", "")

async def log_authorization_denial(entry: AuditEntry, db_session_factory: Callable[[], AsyncSession] = None):
    """
    Log a geographic authorization denial to the Redis queue (production) or
    straight to the DB (testing/fallback).

    Args:
        entry: Audit entry data
        db_session_factory: Callable returning an async context manager for DB session (required if not using Redis or testing)
    """
    from common.core.config import settings
    if not settings.AUDIT_ENABLED:
        return

    if entry.timestamp is None:
        entry = entry.model_copy(update={"timestamp": datetime.now(timezone.utc)})

    if _is_testing() and db_session_factory:
        await _write_audit_to_db(entry, db_session_factory)
        return

    try:
        redis_client = RedisClient.get_instance()
        await redis_client.lpush(AUDIT_QUEUE, entry.model_dump_json())
    except Exception as e:
        logger.warning(f"Redis audit failed, falling back to DB: {e}")
        if db_session_factory:
            await _write_audit_to_db(entry, db_session_factory)
        else:
            logger.error("Audit log failed completely (Redis failed and no DB factory provided)")

async def _write_audit_to_db(entry: AuditEntry, db_session_factory: Callable[[], AsyncSession]):
    """Direct database write for audit entries."""
    async with db_session_factory() as db:
        stmt = insert(AuthorizationLog).values(
            user_id=entry.user_id,
            action=entry.action,
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            reason=entry.reason,
            timestamp=entry.timestamp or datetime.now(timezone.utc)
        )
        await db.execute(stmt)
        await db.commit()

async def process_audit_queue(db_session_factory: Callable[[], AsyncSession]):
    """
    Drain audit entries from the Redis queue into authorization_log.
    """
    redis_client = RedisClient.get_instance()

    while True:
        try:
            result = await redis_client.brpop(AUDIT_QUEUE, timeout=10)
            if result:
                _, data = result
                entry = AuditEntry.model_validate_json(data)
                await _write_audit_to_db(entry, db_session_factory)
        except Exception as e:
            logger.error(f"Audit queue processing error: {e}")
            break

def denial_entry(user_id: str, action: str, error) -> AuditEntry:
    """Audit entry for an AuthorizationDenied raised while serving `action`."""
    return AuditEntry(
        user_id=user_id,
        action=action,
        entity_id=error.details.get("geographic_area_id"),
        reason=error.message,
    )
