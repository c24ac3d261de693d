import enum
import uuid
from typing import Optional
from datetime import datetime, timezone
from sqlalchemy import String, ForeignKey, UniqueConstraint, DateTime, Float, Integer, Enum, Index
from sqlalchemy.orm import Mapped, mapped_column, DeclarativeBase

def _new_id() -> str:
    return str(uuid.uuid4())

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

class Base(DeclarativeBase):
    pass

class AreaType(str, enum.Enum):
    WORLD = "WORLD"
    CONTINENT = "CONTINENT"
    COUNTRY = "COUNTRY"
    STATE = "STATE"
    PROVINCE = "PROVINCE"
    CLUSTER = "CLUSTER"
    COUNTY = "COUNTY"
    CITY = "CITY"
    EXTENDED_NEIGHBOURHOOD = "EXTENDED_NEIGHBOURHOOD"
    NEIGHBOURHOOD = "NEIGHBOURHOOD"
    SUBDIVISION = "SUBDIVISION"

class RuleType(str, enum.Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"

class GeographicArea(Base):
    __tablename__ = 'geographic_area'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String, nullable=False)
    area_type: Mapped[AreaType] = mapped_column(Enum(AreaType, name="area_type"), nullable=False)
    parent_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey('geographic_area.id'), nullable=True, index=True)

class Venue(Base):
    __tablename__ = 'venue'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String, nullable=False)
    geographic_area_id: Mapped[str] = mapped_column(String(36), ForeignKey('geographic_area.id'), nullable=False, index=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float)
    longitude: Mapped[Optional[float]] = mapped_column(Float)

class AuthorizationRule(Base):
    __tablename__ = 'user_geographic_authorization'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    geographic_area_id: Mapped[str] = mapped_column(String(36), ForeignKey('geographic_area.id'), nullable=False)
    rule_type: Mapped[RuleType] = mapped_column(Enum(RuleType, name="authorization_rule_type"), nullable=False)
    created_by: Mapped[str] = mapped_column(String(36), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint('user_id', 'geographic_area_id', name='uq_user_geographic_authorization_user_area'),
    )

class AuthorizationLog(Base):
    __tablename__ = 'authorization_log'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    user_id: Mapped[str] = mapped_column(String(36))
    action: Mapped[str] = mapped_column(String)
    entity_type: Mapped[str] = mapped_column(String)
    entity_id: Mapped[Optional[str]] = mapped_column(String(36))
    reason: Mapped[Optional[str]] = mapped_column(String)

    __table_args__ = (
        Index('ix_authorization_log_user_timestamp', 'user_id', 'timestamp'),
    )
