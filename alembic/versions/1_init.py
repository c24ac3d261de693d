"""1_init - Geographic authorization schema

Revision ID: 1_init
Revises:
Create Date: 2026-10-19

Includes:
- Area hierarchy (geographic_area, self-referencing parent_id)
- Venues placed in areas
- Per-user ALLOW/DENY rules, unique per (user, area)
- Authorization denial log
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '1_init'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

AREA_TYPES = (
    'WORLD', 'CONTINENT', 'COUNTRY', 'STATE', 'PROVINCE', 'CLUSTER',
    'COUNTY', 'CITY', 'EXTENDED_NEIGHBOURHOOD', 'NEIGHBOURHOOD', 'SUBDIVISION',
)


def upgrade() -> None:
    # Geographic Area
    op.create_table(
        'geographic_area',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('area_type', sa.Enum(*AREA_TYPES, name='area_type'), nullable=False),
        sa.Column('parent_id', sa.String(length=36), nullable=True),
        sa.ForeignKeyConstraint(['parent_id'], ['geographic_area.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    # Every traversal walks parent_id; the recursive expansion joins on it.
    op.create_index(op.f('ix_geographic_area_parent_id'), 'geographic_area', ['parent_id'], unique=False)

    # Venue
    op.create_table(
        'venue',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('geographic_area_id', sa.String(length=36), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.ForeignKeyConstraint(['geographic_area_id'], ['geographic_area.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_venue_geographic_area_id'), 'venue', ['geographic_area_id'], unique=False)

    # Authorization Rules
    op.create_table(
        'user_geographic_authorization',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('geographic_area_id', sa.String(length=36), nullable=False),
        sa.Column('rule_type', sa.Enum('ALLOW', 'DENY', name='authorization_rule_type'), nullable=False),
        sa.Column('created_by', sa.String(length=36), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['geographic_area_id'], ['geographic_area.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'geographic_area_id', name='uq_user_geographic_authorization_user_area')
    )
    op.create_index(op.f('ix_user_geographic_authorization_user_id'), 'user_geographic_authorization', ['user_id'], unique=False)

    # Authorization Log
    op.create_table(
        'authorization_log',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=True),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        sa.Column('action', sa.String(), nullable=True),
        sa.Column('entity_type', sa.String(), nullable=True),
        sa.Column('entity_id', sa.String(length=36), nullable=True),
        sa.Column('reason', sa.String(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_authorization_log_user_timestamp', 'authorization_log', ['user_id', 'timestamp'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_authorization_log_user_timestamp', table_name='authorization_log')
    op.drop_table('authorization_log')
    op.drop_index(op.f('ix_user_geographic_authorization_user_id'), table_name='user_geographic_authorization')
    op.drop_table('user_geographic_authorization')
    op.drop_index(op.f('ix_venue_geographic_area_id'), table_name='venue')
    op.drop_table('venue')
    op.drop_index(op.f('ix_geographic_area_parent_id'), table_name='geographic_area')
    op.drop_table('geographic_area')
    sa.Enum(name='authorization_rule_type').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='area_type').drop(op.get_bind(), checkfirst=True)
