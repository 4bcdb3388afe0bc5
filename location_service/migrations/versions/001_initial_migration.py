"""Initial migration - create the locations table

Creates the single table for the Location Service:
- locations: plant and litter observations keyed by the client id

Revision ID: 001_initial
Revises:
Create Date: 2024-01-15

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'locations',
        sa.Column('id', sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('note', sa.Text(), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint("type IN ('plant', 'litter')", name='check_location_type'),
    )
    op.create_index('idx_locations_coords', 'locations', ['latitude', 'longitude'])
    op.create_index('idx_locations_timestamp', 'locations', ['timestamp'])
    op.create_index('idx_locations_type', 'locations', ['type'])


def downgrade():
    op.drop_index('idx_locations_type', table_name='locations')
    op.drop_index('idx_locations_timestamp', table_name='locations')
    op.drop_index('idx_locations_coords', table_name='locations')
    op.drop_table('locations')
