"""initial production schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create organizations, users, vessels, lots and vessel history"""
    op.create_table(
        'organization',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('contact_email', sa.String(length=256), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('subscription_tier', sa.String(length=32), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=120), nullable=True),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['organization_id'], ['organization.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username'),
    )

    op.create_table(
        'production_container',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('capacity_gallons', sa.Float(), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('total_fills', sa.Integer(), nullable=False),
        sa.Column('last_topping_date', sa.Date(), nullable=True),
        sa.Column('purchase_date', sa.Date(), nullable=True),
        sa.Column('last_cip_date', sa.Date(), nullable=True),
        sa.Column('cip_product', sa.String(length=128), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('total_fills >= 0', name='check_container_fills_non_negative'),
        sa.ForeignKeyConstraint(['organization_id'], ['organization.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('production_container', schema=None) as batch_op:
        batch_op.create_index('ix_production_container_organization_id', ['organization_id'], unique=False)
        batch_op.create_index('ix_production_container_name', ['name'], unique=False)
        batch_op.create_index('ix_production_container_status', ['status'], unique=False)

    op.create_table(
        'production_lot',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('volume_gallons', sa.Float(), nullable=False),
        sa.Column('ph', sa.Float(), nullable=True),
        sa.Column('ta', sa.Float(), nullable=True),
        sa.Column('so2', sa.Float(), nullable=True),
        sa.Column('va', sa.Float(), nullable=True),
        sa.Column('alcohol', sa.Float(), nullable=True),
        sa.Column('parent_lot_id', sa.Integer(), nullable=True),
        sa.Column('container_id', sa.Integer(), nullable=True),
        sa.Column('vintage', sa.Integer(), nullable=True),
        sa.Column('varietal', sa.String(length=128), nullable=True),
        sa.Column('appellation', sa.String(length=128), nullable=True),
        sa.Column('block_id', sa.Integer(), nullable=True),
        sa.Column('harvest_date', sa.Date(), nullable=True),
        sa.Column('press_date', sa.Date(), nullable=True),
        sa.Column('yeast_strain', sa.String(length=128), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('archived_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('volume_gallons >= 0', name='check_lot_volume_non_negative'),
        sa.ForeignKeyConstraint(['container_id'], ['production_container.id']),
        sa.ForeignKeyConstraint(['organization_id'], ['organization.id']),
        sa.ForeignKeyConstraint(['parent_lot_id'], ['production_lot.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('production_lot', schema=None) as batch_op:
        batch_op.create_index('ix_production_lot_organization_id', ['organization_id'], unique=False)
        batch_op.create_index('ix_production_lot_status', ['status'], unique=False)
        batch_op.create_index('ix_production_lot_parent_lot_id', ['parent_lot_id'], unique=False)
        batch_op.create_index('ix_production_lot_container_id', ['container_id'], unique=False)

    op.create_table(
        'vessel_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('container_id', sa.Integer(), nullable=False),
        sa.Column('lot_id', sa.Integer(), nullable=True),
        sa.Column('event_type', sa.String(length=32), nullable=False),
        sa.Column('volume_before', sa.Float(), nullable=True),
        sa.Column('volume_after', sa.Float(), nullable=True),
        sa.Column('volume_change', sa.Float(), nullable=True),
        sa.Column('cip_product', sa.String(length=128), nullable=True),
        sa.Column('maintenance_type', sa.String(length=64), nullable=True),
        sa.Column('cost', sa.Float(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('performed_by', sa.Integer(), nullable=True),
        sa.Column('event_date', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['container_id'], ['production_container.id']),
        sa.ForeignKeyConstraint(['lot_id'], ['production_lot.id']),
        sa.ForeignKeyConstraint(['organization_id'], ['organization.id']),
        sa.ForeignKeyConstraint(['performed_by'], ['user.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('vessel_history', schema=None) as batch_op:
        batch_op.create_index('ix_vessel_history_organization_id', ['organization_id'], unique=False)
        batch_op.create_index('ix_vessel_history_container_id', ['container_id'], unique=False)
        batch_op.create_index('ix_vessel_history_lot_id', ['lot_id'], unique=False)
        batch_op.create_index('ix_vessel_history_event_date', ['event_date'], unique=False)


def downgrade():
    """Drop the production schema"""
    op.drop_table('vessel_history')
    op.drop_table('production_lot')
    op.drop_table('production_container')
    op.drop_table('user')
    op.drop_table('organization')
