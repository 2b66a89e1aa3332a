"""services, appointments and per-resource slot ledgers

Revision ID: 20251019_090000
Revises:
Create Date: 2025-10-19 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20251019_090000'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'services',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('slug', sa.String(120), nullable=False, unique=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('category', sa.String(80), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('short_description', sa.String(300), nullable=True),
        sa.Column('features', sa.JSON(), nullable=False),
        sa.Column('technologies', sa.JSON(), nullable=False),
        sa.Column('deliverables', sa.JSON(), nullable=False),
        sa.Column('pricing', sa.JSON(), nullable=False),
        sa.Column('duration', sa.JSON(), nullable=False),
        sa.Column('availability', sa.JSON(), nullable=False),
        sa.Column('requirements', sa.JSON(), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('icon', sa.String(60), nullable=True),
        sa.Column('color', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('total_bookings', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_services_category', 'services', ['category'])
    op.create_index('ix_services_display_order', 'services', ['display_order'])

    op.create_table(
        'appointments',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('service_id', sa.String(32),
                  sa.ForeignKey('services.id', ondelete='SET NULL'), nullable=True),
        sa.Column('service_snapshot', sa.JSON(), nullable=False),
        sa.Column('client', sa.JSON(), nullable=False),
        sa.Column('client_email', sa.String(320), nullable=False),
        sa.Column('resource', sa.String(64), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('duration_min', sa.Integer(), nullable=False),
        sa.Column('location', sa.JSON(), nullable=False),
        sa.Column('title', sa.String(300), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('project', sa.JSON(), nullable=False),
        sa.Column('consents', sa.JSON(), nullable=False),
        sa.Column('analytics', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='pending'),
        sa.Column('confirmation_token', sa.String(64), nullable=False, unique=True),
        sa.Column('cancellation_token', sa.String(64), nullable=False, unique=True),
        sa.Column('notifications', sa.JSON(), nullable=False),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_appointments_window', 'appointments', ['resource', 'start_time', 'end_time'])
    op.create_index('ix_appointments_status', 'appointments', ['status'])
    op.create_index('ix_appointments_client_email', 'appointments', ['client_email'])

    op.create_table(
        'slot_ledgers',
        sa.Column('resource', sa.String(64), primary_key=True),
        sa.Column('version', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('slot_ledgers')
    op.drop_index('ix_appointments_client_email', table_name='appointments')
    op.drop_index('ix_appointments_status', table_name='appointments')
    op.drop_index('ix_appointments_window', table_name='appointments')
    op.drop_table('appointments')
    op.drop_index('ix_services_display_order', table_name='services')
    op.drop_index('ix_services_category', table_name='services')
    op.drop_table('services')
