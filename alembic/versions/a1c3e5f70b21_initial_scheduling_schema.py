"""initial scheduling schema

Revision ID: a1c3e5f70b21
Revises:
Create Date: 2026-10-18 10:12:40.512331

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'a1c3e5f70b21'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""

    # 1. Businesses and weekly hours
    op.create_table(
        'businesses',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('slug', sa.String(120), nullable=False),
        sa.Column('contact_phone', sa.String(20), nullable=True),
        sa.Column('address', sa.String(255), nullable=True),
        sa.Column('timezone', sa.String(50), nullable=False, server_default='America/Bogota'),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('cancellation_hours', sa.Integer(), nullable=False, server_default='24'),
        sa.Column('reschedule_limit', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('allow_same_day', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now())
    )
    op.create_index('ix_businesses_slug', 'businesses', ['slug'], unique=True)

    op.create_table(
        'business_hours',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('open_time', sa.String(5), nullable=False),
        sa.Column('close_time', sa.String(5), nullable=False)
    )
    op.create_index('ix_business_hours_business_id', 'business_hours', ['business_id'])

    # 2. Resources and services
    op.create_table(
        'resources',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now())
    )
    op.create_index('ix_resources_business_id', 'resources', ['business_id'])
    op.create_index('ix_resources_is_active', 'resources', ['is_active'])

    op.create_table(
        'services',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now())
    )
    op.create_index('ix_services_business_id', 'services', ['business_id'])
    op.create_index('ix_services_is_active', 'services', ['is_active'])

    op.create_table(
        'service_allowed_resources',
        sa.Column('service_id', sa.Uuid(), sa.ForeignKey('services.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('resource_id', sa.Uuid(), sa.ForeignKey('resources.id', ondelete='CASCADE'), primary_key=True)
    )

    # 3. Blocks
    op.create_table(
        'blocks',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('resource_id', sa.Uuid(), sa.ForeignKey('resources.id', ondelete='CASCADE'), nullable=True),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('reason', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint('end_time > start_time', name='ck_blocks_positive_range')
    )
    op.create_index('ix_blocks_business_range', 'blocks', ['business_id', 'start_time', 'end_time'])

    # 4. Appointments
    op.create_table(
        'appointments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('service_id', sa.Uuid(), sa.ForeignKey('services.id'), nullable=False),
        sa.Column('resource_id', sa.Uuid(), sa.ForeignKey('resources.id'), nullable=True),
        sa.Column('booking_scope', sa.String(64), nullable=False),
        sa.Column('customer_name', sa.String(200), nullable=False),
        sa.Column('customer_phone', sa.String(20), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='booked'),
        sa.Column('reschedule_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_rescheduled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reminder_sent_hours', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint('end_time > start_time', name='ck_appointments_positive_range')
    )
    op.create_index('ix_appointments_business_id', 'appointments', ['business_id'])
    op.create_index('ix_appointments_service_id', 'appointments', ['service_id'])
    op.create_index('ix_appointments_customer_phone', 'appointments', ['customer_phone'])
    op.create_index('ix_appointments_business_range', 'appointments', ['business_id', 'start_time', 'end_time'])
    op.create_index('ix_appointments_resource_range', 'appointments', ['resource_id', 'start_time', 'end_time'])

    # Double-booking guard: one booked appointment per (business, scope, start)
    op.create_index(
        'uq_appointments_booked_scope_start',
        'appointments',
        ['business_id', 'booking_scope', 'start_time'],
        unique=True,
        postgresql_where=sa.text("status = 'booked'"),
        sqlite_where=sa.text("status = 'booked'")
    )

    # 5. Audit trail
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=True),
        sa.Column('actor_role', sa.String(30), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now())
    )
    op.create_index('ix_audit_logs_business_id', 'audit_logs', ['business_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_audit_logs_business_id', table_name='audit_logs')
    op.drop_table('audit_logs')

    op.drop_index('uq_appointments_booked_scope_start', table_name='appointments')
    op.drop_index('ix_appointments_resource_range', table_name='appointments')
    op.drop_index('ix_appointments_business_range', table_name='appointments')
    op.drop_index('ix_appointments_customer_phone', table_name='appointments')
    op.drop_index('ix_appointments_service_id', table_name='appointments')
    op.drop_index('ix_appointments_business_id', table_name='appointments')
    op.drop_table('appointments')

    op.drop_index('ix_blocks_business_range', table_name='blocks')
    op.drop_table('blocks')

    op.drop_table('service_allowed_resources')
    op.drop_index('ix_services_is_active', table_name='services')
    op.drop_index('ix_services_business_id', table_name='services')
    op.drop_table('services')
    op.drop_index('ix_resources_is_active', table_name='resources')
    op.drop_index('ix_resources_business_id', table_name='resources')
    op.drop_table('resources')

    op.drop_index('ix_business_hours_business_id', table_name='business_hours')
    op.drop_table('business_hours')
    op.drop_index('ix_businesses_slug', table_name='businesses')
    op.drop_table('businesses')
