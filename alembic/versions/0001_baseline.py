"""Baseline migration - scheduling tables

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19

Creates availability, blocks, session types, patients, recurring series,
appointments, payments and the per-day booking lock table.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Create scheduling tables."""

    # ==========================================================================
    # Availability
    # ==========================================================================
    op.create_table(
        'availability_windows',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('day_of_week', sa.String(10), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('start_time < end_time', name='ck_availability_window_range'),
    )
    op.create_index('idx_availability_windows_day', 'availability_windows', ['day_of_week', 'is_active'])

    op.create_table(
        'blocks',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('start_datetime', sa.DateTime(), nullable=False),
        sa.Column('end_datetime', sa.DateTime(), nullable=False),
        sa.Column('block_type', sa.String(20), nullable=False),
        sa.Column('reason', sa.String(255), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('start_datetime < end_datetime', name='ck_block_range'),
    )
    op.create_index('idx_blocks_range', 'blocks', ['start_datetime', 'end_datetime'])

    # ==========================================================================
    # Session types and patients
    # ==========================================================================
    op.create_table(
        'session_types',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('duration_minutes > 0', name='ck_session_type_duration'),
    )
    op.create_index('idx_session_types_active', 'session_types', ['is_active', 'display_order'])

    op.create_table(
        'patients',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(32), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('phone', name='uq_patient_phone'),
    )
    op.create_index('idx_patients_name', 'patients', ['full_name'])

    # ==========================================================================
    # Recurring series and appointments
    # ==========================================================================
    op.create_table(
        'recurring_series',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('patient_id', sa.Uuid(), sa.ForeignKey('patients.id', ondelete='CASCADE'), nullable=False),
        sa.Column('session_type_id', sa.Uuid(), sa.ForeignKey('session_types.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('day_of_week', sa.String(10), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('frequency', sa.String(10), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        *_timestamps(),
    )
    op.create_index('idx_recurring_series_patient', 'recurring_series', ['patient_id'])
    op.create_index('idx_recurring_series_active', 'recurring_series', ['is_active'])

    op.create_table(
        'appointments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('patient_id', sa.Uuid(), sa.ForeignKey('patients.id', ondelete='CASCADE'), nullable=False),
        sa.Column('session_type_id', sa.Uuid(), sa.ForeignKey('session_types.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('recurring_series_id', sa.Uuid(), sa.ForeignKey('recurring_series.id', ondelete='SET NULL'), nullable=True),
        sa.Column('start_datetime', sa.DateTime(), nullable=False),
        sa.Column('end_datetime', sa.DateTime(), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('session_link', sa.String(500), nullable=True),
        sa.Column('cancellation_token', sa.String(64), nullable=False),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('cancelled_by', sa.String(20), nullable=True),
        sa.Column('cancellation_reason', sa.String(500), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('cancellation_token', name='uq_appointment_cancellation_token'),
        sa.CheckConstraint('start_datetime < end_datetime', name='ck_appointment_range'),
    )
    op.create_index('idx_appointments_start', 'appointments', ['start_datetime'])
    op.create_index('idx_appointments_range_status', 'appointments', ['start_datetime', 'end_datetime', 'status'])
    op.create_index('idx_appointments_patient', 'appointments', ['patient_id'])
    op.create_index('idx_appointments_series', 'appointments', ['recurring_series_id'])

    # ==========================================================================
    # Payments
    # ==========================================================================
    op.create_table(
        'payments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('appointment_id', sa.Uuid(), sa.ForeignKey('appointments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('method', sa.String(30), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('notes', sa.String(500), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('appointment_id', name='uq_payment_appointment'),
    )

    # ==========================================================================
    # Booking write lock (one row per calendar day)
    # ==========================================================================
    op.create_table(
        'schedule_day_locks',
        sa.Column('day', sa.Date(), primary_key=True),
        sa.Column('version', sa.Integer(), nullable=False),
    )


def downgrade() -> None:
    """Drop scheduling tables."""
    op.drop_table('schedule_day_locks')
    op.drop_table('payments')
    op.drop_table('appointments')
    op.drop_table('recurring_series')
    op.drop_table('patients')
    op.drop_table('session_types')
    op.drop_table('blocks')
    op.drop_table('availability_windows')
