"""initial schema: establishments, staff, HR, payroll, bookings, finance, access log

Revision ID: a1f0c3e2b7d4
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1f0c3e2b7d4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # establishments first; manager FK is added once users exists
    op.create_table(
        'establishments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('city', sa.String(length=120), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('country', sa.String(length=120), nullable=True),
        sa.Column('phone', sa.String(length=30), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('website', sa.String(length=255), nullable=True),
        sa.Column('pricing_mode', sa.String(length=20), nullable=False, server_default='nightly'),
        sa.Column('services', sa.JSON(), nullable=False),
        sa.Column('manager_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_establishment_city', 'establishments', ['city'])
    op.create_index('ix_establishment_pricing_mode', 'establishments', ['pricing_mode'])
    op.create_index('ix_establishments_manager_id', 'establishments', ['manager_id'])

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='staff'),
        sa.Column('establishment_id', sa.Integer(),
                  sa.ForeignKey('establishments.id', ondelete='SET NULL'), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_establishment_id', 'users', ['establishment_id'])

    with op.batch_alter_table('establishments') as batch:
        batch.create_foreign_key(
            'fk_establishment_manager', 'users', ['manager_id'], ['id'], ondelete='SET NULL'
        )

    op.create_table(
        'establishment_staff',
        sa.Column('establishment_id', sa.Integer(),
                  sa.ForeignKey('establishments.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
    )

    op.create_table(
        'accommodations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('establishment_id', sa.Integer(),
                  sa.ForeignKey('establishments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False, server_default='standard_room'),
        sa.Column('pricing_mode', sa.String(length=20), nullable=False, server_default='nightly'),
        sa.Column('base_price', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('capacity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='available'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('establishment_id', 'name', name='uq_accommodation_establishment_name'),
    )
    op.create_index('ix_accommodations_establishment_id', 'accommodations', ['establishment_id'])

    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('establishment_id', sa.Integer(),
                  sa.ForeignKey('establishments.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'),
                  nullable=True, unique=True),
        sa.Column('employee_number', sa.String(length=32), nullable=False, unique=True),
        sa.Column('first_name', sa.String(length=80), nullable=False),
        sa.Column('last_name', sa.String(length=80), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=30), nullable=True),
        sa.Column('position', sa.String(length=120), nullable=False, server_default=''),
        sa.Column('department', sa.String(length=120), nullable=True),
        sa.Column('hire_date', sa.Date(), nullable=True),
        sa.Column('contract_type', sa.String(length=20), nullable=False, server_default='permanent'),
        sa.Column('salary', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('health_insurance', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('retirement_plan', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_emp_establishment_id', 'employees', ['establishment_id'])
    op.create_index('ix_emp_establishment_status', 'employees', ['establishment_id', 'status'])

    op.create_table(
        'leaves',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('days', sa.Integer(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('approved_by_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('end_date >= start_date', name='ck_leave_date_range'),
    )
    op.create_index('ix_leaves_employee_id', 'leaves', ['employee_id'])
    op.create_index('ix_leaves_type', 'leaves', ['type'])
    op.create_index('ix_leaves_status', 'leaves', ['status'])
    op.create_index('ix_leave_employee_dates', 'leaves', ['employee_id', 'start_date', 'end_date'])

    op.create_table(
        'payrolls',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('period_year', sa.Integer(), nullable=False),
        sa.Column('period_month', sa.Integer(), nullable=False),
        sa.Column('base_salary', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('allowances', sa.JSON(), nullable=False),
        sa.Column('deductions', sa.JSON(), nullable=False),
        sa.Column('bonuses', sa.JSON(), nullable=False),
        sa.Column('overtime_hours', sa.Numeric(8, 2), nullable=False, server_default='0'),
        sa.Column('overtime_rate', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('total_gross', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('total_deductions', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('net_salary', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='draft'),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('employee_id', 'period_year', 'period_month', name='uq_payroll_employee_period'),
        sa.CheckConstraint('period_month BETWEEN 1 AND 12', name='ck_payroll_period_month'),
    )
    op.create_index('ix_payrolls_employee_id', 'payrolls', ['employee_id'])
    op.create_index('ix_payrolls_status', 'payrolls', ['status'])
    op.create_index('ix_payroll_period_status', 'payrolls', ['period_year', 'period_month', 'status'])

    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('establishment_id', sa.Integer(),
                  sa.ForeignKey('establishments.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('accommodation_id', sa.Integer(),
                  sa.ForeignKey('accommodations.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('booking_code', sa.String(length=32), nullable=False, unique=True),
        sa.Column('client_name', sa.String(length=255), nullable=True),
        sa.Column('check_in', sa.Date(), nullable=False),
        sa.Column('check_out', sa.Date(), nullable=False),
        sa.Column('guests', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('total_price', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('payment_status', sa.String(length=20), nullable=False, server_default='unpaid'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_bookings_accommodation_id', 'bookings', ['accommodation_id'])
    op.create_index('ix_booking_establishment_status_checkin', 'bookings',
                    ['establishment_id', 'status', 'check_in'])

    op.create_table(
        'invoices',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('establishment_id', sa.Integer(),
                  sa.ForeignKey('establishments.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('booking_id', sa.Integer(), sa.ForeignKey('bookings.id', ondelete='SET NULL'), nullable=True),
        sa.Column('invoice_number', sa.String(length=40), nullable=False, unique=True),
        sa.Column('total', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('balance', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='unpaid'),
        sa.Column('issued_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_invoice_establishment_issued', 'invoices', ['establishment_id', 'issued_at'])

    op.create_table(
        'expenses',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('establishment_id', sa.Integer(),
                  sa.ForeignKey('establishments.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('category', sa.String(length=30), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_expenses_category', 'expenses', ['category'])
    op.create_index('ix_expense_establishment_category', 'expenses', ['establishment_id', 'category'])

    op.create_table(
        'establishment_access_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.Column('user_role', sa.String(length=20), nullable=True),
        sa.Column('user_establishment_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(length=20), nullable=False),
        sa.Column('resource_type', sa.String(length=40), nullable=False),
        sa.Column('resource_id', sa.String(length=64), nullable=False),
        sa.Column('resource_establishment_id', sa.Integer(), nullable=True),
        sa.Column('allowed', sa.Boolean(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
    )
    op.create_index('ix_establishment_access_logs_timestamp', 'establishment_access_logs', ['timestamp'])
    op.create_index('ix_establishment_access_logs_user_id', 'establishment_access_logs', ['user_id'])
    op.create_index('ix_establishment_access_logs_resource_establishment_id',
                    'establishment_access_logs', ['resource_establishment_id'])
    op.create_index('ix_establishment_access_logs_allowed', 'establishment_access_logs', ['allowed'])


def downgrade() -> None:
    op.drop_table('establishment_access_logs')
    op.drop_table('expenses')
    op.drop_table('invoices')
    op.drop_table('bookings')
    op.drop_table('payrolls')
    op.drop_table('leaves')
    op.drop_table('employees')
    op.drop_table('accommodations')
    op.drop_table('establishment_staff')
    with op.batch_alter_table('establishments') as batch:
        batch.drop_constraint('fk_establishment_manager', type_='foreignkey')
    op.drop_table('users')
    op.drop_table('establishments')
