"""initial payroll & leave schema

Revision ID: a1f0c3d2e4b5
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1f0c3d2e4b5'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

RUN_STATUS = sa.Enum('Draft', 'Processing', 'Completed', 'Cancelled', name='payroll_run_status_enum')


def upgrade() -> None:
    # ---- security ----
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=50), nullable=False, unique=True),
    )
    op.create_table(
        'permissions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=120), nullable=False, unique=True),
        sa.Column('name', sa.String(length=150), nullable=True),
    )
    op.create_table(
        'user_roles',
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), primary_key=True),
    )
    op.create_table(
        'role_permissions',
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('permission_id', sa.Integer(), sa.ForeignKey('permissions.id', ondelete='CASCADE'), primary_key=True),
    )

    # ---- employees ----
    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, unique=True),
        sa.Column('code', sa.String(length=32), nullable=False, unique=True),
        sa.Column('email', sa.String(length=255), nullable=False, unique=True),
        sa.Column('name', sa.String(length=160), nullable=False),
        sa.Column('role', sa.String(length=40), nullable=False),
        sa.Column('department', sa.String(length=80), nullable=True),
        sa.Column('doj', sa.Date(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_emp_status_role', 'employees', ['status', 'role'])

    op.create_table(
        'employee_salaries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('base_salary', sa.Numeric(14, 2), nullable=False),
        sa.Column('allowances', sa.Numeric(14, 2), nullable=False),
        sa.Column('deductions', sa.Numeric(14, 2), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('effective_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_employee_salaries_employee_id', 'employee_salaries', ['employee_id'])
    op.create_index('ix_emp_salary_range', 'employee_salaries', ['employee_id', 'effective_date', 'end_date'])

    # ---- leave ----
    op.create_table(
        'leave_balances',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('total_days', sa.Integer(), nullable=False),
        sa.Column('used_days', sa.Integer(), nullable=False),
        sa.Column('pending_days', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('employee_id', 'year', name='uq_leave_balance_emp_year'),
        sa.CheckConstraint('used_days >= 0', name='ck_leave_balance_used_nonneg'),
        sa.CheckConstraint('pending_days >= 0', name='ck_leave_balance_pending_nonneg'),
        sa.CheckConstraint('used_days + pending_days <= total_days', name='ck_leave_balance_within_total'),
    )
    op.create_index('ix_leave_balances_employee_id', 'leave_balances', ['employee_id'])

    op.create_table(
        'leave_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('leave_type', sa.String(length=40), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('total_days', sa.Integer(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('approved_by_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_leave_requests_employee_id', 'leave_requests', ['employee_id'])
    op.create_index('ix_leave_requests_status', 'leave_requests', ['status'])

    op.create_table(
        'leave_approval_actions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('leave_request_id', sa.Integer(), sa.ForeignKey('leave_requests.id', ondelete='CASCADE'), nullable=False),
        sa.Column('action', sa.String(length=20), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('acted_by_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('acted_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_leave_approval_actions_leave_request_id', 'leave_approval_actions', ['leave_request_id'])

    # ---- attendance / shifts ----
    op.create_table(
        'shifts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=60), nullable=False, unique=True),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_table(
        'shift_assignments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('shift_id', sa.Integer(), sa.ForeignKey('shifts.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('employee_id', 'date', name='uq_shift_assignment_emp_date'),
    )
    op.create_index('ix_shift_assignments_employee_id', 'shift_assignments', ['employee_id'])
    op.create_index('ix_shift_assignments_shift_id', 'shift_assignments', ['shift_id'])
    op.create_index('ix_shift_assignments_date', 'shift_assignments', ['date'])

    op.create_table(
        'attendance',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('time_in', sa.Time(), nullable=True),
        sa.Column('attendance_type', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('employee_id', 'date', name='uq_attendance_emp_date'),
    )
    op.create_index('ix_attendance_employee_id', 'attendance', ['employee_id'])
    op.create_index('ix_attendance_date', 'attendance', ['date'])

    op.create_table(
        'company_calendar',
        sa.Column('date', sa.Date(), primary_key=True),
        sa.Column('is_working_day', sa.Boolean(), nullable=False),
        sa.Column('note', sa.String(length=120), nullable=True),
    )

    op.create_table(
        'shift_change_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('current_shift_id', sa.Integer(), sa.ForeignKey('shifts.id'), nullable=False),
        sa.Column('requested_shift_id', sa.Integer(), sa.ForeignKey('shifts.id'), nullable=False),
        sa.Column('request_date', sa.Date(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('approved_by_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_shift_change_requests_employee_id', 'shift_change_requests', ['employee_id'])
    op.create_index('ix_shift_change_requests_status', 'shift_change_requests', ['status'])

    # ---- payroll ----
    op.create_table(
        'tax_rates',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tax_year', sa.Integer(), nullable=False),
        sa.Column('min_income', sa.Numeric(14, 2), nullable=False),
        sa.Column('max_income', sa.Numeric(14, 2), nullable=True),
        sa.Column('tax_rate', sa.Numeric(5, 2), nullable=False),
        sa.Column('tax_bracket_name', sa.String(length=80), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_tax_rates_tax_year', 'tax_rates', ['tax_year'])

    op.create_table(
        'payroll_runs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('run_date', sa.Date(), nullable=False),
        sa.Column('period_start', sa.Date(), nullable=False),
        sa.Column('period_end', sa.Date(), nullable=False),
        sa.Column('total_employees', sa.Integer(), nullable=False),
        sa.Column('total_gross_pay', sa.Numeric(14, 2), nullable=False),
        sa.Column('total_tax', sa.Numeric(14, 2), nullable=False),
        sa.Column('total_net_pay', sa.Numeric(14, 2), nullable=False),
        sa.Column('status', RUN_STATUS, nullable=False),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'payroll_entries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('run_id', sa.Integer(), sa.ForeignKey('payroll_runs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id'), nullable=False),
        sa.Column('base_salary', sa.Numeric(14, 2), nullable=True),
        sa.Column('allowances', sa.Numeric(14, 2), nullable=True),
        sa.Column('deductions', sa.Numeric(14, 2), nullable=True),
        sa.Column('overtime_pay', sa.Numeric(14, 2), nullable=True),
        sa.Column('bonus', sa.Numeric(14, 2), nullable=True),
        sa.Column('gross_pay', sa.Numeric(14, 2), nullable=True),
        sa.Column('tax_amount', sa.Numeric(14, 2), nullable=True),
        sa.Column('net_pay', sa.Numeric(14, 2), nullable=True),
        sa.Column('working_days', sa.Integer(), nullable=True),
        sa.Column('attendance_days', sa.Integer(), nullable=True),
        sa.Column('overtime_days', sa.Integer(), nullable=True),
        sa.Column('leave_days', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('run_id', 'employee_id', name='uq_payroll_entry_run_emp'),
    )
    op.create_index('ix_payroll_entries_run_id', 'payroll_entries', ['run_id'])
    op.create_index('ix_payroll_entries_employee_id', 'payroll_entries', ['employee_id'])


def downgrade() -> None:
    op.drop_table('payroll_entries')
    op.drop_table('payroll_runs')
    op.drop_table('tax_rates')
    op.drop_table('shift_change_requests')
    op.drop_table('company_calendar')
    op.drop_table('attendance')
    op.drop_table('shift_assignments')
    op.drop_table('shifts')
    op.drop_table('leave_approval_actions')
    op.drop_table('leave_requests')
    op.drop_table('leave_balances')
    op.drop_table('employee_salaries')
    op.drop_table('employees')
    op.drop_table('role_permissions')
    op.drop_table('user_roles')
    op.drop_table('permissions')
    op.drop_table('roles')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
    RUN_STATUS.drop(op.get_bind(), checkfirst=True)
