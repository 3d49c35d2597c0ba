"""initial schema: users, roles, employees, attendance, leave, salary structures, pay runs

Revision ID: a1f0c3e2b7d4
Revises:
Create Date: 2025-11-08 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1f0c3e2b7d4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _money(name, nullable=False):
    return sa.Column(name, sa.Numeric(14, 2), nullable=nullable, server_default='0')


def _pct(name):
    return sa.Column(name, sa.Numeric(6, 2), nullable=True)


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('status', sa.String(20), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(50), nullable=False, unique=True),
    )
    op.create_table(
        'user_roles',
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), primary_key=True),
    )

    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, unique=True),
        sa.Column('code', sa.String(32), nullable=False, unique=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('first_name', sa.String(80), nullable=False),
        sa.Column('last_name', sa.String(80), nullable=True),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('address', sa.String(255), nullable=True),
        sa.Column('department', sa.String(80), nullable=True),
        sa.Column('position', sa.String(80), nullable=True),
        _money('salary'),
        sa.Column('bank_name', sa.String(120), nullable=True),
        sa.Column('account_number', sa.String(40), nullable=True),
        sa.Column('pan_no', sa.String(20), nullable=True),
        sa.Column('uan_no', sa.String(20), nullable=True),
        sa.Column('hire_date', sa.Date(), nullable=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        'attendance',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('check_in', sa.DateTime(), nullable=True),
        sa.Column('check_out', sa.DateTime(), nullable=True),
        sa.Column('hours_worked', sa.Float(), nullable=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='present'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('employee_id', 'date', name='uq_attendance_employee_date'),
    )
    op.create_index('ix_attendance_employee_id', 'attendance', ['employee_id'])

    op.create_table(
        'leave_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('days', sa.Integer(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('applied_by_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('approved_by_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_leave_requests_employee_id', 'leave_requests', ['employee_id'])

    op.create_table(
        'salary_structures',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('effective_from', sa.Date(), nullable=False),
        sa.Column('effective_to', sa.Date(), nullable=True),
        _money('month_wage', nullable=True),
        _money('yearly_wage', nullable=True),
        sa.Column('working_days_per_week', sa.Integer(), nullable=True),
        sa.Column('break_time', sa.Float(), nullable=True),
        _money('basic_salary'), _pct('basic_salary_percent'),
        _money('house_rent_allowance'), _pct('hra_percent'),
        _money('standard_allowance'), _pct('standard_allowance_percent'),
        _money('performance_bonus'), _pct('performance_bonus_percent'),
        _money('travel_allowance'), _pct('lta_percent'),
        _money('fixed_allowance'), _pct('fixed_allowance_percent'),
        _money('pf_employee'), _pct('pf_employee_percent'),
        _money('pf_employer'), _pct('pf_employer_percent'),
        _money('professional_tax'),
        _money('tds'),
        _money('other_deductions'), _pct('other_deductions_percent'),
        _money('gross_salary'),
        _money('total_deductions'),
        _money('net_salary'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_salary_structures_employee_id', 'salary_structures', ['employee_id'])

    op.create_table(
        'pay_runs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('period_start', sa.Date(), nullable=False),
        sa.Column('period_end', sa.Date(), nullable=False),
        sa.Column('pay_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='draft'),
        sa.Column('total_employees', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_amount', sa.Numeric(16, 2), nullable=False, server_default='0'),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'payrolls',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('pay_run_id', sa.Integer(), sa.ForeignKey('pay_runs.id', ondelete='CASCADE'), nullable=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id'), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='computed'),
        _money('gross_salary'),
        _money('total_deductions'),
        _money('net_salary'),
        sa.Column('calc_meta', sa.JSON(), nullable=True),
        sa.Column('computed_at', sa.DateTime(), nullable=True),
        sa.Column('validated_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('pay_run_id', 'employee_id', name='uq_payroll_run_employee'),
    )
    op.create_index('ix_payrolls_pay_run_id', 'payrolls', ['pay_run_id'])
    op.create_index('ix_payrolls_employee_id', 'payrolls', ['employee_id'])

    op.create_table(
        'payslips',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('payroll_id', sa.Integer(), sa.ForeignKey('payrolls.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='validated'),
        sa.Column('pdf_url', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_payslips_employee_id', 'payslips', ['employee_id'])


def downgrade() -> None:
    for table in ('payslips', 'payrolls', 'pay_runs', 'salary_structures', 'leave_requests',
                  'attendance', 'employees', 'user_roles', 'roles', 'users'):
        op.drop_table(table)
