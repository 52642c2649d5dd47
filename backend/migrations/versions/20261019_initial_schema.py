"""Initial schema: catalog order, users, rates, location orders, carries, submissions

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

This migration adds:
1. sku_sequences (admin display order)
2. users (workers, supervisors, admins)
3. worker_rates (retail + buyback rate per worker and SKU)
4. location_orders (one column per sale location, per date and SKU)
5. extra_orders and remark_carries (next-day carries)
6. submissions and submission_lines (worker sale sheets)
7. main_table_rows (tray planning snapshot)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


LOCATION_COLUMNS = (
    'prabhadevi_1', 'prabhadevi_2', 'parel', 'saat_rasta', 'sea_face',
    'worli_bdd', 'worli_mix', 'matunga', 'mahim', 'koli_wada',
)


def upgrade():
    # ==========================================================================
    # 1. SKU SEQUENCES
    # ==========================================================================
    op.create_table('sku_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('seq', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_sku_sequences_name'),
        sqlite_autoincrement=True
    )

    # ==========================================================================
    # 2. USERS
    # ==========================================================================
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False, server_default='worker'),
        sa.Column('location', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username', name='uq_users_username'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index('ix_users_role', ['role'], unique=False)

    # ==========================================================================
    # 3. WORKER RATES
    # ==========================================================================
    op.create_table('worker_rates',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('worker_id', sa.Integer(), nullable=False),
        sa.Column('sku_name', sa.String(length=64), nullable=False),
        sa.Column('retail_rate', sa.Float(), nullable=True),
        sa.Column('buyback_rate', sa.Float(), nullable=True),
        sa.ForeignKeyConstraint(['worker_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('worker_id', 'sku_name', name='uq_worker_rates_worker_sku'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('worker_rates', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_worker_rates_worker_id'), ['worker_id'], unique=False)

    # ==========================================================================
    # 4. LOCATION ORDERS
    # ==========================================================================
    op.create_table('location_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('for_date', sa.String(length=10), nullable=False),
        sa.Column('day_of_week', sa.String(length=16), nullable=True),
        sa.Column('sku_name', sa.String(length=64), nullable=False),
        *[sa.Column(col, sa.Float(), nullable=False, server_default='0') for col in LOCATION_COLUMNS],
        sa.Column('previous_balance', sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('for_date', 'sku_name', name='uq_location_orders_date_sku'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('location_orders', schema=None) as batch_op:
        batch_op.create_index('ix_location_orders_for_date', ['for_date'], unique=False)

    # ==========================================================================
    # 5. CARRIES
    # ==========================================================================
    op.create_table('extra_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('for_date', sa.String(length=10), nullable=False),
        sa.Column('day_of_week', sa.String(length=16), nullable=True),
        sa.Column('sku_name', sa.String(length=64), nullable=False),
        sa.Column('extra_order', sa.Float(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('for_date', 'sku_name', name='uq_extra_orders_date_sku'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('extra_orders', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_extra_orders_for_date'), ['for_date'], unique=False)

    op.create_table('remark_carries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('for_date', sa.String(length=10), nullable=False),
        sa.Column('day_of_week', sa.String(length=16), nullable=True),
        sa.Column('sku_name', sa.String(length=64), nullable=False),
        sa.Column('remark_plus_value', sa.Float(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('for_date', 'sku_name', name='uq_remark_carries_date_sku'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('remark_carries', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_remark_carries_for_date'), ['for_date'], unique=False)

    # ==========================================================================
    # 6. SUBMISSIONS
    # ==========================================================================
    op.create_table('submissions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('location', sa.String(length=64), nullable=True),
        sa.Column('for_date', sa.String(length=10), nullable=False),
        sa.Column('day_of_week', sa.String(length=16), nullable=True),
        sa.Column('total_sku', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_mr', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_fr', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_sale', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('cash', sa.Float(), nullable=False, server_default='0'),
        sa.Column('online', sa.Float(), nullable=False, server_default='0'),
        sa.Column('previous_balance', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_due', sa.Float(), nullable=False, server_default='0'),
        sa.Column('remaining_due', sa.Float(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('submissions', schema=None) as batch_op:
        batch_op.create_index('ix_submissions_status_date', ['status', 'for_date'], unique=False)
        batch_op.create_index('ix_submissions_user_date', ['user_id', 'for_date'], unique=False)

    op.create_table('submission_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('submission_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('sku', sa.Float(), nullable=True),
        sa.Column('mr', sa.Float(), nullable=True),
        sa.Column('fr', sa.Float(), nullable=True),
        sa.Column('delivery_rate', sa.Float(), nullable=True),
        sa.Column('sale', sa.Float(), nullable=True),
        sa.Column('amount', sa.Float(), nullable=True),
        sa.Column('ordering', sa.String(length=32), nullable=True),
        sa.ForeignKeyConstraint(['submission_id'], ['submissions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('submission_lines', schema=None) as batch_op:
        batch_op.create_index('ix_submission_lines_submission_name', ['submission_id', 'name'], unique=False)

    # ==========================================================================
    # 7. MAIN TABLE
    # ==========================================================================
    op.create_table('main_table_rows',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sku_name', sa.String(length=64), nullable=False),
        sa.Column('tray', sa.Float(), nullable=False, server_default='0'),
        sa.Column('tray_quantity', sa.Float(), nullable=False, server_default='0'),
        sa.Column('previous_quantity', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_quantity', sa.Float(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sku_name', name='uq_main_table_rows_sku'),
        sqlite_autoincrement=True
    )


def downgrade():
    op.drop_table('main_table_rows')
    with op.batch_alter_table('submission_lines', schema=None) as batch_op:
        batch_op.drop_index('ix_submission_lines_submission_name')
    op.drop_table('submission_lines')
    with op.batch_alter_table('submissions', schema=None) as batch_op:
        batch_op.drop_index('ix_submissions_user_date')
        batch_op.drop_index('ix_submissions_status_date')
    op.drop_table('submissions')
    with op.batch_alter_table('remark_carries', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_remark_carries_for_date'))
    op.drop_table('remark_carries')
    with op.batch_alter_table('extra_orders', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_extra_orders_for_date'))
    op.drop_table('extra_orders')
    with op.batch_alter_table('location_orders', schema=None) as batch_op:
        batch_op.drop_index('ix_location_orders_for_date')
    op.drop_table('location_orders')
    with op.batch_alter_table('worker_rates', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_worker_rates_worker_id'))
    op.drop_table('worker_rates')
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.drop_index('ix_users_role')
    op.drop_table('users')
    op.drop_table('sku_sequences')
