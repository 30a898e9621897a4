"""initial schema: users, equipment, transactions, logs

Revision ID: d1e2f3a4b5c6
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = 'd1e2f3a4b5c6'
down_revision = None
branch_labels = None
depends_on = None

EQUIPMENT_STATUS = ('AVAILABLE', 'CHECKED_OUT', 'PENDING_VERIFICATION', 'MAINTENANCE', 'DAMAGED', 'LOST')
CONDITION = ('OK', 'SCRATCHES', 'NOT_FUNCTIONING', 'NEEDS_BATTERY', 'LOOSE_MOUNT', 'DAMAGED')
LOG_ACTION = ('CHECKOUT', 'RETURN', 'VERIFY', 'EDIT', 'CREATE', 'LOGIN', 'LOGOUT', 'LOGIN_FAILED')


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'equipment',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('barcode', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=128), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('status', sa.Enum(*EQUIPMENT_STATUS, name='equipmentstatus'), nullable=False),
        sa.Column('condition', sa.Enum(*CONDITION, name='condition'), nullable=False),
        sa.Column('assigned_to', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('brand', sa.String(length=128), nullable=True),
        sa.Column('model', sa.String(length=128), nullable=True),
        sa.Column('serial_number', sa.String(length=128), nullable=True),
        sa.Column('last_activity', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_equipment_id', 'equipment', ['id'])
    op.create_index('ix_equipment_barcode', 'equipment', ['barcode'], unique=True)
    op.create_index('ix_equipment_status', 'equipment', ['status'])
    op.create_index('ix_equipment_assigned_to', 'equipment', ['assigned_to'])

    op.create_table(
        'transactions',
        sa.Column('id', sa.String(length=16), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('project', sa.String(length=255), nullable=True),
        sa.Column('status', sa.Enum('OPEN', 'CLOSED', name='transactionstatus'), nullable=False),
        sa.Column('timestamp_out', sa.DateTime(timezone=True), nullable=False),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_transactions_user_id', 'transactions', ['user_id'])
    op.create_index('ix_transactions_status', 'transactions', ['status'])

    op.create_table(
        'transaction_holders',
        sa.Column('transaction_id', sa.String(length=16), sa.ForeignKey('transactions.id'), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), primary_key=True),
    )

    op.create_table(
        'transaction_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('transaction_id', sa.String(length=16), sa.ForeignKey('transactions.id'), nullable=False),
        sa.Column('equipment_id', sa.Integer(), sa.ForeignKey('equipment.id'), nullable=False),
        sa.Column('pre_checkout_condition', sa.Enum(*CONDITION, name='condition'), nullable=False),
        sa.Column('added_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('transaction_id', 'equipment_id', name='uq_transaction_equipment'),
    )
    op.create_index('ix_transaction_items_id', 'transaction_items', ['id'])
    op.create_index('ix_transaction_items_transaction_id', 'transaction_items', ['transaction_id'])
    op.create_index('ix_transaction_items_equipment_id', 'transaction_items', ['equipment_id'])

    op.create_table(
        'logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('action', sa.Enum(*LOG_ACTION, name='logaction'), nullable=False),
        sa.Column('entity_id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('details', sa.String(length=2000), nullable=True),
    )
    op.create_index('ix_logs_id', 'logs', ['id'])
    op.create_index('ix_logs_action', 'logs', ['action'])
    op.create_index('ix_logs_entity_id', 'logs', ['entity_id'])
    op.create_index('ix_logs_timestamp', 'logs', ['timestamp'])


def downgrade() -> None:
    op.drop_table('logs')
    op.drop_table('transaction_items')
    op.drop_table('transaction_holders')
    op.drop_table('transactions')
    op.drop_table('equipment')
    op.drop_table('users')
