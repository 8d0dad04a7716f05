"""Create users, products, investments, transactions and app_settings"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4a1c2e7b9d10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=80), nullable=False),
        sa.Column('email', sa.String(length=120), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('balance', sa.Numeric(precision=18, scale=2), server_default=sa.text('0.00'), nullable=False),
        sa.Column('referral_code', sa.String(length=20), nullable=False),
        sa.Column('referred_by', sa.String(length=20), nullable=True),
        sa.Column('registered_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sa.UniqueConstraint('referral_code'),
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index('idx_user_referral_code', ['referral_code'], unique=False)
        batch_op.create_index(batch_op.f('ix_users_role'), ['role'], unique=False)
        batch_op.create_index(batch_op.f('ix_users_referred_by'), ['referred_by'], unique=False)

    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('daily_income', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('days', sa.Integer(), nullable=False),
        sa.Column('total_revenue', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('image', sa.String(length=500), nullable=True),
        sa.Column('purchase_limit', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'investments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('purchase_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_claim_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('claimed_amount', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('product_snapshot', sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('investments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_investments_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_investments_product_id'), ['product_id'], unique=False)

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('amount', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('withdrawal_method', sa.String(length=10), nullable=True),
        sa.Column('withdrawal_details', sa.String(length=255), nullable=True),
        sa.Column('fee', sa.Numeric(precision=18, scale=2), nullable=True),
        sa.Column('net_amount', sa.Numeric(precision=18, scale=2), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('transactions', schema=None) as batch_op:
        batch_op.create_index('idx_transaction_user_created', ['user_id', 'created_at'], unique=False)
        batch_op.create_index(batch_op.f('ix_transactions_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_transactions_status'), ['status'], unique=False)

    op.create_table(
        'app_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('upi_id', sa.String(length=120), nullable=False),
        sa.Column('qr_code_url', sa.String(length=500), nullable=False),
        sa.Column('referral_bonus_percentage', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('withdrawal_fee_percentage', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade():
    op.drop_table('app_settings')
    with op.batch_alter_table('transactions', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_transactions_status'))
        batch_op.drop_index(batch_op.f('ix_transactions_user_id'))
        batch_op.drop_index('idx_transaction_user_created')
    op.drop_table('transactions')
    with op.batch_alter_table('investments', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_investments_product_id'))
        batch_op.drop_index(batch_op.f('ix_investments_user_id'))
    op.drop_table('investments')
    op.drop_table('products')
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_users_referred_by'))
        batch_op.drop_index(batch_op.f('ix_users_role'))
        batch_op.drop_index('idx_user_referral_code')
    op.drop_table('users')
