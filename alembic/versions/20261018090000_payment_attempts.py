from alembic import op
import sqlalchemy as sa

revision = "20261018090000"
down_revision = "20261017120000"

def upgrade():
    op.create_table(
        'payment_attempts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('reference', sa.String(length=128), nullable=False, unique=True),
        sa.Column('authorization_url', sa.String(length=1024), nullable=True),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text("(now() at time zone 'utc')")),
    )
    # references issued before this table existed stay resolvable
    op.execute(
        "INSERT INTO payment_attempts (order_id, reference, amount, created_at) "
        "SELECT id, payment_reference, total_amount, updated_at FROM orders WHERE payment_reference IS NOT NULL"
    )

def downgrade():
    op.drop_table('payment_attempts')
