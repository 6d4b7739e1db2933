"""Create lab_orders lookup and lab_order_confirmations tables

Revision ID: 5d2e8c1f7a40
Revises:
Create Date: 2026-10-19 09:00:00.000000+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '5d2e8c1f7a40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # lab_orders is normally created by the deployment tracker; only create it
    # on databases that do not have it yet.
    op.execute("""
        CREATE TABLE IF NOT EXISTS lab_orders (
            id UUID PRIMARY KEY,
            accession_number VARCHAR(64),
            organization_id UUID,
            facility_id UUID,
            created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now()
        )
    """)
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_lab_orders_accession_number "
        "ON lab_orders (accession_number)"
    )

    op.create_table('lab_order_confirmations',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('correlation_id', sa.String(length=255), nullable=False),
    sa.Column('lab_order_id', sa.Uuid(), nullable=True),
    sa.Column('organization_id', sa.Uuid(), nullable=True),
    sa.Column('facility_id', sa.Uuid(), nullable=True),
    sa.Column('accession_number', sa.String(length=64), nullable=True),
    sa.Column('received_time', sa.String(length=64), nullable=True),
    sa.Column('hl7_message', sa.Text(), nullable=True),
    sa.Column('raw_payload', sa.JSON(), nullable=True),
    sa.Column('sync_status', sa.String(length=32), nullable=False),
    sa.Column('sync_error', sa.Text(), nullable=True),
    sa.Column('retrieved_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('acknowledged_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.CheckConstraint("sync_status IN ('retrieved', 'acknowledged', 'error')", name='ck_lab_order_confirmations_sync_status'),
    sa.CheckConstraint("sync_status <> 'acknowledged' OR acknowledged_at IS NOT NULL", name='ck_lab_order_confirmations_acknowledged_at'),
    sa.CheckConstraint("sync_status <> 'error' OR sync_error IS NOT NULL", name='ck_lab_order_confirmations_sync_error'),
    sa.ForeignKeyConstraint(['lab_order_id'], ['lab_orders.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('correlation_id')
    )
    op.create_index('ix_lab_order_confirmations_sync_status', 'lab_order_confirmations', ['sync_status'], unique=False)
    op.create_index('ix_lab_order_confirmations_accession_number', 'lab_order_confirmations', ['accession_number'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_lab_order_confirmations_accession_number', table_name='lab_order_confirmations')
    op.drop_index('ix_lab_order_confirmations_sync_status', table_name='lab_order_confirmations')
    op.drop_table('lab_order_confirmations')
