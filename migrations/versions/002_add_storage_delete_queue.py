"""Add storage delete queue

Durable retry markers for object removals that could not be confirmed
inline. Rows are deleted only by the drain job after a successful remove.

Revision ID: 002_add_storage_delete_queue
Revises: 001_posts_schema
Create Date: 2026-09-28
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '002_add_storage_delete_queue'
down_revision: Union[str, Sequence[str], None] = '001_posts_schema'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create storage_delete_queue."""
    print("  Creating storage_delete_queue table...")

    op.create_table(
        'storage_delete_queue',
        sa.Column('id', sa.BigInteger(), sa.Identity(always=False), nullable=False),
        # Null bucket means the default post image bucket
        sa.Column('bucket', sa.String(length=128), nullable=True),
        sa.Column('path', sa.Text(), nullable=False),
        sa.Column('enqueued_at', sa.DateTime(), nullable=False, server_default=sa.text("timezone('utc', now())")),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_storage_delete_queue_bucket', 'storage_delete_queue', ['bucket'], unique=False)

    print("  Created storage_delete_queue table")


def downgrade() -> None:
    """Drop storage_delete_queue."""
    op.drop_index('ix_storage_delete_queue_bucket', table_name='storage_delete_queue')
    op.drop_table('storage_delete_queue')
