"""Posts schema

Revision ID: 001_posts_schema
Revises:
Create Date: 2026-09-14

Creates the posts table. expires_at is nullable: the API sets it to
created_at + 14 days, rows written by other paths fall back to that rule.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001_posts_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'posts',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.text("timezone('utc', now())")),
        sa.Column('expires_at', sa.DateTime, nullable=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('body', sa.Text, nullable=False, server_default=''),
        sa.Column('area', sa.String(255), nullable=True),
        sa.Column('category', sa.String(64), nullable=True),
        sa.Column('latitude', sa.Float, nullable=True),
        sa.Column('longitude', sa.Float, nullable=True),
        # Owned storage references
        sa.Column('image_bucket', sa.String(128), nullable=True),
        sa.Column('image_paths', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        # Display conveniences (public URLs)
        sa.Column('image_url', sa.Text, nullable=True),
        sa.Column('image_urls', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    )

    # Prune queries: explicit expiry, and implicit expiry by created_at
    op.create_index('ix_posts_expires_at', 'posts', ['expires_at'])
    op.create_index('ix_posts_created_at', 'posts', ['created_at'])
    op.create_index('ix_posts_user_id', 'posts', ['user_id'])


def downgrade() -> None:
    op.drop_index('ix_posts_user_id', table_name='posts')
    op.drop_index('ix_posts_created_at', table_name='posts')
    op.drop_index('ix_posts_expires_at', table_name='posts')
    op.drop_table('posts')
