"""create_listing_tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:12:41.204117

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table('listings'):
        op.create_table('listings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('fields', sa.JSON(), nullable=False),
        sa.Column('remote_record_id', sa.String(length=64), nullable=True),
        sa.Column('last_synced_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_listings_id'), 'listings', ['id'], unique=False)
        op.create_index(op.f('ix_listings_remote_record_id'), 'listings', ['remote_record_id'], unique=True)

    if not inspector.has_table('media_attachments'):
        op.create_table('media_attachments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('remote_attachment_id', sa.String(length=64), nullable=True),
        sa.Column('remote_record_id', sa.String(length=64), nullable=True),
        sa.Column('source_url', sa.Text(), nullable=False),
        sa.Column('filename', sa.String(length=255), nullable=False),
        sa.Column('mime_type', sa.String(length=100), nullable=False),
        sa.Column('file_path', sa.Text(), nullable=False),
        sa.Column('size', sa.Integer(), nullable=False),
        sa.Column('thumbnails', sa.JSON(), nullable=False),
        sa.Column('imported_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_media_attachments_id'), 'media_attachments', ['id'], unique=False)
        op.create_index(op.f('ix_media_attachments_remote_attachment_id'), 'media_attachments', ['remote_attachment_id'], unique=True)
        op.create_index(op.f('ix_media_attachments_remote_record_id'), 'media_attachments', ['remote_record_id'], unique=False)

    if not inspector.has_table('sync_runs'):
        op.create_table('sync_runs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('direction', sa.String(length=10), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created', sa.Integer(), nullable=False),
        sa.Column('updated', sa.Integer(), nullable=False),
        sa.Column('skipped', sa.Integer(), nullable=False),
        sa.Column('errored', sa.Integer(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('duration_s', sa.Float(), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('finished_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_sync_runs_id'), 'sync_runs', ['id'], unique=False)
        op.create_index(op.f('ix_sync_runs_direction'), 'sync_runs', ['direction'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    for table in ('sync_runs', 'media_attachments', 'listings'):
        if inspector.has_table(table):
            for idx in inspector.get_indexes(table):
                op.drop_index(idx['name'], table_name=table)
            op.drop_table(table)
