"""documents table

Revision ID: 0001_documents
Revises:
Create Date: 2026-10-17
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

revision = '0001_documents'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = inspect(bind)
    if not insp.has_table('documents'):
        op.create_table('documents',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('collection', sa.String(length=64), nullable=False),
            sa.Column('doc_id', sa.String(length=64), nullable=False),
            sa.Column('body', sa.JSON(), nullable=False),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.UniqueConstraint('collection', 'doc_id', name='uq_documents_collection_doc_id'),
        )
    existing_indexes = {ix['name'] for ix in inspect(bind).get_indexes('documents')}
    if 'ix_documents_collection' not in existing_indexes:
        op.create_index('ix_documents_collection', 'documents', ['collection'])
    if 'ix_documents_doc_id' not in existing_indexes:
        op.create_index('ix_documents_doc_id', 'documents', ['doc_id'])


def downgrade():
    op.drop_index('ix_documents_doc_id', table_name='documents')
    op.drop_index('ix_documents_collection', table_name='documents')
    op.drop_table('documents')
