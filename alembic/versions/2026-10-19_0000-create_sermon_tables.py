"""create users, sermons, sermon_processing and sermon_chunks

Revision ID: 5b1e7c2a9d40
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '5b1e7c2a9d40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _common_columns() -> list[sa.Column]:
    return [
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False, comment='Auto-incrementing primary key'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was created (UTC)'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was last updated (UTC)'),
    ]


def _json_list(name: str, comment: str | None = None) -> sa.Column:
    return sa.Column(name, postgresql.JSONB(astext_type=sa.Text()), nullable=True, comment=comment)


def upgrade() -> None:
    """
    Creates:
    1. users
    2. sermons - metadata, confidence scores and file reference
    3. sermon_processing - pipeline state per upload
    4. sermon_chunks - text chunks with vector(1536) embeddings

    Plus an HNSW cosine index on sermon_chunks.embedding.
    """
    op.execute('CREATE EXTENSION IF NOT EXISTS vector')

    # ================================
    # users
    # ================================
    op.create_table(
        'users',
        *_common_columns(),
        sa.Column('email', sa.String(length=255), nullable=False, comment="User's email address (login identifier, JWT subject)"),
        sa.Column('name', sa.String(length=100), nullable=False, comment='Display name'),
        sa.Column('hashed_password', sa.String(length=255), nullable=True, comment='bcrypt password hash'),
        sa.Column('is_active', sa.Boolean(), nullable=False, comment='Disabled accounts cannot authenticate'),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True, comment='Timestamp of the last successful login (UTC)'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_users')),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    # ================================
    # sermons
    # ================================
    op.create_table(
        'sermons',
        *_common_columns(),
        sa.Column('user_id', sa.Integer(), nullable=False, comment='Owner of the sermon'),
        sa.Column('processing_id', sa.Integer(), nullable=True, comment='Processing record that created this sermon'),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('date', sa.Date(), nullable=True),
        sa.Column('preacher', sa.String(length=255), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('series', sa.String(length=255), nullable=True),
        sa.Column('primary_scripture', sa.String(length=255), nullable=True),
        sa.Column('sermon_type', sa.String(length=20), nullable=True, comment='expository, textual, topical or narrative'),
        sa.Column('tone', sa.String(length=100), nullable=True),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('word_count', sa.Integer(), nullable=True),
        _json_list('scriptures'),
        _json_list('topics'),
        _json_list('tags', 'Subset of the fixed tag taxonomy, at most 3'),
        _json_list('key_points'),
        _json_list('illustrations'),
        _json_list('themes'),
        _json_list('calls_to_action'),
        _json_list('personal_stories'),
        _json_list('mentioned_people'),
        _json_list('mentioned_events'),
        _json_list('keywords'),
        _json_list('confidence_scores', 'Field name → classifier confidence in [0, 1]'),
        sa.Column('file_path', sa.String(length=1000), nullable=True, comment='Object storage key: {user_id}/{sermon_id}/{file_name}'),
        sa.Column('public_url', sa.String(length=1000), nullable=True),
        sa.Column('file_name', sa.String(length=255), nullable=True),
        sa.Column('file_size', sa.Integer(), nullable=True),
        sa.Column('file_type', sa.String(length=100), nullable=True),
        sa.Column('file_pages', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_sermons_user_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_sermons')),
    )
    op.create_index(op.f('ix_sermons_user_id'), 'sermons', ['user_id'])
    op.create_index(op.f('ix_sermons_date'), 'sermons', ['date'])

    # ================================
    # sermon_processing
    # ================================
    op.create_table(
        'sermon_processing',
        *_common_columns(),
        sa.Column('user_id', sa.Integer(), nullable=False, comment='Owner of the upload'),
        sa.Column('status', sa.String(length=20), nullable=False, comment='uploaded, parsed, vectorized, completed, error'),
        sa.Column('file_name', sa.String(length=255), nullable=False, comment='Original file name as uploaded'),
        sa.Column('file_size', sa.Integer(), nullable=False, comment='Upload size in bytes'),
        sa.Column('file_type', sa.String(length=100), nullable=False, comment='MIME type of the upload'),
        sa.Column('page_count', sa.Integer(), nullable=True, comment='Number of PDF pages'),
        sa.Column('raw_text', sa.Text(), nullable=True, comment='Normalized extracted text'),
        sa.Column('sermon_id', sa.Integer(), nullable=True, comment='Sermon created by the parse stage'),
        sa.Column('error_message', sa.Text(), nullable=True, comment='Internal failure detail for operators'),
        sa.Column('failed_stage', sa.String(length=50), nullable=True, comment='Stage that moved the record to error (parse, vectorize, store)'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_sermon_processing_user_id_users'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['sermon_id'], ['sermons.id'], name=op.f('fk_sermon_processing_sermon_id_sermons'), ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_sermon_processing')),
    )
    op.create_index(op.f('ix_sermon_processing_user_id'), 'sermon_processing', ['user_id'])
    op.create_index(op.f('ix_sermon_processing_status'), 'sermon_processing', ['status'])
    op.create_index(op.f('ix_sermon_processing_sermon_id'), 'sermon_processing', ['sermon_id'])

    # ================================
    # sermon_chunks
    # ================================
    op.create_table(
        'sermon_chunks',
        *_common_columns(),
        sa.Column('sermon_id', sa.Integer(), nullable=False, comment='Owning sermon'),
        sa.Column('chunk_index', sa.Integer(), nullable=False, comment='Order of this chunk within the sermon (0-indexed)'),
        sa.Column('content', sa.Text(), nullable=False, comment='Chunk text'),
        sa.Column('chunk_type', sa.String(length=20), nullable=False, comment="Always 'content' for now"),
        sa.ForeignKeyConstraint(['sermon_id'], ['sermons.id'], name=op.f('fk_sermon_chunks_sermon_id_sermons'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_sermon_chunks')),
        sa.UniqueConstraint('sermon_id', 'chunk_index', name='uq_sermon_chunk_index'),
    )
    op.execute('ALTER TABLE sermon_chunks ADD COLUMN embedding vector(1536)')
    op.create_index(op.f('ix_sermon_chunks_sermon_id'), 'sermon_chunks', ['sermon_id'])

    # m=16 connections per layer, ef_construction=64 build quality
    op.execute("""
        CREATE INDEX ix_sermon_chunks_embedding_hnsw
        ON sermon_chunks
        USING hnsw (embedding vector_cosine_ops)
        WITH (m = 16, ef_construction = 64)
    """)


def downgrade() -> None:
    op.execute('DROP INDEX IF EXISTS ix_sermon_chunks_embedding_hnsw')
    op.drop_index(op.f('ix_sermon_chunks_sermon_id'), table_name='sermon_chunks')
    op.drop_table('sermon_chunks')

    op.drop_index(op.f('ix_sermon_processing_sermon_id'), table_name='sermon_processing')
    op.drop_index(op.f('ix_sermon_processing_status'), table_name='sermon_processing')
    op.drop_index(op.f('ix_sermon_processing_user_id'), table_name='sermon_processing')
    op.drop_table('sermon_processing')

    op.drop_index(op.f('ix_sermons_date'), table_name='sermons')
    op.drop_index(op.f('ix_sermons_user_id'), table_name='sermons')
    op.drop_table('sermons')

    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')
