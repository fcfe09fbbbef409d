"""create_processing_schema

Revision ID: a3f9c2d81e47
Revises:
Create Date: 2026-10-18 09:12:44.381205

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a3f9c2d81e47'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'collections',
        sa.Column('collection_id', sa.Integer(), nullable=False),
        sa.Column('accession', sa.String(length=64), nullable=False),
        sa.Column('preferred_name', sa.String(length=255), nullable=False),
        sa.Column('biography', sa.Text(), nullable=True),
        sa.Column('phase', sa.String(length=1), nullable=False, server_default='D'),
        sa.Column('published', sa.DateTime(), nullable=True),
        sa.Column('created', sa.DateTime(), nullable=True),
        sa.Column('modified', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('collection_id'),
        sa.UniqueConstraint('accession')
    )
    op.create_table(
        'sessions',
        sa.Column('session_id', sa.Integer(), nullable=False),
        sa.Column('collection_id', sa.Integer(), nullable=False),
        sa.Column('session_order', sa.Integer(), nullable=False),
        sa.Column('interviewer', sa.String(length=255), nullable=True),
        sa.Column('interview_date', sa.DateTime(), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('phase', sa.String(length=1), nullable=False, server_default='D'),
        sa.Column('published', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['collection_id'], ['collections.collection_id']),
        sa.PrimaryKeyConstraint('session_id')
    )
    op.create_table(
        'movies',
        sa.Column('movie_id', sa.Integer(), nullable=False),
        sa.Column('movie_name', sa.String(length=255), nullable=False),
        sa.Column('collection_id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=False),
        sa.Column('media_path', sa.String(length=1024), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('width', sa.Integer(), nullable=True),
        sa.Column('height', sa.Integer(), nullable=True),
        sa.Column('fps', sa.Float(), nullable=True),
        sa.ForeignKeyConstraint(['collection_id'], ['collections.collection_id']),
        sa.ForeignKeyConstraint(['session_id'], ['sessions.session_id']),
        sa.PrimaryKeyConstraint('movie_id'),
        sa.UniqueConstraint('movie_name')
    )
    op.create_table(
        'segments',
        sa.Column('segment_id', sa.Integer(), nullable=False),
        sa.Column('segment_name', sa.String(length=255), nullable=False),
        sa.Column('collection_id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=False),
        sa.Column('movie_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=512), nullable=True),
        sa.Column('abstract', sa.Text(), nullable=True),
        sa.Column('start_time', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('end_time', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('media_path', sa.String(length=1024), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('width', sa.Integer(), nullable=True),
        sa.Column('height', sa.Integer(), nullable=True),
        sa.Column('fps', sa.Float(), nullable=True),
        sa.Column('url', sa.String(length=1024), nullable=True),
        sa.Column('segment_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('transcript_text', sa.Text(), nullable=True),
        sa.Column('transcript_sync', sa.JSON(), nullable=True),
        sa.Column('keyframe', sa.LargeBinary(), nullable=True),
        sa.Column('ready', sa.String(length=1), nullable=False, server_default='N'),
        sa.Column('created', sa.DateTime(), nullable=True),
        sa.Column('modified', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['collection_id'], ['collections.collection_id']),
        sa.ForeignKeyConstraint(['session_id'], ['sessions.session_id']),
        sa.ForeignKeyConstraint(['movie_id'], ['movies.movie_id']),
        sa.PrimaryKeyConstraint('segment_id'),
        sa.UniqueConstraint('segment_name')
    )
    op.create_index('idx_segments_ready', 'segments', ['ready'], unique=False)
    op.create_index('idx_segments_session', 'segments', ['session_id'], unique=False)

    op.create_table(
        'named_entities',
        sa.Column('named_entity_id', sa.Integer(), nullable=False),
        sa.Column('segment_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('value', sa.String(length=255), nullable=False),
        sa.ForeignKeyConstraint(['segment_id'], ['segments.segment_id']),
        sa.PrimaryKeyConstraint('named_entity_id')
    )
    op.create_index('idx_named_entities_segment', 'named_entities', ['segment_id'], unique=False)

    # Processing bookkeeping
    op.create_table(
        'task_states',
        sa.Column('segment_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=32), nullable=False),
        sa.Column('state', sa.String(length=1), nullable=False, server_default='P'),
        sa.Column('modified', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['segment_id'], ['segments.segment_id']),
        sa.PrimaryKeyConstraint('segment_id', 'name')
    )
    op.create_index('idx_task_states_state', 'task_states', ['state'], unique=False)

    op.create_table(
        'semaphores',
        sa.Column('segment_id', sa.Integer(), nullable=False),
        sa.Column('pid', sa.Integer(), nullable=False),
        sa.Column('hostname', sa.String(length=255), nullable=False),
        sa.Column('created', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['segment_id'], ['segments.segment_id']),
        sa.PrimaryKeyConstraint('segment_id')
    )


def downgrade() -> None:
    op.drop_table('semaphores')
    op.drop_index('idx_task_states_state', table_name='task_states')
    op.drop_table('task_states')
    op.drop_index('idx_named_entities_segment', table_name='named_entities')
    op.drop_table('named_entities')
    op.drop_index('idx_segments_session', table_name='segments')
    op.drop_index('idx_segments_ready', table_name='segments')
    op.drop_table('segments')
    op.drop_table('movies')
    op.drop_table('sessions')
    op.drop_table('collections')
