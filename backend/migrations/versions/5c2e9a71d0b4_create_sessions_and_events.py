"""create sessions snapshot table and events log

Revision ID: 5c2e9a71d0b4
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2e9a71d0b4'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'sessions' not in existing_tables:
        op.create_table(
            'sessions',
            sa.Column('id', sa.String(length=64), primary_key=True),
            sa.Column('state_json', sa.Text(), nullable=False),
            sa.Column('updated_at', sa.BigInteger(), nullable=False),
        )
        op.create_index('ix_sessions_updated_at', 'sessions', ['updated_at'])

    # Append-only; rows are never updated or deleted
    if 'events' not in existing_tables:
        op.create_table(
            'events',
            sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column('session_id', sa.String(length=64), nullable=False),
            sa.Column('type', sa.String(length=64), nullable=False),
            sa.Column('payload_json', sa.Text(), nullable=False),
            sa.Column('ts', sa.BigInteger(), nullable=False),
        )
        op.create_index('ix_events_session_id', 'events', ['session_id'])


def downgrade():
    op.drop_index('ix_events_session_id', table_name='events')
    op.drop_table('events')
    op.drop_index('ix_sessions_updated_at', table_name='sessions')
    op.drop_table('sessions')
