"""create counter, player and match_record ledgers

Revision ID: 4c7d2e91a0b3
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c7d2e91a0b3'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'counter' not in existing_tables:
        op.create_table(
            'counter',
            sa.Column('name', sa.String(length=32), nullable=False),
            sa.Column('value', sa.BigInteger(), nullable=False),
            sa.PrimaryKeyConstraint('name'),
        )

    if 'player' not in existing_tables:
        op.create_table(
            'player',
            sa.Column('id', sa.Integer(), autoincrement=False, nullable=False),
            sa.Column('credential', sa.Text(), nullable=True),
            sa.Column('rating', sa.Integer(), nullable=False),
            sa.Column('created_at', sa.Float(), nullable=False),
            sa.PrimaryKeyConstraint('id'),
        )

    if 'match_record' not in existing_tables:
        op.create_table(
            'match_record',
            sa.Column('session_id', sa.Integer(), autoincrement=False, nullable=False),
            sa.Column('player0_id', sa.Integer(), nullable=False),
            sa.Column('player1_id', sa.Integer(), nullable=False),
            sa.Column('score0', sa.Float(), nullable=False),
            sa.Column('score1', sa.Float(), nullable=False),
            sa.Column('submitted_by', sa.Integer(), nullable=True),
            sa.Column('recorded_at', sa.Float(), nullable=False),
            sa.ForeignKeyConstraint(['player0_id'], ['player.id']),
            sa.ForeignKeyConstraint(['player1_id'], ['player.id']),
            sa.PrimaryKeyConstraint('session_id'),
        )


def downgrade():
    op.drop_table('match_record')
    op.drop_table('player')
    op.drop_table('counter')
