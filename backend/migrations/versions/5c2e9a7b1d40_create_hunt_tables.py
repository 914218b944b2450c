"""create game, team and bar tables

Revision ID: 5c2e9a7b1d40
Revises:
Create Date: 2026-10-17 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2e9a7b1d40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'game' not in existing_tables:
        op.create_table(
            'game',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('access_code', sa.String(length=64), nullable=False, server_default=''),
            sa.Column('start', sa.Float(), nullable=True),
            sa.Column('end', sa.Float(), nullable=True),
            sa.Column('master_deck', sa.Text(), nullable=True),
            sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
        )
    if 'team' not in existing_tables:
        op.create_table(
            'team',
            sa.Column('code', sa.String(length=64), primary_key=True),
            sa.Column('name', sa.String(length=128), nullable=False),
            sa.Column('color', sa.String(length=16), nullable=False, server_default='#4f46e5'),
            sa.Column('score_adjustment', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('penalty_until', sa.Float(), nullable=True),
            sa.Column('deck_seed', sa.String(length=128), nullable=False, server_default=''),
            sa.Column('deck', sa.Text(), nullable=True),
            sa.Column('drawn_card_ids', sa.Text(), nullable=True),
            sa.Column('active_challenge', sa.Text(), nullable=True),
        )
    if 'bar' not in existing_tables:
        op.create_table(
            'bar',
            sa.Column('place_id', sa.String(length=255), primary_key=True),
            sa.Column('name', sa.String(length=255), nullable=False, server_default=''),
            sa.Column('lat', sa.Float(), nullable=False, server_default='0'),
            sa.Column('lng', sa.Float(), nullable=False, server_default='0'),
            sa.Column('owner', sa.String(length=64), sa.ForeignKey('team.code'), nullable=True),
            sa.Column('locked', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('failed_steal_attempts', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('proof', sa.Text(), nullable=True),
        )


def downgrade():
    op.drop_table('bar')
    op.drop_table('team')
    op.drop_table('game')
