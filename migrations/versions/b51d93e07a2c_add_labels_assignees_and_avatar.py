"""add labels, card assignees and user avatar

Revision ID: b51d93e07a2c
Revises: 7c2e4a91d0b3
Create Date: 2026-10-19 14:03:27.540912

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b51d93e07a2c'
down_revision = '7c2e4a91d0b3'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('card_assignees',
    sa.Column('card_id', sa.String(length=36), nullable=False),
    sa.Column('user_id', sa.String(length=36), nullable=False),
    sa.ForeignKeyConstraint(['card_id'], ['cards.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
    sa.PrimaryKeyConstraint('card_id', 'user_id')
    )
    with op.batch_alter_table('boards', schema=None) as batch_op:
        batch_op.add_column(sa.Column('labels', sa.JSON(), nullable=True))

    with op.batch_alter_table('cards', schema=None) as batch_op:
        batch_op.add_column(sa.Column('labels', sa.JSON(), nullable=True))

    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.add_column(sa.Column('avatar', sa.String(length=500), nullable=True))


def downgrade():
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.drop_column('avatar')

    with op.batch_alter_table('cards', schema=None) as batch_op:
        batch_op.drop_column('labels')

    with op.batch_alter_table('boards', schema=None) as batch_op:
        batch_op.drop_column('labels')

    op.drop_table('card_assignees')
