"""create bookmarks table

Revision ID: 3f9d2c7a1b04
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3f9d2c7a1b04'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Rows are immutable: the app only ever inserts and deletes
    op.create_table(
        'bookmarks',
        sa.Column('id', sa.Text(), nullable=False),
        sa.Column('user_id', sa.Text(), nullable=False),
        sa.Column('url', sa.Text(), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        schema='public'
    )
    # list-by-owner, newest first
    op.create_index(
        'ix_bookmarks_user_id_created_at',
        'bookmarks',
        ['user_id', 'created_at'],
        schema='public'
    )


def downgrade() -> None:
    op.drop_index('ix_bookmarks_user_id_created_at', table_name='bookmarks', schema='public')
    op.drop_table('bookmarks', schema='public')
