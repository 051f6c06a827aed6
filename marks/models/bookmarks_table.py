# marks/models/bookmarks_table.py
# Bookmark rows; immutable once inserted (only insert/delete are issued)

from sqlalchemy import Table, Column, Text, TIMESTAMP, Index

from marks.db.base import metadata


bookmarks = Table(
    'bookmarks',
    metadata,
    Column('id', Text, primary_key=True),  # server-assigned uuid hex
    Column('user_id', Text, nullable=False),
    Column('url', Text, nullable=False),
    Column('title', Text, nullable=False),
    Column('created_at', TIMESTAMP(timezone=True), nullable=False),
    Index('ix_bookmarks_user_id_created_at', 'user_id', 'created_at'),
    schema='public',
)
