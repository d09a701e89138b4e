"""create_chat_tables

Revision ID: c3a1f0d27b84
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'c3a1f0d27b84'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False, unique=True),
        sa.Column('avatar', sa.String(500), nullable=True),
    )

    op.create_table(
        'groups',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.String(500), server_default='', nullable=False),
        sa.Column('photo_url', sa.String(500), nullable=True),
    )

    op.create_table(
        'group_members',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('group_id', sa.Integer(), sa.ForeignKey('groups.id', ondelete='CASCADE'), nullable=False),
        sa.UniqueConstraint('user_id', 'group_id', name='unique_user_group'),
    )

    op.create_table(
        'messages',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('sender_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('group_id', sa.Integer(), sa.ForeignKey('groups.id', ondelete='CASCADE'), nullable=False),
        sa.Column('sent_date', sa.Date(), nullable=False),
        sa.Column('sent_time', sa.Time(), nullable=False),
        sa.Column('message_type', sa.Integer(), server_default='1', nullable=False),
    )
    op.create_index('ix_messages_group_id', 'messages', ['group_id'])
    op.create_index('ix_messages_group_sent', 'messages', ['group_id', 'sent_date', 'sent_time', 'id'])


def downgrade() -> None:
    op.drop_index('ix_messages_group_sent', table_name='messages')
    op.drop_index('ix_messages_group_id', table_name='messages')
    op.drop_table('messages')
    op.drop_table('group_members')
    op.drop_table('groups')
    op.drop_table('users')
