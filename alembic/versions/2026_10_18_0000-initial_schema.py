"""initial schema

Revision ID: 2026_10_18_0000
Revises:
Create Date: 2026-10-18 08:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '2026_10_18_0000'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create initial database schema."""

    # ========================================================================
    # Create users table
    # ========================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('nick', sa.String(32), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('xp', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.BigInteger(), nullable=False),

        # Constraints
        sa.CheckConstraint('xp >= 0', name='ck_users_xp_non_negative'),
        sa.UniqueConstraint('nick', name='uq_users_nick'),
    )

    # ========================================================================
    # Create tokens table
    # ========================================================================
    op.create_table(
        'tokens',
        sa.Column('token', sa.String(32), primary_key=True),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.Column('expires_at', sa.BigInteger(), nullable=False),
        sa.Column('used_by', sa.String(64), nullable=True),
        sa.Column('used_at', sa.BigInteger(), nullable=True),

        # Constraints
        sa.CheckConstraint('expires_at > created_at', name='ck_tokens_expiry_after_creation'),
    )

    op.create_index('idx_tokens_used_by', 'tokens', ['used_by'])

    # ========================================================================
    # Create premium_users table
    # ========================================================================
    op.create_table(
        'premium_users',
        sa.Column('user_id', sa.String(64), primary_key=True),
        sa.Column('since', sa.BigInteger(), nullable=False),
    )

    # ========================================================================
    # Create chats table
    # ========================================================================
    op.create_table(
        'chats',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.Column('expires_at', sa.BigInteger(), nullable=False),
        sa.Column('last_activity_at', sa.BigInteger(), nullable=False),

        # At most one chat row per user
        sa.UniqueConstraint('user_id', name='uq_chats_user_id'),
    )

    op.create_index('idx_chats_expires_at', 'chats', ['expires_at'])
    op.create_index('idx_chats_last_activity', 'chats', ['last_activity_at', 'created_at'])

    # ========================================================================
    # Create chat_messages table
    # ========================================================================
    op.create_table(
        'chat_messages',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('chat_id', sa.String(64), nullable=False),
        sa.Column('sender', sa.String(16), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('created_at', sa.BigInteger(), nullable=False),

        # Constraints
        sa.CheckConstraint("sender IN ('user', 'operator')", name='ck_chat_messages_sender'),
    )

    op.create_index('idx_chat_messages_chat_created', 'chat_messages', ['chat_id', 'created_at'])

    # ========================================================================
    # Create site_stats table
    # ========================================================================
    site_stats = op.create_table(
        'site_stats',
        sa.Column('key', sa.String(64), primary_key=True),
        sa.Column('value', sa.BigInteger(), nullable=False, server_default='0'),
    )

    op.bulk_insert(site_stats, [{'key': 'visits', 'value': 0}])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('site_stats')
    op.drop_index('idx_chat_messages_chat_created', table_name='chat_messages')
    op.drop_table('chat_messages')
    op.drop_index('idx_chats_last_activity', table_name='chats')
    op.drop_index('idx_chats_expires_at', table_name='chats')
    op.drop_table('chats')
    op.drop_table('premium_users')
    op.drop_index('idx_tokens_used_by', table_name='tokens')
    op.drop_table('tokens')
    op.drop_table('users')
