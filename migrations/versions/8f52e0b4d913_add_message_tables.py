"""add_message_tables

Revision ID: 8f52e0b4d913
Revises: 4c1d9a7e2b36
Create Date: 2026-10-03 16:41:52.209387

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '8f52e0b4d913'
down_revision: Union[str, Sequence[str], None] = '4c1d9a7e2b36'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create messages, message_reactions and message_reads tables."""
    op.create_table('messages',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('group_id', sa.UUID(), nullable=False),
        sa.Column('sender_id', sa.UUID(), nullable=False),
        sa.Column('sender_name', sa.String(length=100), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False, server_default='text'),
        sa.Column('reply_to', sa.UUID(), nullable=True),
        sa.Column('attachments', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('client_message_id', sa.String(length=100), nullable=True),
        sa.Column('edited', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('edited_at', sa.DateTime(), nullable=True),
        sa.Column('deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint("type IN ('text', 'image', 'file', 'system')", name='ck_messages_type'),
        sa.ForeignKeyConstraint(['group_id'], ['groups.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['sender_id'], ['members.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['reply_to'], ['messages.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'group_id', 'sender_id', 'client_message_id',
            name='uq_messages_client_message_id',
        ),
    )
    op.create_index(
        'ix_messages_group_id_created_at', 'messages', ['group_id', 'created_at'], unique=False
    )

    op.create_table('message_reactions',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('message_id', sa.UUID(), nullable=False),
        sa.Column('member_id', sa.UUID(), nullable=False),
        sa.Column('member_name', sa.String(length=100), nullable=False),
        sa.Column('emoji', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['message_id'], ['messages.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['member_id'], ['members.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'message_id', 'member_id', 'emoji',
            name='uq_message_reactions_member_emoji',
        ),
    )
    op.create_index(
        'ix_message_reactions_message_id', 'message_reactions', ['message_id'], unique=False
    )

    op.create_table('message_reads',
        sa.Column('message_id', sa.UUID(), nullable=False),
        sa.Column('member_id', sa.UUID(), nullable=False),
        sa.Column('read_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['message_id'], ['messages.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['member_id'], ['members.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('message_id', 'member_id'),
    )
    op.create_index('ix_message_reads_member_id', 'message_reads', ['member_id'], unique=False)


def downgrade() -> None:
    """Drop message tables."""
    op.drop_index('ix_message_reads_member_id', table_name='message_reads')
    op.drop_table('message_reads')
    op.drop_index('ix_message_reactions_message_id', table_name='message_reactions')
    op.drop_table('message_reactions')
    op.drop_index('ix_messages_group_id_created_at', table_name='messages')
    op.drop_table('messages')
