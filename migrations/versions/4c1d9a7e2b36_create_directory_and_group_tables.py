"""create_directory_and_group_tables

Revision ID: 4c1d9a7e2b36
Revises:
Create Date: 2026-09-28 10:02:17.512044

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '4c1d9a7e2b36'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create members, admins, groups and group_memberships tables."""
    op.create_table('members',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('subscription_status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "subscription_status IN ('active', 'inactive', 'paused')",
            name='ck_members_subscription_status',
        ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_members_user_id', 'members', ['user_id'], unique=True)
    op.create_index('ix_members_subscription_status', 'members', ['subscription_status'], unique=False)

    op.create_table('admins',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='coach'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_admins_user_id', 'admins', ['user_id'], unique=True)

    op.create_table('groups',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('created_by', sa.UUID(), nullable=False),
        sa.Column('is_private', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('auto_join', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('class_id', sa.UUID(), nullable=True),
        sa.Column('settings', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "type IN ('club-wide', 'sub-group', 'competition', 'class-based')",
            name='ck_groups_type',
        ),
        sa.ForeignKeyConstraint(['created_by'], ['members.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_groups_type', 'groups', ['type'], unique=False)
    op.create_index('ix_groups_created_by', 'groups', ['created_by'], unique=False)
    op.create_index('ix_groups_active', 'groups', ['active'], unique=False)

    op.create_table('group_memberships',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('group_id', sa.UUID(), nullable=False),
        sa.Column('member_id', sa.UUID(), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='member'),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
        sa.Column('last_read_at', sa.DateTime(), nullable=True),
        sa.Column('notifications_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_muted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_pinned', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.CheckConstraint("role IN ('owner', 'admin', 'member')", name='ck_group_memberships_role'),
        sa.ForeignKeyConstraint(['group_id'], ['groups.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['member_id'], ['members.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('group_id', 'member_id', name='uq_group_memberships_group_member'),
    )
    op.create_index('ix_group_memberships_member_id', 'group_memberships', ['member_id'], unique=False)

    # At most one owner per group.
    op.execute("""
        CREATE UNIQUE INDEX uq_group_memberships_single_owner
            ON group_memberships (group_id)
            WHERE role = 'owner';
    """)


def downgrade() -> None:
    """Drop directory and group tables."""
    op.execute("DROP INDEX IF EXISTS uq_group_memberships_single_owner;")
    op.drop_index('ix_group_memberships_member_id', table_name='group_memberships')
    op.drop_table('group_memberships')
    op.drop_index('ix_groups_active', table_name='groups')
    op.drop_index('ix_groups_created_by', table_name='groups')
    op.drop_index('ix_groups_type', table_name='groups')
    op.drop_table('groups')
    op.drop_index('ix_admins_user_id', table_name='admins')
    op.drop_table('admins')
    op.drop_index('ix_members_subscription_status', table_name='members')
    op.drop_index('ix_members_user_id', table_name='members')
    op.drop_table('members')
