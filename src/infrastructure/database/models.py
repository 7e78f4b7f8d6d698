"""SQLAlchemy ORM models."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class MemberModel(Base):
    """Club member (owned by the club directory, read-only here)."""

    __tablename__ = "members"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    user_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        nullable=False,
        unique=True,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    subscription_status: Mapped[str] = mapped_column(
        String(20),
        CheckConstraint(
            "subscription_status IN ('active', 'inactive', 'paused')",
            name="ck_members_subscription_status",
        ),
        nullable=False,
        default="active",
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class AdminModel(Base):
    """Club administrator account (coach, treasurer, super admin)."""

    __tablename__ = "admins"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    user_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        nullable=False,
        unique=True,
        index=True,
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="coach")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class GroupModel(Base):
    """Chat group model."""

    __tablename__ = "groups"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    type: Mapped[str] = mapped_column(
        String(20),
        CheckConstraint(
            "type IN ('club-wide', 'sub-group', 'competition', 'class-based')",
            name="ck_groups_type",
        ),
        nullable=False,
        index=True,
    )
    created_by: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    is_private: Mapped[bool] = mapped_column(Boolean, default=False)
    auto_join: Mapped[bool] = mapped_column(Boolean, default=False)
    # Opaque reference into the class schedule; never joined.
    class_id: Mapped[UUID | None] = mapped_column(PG_UUID(as_uuid=True))
    settings: Mapped[dict[str, Any] | None] = mapped_column(JSONB)
    active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    # Relationships
    memberships: Mapped[list["GroupMembershipModel"]] = relationship(
        "GroupMembershipModel",
        back_populates="group",
        cascade="all, delete-orphan",
    )


class GroupMembershipModel(Base):
    """Group membership model (unique on group_id + member_id)."""

    __tablename__ = "group_memberships"
    __table_args__ = (
        UniqueConstraint("group_id", "member_id", name="uq_group_memberships_group_member"),
        # At most one owner per group.
        Index(
            "uq_group_memberships_single_owner",
            "group_id",
            unique=True,
            postgresql_where=text("role = 'owner'"),
            sqlite_where=text("role = 'owner'"),
        ),
    )

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    group_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
    )
    member_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role: Mapped[str] = mapped_column(
        String(20),
        CheckConstraint(
            "role IN ('owner', 'admin', 'member')",
            name="ck_group_memberships_role",
        ),
        nullable=False,
        default="member",
    )
    joined_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    last_read_at: Mapped[datetime | None] = mapped_column(DateTime)
    notifications_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    is_muted: Mapped[bool] = mapped_column(Boolean, default=False)
    is_pinned: Mapped[bool] = mapped_column(Boolean, default=False)

    # Relationships
    group: Mapped["GroupModel"] = relationship(
        "GroupModel",
        back_populates="memberships",
    )


class MessageModel(Base):
    """Group message model."""

    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_group_id_created_at", "group_id", "created_at"),
        UniqueConstraint(
            "group_id",
            "sender_id",
            "client_message_id",
            name="uq_messages_client_message_id",
        ),
    )

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    group_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender_name: Mapped[str] = mapped_column(String(100), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(
        String(20),
        CheckConstraint(
            "type IN ('text', 'image', 'file', 'system')",
            name="ck_messages_type",
        ),
        nullable=False,
        default="text",
    )
    reply_to: Mapped[UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("messages.id", ondelete="SET NULL"),
    )
    attachments: Mapped[list[dict[str, Any]] | None] = mapped_column(JSONB)
    client_message_id: Mapped[str | None] = mapped_column(String(100))
    edited: Mapped[bool] = mapped_column(Boolean, default=False)
    edited_at: Mapped[datetime | None] = mapped_column(DateTime)
    deleted: Mapped[bool] = mapped_column(Boolean, default=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    reactions: Mapped[list["MessageReactionModel"]] = relationship(
        "MessageReactionModel",
        cascade="all, delete-orphan",
        order_by="MessageReactionModel.created_at",
    )
    reads: Mapped[list["MessageReadModel"]] = relationship(
        "MessageReadModel",
        cascade="all, delete-orphan",
    )


class MessageReactionModel(Base):
    """One member's emoji on a message (unique per member + emoji)."""

    __tablename__ = "message_reactions"
    __table_args__ = (
        UniqueConstraint(
            "message_id",
            "member_id",
            "emoji",
            name="uq_message_reactions_member_emoji",
        ),
    )

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    message_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("messages.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    member_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
    )
    member_name: Mapped[str] = mapped_column(String(100), nullable=False)
    emoji: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class MessageReadModel(Base):
    """Read receipt (composite PK on message_id + member_id)."""

    __tablename__ = "message_reads"

    message_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("messages.id", ondelete="CASCADE"),
        primary_key=True,
    )
    member_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("members.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    read_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
