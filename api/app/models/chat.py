from datetime import date, time
from enum import IntEnum

from sqlalchemy import String, Integer, ForeignKey, Date, Time, Text, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.database import Base


class MessageType(IntEnum):
    TEXT = 1
    IMAGE = 2  # text holds the uploaded image URL


class Group(Base):
    """Social group with its own chat room."""

    __tablename__ = 'groups'

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    description: Mapped[str] = mapped_column(String(500), default='')
    photo_url: Mapped[str | None] = mapped_column(String(500), default=None)

    # Relationships
    members: Mapped[list['GroupMember']] = relationship(
        'GroupMember', back_populates='group', cascade='all, delete-orphan'
    )
    messages: Mapped[list['Message']] = relationship(
        'Message', back_populates='group', cascade='all, delete-orphan'
    )


class GroupMember(Base):
    """Membership of a user in a group."""

    __tablename__ = 'group_members'

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey('users.id', ondelete='CASCADE'))
    group_id: Mapped[int] = mapped_column(ForeignKey('groups.id', ondelete='CASCADE'))

    # Relationships
    user: Mapped['User'] = relationship('User', back_populates='memberships')
    group: Mapped['Group'] = relationship('Group', back_populates='members')

    __table_args__ = (
        UniqueConstraint('user_id', 'group_id', name='unique_user_group'),
    )


class Message(Base):
    """Chat message posted to a group."""

    __tablename__ = 'messages'

    id: Mapped[int] = mapped_column(primary_key=True)
    text: Mapped[str] = mapped_column(Text)
    sender_id: Mapped[int] = mapped_column(ForeignKey('users.id', ondelete='CASCADE'))
    group_id: Mapped[int] = mapped_column(
        ForeignKey('groups.id', ondelete='CASCADE'), index=True
    )

    # Client-reported send date and wall-clock time; (sent_date, sent_time, id) orders a group's history
    sent_date: Mapped[date] = mapped_column(Date)
    sent_time: Mapped[time] = mapped_column(Time)

    message_type: Mapped[int] = mapped_column(Integer, default=MessageType.TEXT)

    # Relationships
    sender: Mapped['User'] = relationship('User')
    group: Mapped['Group'] = relationship('Group', back_populates='messages')

    __table_args__ = (
        Index('ix_messages_group_sent', 'group_id', 'sent_date', 'sent_time', 'id'),
    )
