from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.database import Base


class User(Base):
    """Platform user. Owned by the accounts module; chat only reads it."""

    __tablename__ = 'users'

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True)
    avatar: Mapped[str | None] = mapped_column(String(500), default=None)

    # Relationships
    memberships: Mapped[list['GroupMember']] = relationship(
        'GroupMember', back_populates='user', cascade='all, delete-orphan'
    )
