from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .revision import Revision

BOT_GROUP = "bot"


class User(Base):
    """A registered editor. Anonymous (IP) editors have no row here."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    real_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    registered_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    revisions: Mapped[list["Revision"]] = relationship(
        "Revision", back_populates="author", lazy="raise"
    )
    groups: Mapped[list["UserGroup"]] = relationship(
        "UserGroup", back_populates="user", lazy="raise"
    )


class UserGroup(Base):
    """Group membership; expires_at NULL means the membership never expires."""

    __tablename__ = "user_groups"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), primary_key=True
    )
    group: Mapped[str] = mapped_column(String(255), primary_key=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    user: Mapped["User"] = relationship("User", back_populates="groups", lazy="raise")
