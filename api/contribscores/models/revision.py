"""Revision ORM model: one row per committed edit.

The revisions table is an append-only log owned by the host platform. This
service only reads it.

A revision with parent_id NULL is the first revision of its page (a page
creation). length is the page's content length after the edit, so the size
of an edit is its length minus its parent's length.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .user import User

# comment_id of an edit saved with an empty summary
EMPTY_COMMENT_ID = 1


class Revision(Base):
    __tablename__ = "revisions"
    __table_args__ = (
        Index("ix_revisions_user_id_timestamp", "user_id", "timestamp"),
        Index("ix_revisions_timestamp", "timestamp"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    page_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("pages.id"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    length: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("revisions.id"), nullable=True
    )
    comment_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    author: Mapped["User"] = relationship("User", back_populates="revisions", lazy="raise")
