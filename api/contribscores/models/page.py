from sqlalchemy import Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class Page(Base):
    __tablename__ = "pages"
    __table_args__ = (
        UniqueConstraint("namespace", "title", name="uq_pages_namespace_title"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    namespace: Mapped[int] = mapped_column(Integer, default=0, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
