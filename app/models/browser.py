"""Browser and Compatibility ORM models."""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base

if TYPE_CHECKING:
    from app.models.script import Script


class Browser(Base):
    """A browser a script can declare (in)compatibility with."""

    __tablename__ = "browsers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(50), nullable=False)


class Compatibility(Base):
    """Declared compatibility of a script with a browser."""

    __tablename__ = "compatibilities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    script_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("scripts.id", ondelete="CASCADE"), nullable=False
    )
    browser_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("browsers.id"), nullable=False
    )
    compatible: Mapped[bool] = mapped_column(Boolean, nullable=False)
    comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    script: Mapped["Script"] = relationship("Script", back_populates="compatibilities")
    browser: Mapped["Browser"] = relationship("Browser", lazy="selectin")
