"""Script report, invitation and similarity ORM models."""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.models.base import Base

if TYPE_CHECKING:
    from app.models.script import Script


class ScriptReport(Base):
    """A user report against a script, resolved by a moderator."""

    __tablename__ = "script_reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    script_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("scripts.id", ondelete="CASCADE"), nullable=False
    )
    reporter_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    reason: Mapped[str] = mapped_column(String(50), nullable=False)
    explanation: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # None while pending, otherwise "dismissed", "upheld" or "fixed"
    result: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    # Reporter is trusted enough that the script is hidden until resolution
    blocked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    script: Mapped["Script"] = relationship("Script", back_populates="script_reports")

    @property
    def pending(self) -> bool:
        return self.result is None

    @property
    def blocks_script(self) -> bool:
        return self.pending and bool(self.blocked)


class ScriptInvitation(Base):
    """An outstanding invitation for a user to become a co-author."""

    __tablename__ = "script_invitations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    script_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("scripts.id", ondelete="CASCADE"), nullable=False
    )
    invited_user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    script: Mapped["Script"] = relationship("Script", back_populates="script_invitations")


class ScriptSimilarity(Base):
    """Result of the duplicate checker comparing two scripts' code."""

    __tablename__ = "script_similarities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    script_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("scripts.id", ondelete="CASCADE"), nullable=False
    )
    other_script_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("scripts.id", ondelete="CASCADE"), nullable=False
    )
    similarity: Mapped[float] = mapped_column(Float, nullable=False)
    checked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    script: Mapped["Script"] = relationship(
        "Script", back_populates="script_similarities", foreign_keys=[script_id]
    )
