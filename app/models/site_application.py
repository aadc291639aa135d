"""Applies-to ORM models."""

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base

if TYPE_CHECKING:
    from app.models.script import Script


class SiteApplication(Base):
    """A site (domain) or raw URL pattern that scripts can apply to."""

    __tablename__ = "site_applications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    text: Mapped[str] = mapped_column(String(500), unique=True, nullable=False)
    domain: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class ScriptApplyTo(Base):
    """Join between a script and a site application."""

    __tablename__ = "script_applies_tos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    script_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("scripts.id", ondelete="CASCADE"), nullable=False
    )
    site_application_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("site_applications.id"), nullable=False
    )
    tld_extra: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    script: Mapped["Script"] = relationship("Script", back_populates="script_applies_tos")
    site_application: Mapped["SiteApplication"] = relationship(
        "SiteApplication", lazy="selectin"
    )

    @property
    def text(self) -> str:
        return self.site_application.text

    @property
    def domain(self) -> bool:
        return self.site_application.domain


class SensitiveSite(Base):
    """A domain known to host adult content."""

    __tablename__ = "sensitive_sites"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    domain: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
