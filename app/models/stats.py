"""Install and update-check counter tables."""

from datetime import date

from sqlalchemy import Date, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class DailyInstallCount(Base):
    """One row per (script, ip) install seen today, rolled up nightly."""

    __tablename__ = "daily_install_counts"
    __table_args__ = (UniqueConstraint("script_id", "ip"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    script_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("scripts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ip: Mapped[str] = mapped_column(String(45), nullable=False)


class InstallCount(Base):
    """Rolled-up installs per script per day."""

    __tablename__ = "install_counts"
    __table_args__ = (UniqueConstraint("script_id", "install_date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    script_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("scripts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    install_date: Mapped[date] = mapped_column(Date, nullable=False)
    installs: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class DailyUpdateCheckCount(Base):
    """One row per (script, ip) update check seen today."""

    __tablename__ = "daily_update_check_counts"
    __table_args__ = (UniqueConstraint("script_id", "ip"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    script_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("scripts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ip: Mapped[str] = mapped_column(String(45), nullable=False)


class UpdateCheckCount(Base):
    """Rolled-up update checks per script per day."""

    __tablename__ = "update_check_counts"
    __table_args__ = (UniqueConstraint("script_id", "update_check_date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    script_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("scripts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    update_check_date: Mapped[date] = mapped_column(Date, nullable=False)
    update_checks: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


COUNTER_MODELS = (InstallCount, DailyInstallCount, UpdateCheckCount, DailyUpdateCheckCount)
