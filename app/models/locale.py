"""Locale ORM model."""

from typing import Optional

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base

ENGLISH_CODE = "en"


class Locale(Base):
    """A UI/content language, optionally mapped to a detection service code."""

    __tablename__ = "locales"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    english_name: Mapped[str] = mapped_column(String(100), nullable=False)
    native_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    detect_language_code: Mapped[Optional[str]] = mapped_column(
        String(20), nullable=True, index=True
    )

    def __repr__(self) -> str:
        return f"<Locale {self.code}>"
