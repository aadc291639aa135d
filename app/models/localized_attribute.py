"""Localized attribute ORM models for scripts and script versions."""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, declared_attr, mapped_column, relationship

from app.core.exceptions import ValidationErrors
from app.models.base import Base
from app.models.locale import Locale

if TYPE_CHECKING:
    from app.models.script import Script
    from app.models.script_version import ScriptVersion

ATTRIBUTE_KEYS = ("name", "description", "additional_info")
VALUE_MARKUPS = ("text", "html", "markdown")


class LocalizedAttributeMixin:
    """Columns and validation shared by both localized attribute tables."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    attribute_key: Mapped[str] = mapped_column(String(50), nullable=False)
    attribute_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    attribute_default: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    value_markup: Mapped[str] = mapped_column(String(20), default="text", nullable=False)

    def __init__(self, **kwargs):
        kwargs.setdefault("attribute_default", False)
        kwargs.setdefault("value_markup", "text")
        super().__init__(**kwargs)

    @declared_attr
    def locale_id(cls) -> Mapped[Optional[int]]:
        return mapped_column(Integer, ForeignKey("locales.id"), nullable=True)

    @declared_attr
    def locale(cls) -> Mapped[Optional[Locale]]:
        return relationship("Locale", lazy="selectin")

    @staticmethod
    def localized_meta_key(attr: str, locale: Optional[Locale], default: bool) -> str:
        """Meta line an attribute came from, e.g. ``@name`` or ``@name:fr``."""
        if default or locale is None:
            return f"@{attr}"
        return f"@{attr}:{locale.code}"

    @property
    def meta_key(self) -> str:
        return self.localized_meta_key(
            self.attribute_key, self.locale, bool(self.attribute_default)
        )

    def validate(self) -> ValidationErrors:
        errors = ValidationErrors()
        if self.attribute_key not in ATTRIBUTE_KEYS:
            errors.add("attribute_key", "is not included in the list")
        if not self.attribute_value or not self.attribute_value.strip():
            errors.add("attribute_value", "can't be blank")
        if self.locale is None:
            errors.add("locale", "can't be blank")
        if self.value_markup not in VALUE_MARKUPS:
            errors.add("value_markup", "is not included in the list")
        return errors

    def is_valid(self) -> bool:
        return not self.validate()


class LocalizedScriptAttribute(LocalizedAttributeMixin, Base):
    """A name, description or additional info of a script in one locale."""

    __tablename__ = "localized_script_attributes"

    script_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("scripts.id", ondelete="CASCADE"), nullable=False
    )

    script: Mapped["Script"] = relationship(
        "Script", back_populates="localized_attributes"
    )


class LocalizedScriptVersionAttribute(LocalizedAttributeMixin, Base):
    """Localized additional info as submitted with a script version."""

    __tablename__ = "localized_script_version_attributes"

    script_version_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("script_versions.id", ondelete="CASCADE"), nullable=False
    )

    script_version: Mapped["ScriptVersion"] = relationship(
        "ScriptVersion", back_populates="localized_attributes"
    )
