"""ScriptVersion ORM model."""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.models.base import Base
from app.models.localized_attribute import LocalizedScriptVersionAttribute
from app.models.localizing import LocalizingModel
from app.parsers import parser_for
from app.parsers.meta import Meta

if TYPE_CHECKING:
    from app.models.script import Script


class ScriptVersion(LocalizingModel, Base):
    """Snapshot of submitted code and the metadata parsed from it."""

    __tablename__ = "script_versions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    script_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("scripts.id", ondelete="CASCADE"), nullable=False
    )
    code: Mapped[str] = mapped_column(Text, nullable=False)
    rewritten_code: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    version: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    changelog: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    changelog_markup: Mapped[str] = mapped_column(String(20), default="text")
    not_js_convertible_override: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __mapper_args__ = {"eager_defaults": True}

    # Set by the submission form when an over-long description should be
    # cut down rather than rejected.
    truncate_description = False

    # Relationships
    script: Mapped["Script"] = relationship("Script", back_populates="script_versions")
    localized_attributes: Mapped[List[LocalizedScriptVersionAttribute]] = relationship(
        LocalizedScriptVersionAttribute,
        back_populates="script_version",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def language(self) -> str:
        return self.script.language if self.script is not None else "js"

    @property
    def parser_class(self):
        return parser_for(self.language)

    @property
    def effective_code(self) -> str:
        return self.rewritten_code if self.rewritten_code is not None else self.code

    def parse_meta(self) -> Meta:
        return self.parser_class.parse_meta(self.effective_code)

    def calculate_applies_to_names(self) -> List[dict]:
        return self.parser_class.calculate_applies_to_names(self.effective_code)
