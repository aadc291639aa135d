"""Script schemas."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from app.models.script import ScriptType


class LocalizedAdditionalInfo(BaseModel):
    """Additional info for one non-default locale."""

    locale: str = Field(..., min_length=1, max_length=20)
    value: str = Field(..., min_length=1)
    markup: Literal["text", "html", "markdown"] = "text"


class ScriptVersionSubmit(BaseModel):
    """New code (and form fields) for an existing script."""

    code: str = Field(..., min_length=1)
    changelog: Optional[str] = None
    additional_info: Optional[str] = None
    additional_info_markup: Literal["text", "html", "markdown"] = "text"
    localized_additional_info: List[LocalizedAdditionalInfo] = Field(default_factory=list)
    adult_content_self_report: bool = False
    not_js_convertible_override: bool = False
    truncate_description: bool = False


class ScriptCreate(ScriptVersionSubmit):
    """Script creation schema."""

    language: Literal["js", "css"] = "js"
    script_type: ScriptType = ScriptType.PUBLIC
    sync_identifier: Optional[str] = None


class ScriptResponse(BaseModel):
    """Public representation of a script."""

    id: int
    name: Optional[str]
    description: Optional[str]
    url: str
    code_url: Optional[str]
    license: Optional[str]
    version: Optional[str]
    locale: Optional[str]
    deleted: bool
    namespace: Optional[str]
    support_url: Optional[str]
    contribution_url: Optional[str]
    contribution_amount: Optional[str]
    daily_installs: int
    total_installs: int
    fan_score: float
    good_ratings: int
    ok_ratings: int
    bad_ratings: int
    created_at: Optional[datetime]
    code_updated_at: Optional[datetime]
