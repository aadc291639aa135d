"""SQLAlchemy ORM models."""

from app.models.base import Base
from app.models.browser import Browser, Compatibility
from app.models.job import DuplicateCheckJob, JobStatus
from app.models.license import License
from app.models.locale import Locale
from app.models.localized_attribute import (
    LocalizedScriptAttribute,
    LocalizedScriptVersionAttribute,
)
from app.models.script import (
    Script,
    ScriptDeleteType,
    ScriptSyncSource,
    ScriptSyncType,
    ScriptType,
)
from app.models.script_report import ScriptInvitation, ScriptReport, ScriptSimilarity
from app.models.script_version import ScriptVersion
from app.models.site_application import ScriptApplyTo, SensitiveSite, SiteApplication
from app.models.stats import (
    DailyInstallCount,
    DailyUpdateCheckCount,
    InstallCount,
    UpdateCheckCount,
)
from app.models.user import Author, User, UserRole

__all__ = [
    "Base",
    "Author",
    "Browser",
    "Compatibility",
    "DailyInstallCount",
    "DailyUpdateCheckCount",
    "DuplicateCheckJob",
    "InstallCount",
    "JobStatus",
    "License",
    "Locale",
    "LocalizedScriptAttribute",
    "LocalizedScriptVersionAttribute",
    "Script",
    "ScriptApplyTo",
    "ScriptDeleteType",
    "ScriptInvitation",
    "ScriptReport",
    "ScriptSimilarity",
    "ScriptSyncSource",
    "ScriptSyncType",
    "ScriptType",
    "ScriptVersion",
    "SensitiveSite",
    "SiteApplication",
    "UpdateCheckCount",
    "User",
    "UserRole",
]
