"""Script ORM model."""

import enum
import logging
import re
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence
from urllib.parse import urlparse

from bs4 import BeautifulSoup
from markdown_it import MarkdownIt
from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    inspect,
    select,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from sqlalchemy.sql import Select, func

from app.config import get_settings
from app.core.exceptions import ValidationErrors
from app.models.base import Base
from app.models.browser import Compatibility
from app.models.license import License
from app.models.locale import Locale
from app.models.localized_attribute import LocalizedScriptAttribute
from app.models.localizing import LocalizingModel
from app.models.reconcile import update_children
from app.models.script_report import ScriptInvitation, ScriptReport, ScriptSimilarity
from app.models.script_version import ScriptVersion
from app.models.site_application import ScriptApplyTo, SiteApplication
from app.models.user import Author
from app.parsers import css_to_js, parser_for

if TYPE_CHECKING:
    from app.services.catalog import ReferenceCatalog

settings = get_settings()
logger = logging.getLogger(__name__)


class ScriptType(enum.Enum):
    PUBLIC = 1
    UNLISTED = 2
    LIBRARY = 3


class ScriptDeleteType(enum.Enum):
    KEEP = 1
    BLANKED = 2


class ScriptSyncSource(enum.Enum):
    URL = 1
    WEBHOOK = 2


class ScriptSyncType(enum.Enum):
    MANUAL = 1
    AUTOMATIC = 2
    WEBHOOK = 3


LANGUAGES = ("js", "css")
SUBSETS = ("greasyfork", "sleazyfork", "all")

MAX_LENGTHS = {"name": 100, "description": 500, "additional_info": 50_000}
MAX_SYNC_IDENTIFIER_LENGTH = 500
MAX_SUPPORT_URL_LENGTH = 500

ATTRIBUTE_LABELS = {
    "name": "Name",
    "description": "Description",
    "additional_info": "Additional info",
}

MISSING_NAME = "Script is missing @name"
MISSING_DESCRIPTION = "Script is missing @description"
NAME_SAME_AS_DESCRIPTION = "must be different from the name"
BLANK = "can't be blank"
INVALID = "is invalid"
BAD_SYNC_PROTOCOL = "must be an http or https URL"

PRIVATE_USE_AREA = re.compile(
    r"[\ue000-\uf8ff\U000f0000-\U000fffff\U00100000-\U0010ffff]"
)
_SWEARS = re.compile(
    r"motherfucking|motherfucker|fucking|fucker|fucks|fuck|shitty|shits|shit"
    r"|niggers|nigger|cunts|cunt"
)
_URL_NAME_STRIP = re.compile(r"[?&/#.]+")
_BROWSER_LINE = re.compile(r"([a-z]+)", re.IGNORECASE)
_MARKDOWN = MarkdownIt()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _locale_key(locale: Optional[Locale]) -> Optional[str]:
    return None if locale is None else locale.code


def _first(meta: Dict[str, List[str]], key: str) -> Optional[str]:
    values = meta.get(key)
    return values[0] if values else None


def _has_scheme(url: str, schemes: Sequence[str]) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if parsed.scheme.lower() not in schemes:
        return False
    return bool(parsed.netloc or parsed.path)


def _plain_text(value: Optional[str], markup: Optional[str]) -> Optional[str]:
    """Render user-supplied markup and return only its text."""
    if value is None:
        return None
    if markup == "markdown":
        value = _MARKDOWN.render(value)
        markup = "html"
    if markup == "html":
        value = BeautifulSoup(value, "html.parser").get_text()
    return value.strip()


class Script(LocalizingModel, Base):
    """A hosted userscript or userstyle."""

    __tablename__ = "scripts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    script_type: Mapped[ScriptType] = mapped_column(
        Enum(ScriptType), default=ScriptType.PUBLIC, nullable=True
    )
    language: Mapped[Optional[str]] = mapped_column(String(3), default="js")
    default_name: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    locale_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("locales.id"), nullable=True
    )
    license_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("licenses.id"), nullable=True
    )
    license_text: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    namespace: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    version: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # Syncing from an external source
    script_sync_source: Mapped[Optional[ScriptSyncSource]] = mapped_column(
        Enum(ScriptSyncSource), nullable=True
    )
    script_sync_type: Mapped[Optional[ScriptSyncType]] = mapped_column(
        Enum(ScriptSyncType), nullable=True
    )
    sync_identifier: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sync_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_attempted_sync_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_successful_sync_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Deletion and moderation
    script_delete_type: Mapped[Optional[ScriptDeleteType]] = mapped_column(
        Enum(ScriptDeleteType), nullable=True
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    delete_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    replaced_by_script_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("scripts.id", ondelete="SET NULL"), nullable=True
    )
    promoted_script_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("scripts.id", ondelete="SET NULL"), nullable=True
    )
    sensitive: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    review_state: Mapped[str] = mapped_column(
        String(20), default="not_required", nullable=False
    )
    not_adult_content_self_report_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    permanent_deletion_request_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Derived from the newest version
    code_updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    contribution_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    contribution_amount: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    support_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    css_convertible_to_js: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    not_js_convertible_override: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    # Statistics
    daily_installs: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_installs: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    fan_score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    good_ratings: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    ok_ratings: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    bad_ratings: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )

    __mapper_args__ = {"eager_defaults": True}

    # Checkbox answers from the submission form, never stored directly
    adult_content_self_report = False
    not_adult_content_self_report = False

    COLUMN_DEFAULTS = {
        "script_type": ScriptType.PUBLIC,
        "language": "js",
        "sensitive": False,
        "review_state": "not_required",
        "css_convertible_to_js": False,
        "not_js_convertible_override": False,
        "daily_installs": 0,
        "total_installs": 0,
        "fan_score": 0.0,
        "good_ratings": 0,
        "ok_ratings": 0,
        "bad_ratings": 0,
    }

    def __init__(self, **kwargs):
        # Column defaults only apply on INSERT; unsaved scripts need them too
        for key, value in self.COLUMN_DEFAULTS.items():
            kwargs.setdefault(key, value)
        super().__init__(**kwargs)

    # Relationships
    locale: Mapped[Optional[Locale]] = relationship("Locale", lazy="selectin")
    license: Mapped[Optional[License]] = relationship("License", lazy="selectin")
    authors: Mapped[List[Author]] = relationship(
        Author,
        back_populates="script",
        cascade="all, delete-orphan",
        order_by=Author.id,
    )
    script_versions: Mapped[List[ScriptVersion]] = relationship(
        ScriptVersion,
        back_populates="script",
        cascade="all, delete-orphan",
        order_by=ScriptVersion.id,
    )
    localized_attributes: Mapped[List[LocalizedScriptAttribute]] = relationship(
        LocalizedScriptAttribute,
        back_populates="script",
        cascade="all, delete-orphan",
    )
    script_applies_tos: Mapped[List[ScriptApplyTo]] = relationship(
        ScriptApplyTo,
        back_populates="script",
        cascade="all, delete-orphan",
    )
    compatibilities: Mapped[List[Compatibility]] = relationship(
        Compatibility,
        back_populates="script",
        cascade="all, delete-orphan",
    )
    script_reports: Mapped[List[ScriptReport]] = relationship(
        ScriptReport, back_populates="script", cascade="all, delete-orphan"
    )
    script_invitations: Mapped[List[ScriptInvitation]] = relationship(
        ScriptInvitation, back_populates="script", cascade="all, delete-orphan"
    )
    script_similarities: Mapped[List[ScriptSimilarity]] = relationship(
        ScriptSimilarity,
        back_populates="script",
        cascade="all, delete-orphan",
        foreign_keys=[ScriptSimilarity.script_id],
    )

    @validates("sync_identifier")
    def _strip_sync_identifier(self, key, value):
        """Strip whitespace; a blank identifier is stored as null."""
        if value is None:
            return None
        value = value.strip()
        return value or None

    # ------------------------------------------------------------------
    # Query builders
    # ------------------------------------------------------------------

    @classmethod
    def subsets(cls) -> Sequence[str]:
        """Site subsets a listing can be restricted to."""
        return SUBSETS

    @classmethod
    def not_deleted(cls) -> Select:
        """Scripts that have not been soft deleted."""
        return select(cls).where(cls.script_delete_type.is_(None))

    @classmethod
    def active(cls, script_subset: str) -> Select:
        """
        Undeleted scripts in a site subset.

        Raises ValueError for an unknown subset.
        """
        query = cls.not_deleted()
        if script_subset == "greasyfork":
            return query.where(cls.sensitive.is_(False))
        if script_subset == "sleazyfork":
            return query.where(cls.sensitive.is_(True))
        if script_subset == "all":
            return query
        raise ValueError(f"Invalid argument {script_subset}")

    @classmethod
    def listable(cls, script_subset: str) -> Select:
        """Public scripts that show up in listings."""
        return cls.active(script_subset).where(
            cls.script_type == ScriptType.PUBLIC,
            cls.review_state != "required",
        )

    @classmethod
    def libraries(cls, script_subset: str) -> Select:
        """Undeleted libraries in a site subset."""
        return cls.active(script_subset).where(cls.script_type == ScriptType.LIBRARY)

    @classmethod
    def listable_including_libraries(cls, script_subset: str) -> Select:
        """Listable scripts plus libraries."""
        return cls.active(script_subset).where(
            cls.script_type.in_([ScriptType.PUBLIC, ScriptType.LIBRARY])
        )

    @classmethod
    def reported(cls) -> Select:
        """Undeleted scripts with at least one unresolved report."""
        return (
            cls.not_deleted()
            .join(ScriptReport, ScriptReport.script_id == cls.id)
            .where(ScriptReport.result.is_(None))
            .distinct()
        )

    @classmethod
    def reported_not_adult(cls) -> Select:
        """Undeleted scripts whose authors dispute the adult content flag."""
        return cls.not_deleted().where(
            cls.not_adult_content_self_report_date.is_not(None)
        )

    @classmethod
    def requested_permanent_deletion(cls) -> Select:
        """Scripts, deleted or not, whose authors asked for permanent removal."""
        return select(cls).where(cls.permanent_deletion_request_date.is_not(None))

    @classmethod
    def for_all_sites(cls) -> Select:
        """Scripts with no applies-to entries, which run everywhere."""
        return select(cls).where(~cls.script_applies_tos.any())

    # ------------------------------------------------------------------
    # State predicates
    # ------------------------------------------------------------------

    @property
    def is_new_record(self) -> bool:
        return self.id is None

    @property
    def deleted(self) -> bool:
        """Whether the script has been soft deleted."""
        return self.script_delete_type is not None

    @property
    def deleted_and_blanked(self) -> bool:
        """Deleted with the code hidden from everyone."""
        return self.script_delete_type == ScriptDeleteType.BLANKED

    @property
    def active_script(self) -> bool:
        return not self.deleted

    @property
    def library(self) -> bool:
        return self.script_type == ScriptType.LIBRARY

    @property
    def public(self) -> bool:
        return self.script_type == ScriptType.PUBLIC

    @property
    def unlisted(self) -> bool:
        return self.script_type == ScriptType.UNLISTED

    @property
    def listable_script(self) -> bool:
        """Whether this script would appear in listings."""
        return self.active_script and self.public

    @property
    def can_be_added_to_set(self) -> bool:
        """Public and unlisted scripts can go in script sets; libraries cannot."""
        return self.public or self.unlisted

    @property
    def js(self) -> bool:
        return self.language == "js"

    @property
    def css(self) -> bool:
        return self.language == "css"

    @property
    def review_required(self) -> bool:
        return self.review_state == "required"

    @property
    def pending_report_by_trusted_reporter(self) -> bool:
        """Whether an unresolved report is hiding this script."""
        return any(report.blocks_script for report in self.script_reports)

    # ------------------------------------------------------------------
    # Localized values
    # ------------------------------------------------------------------

    def name(self, locale=None) -> Optional[str]:
        """Name in ``locale``, falling back to the default locale."""
        return self.localized_value_for("name", locale)

    def description(self, locale=None) -> Optional[str]:
        """Description in ``locale``, falling back to the default locale."""
        return self.localized_value_for("description", locale)

    def additional_info(self, locale=None) -> Optional[str]:
        """Additional info in ``locale``, falling back to the default locale."""
        return self.localized_value_for("additional_info", locale)

    def additional_info_markup(self, locale=None) -> Optional[str]:
        """Markup of the additional info shown for ``locale``."""
        la = self.localized_attribute_for("additional_info", locale)
        return None if la is None else la.value_markup

    def full_text(self) -> Optional[str]:
        """All default-locale text, used for language detection."""
        parts = []
        for value in (self.name(), self.default_name, self.description()):
            if value:
                parts.append(value)
        la = next(
            (
                l
                for l in self.localized_attributes
                if l.attribute_key == "additional_info" and l.attribute_default
            ),
            None,
        )
        if la is not None:
            additional_text = _plain_text(la.attribute_value, la.value_markup)
            if additional_text:
                parts.append(additional_text)
        if not parts:
            return None
        return "\n".join(parts)

    # ------------------------------------------------------------------
    # URLs and serialization
    # ------------------------------------------------------------------

    @staticmethod
    def slugify(name: str) -> str:
        """
        URL slug for a script name.

        Profanity is dropped and runs of punctuation collapse to one dash.
        """
        r = _SWEARS.sub("", name.lower())
        # multiple non-alphas into one
        r = re.sub(r"([\W_])[\W_]+", r"\1", r)
        r = re.sub(r"^[\W_]+", "", r)
        r = re.sub(r"[\W_]+$", "", r)
        r = re.sub(r"[\W_]", "-", r)
        return r or "script"

    @property
    def url_name(self) -> str:
        """Name with characters that would break a URL path removed."""
        return _URL_NAME_STRIP.sub("", self.name() or self.default_name or "")

    def to_param(self) -> str:
        """Path segment identifying the script, e.g. ``42-my-script``."""
        return f"{self.id}-{self.slugify(self.name() or self.default_name or '')}"

    @property
    def url(self) -> str:
        """Absolute URL of the script page."""
        return f"{settings.SITE_URL}/scripts/{self.to_param()}"

    @property
    def code_url(self) -> Optional[str]:
        """
        Install URL for the code.

        Libraries are linked by version, so a library with no saved version
        has no code URL yet.
        """
        if self.library:
            newest = self.newest_saved_script_version
            if newest is None:
                return None
            return f"{settings.SITE_URL}/scripts/{self.id}/{newest.id}/{self.url_name}.js"
        extension = "user.css" if self.css else "user.js"
        return f"{settings.SITE_URL}/scripts/{self.to_param()}/code/{self.url_name}.{extension}"

    SERIALIZED_COLUMNS = (
        "id",
        "daily_installs",
        "total_installs",
        "fan_score",
        "good_ratings",
        "ok_ratings",
        "bad_ratings",
        "created_at",
        "code_updated_at",
        "namespace",
        "support_url",
        "contribution_url",
        "contribution_amount",
    )

    def serializable_hash(self, only: Optional[Sequence[str]] = None) -> Dict[str, Any]:
        """Public API representation of the script."""
        columns = self.SERIALIZED_COLUMNS if only is None else only
        data: Dict[str, Any] = {column: getattr(self, column) for column in columns}
        data.update(
            {
                "name": self.default_name,
                "description": self.default_localized_value_for("description"),
                "url": self.url,
                "code_url": self.code_url,
                "license": self.license.name if self.license is not None else self.license_text,
                "version": self.version,
                "locale": self.locale.code if self.locale is not None else None,
                "deleted": self.deleted,
            }
        )
        return data

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    @property
    def newest_saved_script_version(self) -> Optional[ScriptVersion]:
        """Newest version that has been persisted, ignoring one being submitted."""
        for script_version in reversed(self.script_versions):
            if script_version.id is not None:
                return script_version
        return None

    @property
    def current_code(self) -> Optional[str]:
        """Code of the newest saved version."""
        newest = self.newest_saved_script_version
        return None if newest is None else newest.code

    def meta(self) -> Dict[str, List[str]]:
        """Parsed meta block of the newest saved version."""
        newest = self.newest_saved_script_version
        return {} if newest is None else newest.parse_meta()

    def immediate_deletion_allowed(self, today: Optional[date] = None) -> bool:
        """
        Whether the author may delete without moderator review.

        Small scripts always can; popular ones only when their installs
        average fewer than five a day since creation.
        """
        if self.total_installs <= 50:
            return True
        today = today or date.today()
        created = self.created_at.date() if self.created_at else today
        # Less than 5 installs per day on average
        return self.total_installs <= (today - created).days * 5

    # ------------------------------------------------------------------
    # Derived classification
    # ------------------------------------------------------------------

    def matching_sensitive_domains(self, sensitive_domains) -> List[str]:
        """Applies-to domains that are on the sensitive site list."""
        return [
            sat.text
            for sat in self.script_applies_tos
            if sat.site_application.domain and sat.text in sensitive_domains
        ]

    def for_sensitive_site(self, sensitive_domains) -> bool:
        """Whether the script runs on any sensitive site."""
        return bool(self.matching_sensitive_domains(sensitive_domains))

    def update_license(self, text: Optional[str], catalog: "ReferenceCatalog") -> None:
        """
        Set the license from an ``@license`` value.

        Known licenses link to the catalog entry; anything else is kept
        as free text.
        """
        if text is None or not text.strip():
            self.license = None
            self.license_text = None
            return

        text = text.strip()
        license_entry = catalog.license_for(text)
        if license_entry is not None:
            self.license = license_entry
            self.license_text = None
            return

        self.license = None
        self.license_text = text

    # ------------------------------------------------------------------
    # Pre-validation normalization
    # ------------------------------------------------------------------

    def set_default_name(self) -> None:
        """Copy the default-locale name into ``default_name``."""
        self.default_name = self.default_localized_value_for("name")

    def assign_locale(self, locale: Locale) -> None:
        """Set the script locale and fill it in on attributes lacking one."""
        self.locale = locale
        for la in self.localized_attributes:
            if la.locale is None:
                la.locale = locale

    def locale_changed(self) -> bool:
        """Whether the locale was changed since the script was loaded."""
        return inspect(self).attrs.locale.history.has_changes()

    def update_localized_attribute_locales(self) -> None:
        """Default localized attributes follow the script's locale."""
        if not self.locale_changed():
            return
        for la in self.localized_attributes:
            if la.attribute_default:
                la.locale = self.locale

    def set_sensitive_flag(self, sensitive_domains) -> None:
        """Mark the script sensitive; once set the flag is never cleared here."""
        self.sensitive = bool(
            self.sensitive
            or self.adult_content_self_report
            or self.for_sensitive_site(sensitive_domains)
        )

    def apply_deletion_timestamp(self, now: Optional[datetime] = None) -> None:
        """Stamp ``deleted_at`` on first deletion and clear it on restore."""
        if self.deleted:
            if self.deleted_at is None:
                self.deleted_at = now or _utcnow()
        else:
            self.deleted_at = None

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, errors: Optional[ValidationErrors] = None) -> ValidationErrors:
        """
        Run the checks that need nothing beyond the loaded object graph.

        Checks that hit the database (library name uniqueness, submission
        rate limits) live in ``ScriptService``.
        """
        errors = errors if errors is not None else ValidationErrors()

        if self.library:
            if not self.name():
                errors.add("name", BLANK)
        elif not self.default_name:
            errors.add("default_name", MISSING_NAME)

        if not self.deleted and not self.description():
            errors.add("description", BLANK if self.library else MISSING_DESCRIPTION)

        if self.locale is None:
            errors.add("locale", "must exist")

        if not self.language:
            errors.add("language", BLANK)
        elif self.language not in LANGUAGES:
            errors.add("language", "is not included in the list")

        self._validate_lengths(errors)
        self._validate_name_description_pairs(errors)
        self._validate_localized_children(errors)

        if self.code_updated_at is None:
            errors.add("code_updated_at", BLANK)
        if self.script_type is None:
            errors.add("script_type", BLANK)

        if self.sync_identifier is not None:
            if self.script_sync_source == ScriptSyncSource.URL and not _has_scheme(
                self.sync_identifier, ("http", "https")
            ):
                errors.add("sync_identifier", BAD_SYNC_PROTOCOL)
            if len(self.sync_identifier) > MAX_SYNC_IDENTIFIER_LENGTH:
                errors.add(
                    "sync_identifier",
                    f"is too long (maximum is {MAX_SYNC_IDENTIFIER_LENGTH} characters)",
                )

        for attr in ("name", "description", "additional_info"):
            value = self.localized_value_for(attr)
            if value and PRIVATE_USE_AREA.search(value):
                errors.add(attr, INVALID)

        return errors

    def is_valid(self) -> bool:
        """Whether ``validate`` finds no errors."""
        return not self.validate()

    def _validate_lengths(self, errors: ValidationErrors) -> None:
        """Enforce maximum lengths on every localized value."""
        for attr, max_length in MAX_LENGTHS.items():
            for la in self.localized_attributes_for(attr):
                if la.attribute_value is None or len(la.attribute_value) <= max_length:
                    continue
                # Report against the meta line the value came from
                if attr in ("name", "description") and not self.library:
                    key = la.meta_key
                else:
                    key = attr
                errors.add(key, f"is too long (maximum is {max_length} characters)")

    def _validate_name_description_pairs(self, errors: ValidationErrors) -> None:
        """Every locale with a name needs a description that differs from it."""
        descriptions = self.localized_attributes_for("description")
        for ln in self.localized_attributes_for("name"):
            matching = next(
                (ld for ld in descriptions if _locale_key(ld.locale) == _locale_key(ln.locale)),
                None,
            )
            if self.library:
                key = "description"
            else:
                key = LocalizedScriptAttribute.localized_meta_key(
                    "description", ln.locale, False
                )
            if matching is None:
                errors.add(key, BLANK)
            elif matching.attribute_value == ln.attribute_value:
                errors.add(key, NAME_SAME_AS_DESCRIPTION)

    def _validate_localized_children(self, errors: ValidationErrors) -> None:
        """Surface localized attribute errors as base messages."""
        for child in self.localized_attributes:
            for child_attr, message in child.validate():
                label = ATTRIBUTE_LABELS.get(child.attribute_key, child.attribute_key)
                child_label = child_attr.replace("_", " ").capitalize()
                errors.add(ValidationErrors.BASE, f"{label} - {child_label} {message}")

    # ------------------------------------------------------------------
    # Applying a new version
    # ------------------------------------------------------------------

    def apply_from_script_version(
        self,
        script_version: ScriptVersion,
        catalog: "ReferenceCatalog",
        now: Optional[datetime] = None,
    ) -> None:
        """
        Bring this script's metadata and children in line with a version.

        Children whose key still appears in the version are updated in
        place; the rest are removed from their collections.
        """
        now = now or _utcnow()

        # Additional info comes from the form, not the meta block
        update_children(
            self.localized_attributes,
            script_version.localized_attributes_for("additional_info"),
            existing_key=lambda la: _locale_key(la.locale),
            incoming_key=lambda la: _locale_key(la.locale),
            build=lambda la: LocalizedScriptAttribute(
                attribute_key="additional_info",
                attribute_value=la.attribute_value,
                value_markup=la.value_markup,
                attribute_default=bool(la.attribute_default),
                locale=la.locale,
            ),
            update=self._copy_localized_value,
            pool=self.localized_attributes_for("additional_info"),
        )

        parser = parser_for(self.language or "js")
        code = script_version.effective_code
        meta = parser.parse_meta(code)

        # Existing libraries edit name and description in text boxes
        if not (self.library and not self.is_new_record):
            for attr in ("name", "description"):
                self._update_localized_attribute(meta, attr, catalog)

        if script_version.truncate_description:
            limit = MAX_LENGTHS["description"]
            for la in self.localized_attributes_for("description"):
                if la.attribute_value is not None and len(la.attribute_value) > limit:
                    la.attribute_value = la.attribute_value[:limit]

        self._update_applies_tos(parser.calculate_applies_to_names(code), catalog)

        if self.is_new_record or self.code_updated_at is None:
            self.code_updated_at = now
        else:
            newest = self.newest_saved_script_version
            if newest is None or newest.code != script_version.code:
                self.code_updated_at = now

        self.update_license(_first(meta, "license"), catalog)
        self.namespace = _first(meta, "namespace")
        self.version = script_version.version
        self.not_js_convertible_override = bool(script_version.not_js_convertible_override)

        self.contribution_url = next(
            (
                url
                for url in meta.get("contributionURL", [])
                if _has_scheme(url, ("http", "https", "bitcoin"))
            ),
            None,
        )
        if self.contribution_url is not None:
            self.contribution_amount = _first(meta, "contributionAmount")
        else:
            self.contribution_amount = None

        self.support_url = next(
            (url for url in meta.get("supportURL", []) if self._acceptable_support_url(url)),
            None,
        )

        self.css_convertible_to_js = bool(
            self.css and not self.not_js_convertible_override and css_to_js.convertible(code)
        )

        self._update_compatibilities(meta, catalog)

    @staticmethod
    def _copy_localized_value(target, source) -> None:
        target.value_markup = source.value_markup
        target.attribute_value = source.attribute_value

    @staticmethod
    def _acceptable_support_url(url: str) -> bool:
        """Mail or web URL of sane length that is not this site."""
        if len(url) > MAX_SUPPORT_URL_LENGTH:
            return False
        if _has_scheme(url, ("mailto",)):
            return True
        if not _has_scheme(url, ("http", "https")):
            return False
        # Discussions already have UI on the script page
        try:
            return urlparse(url).hostname != settings.SITE_HOST
        except ValueError:
            return False

    def _update_localized_attribute(
        self, meta: Dict[str, List[str]], attr: str, catalog: "ReferenceCatalog"
    ) -> None:
        """Reconcile ``@attr`` and ``@attr:xx`` meta values with the stored rows."""
        default_value = _first(meta, attr)
        # Libraries keep what they have when the meta doesn't say
        if self.library and default_value is None:
            return

        incoming = []
        if default_value is not None:
            incoming.append((self.locale, True, default_value))
        for meta_key, values in meta.items():
            if not meta_key.startswith(attr + ":"):
                continue
            locale_code = meta_key.split(":", 1)[1]
            meta_locale = catalog.locale_for_code(locale_code)
            if meta_locale is None:
                logger.error(f"Unknown locale code - {locale_code}")
                continue
            incoming.append((meta_locale, False, values[0]))

        def build(item):
            locale, is_default, value = item
            return LocalizedScriptAttribute(
                attribute_key=attr,
                attribute_value=value,
                attribute_default=is_default,
                value_markup="text",
                locale=locale,
            )

        def update(la, item):
            la.attribute_value = item[2]
            la.value_markup = "text"

        update_children(
            self.localized_attributes,
            incoming,
            existing_key=lambda la: (_locale_key(la.locale), bool(la.attribute_default)),
            incoming_key=lambda item: (_locale_key(item[0]), item[1]),
            build=build,
            update=update,
            pool=self.localized_attributes_for(attr),
        )

    def _update_applies_tos(self, applies_to_names: List[dict], catalog: "ReferenceCatalog") -> None:
        """
        Reconcile applies-to rows, keyed by site text and ``tld_extra``.

        New site texts share a single SiteApplication within one call.
        """
        created: Dict[str, SiteApplication] = {}

        def build(atn):
            site_application = catalog.site_application_for(atn["text"]) or created.get(
                atn["text"]
            )
            if site_application is None:
                site_application = SiteApplication(text=atn["text"], domain=atn["domain"])
                created[atn["text"]] = site_application
            return ScriptApplyTo(
                site_application=site_application, tld_extra=atn["tld_extra"]
            )

        update_children(
            self.script_applies_tos,
            applies_to_names,
            existing_key=lambda sat: (sat.text, bool(sat.tld_extra)),
            incoming_key=lambda atn: (atn["text"], bool(atn["tld_extra"])),
            build=build,
        )

    def _update_compatibilities(self, meta: Dict[str, List[str]], catalog: "ReferenceCatalog") -> None:
        """
        Reconcile ``@compatible`` and ``@incompatible`` lines.

        Keyed by browser and direction; unknown browsers are skipped.
        """
        new_compatibility_data = []
        for key in ("compatible", "incompatible"):
            for line in meta.get(key, []):
                browser_match = _BROWSER_LINE.match(line)
                if browser_match is None:
                    continue
                browser = catalog.browser_for_code(browser_match.group(1).lower())
                if browser is None:
                    continue
                comments_split = line.split(None, 1)
                comments = comments_split[1] if len(comments_split) == 2 else None
                new_compatibility_data.append(
                    {"browser": browser, "compatible": key == "compatible", "comments": comments}
                )

        def update(compatibility, data):
            compatibility.comments = data["comments"]

        update_children(
            self.compatibilities,
            new_compatibility_data,
            existing_key=lambda c: (c.browser.code, bool(c.compatible)),
            incoming_key=lambda d: (d["browser"].code, d["compatible"]),
            build=lambda d: Compatibility(**d),
            update=update,
        )
