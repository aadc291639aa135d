"""Script persistence: version submission, validation and saving."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from sqlalchemy import delete, func, inspect, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.config import get_settings
from app.core.exceptions import ScriptValidationError, ValidationErrors
from app.models.job import DuplicateCheckJob
from app.models.locale import Locale
from app.models.localized_attribute import LocalizedScriptVersionAttribute
from app.models.script import Script, ScriptDeleteType, ScriptSyncSource, ScriptType
from app.models.script_report import ScriptSimilarity
from app.models.script_version import ScriptVersion
from app.models.stats import COUNTER_MODELS, DailyInstallCount
from app.models.user import Author, User
from app.parsers import parser_for
from app.schemas.script import ScriptCreate, ScriptVersionSubmit
from app.services.catalog import ReferenceCatalog, load_catalog
from app.services.job_queue import JobQueue
from app.services.locale_detection import LocaleDetectionError, LocaleDetector

settings = get_settings()
logger = logging.getLogger(__name__)

RATE_LIMITS = {
    timedelta(hours=1): 5,
    timedelta(days=1): 10,
}
RATE_LIMIT_MESSAGE = "You have posted too many scripts recently. Please try again later."
NAME_TAKEN = "has already been taken"

SCRIPT_LOAD_OPTIONS = (
    selectinload(Script.authors),
    selectinload(Script.script_versions),
    selectinload(Script.localized_attributes),
    selectinload(Script.script_applies_tos),
    selectinload(Script.compatibilities),
    selectinload(Script.script_reports),
    selectinload(Script.script_invitations),
    selectinload(Script.script_similarities),
)


class ScriptService:
    """Service for submitting, validating and persisting scripts."""

    def __init__(
        self,
        db: AsyncSession,
        detector: Optional[LocaleDetector] = None,
        job_queue: Optional[JobQueue] = None,
    ):
        self.db = db
        self.detector = detector or LocaleDetector()
        self.job_queue = job_queue or JobQueue(db)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def get_script(self, script_id: int, reload: bool = False) -> Optional[Script]:
        """
        Load a script with every collection the model layer reads.

        With ``reload`` set, an instance already in the session is refreshed
        from the database instead of being returned as is.
        """
        query = select(Script).where(Script.id == script_id).options(*SCRIPT_LOAD_OPTIONS)
        if reload:
            query = query.execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list_scripts(
        self, subset: str = "greasyfork", skip: int = 0, limit: int = 50
    ) -> List[Script]:
        result = await self.db.execute(
            Script.listable(subset)
            .options(*SCRIPT_LOAD_OPTIONS)
            .order_by(Script.id.asc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def create_script(self, user: User, data: ScriptCreate) -> Script:
        """Build a new script from submitted code and save it."""
        script = Script(
            language=data.language,
            script_type=data.script_type,
            sync_identifier=data.sync_identifier,
            script_sync_source=ScriptSyncSource.URL if data.sync_identifier else None,
        )
        script.authors.append(Author(user=user))
        return await self.submit_version(script, data)

    async def submit_version(self, script: Script, data: ScriptVersionSubmit) -> Script:
        """Apply newly submitted code to ``script`` and save both."""
        script.adult_content_self_report = data.adult_content_self_report
        catalog = await self.apply_version(script, await self.build_version(script, data))
        return await self.save(script, catalog)

    async def build_version(self, script: Script, data: ScriptVersionSubmit) -> ScriptVersion:
        meta = parser_for(script.language).parse_meta(data.code)
        script_version = ScriptVersion(
            code=data.code,
            rewritten_code=data.code,
            version=(meta.get("version") or [None])[0],
            changelog=data.changelog,
            not_js_convertible_override=data.not_js_convertible_override,
        )
        script_version.truncate_description = data.truncate_description

        if data.additional_info:
            script_version.localized_attributes.append(
                LocalizedScriptVersionAttribute(
                    attribute_key="additional_info",
                    attribute_value=data.additional_info,
                    value_markup=data.additional_info_markup,
                    attribute_default=True,
                    locale=script.locale,
                )
            )
        if data.localized_additional_info:
            codes = [la.locale for la in data.localized_additional_info]
            locales = await self._locales_by_code(codes)
            for la in data.localized_additional_info:
                locale = locales.get(la.locale)
                if locale is None:
                    logger.error(f"Unknown locale code - {la.locale}")
                    continue
                script_version.localized_attributes.append(
                    LocalizedScriptVersionAttribute(
                        attribute_key="additional_info",
                        attribute_value=la.value,
                        value_markup=la.markup,
                        attribute_default=False,
                        locale=locale,
                    )
                )

        script.script_versions.append(script_version)
        return script_version

    async def apply_version(
        self, script: Script, script_version: ScriptVersion
    ) -> ReferenceCatalog:
        """Load the reference data a version needs and apply it to the script."""
        applies_to_names = parser_for(script.language).calculate_applies_to_names(
            script_version.effective_code
        )
        catalog = await load_catalog(self.db, [atn["text"] for atn in applies_to_names])
        script.apply_from_script_version(script_version, catalog)
        return catalog

    async def soft_delete(
        self, script: Script, delete_type: ScriptDeleteType, reason: Optional[str] = None
    ) -> Script:
        script.script_delete_type = delete_type
        script.delete_reason = reason
        return await self.save(script)

    async def restore(self, script: Script) -> Script:
        script.script_delete_type = None
        script.delete_reason = None
        return await self.save(script)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    async def run_before_validation(self, script: Script, catalog: ReferenceCatalog) -> None:
        """Normalization steps that must happen before validation proper."""
        script.set_default_name()
        await self.set_locale(script, catalog)
        script.update_localized_attribute_locales()
        script.set_sensitive_flag(catalog.sensitive_domains)

    async def set_locale(self, script: Script, catalog: ReferenceCatalog) -> None:
        if script.locale is not None:
            return
        # Avoid calling the detection API for something that will be invalid anyway
        if not script.description():
            return
        locale = await self.detect_locale(script, catalog)
        if locale is None:
            return
        script.assign_locale(locale)
        for script_version in script.script_versions:
            for la in script_version.localized_attributes:
                if la.locale is None:
                    la.locale = locale

    async def detect_locale(self, script: Script, catalog: ReferenceCatalog) -> Optional[Locale]:
        text = script.full_text()
        if text is None:
            return None

        label = f"script {script.id}" if script.id else "a new script"
        try:
            code = await self.detector.detect(text, label)
        except LocaleDetectionError as e:
            logger.error(f"Could not detect language - {e}")
            code = None

        if code is not None:
            locale = catalog.locale_for_detect_language_code(code)
            if locale is not None:
                return locale
            logger.error(f"detect_language gave unrecognized code {code}")

        # assume english
        return catalog.english()

    async def validate(self, script: Script, on_create: bool = False) -> ValidationErrors:
        errors = script.validate()
        if script.library:
            await self._validate_library_name(script, errors)
        if on_create and settings.ENFORCE_SCRIPT_RATE_LIMITS:
            await self._validate_rate_limit(script, errors)
        return errors

    async def _validate_library_name(self, script: Script, errors: ValidationErrors) -> None:
        name = script.name()
        if not name:
            return
        query = select(func.count(Script.id)).where(
            Script.script_type == ScriptType.LIBRARY,
            Script.default_name == name,
        )
        if script.id is not None:
            query = query.where(Script.id != script.id)
        if await self.db.scalar(query):
            errors.add("name", NAME_TAKEN)

    async def _validate_rate_limit(self, script: Script, errors: ValidationErrors) -> None:
        user_ids = [a.user_id or a.user.id for a in script.authors]
        if not user_ids:
            return
        now = datetime.now(timezone.utc)
        for period, limit in RATE_LIMITS.items():
            recent = await self.db.scalar(
                select(func.count(Author.id))
                .join(Script, Script.id == Author.script_id)
                .where(Author.user_id.in_(user_ids), Script.created_at > now - period)
            )
            if recent >= limit:
                errors.add(ValidationErrors.BASE, RATE_LIMIT_MESSAGE)
                return

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def save(self, script: Script, catalog: Optional[ReferenceCatalog] = None) -> Script:
        """
        Normalize, validate and persist a script.

        Raises ScriptValidationError without touching the database when
        validation fails. Persistence errors propagate.
        """
        on_create = script.is_new_record
        if catalog is None:
            catalog = await load_catalog(self.db)

        await self.run_before_validation(script, catalog)
        errors = await self.validate(script, on_create=on_create)
        if errors:
            logger.info(f"Script {script.id or '(new)'} failed validation: {errors.as_dict()}")
            raise ScriptValidationError(errors)

        script.apply_deletion_timestamp()
        code_changed = inspect(script).attrs.code_updated_at.history.has_changes()

        if on_create:
            self.db.add(script)
        await self.db.flush()

        if code_changed:
            self.job_queue.enqueue_duplicate_check(script.id)

        await self.db.commit()
        logger.info(f"Saved script {script.id}")
        # Async sessions cannot lazy-load, so hand back a fully loaded graph
        return await self.get_script(script.id, reload=True)

    async def destroy(self, script: Script) -> None:
        """Delete a script along with its counters and similarity rows."""
        for model in COUNTER_MODELS:
            await self.db.execute(delete(model).where(model.script_id == script.id))
        # Rows owned by this script go with the script_similarities cascade
        await self.db.execute(
            delete(ScriptSimilarity).where(ScriptSimilarity.other_script_id == script.id)
        )
        await self.db.execute(
            delete(DuplicateCheckJob).where(DuplicateCheckJob.script_id == script.id)
        )
        await self.db.delete(script)
        await self.db.commit()
        logger.info(f"Destroyed script {script.id}")

    async def record_install(self, script_id: int, ip: str) -> bool:
        """Count an install once per IP per day. Returns False for repeats."""
        existing = await self.db.scalar(
            select(DailyInstallCount.id).where(
                DailyInstallCount.script_id == script_id,
                DailyInstallCount.ip == ip,
            )
        )
        if existing is not None:
            return False
        self.db.add(DailyInstallCount(script_id=script_id, ip=ip))
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent install from the same IP
            await self.db.rollback()
            return False
        return True

    async def _locales_by_code(self, codes: List[str]) -> Dict[str, Locale]:
        result = await self.db.execute(select(Locale).where(Locale.code.in_(codes)))
        return {locale.code: locale for locale in result.scalars().all()}
