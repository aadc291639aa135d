"""Reference data needed to apply a script version to a script."""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.browser import Browser
from app.models.license import License
from app.models.locale import ENGLISH_CODE, Locale
from app.models.site_application import SensitiveSite, SiteApplication


@dataclass
class ReferenceCatalog:
    """
    In-memory lookup tables for locales, browsers, licenses and sites.

    Loading them up front keeps ``Script.apply_from_script_version``
    synchronous; the tables involved are small.
    """

    locales: Dict[str, Locale] = field(default_factory=dict)
    browsers: Dict[str, Browser] = field(default_factory=dict)
    licenses: List[License] = field(default_factory=list)
    site_applications: Dict[str, SiteApplication] = field(default_factory=dict)
    sensitive_domains: Set[str] = field(default_factory=set)

    @classmethod
    def build(
        cls,
        locales: Iterable[Locale] = (),
        browsers: Iterable[Browser] = (),
        licenses: Iterable[License] = (),
        site_applications: Iterable[SiteApplication] = (),
        sensitive_domains: Iterable[str] = (),
    ) -> "ReferenceCatalog":
        return cls(
            locales={l.code: l for l in locales},
            browsers={b.code: b for b in browsers},
            licenses=list(licenses),
            site_applications={s.text: s for s in site_applications},
            sensitive_domains=set(sensitive_domains),
        )

    def locale_for_code(self, code: str) -> Optional[Locale]:
        return self.locales.get(code)

    def locale_for_detect_language_code(self, code: str) -> Optional[Locale]:
        for locale in self.locales.values():
            if locale.detect_language_code == code:
                return locale
        return None

    def english(self) -> Optional[Locale]:
        return self.locales.get(ENGLISH_CODE)

    def browser_for_code(self, code: str) -> Optional[Browser]:
        return self.browsers.get(code)

    def license_for(self, text: str) -> Optional[License]:
        for license_entry in self.licenses:
            if license_entry.matches(text):
                return license_entry
        return None

    def site_application_for(self, text: str) -> Optional[SiteApplication]:
        return self.site_applications.get(text)


async def load_catalog(
    db: AsyncSession, site_texts: Iterable[str] = ()
) -> ReferenceCatalog:
    """Load reference data, restricting site applications to ``site_texts``."""
    site_texts = list(site_texts)

    locales = (await db.execute(select(Locale))).scalars().all()
    browsers = (await db.execute(select(Browser))).scalars().all()
    licenses = (await db.execute(select(License))).scalars().all()
    sites: List[SiteApplication] = []
    if site_texts:
        sites = list(
            (
                await db.execute(
                    select(SiteApplication).where(SiteApplication.text.in_(site_texts))
                )
            ).scalars().all()
        )
    sensitive = (await db.execute(select(SensitiveSite.domain))).scalars().all()

    return ReferenceCatalog.build(
        locales=locales,
        browsers=browsers,
        licenses=licenses,
        site_applications=sites,
        sensitive_domains=sensitive,
    )
