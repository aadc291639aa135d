"""Lookup rows every installation needs: locales, browsers, licenses."""

from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.browser import Browser
from app.models.license import License
from app.models.locale import Locale

# (code, english name, native name, detection service code)
LOCALES = [
    ("en", "English", "English", "en"),
    ("fr", "French", "Français", "fr"),
    ("de", "German", "Deutsch", "de"),
    ("es", "Spanish", "Español", "es"),
    ("ja", "Japanese", "日本語", "ja"),
    ("ru", "Russian", "Русский", "ru"),
    ("zh-CN", "Chinese (Simplified)", "简体中文", "zh"),
    ("zh-TW", "Chinese (Traditional)", "繁體中文", "zh-Hant"),
    ("pt-BR", "Portuguese (Brazil)", "Português do Brasil", "pt"),
]

BROWSERS = [
    ("chrome", "Chrome"),
    ("firefox", "Firefox"),
    ("safari", "Safari"),
    ("edge", "Edge"),
    ("opera", "Opera"),
]

# (SPDX code, name, url)
LICENSES = [
    ("MIT", "MIT License", "https://opensource.org/licenses/MIT"),
    ("GPL-3.0-or-later", "GNU General Public License v3.0 or later", "https://www.gnu.org/licenses/gpl-3.0.html"),
    ("GPL-2.0-only", "GNU General Public License v2.0 only", "https://www.gnu.org/licenses/old-licenses/gpl-2.0.html"),
    ("Apache-2.0", "Apache License 2.0", "https://www.apache.org/licenses/LICENSE-2.0"),
    ("BSD-3-Clause", "BSD 3-Clause \"New\" or \"Revised\" License", "https://opensource.org/licenses/BSD-3-Clause"),
    ("MPL-2.0", "Mozilla Public License 2.0", "https://www.mozilla.org/MPL/2.0/"),
    ("Unlicense", "The Unlicense", "https://unlicense.org/"),
]


async def seed_reference_data(db: AsyncSession) -> List[str]:
    """Insert any missing reference rows. Returns what was created."""
    created = []

    existing = set((await db.execute(select(Locale.code))).scalars().all())
    for code, english_name, native_name, detect_code in LOCALES:
        if code in existing:
            continue
        db.add(
            Locale(
                code=code,
                english_name=english_name,
                native_name=native_name,
                detect_language_code=detect_code,
            )
        )
        created.append(f"locale {code}")

    existing = set((await db.execute(select(Browser.code))).scalars().all())
    for code, name in BROWSERS:
        if code not in existing:
            db.add(Browser(code=code, name=name))
            created.append(f"browser {code}")

    existing = set((await db.execute(select(License.code))).scalars().all())
    for code, name, url in LICENSES:
        if code not in existing:
            db.add(License(code=code, name=name, url=url))
            created.append(f"license {code}")

    await db.commit()
    return created
