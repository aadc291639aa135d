"""Tests for Script predicates, URLs, serialization and normalization hooks."""

from datetime import date, datetime, timezone

import pytest

from helpers import userscript

from app.config import get_settings
from app.models.localized_attribute import LocalizedScriptAttribute
from app.models.script import Script, ScriptDeleteType, ScriptType
from app.models.script_version import ScriptVersion

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
SITE_URL = get_settings().SITE_URL


def build_script(catalog, *meta_lines, **kwargs) -> Script:
    script = Script(**kwargs)
    code = userscript(*meta_lines)
    script.apply_from_script_version(
        ScriptVersion(code=code, rewritten_code=code), catalog, now=NOW
    )
    script.set_default_name()
    return script


@pytest.fixture
def script(catalog, english) -> Script:
    return build_script(
        catalog,
        "@name My Script",
        "@description Does things",
        "@license MIT",
        id=42,
        locale=english,
    )


class TestSlugs:
    """Test slug and URL helpers."""

    @pytest.mark.parametrize(
        "name,slug",
        [
            ("My Cool Script!", "my-cool-script"),
            ("Hello -- World", "hello-world"),
            ("__init__", "init"),
            ("Fucking Great Tool", "great-tool"),
            ("!!!", "script"),
            ("", "script"),
        ],
    )
    def test_slugify(self, name, slug):
        assert Script.slugify(name) == slug

    def test_to_param(self, script):
        assert script.to_param() == "42-my-script"
        assert script.url == f"{SITE_URL}/scripts/42-my-script"

    def test_url_name_strips_url_characters(self, catalog, english):
        script = build_script(
            catalog, "@name What? Is/This #1.", "@description Something", locale=english
        )

        assert script.url_name == "What IsThis 1"

    def test_code_url(self, script):
        assert script.code_url == f"{SITE_URL}/scripts/42-my-script/code/My Script.user.js"

    def test_css_code_url(self, script):
        script.language = "css"

        assert script.code_url == f"{SITE_URL}/scripts/42-my-script/code/My Script.user.css"

    def test_library_code_url(self, script):
        script.script_type = ScriptType.LIBRARY
        script.script_versions.append(ScriptVersion(id=7, code="x"))
        script.script_versions.append(ScriptVersion(code="unsaved"))

        assert script.code_url == f"{SITE_URL}/scripts/42/7/My Script.js"

    def test_unsaved_library_has_no_code_url(self, script):
        script.script_type = ScriptType.LIBRARY
        script.script_versions.append(ScriptVersion(code="unsaved"))

        assert script.code_url is None
        assert script.serializable_hash()["code_url"] is None


class TestSerialization:
    """Test the public representation."""

    def test_serializable_hash(self, script):
        data = script.serializable_hash()

        assert data["id"] == 42
        assert data["name"] == "My Script"
        assert data["description"] == "Does things"
        assert data["license"] == "MIT License"
        assert data["locale"] == "en"
        assert data["deleted"] is False
        assert data["total_installs"] == 0
        assert data["url"] == script.url
        assert data["code_url"] == script.code_url

    def test_free_text_license(self, catalog, english):
        script = build_script(
            catalog,
            "@name My Script",
            "@description Does things",
            "@license Do what you want",
            id=1,
            locale=english,
        )

        assert script.serializable_hash()["license"] == "Do what you want"

    def test_only(self, script):
        data = script.serializable_hash(only=["id"])

        assert "daily_installs" not in data
        assert data["id"] == 42

    def test_full_text(self, script, english):
        script.localized_attributes.append(
            LocalizedScriptAttribute(
                attribute_key="additional_info",
                attribute_value="<p>Hello &amp; bye</p>",
                value_markup="html",
                attribute_default=True,
                locale=english,
            )
        )

        assert script.full_text() == "My Script\nMy Script\nDoes things\nHello & bye"

    def test_full_text_renders_markdown(self, script, english):
        script.localized_attributes.append(
            LocalizedScriptAttribute(
                attribute_key="additional_info",
                attribute_value="**Bonjour** tout le [monde](https://example.com)\n\n# Titre",
                value_markup="markdown",
                attribute_default=True,
                locale=english,
            )
        )

        assert script.full_text() == "My Script\nMy Script\nDoes things\nBonjour tout le monde\nTitre"

    def test_full_text_keeps_literal_angle_brackets(self, script, english):
        script.localized_attributes.append(
            LocalizedScriptAttribute(
                attribute_key="additional_info",
                attribute_value="<p>if a < b and c > d then ok</p>",
                value_markup="html",
                attribute_default=True,
                locale=english,
            )
        )

        assert script.full_text().endswith("\nif a < b and c > d then ok")

    def test_full_text_empty(self):
        assert Script().full_text() is None


class TestPredicates:
    """Test state predicates and query builders."""

    def test_defaults(self):
        script = Script()

        assert script.is_new_record
        assert script.public
        assert script.js
        assert script.listable_script
        assert script.can_be_added_to_set
        assert not script.sensitive
        assert not script.deleted

    def test_deleted(self, script):
        script.script_delete_type = ScriptDeleteType.BLANKED

        assert script.deleted
        assert script.deleted_and_blanked
        assert not script.active_script
        assert not script.listable_script

    def test_library(self, script):
        script.script_type = ScriptType.LIBRARY

        assert script.library
        assert not script.listable_script
        assert not script.can_be_added_to_set

    def test_active_rejects_unknown_subset(self):
        with pytest.raises(ValueError, match="Invalid argument"):
            Script.active("everything")

    def test_listable_query(self):
        sql = str(Script.listable("sleazyfork"))

        assert "scripts.script_delete_type IS NULL" in sql
        assert "scripts.sensitive IS 1" in sql or "scripts.sensitive IS true" in sql

    @pytest.mark.parametrize(
        "installs,created,allowed",
        [
            (50, date(2024, 4, 30), True),
            (1000, date(2024, 4, 21), False),
            (1000, date(2023, 5, 1), True),
        ],
    )
    def test_immediate_deletion_allowed(self, script, installs, created, allowed):
        script.total_installs = installs
        script.created_at = datetime.combine(created, datetime.min.time(), timezone.utc)

        assert script.immediate_deletion_allowed(today=date(2024, 5, 1)) is allowed


class TestNormalizationHooks:
    """Test the hooks that run before validation."""

    def test_set_default_name(self, script):
        assert script.default_name == "My Script"

    def test_assign_locale(self, catalog, french):
        script = build_script(catalog, "@name Nom", "@description Des choses")

        script.assign_locale(french)

        assert script.locale is french
        assert all(la.locale is french for la in script.localized_attributes)

    def test_locale_change_moves_default_attributes(self, catalog, english, french):
        script = build_script(
            catalog,
            "@name My Script",
            "@description Does things",
            "@name:fr Mon Script",
            "@description:fr Fait des choses",
            locale=english,
        )
        script.locale = french

        script.update_localized_attribute_locales()

        assert script.locale_changed()
        assert all(la.locale is french for la in script.localized_attributes)

    def test_no_locale_change(self):
        assert not Script().locale_changed()

    def test_sensitive_from_site(self, catalog, english):
        script = build_script(
            catalog,
            "@name My Script",
            "@description Does things",
            "@include https://www.adult.example/*",
            locale=english,
        )

        script.set_sensitive_flag(catalog.sensitive_domains)

        assert script.matching_sensitive_domains(catalog.sensitive_domains) == ["adult.example"]
        assert script.sensitive is True

    def test_sensitive_from_self_report(self, script, catalog):
        script.adult_content_self_report = True

        script.set_sensitive_flag(catalog.sensitive_domains)

        assert script.sensitive is True

    def test_sensitive_stays_set(self, script, catalog):
        script.sensitive = True

        script.set_sensitive_flag(catalog.sensitive_domains)

        assert script.sensitive is True

    def test_not_sensitive(self, script, catalog):
        script.set_sensitive_flag(catalog.sensitive_domains)

        assert script.sensitive is False

    def test_deletion_timestamp(self, script):
        script.script_delete_type = ScriptDeleteType.KEEP
        script.apply_deletion_timestamp(now=NOW)

        assert script.deleted_at == NOW

        # Deleting again keeps the original time
        script.apply_deletion_timestamp(now=datetime(2025, 1, 1, tzinfo=timezone.utc))
        assert script.deleted_at == NOW

        script.script_delete_type = None
        script.apply_deletion_timestamp()
        assert script.deleted_at is None


class TestVersions:
    """Test lookups of the newest saved version."""

    def test_no_saved_versions(self, script):
        script.script_versions.append(ScriptVersion(code="unsaved"))

        assert script.newest_saved_script_version is None
        assert script.current_code is None
        assert script.meta() == {}

    def test_newest_saved_version(self, script):
        code = userscript("@name My Script", "@version 2.0")
        script.script_versions.append(ScriptVersion(id=1, code="old"))
        script.script_versions.append(ScriptVersion(id=2, code=code))

        assert script.current_code == code
        assert script.meta()["version"] == ["2.0"]
