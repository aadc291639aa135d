"""Tests for Script validation."""

from datetime import datetime, timezone

import pytest

from helpers import userscript

from app.core.exceptions import ValidationErrors
from app.models.localized_attribute import LocalizedScriptAttribute
from app.models.script import (
    BAD_SYNC_PROTOCOL,
    BLANK,
    INVALID,
    MISSING_DESCRIPTION,
    MISSING_NAME,
    NAME_SAME_AS_DESCRIPTION,
    Script,
    ScriptDeleteType,
    ScriptSyncSource,
    ScriptType,
)
from app.models.script_version import ScriptVersion

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def build_script(catalog, *meta_lines, locale=None, **kwargs) -> Script:
    """Apply code to a new script and run the default name hook."""
    script = Script(locale=locale, **kwargs)
    code = userscript(*meta_lines)
    script.apply_from_script_version(
        ScriptVersion(code=code, rewritten_code=code), catalog, now=NOW
    )
    script.set_default_name()
    return script


@pytest.fixture
def valid_script(catalog, english) -> Script:
    return build_script(catalog, "@name My Script", "@description Does things", locale=english)


class TestValidationErrors:
    """Test the error collection."""

    def test_empty(self):
        errors = ValidationErrors()

        assert not errors
        assert len(errors) == 0
        assert errors["name"] == []
        assert "name" not in errors

    def test_messages(self):
        errors = ValidationErrors()
        errors.add("name", "can't be blank")
        errors.add(ValidationErrors.BASE, "Something is wrong")

        assert errors
        assert len(errors) == 2
        assert errors.as_dict() == {"name": ["can't be blank"], "base": ["Something is wrong"]}
        assert errors.full_messages() == ["name can't be blank", "Something is wrong"]


class TestNameAndDescription:
    """Test presence and pairing of names and descriptions."""

    def test_valid_script(self, valid_script):
        assert valid_script.validate().as_dict() == {}
        assert valid_script.is_valid()

    def test_missing_name(self, catalog, english):
        script = build_script(catalog, "@description Does things", locale=english)

        errors = script.validate()

        assert errors["default_name"] == [MISSING_NAME]

    def test_missing_description(self, catalog, english):
        script = build_script(catalog, "@name My Script", locale=english)

        errors = script.validate()

        assert errors["description"] == [MISSING_DESCRIPTION]
        assert errors["@description:en"] == [BLANK]

    def test_deleted_script_needs_no_description(self, catalog, english):
        script = build_script(
            catalog,
            "@name My Script",
            locale=english,
            script_delete_type=ScriptDeleteType.KEEP,
        )

        assert "description" not in script.validate()

    def test_name_same_as_description(self, catalog, english):
        script = build_script(catalog, "@name Same", "@description Same", locale=english)

        errors = script.validate()

        assert errors["@description:en"] == [NAME_SAME_AS_DESCRIPTION]

    def test_localized_name_needs_localized_description(self, catalog, english):
        script = build_script(
            catalog,
            "@name My Script",
            "@description Does things",
            "@name:fr Mon Script",
            locale=english,
        )

        errors = script.validate()

        assert errors["@description:fr"] == [BLANK]

    def test_library_messages(self, catalog, english):
        library = build_script(
            catalog, "@version 1", locale=english, script_type=ScriptType.LIBRARY
        )

        errors = library.validate()

        assert errors["name"] == [BLANK]
        assert errors["description"] == [BLANK]
        assert "default_name" not in errors

    def test_library_same_description(self, catalog, english):
        library = build_script(
            catalog,
            "@name Same",
            "@description Same",
            locale=english,
            script_type=ScriptType.LIBRARY,
        )

        assert library.validate()["description"] == [NAME_SAME_AS_DESCRIPTION]


class TestLengths:
    """Test maximum attribute lengths."""

    def test_long_name_keyed_by_meta(self, catalog, english):
        script = build_script(catalog, f"@name {'n' * 101}", "@description Fine", locale=english)

        assert script.validate()["@name"] == ["is too long (maximum is 100 characters)"]

    def test_long_localized_description(self, catalog, english):
        script = build_script(
            catalog,
            "@name My Script",
            "@description Fine",
            "@name:fr Mon Script",
            f"@description:fr {'d' * 501}",
            locale=english,
        )

        assert script.validate()["@description:fr"] == [
            "is too long (maximum is 500 characters)"
        ]

    def test_long_library_name(self, catalog, english):
        library = build_script(
            catalog,
            f"@name {'n' * 101}",
            "@description Fine",
            locale=english,
            script_type=ScriptType.LIBRARY,
        )

        assert library.validate()["name"] == ["is too long (maximum is 100 characters)"]

    def test_long_additional_info(self, valid_script, english):
        valid_script.localized_attributes.append(
            LocalizedScriptAttribute(
                attribute_key="additional_info",
                attribute_value="a" * 50_001,
                attribute_default=True,
                locale=english,
            )
        )

        assert valid_script.validate()["additional_info"] == [
            "is too long (maximum is 50000 characters)"
        ]


class TestOtherChecks:
    """Test the remaining column checks."""

    def test_locale_required(self, catalog):
        script = build_script(catalog, "@name My Script", "@description Does things")

        errors = script.validate()

        assert errors["locale"] == ["must exist"]
        assert "Name - Locale can't be blank" in errors[ValidationErrors.BASE]
        assert "Description - Locale can't be blank" in errors[ValidationErrors.BASE]

    def test_blank_child_value(self, valid_script, english):
        valid_script.localized_attributes.append(
            LocalizedScriptAttribute(
                attribute_key="additional_info",
                attribute_value="  ",
                attribute_default=True,
                locale=english,
            )
        )

        assert valid_script.validate()[ValidationErrors.BASE] == [
            "Additional info - Attribute value can't be blank"
        ]

    def test_bad_child_markup(self, valid_script, english):
        valid_script.localized_attributes.append(
            LocalizedScriptAttribute(
                attribute_key="additional_info",
                attribute_value="Info",
                attribute_default=True,
                value_markup="bbcode",
                locale=english,
            )
        )

        assert valid_script.validate()[ValidationErrors.BASE] == [
            "Additional info - Value markup is not included in the list"
        ]

    @pytest.mark.parametrize(
        "language,message",
        [(None, BLANK), ("", BLANK), ("py", "is not included in the list")],
    )
    def test_language(self, valid_script, language, message):
        valid_script.language = language

        assert valid_script.validate()["language"] == [message]

    def test_code_updated_at_required(self, valid_script):
        valid_script.code_updated_at = None

        assert valid_script.validate()["code_updated_at"] == [BLANK]

    def test_script_type_required(self, valid_script):
        valid_script.script_type = None

        assert valid_script.validate()["script_type"] == [BLANK]

    def test_private_use_characters(self, catalog, english):
        script = build_script(
            catalog, "@name Bad \ue000 name", "@description Does things", locale=english
        )

        assert script.validate()["name"] == [INVALID]

    def test_private_use_supplementary_plane(self, catalog, english):
        script = build_script(
            catalog, "@name My Script", "@description Bad \U000f0001 text", locale=english
        )

        assert script.validate()["description"] == [INVALID]


class TestSyncIdentifier:
    """Test sync identifier normalization and checks."""

    def test_blank_becomes_none(self, valid_script):
        valid_script.sync_identifier = "   "

        assert valid_script.sync_identifier is None

    def test_whitespace_stripped(self, valid_script):
        valid_script.sync_identifier = "  https://example.com/script.user.js \n"

        assert valid_script.sync_identifier == "https://example.com/script.user.js"

    def test_url_sync_needs_http(self, valid_script):
        valid_script.script_sync_source = ScriptSyncSource.URL
        valid_script.sync_identifier = "ftp://example.com/script.user.js"

        assert valid_script.validate()["sync_identifier"] == [BAD_SYNC_PROTOCOL]

    def test_url_sync_valid(self, valid_script):
        valid_script.script_sync_source = ScriptSyncSource.URL
        valid_script.sync_identifier = "https://example.com/script.user.js"

        assert valid_script.is_valid()

    def test_webhook_sync_any_identifier(self, valid_script):
        valid_script.script_sync_source = ScriptSyncSource.WEBHOOK
        valid_script.sync_identifier = "github.com/me/repo"

        assert valid_script.is_valid()

    def test_too_long(self, valid_script):
        valid_script.script_sync_source = ScriptSyncSource.URL
        valid_script.sync_identifier = "https://example.com/" + "a" * 500

        assert valid_script.validate()["sync_identifier"] == [
            "is too long (maximum is 500 characters)"
        ]
