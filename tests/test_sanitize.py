"""
Tests for input sanitization and the SanitizedModel request base
"""

import pytest
from pydantic import ValidationError

from app.models.schemas import InquiryCreate, OrderUpdate, ProductSpecifications, UserRegister
from app.services.security.sanitize import is_exempt_field, sanitize_html, sanitize_string


class TestSanitizeString:
    @pytest.mark.parametrize("raw,expected", [
        ("  M12 connector  ", "M12 connector"),
        ("<script>alert(1)</script>", "scriptalert(1)/script"),
        ("javascript:alert(1)", "alert(1)"),
        ("JavaScript:alert(1)", "alert(1)"),
        ("img onerror=steal()", "img steal()"),
        ("data:text/html;base64,xyz", "text/html;base64,xyz"),
    ])
    def test_strips_markup(self, raw, expected):
        assert sanitize_string(raw) == expected

    def test_non_strings_pass_through(self):
        assert sanitize_string(42) == 42
        assert sanitize_string(None) is None
        assert sanitize_string(["<b>"]) == ["<b>"]


class TestSanitizeHtml:
    def test_keeps_formatting_tags(self):
        assert sanitize_html("<p>Rated <strong>IP67</strong></p>") == "<p>Rated <strong>IP67</strong></p>"

    def test_removes_scripts(self):
        cleaned = sanitize_html("<p>Hi</p><script>alert(1)</script>")
        assert "<script>" not in cleaned
        assert cleaned.startswith("<p>Hi</p>")

    def test_drops_dangerous_link_protocols(self):
        cleaned = sanitize_html('<a href="javascript:alert(1)">datasheet</a>')
        assert "javascript" not in cleaned
        assert "datasheet" in cleaned

    def test_drops_event_attributes(self):
        cleaned = sanitize_html('<p onclick="steal()">text</p>')
        assert cleaned == "<p>text</p>"


class TestExemptFields:
    @pytest.mark.parametrize("name", ["password", "newPassword", "current_password"])
    def test_password_fields_are_exempt(self, name):
        assert is_exempt_field(name)

    def test_other_fields_are_not(self):
        assert not is_exempt_field("email")


class TestSanitizedModel:
    def test_plain_fields_stripped_rich_fields_cleaned(self):
        inquiry = InquiryCreate(
            name="<b>Sam</b> Rivera",
            email="Sam@Example.com",
            subject="Pricing <script>",
            message="<p>Need <em>500</em> units</p><script>alert(1)</script>",
        )

        assert inquiry.name == "bSam/b Rivera"
        assert inquiry.email == "sam@example.com"
        assert inquiry.subject == "Pricing script"
        assert "<p>Need <em>500</em> units</p>" in inquiry.message
        assert "<script>" not in inquiry.message

    def test_nested_model_accepts_camel_case(self):
        specs = ProductSpecifications.model_validate({
            "material": "<i>brass</i>",
            "voltage": "30V",
            "current": "2A",
            "temperatureRange": "-40 to 85",
        })

        assert specs.material == "ibrass/i"
        assert specs.temperature_range == "-40 to 85"

    def test_passwords_are_untouched(self):
        user = UserRegister(name="Sam Rivera", email="sam@example.com", password="<secret>pass")
        assert user.password == "<secret>pass"

    def test_sanitizing_can_empty_a_required_field(self):
        with pytest.raises(ValidationError):
            InquiryCreate(name="<>", email="sam@example.com", subject="Pricing", message="Long enough message")


class TestUpdateModels:
    def test_version_is_required(self):
        with pytest.raises(ValidationError) as exc_info:
            OrderUpdate(status="quoted")
        assert any(error["loc"] == ("version",) for error in exc_info.value.errors())

    def test_version_alone_is_not_an_update(self):
        with pytest.raises(ValidationError, match="At least one field must be provided for update"):
            OrderUpdate(version=1)

    def test_changes_excludes_version_and_unset_fields(self):
        update = OrderUpdate(version=3, status="quoted")
        assert update.changes() == {"status": "quoted"}
