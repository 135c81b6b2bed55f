"""
Form validation — schema built from field definitions.

Covers default values per field kind, required checks, coercion of
submitted strings, configured validation rules and merging with stored
values.
"""

import pytest

from flowform.core.exceptions import FormValidationError, ValidationError
from flowform.forms.codec import FilePayload
from flowform.forms.validation import build_validator, resolve_defaults


def _field(name, type_="Text Input", **kw):
    return {"name": name, "label": kw.pop("label", name.title()), "type": type_, **kw}


CHOICES = [{"value": "a", "label": "A"}, {"value": "b", "label": "B"}]


# ═════════════════════════════════════════════════════════════════════════════
# Defaults
# ═════════════════════════════════════════════════════════════════════════════

class TestDefaults:
    def test_empty_default_per_kind(self):
        defaults = resolve_defaults([
            _field("title"),
            _field("notes", "Text Area"),
            _field("qty", "Number"),
            _field("when", "Date"),
            _field("tags", "Checkbox Group", options=CHOICES),
            _field("flag", "Boolean/Toggle"),
            _field("doc", "Document Upload"),
        ])
        assert defaults == {
            "title": "",
            "notes": "",
            "qty": None,
            "when": "",
            "tags": [],
            "flag": False,
            "doc": None,
        }

    def test_configured_default_used(self):
        defaults = resolve_defaults([
            _field("size", "Dropdown List", options=CHOICES, default_value="b"),
            _field("qty", "Number", default_value="7"),
            _field("flag", "Boolean/Toggle", default_value=True),
        ])
        assert defaults == {"size": "b", "qty": 7, "flag": True}

    def test_unusable_default_falls_back(self):
        defaults = resolve_defaults([_field("qty", "Number", default_value="many")])
        assert defaults == {"qty": None}

    def test_document_ignores_configured_default(self):
        defaults = resolve_defaults([_field("doc", "Document Upload", default_value="x/y")])
        assert defaults == {"doc": None}

    def test_missing_values_take_defaults(self):
        result = build_validator([
            _field("title", default_value="Untitled"),
            _field("flag", "Boolean/Toggle"),
        ]).validate({})
        assert result.ok
        assert result.values == {"title": "Untitled", "flag": False}


# ═════════════════════════════════════════════════════════════════════════════
# Required
# ═════════════════════════════════════════════════════════════════════════════

class TestRequired:
    def test_required_text_rejects_empty(self):
        result = build_validator([_field("title", is_required=True)]).validate({"title": ""})
        assert not result.ok
        assert result.errors[0].field == "title"
        assert result.errors[0].code == "required"

    def test_required_checkbox_group_needs_one_option(self):
        validator = build_validator([
            _field("tags", "Checkbox Group", options=CHOICES, is_required=True),
        ])
        assert validator.validate({"tags": []}).errors[0].code == "required"
        assert validator.validate({"tags": ["a"]}).ok

    def test_required_boolean_accepts_false(self):
        result = build_validator([
            _field("agree", "Boolean/Toggle", is_required=True),
        ]).validate({"agree": False})
        assert result.ok
        assert result.values["agree"] is False

    def test_required_document_satisfied_by_stored_path(self):
        validator = build_validator([_field("doc", "Document Upload", is_required=True)])
        assert not validator.validate({}).ok
        assert validator.validate({}, existing={"doc": "a/b/doc/x.pdf"}).ok

    def test_required_document_accepts_payload(self):
        validator = build_validator([_field("doc", "Document Upload", is_required=True)])
        result = validator.validate({"doc": FilePayload("x.pdf", b"%PDF")})
        assert result.ok
        assert isinstance(result.values["doc"], FilePayload)

    def test_raise_for_errors(self):
        result = build_validator([_field("title", is_required=True)]).validate({})
        with pytest.raises(FormValidationError) as exc_info:
            result.raise_for_errors()
        assert exc_info.value.errors[0]["field"] == "title"
        assert "title" in exc_info.value.details


# ═════════════════════════════════════════════════════════════════════════════
# Coercion
# ═════════════════════════════════════════════════════════════════════════════

class TestCoercion:
    def test_number_from_string(self):
        validator = build_validator([_field("qty", "Number")])
        assert validator.validate({"qty": "42"}).values["qty"] == 42
        assert validator.validate({"qty": "3.5"}).values["qty"] == 3.5
        assert validator.validate({"qty": ""}).values["qty"] is None

    def test_large_integer_text_keeps_every_digit(self):
        validator = build_validator([_field("qty", "Number")])
        assert validator.validate({"qty": "12345678901234567891"}).values["qty"] == 12345678901234567891
        assert validator.validate({"qty": "1e3"}).values["qty"] == 1000.0

    def test_number_rejects_text_and_booleans(self):
        validator = build_validator([_field("qty", "Number")])
        assert validator.validate({"qty": "abc"}).errors[0].code == "type"
        assert validator.validate({"qty": True}).errors[0].code == "type"

    def test_number_bounds(self):
        validator = build_validator([_field("qty", "Number", validation_rules={"min": 1, "max": 5})])
        assert validator.validate({"qty": 0}).errors[0].code == "min"
        assert validator.validate({"qty": 6}).errors[0].code == "max"
        assert validator.validate({"qty": 5}).ok

    def test_boolean_from_form_strings(self):
        validator = build_validator([_field("flag", "Boolean/Toggle")])
        assert validator.validate({"flag": "on"}).values["flag"] is True
        assert validator.validate({"flag": "false"}).values["flag"] is False
        assert validator.validate({"flag": "maybe"}).errors[0].code == "type"

    def test_checkbox_single_string_becomes_list(self):
        validator = build_validator([_field("tags", "Checkbox Group", options=CHOICES)])
        assert validator.validate({"tags": "a"}).values["tags"] == ["a"]

    def test_text_accepts_numbers(self):
        result = build_validator([_field("code")]).validate({"code": 12})
        assert result.values["code"] == "12"

    def test_unknown_keys_dropped(self):
        result = build_validator([_field("title")]).validate({"title": "x", "extra": 1})
        assert result.values == {"title": "x"}


# ═════════════════════════════════════════════════════════════════════════════
# Rules
# ═════════════════════════════════════════════════════════════════════════════

class TestRules:
    def test_email_rule(self):
        validator = build_validator([_field("mail", validation_rules={"email": True})])
        assert validator.validate({"mail": "not-an-email"}).errors[0].code == "email"
        assert validator.validate({"mail": "ops@example.com"}).ok

    def test_url_rule(self):
        validator = build_validator([_field("site", validation_rules={"url": True})])
        assert validator.validate({"site": "example"}).errors[0].code == "url"
        assert validator.validate({"site": "https://example.com/a"}).ok

    def test_phone_rule(self):
        validator = build_validator([_field("tel", validation_rules={"phoneNumber": True})])
        assert validator.validate({"tel": "call me"}).errors[0].code == "phoneNumber"
        assert validator.validate({"tel": "+1 (555) 010-2030"}).ok

    def test_length_rules(self):
        validator = build_validator([
            _field("code", validation_rules={"minLength": 2, "maxLength": 4}),
        ])
        assert validator.validate({"code": "a"}).errors[0].code == "minLength"
        assert validator.validate({"code": "abcde"}).errors[0].code == "maxLength"
        assert validator.validate({"code": "abc"}).ok

    def test_regex_rule_matches_whole_value(self):
        validator = build_validator([_field("reg", validation_rules={"regex": r"[A-Z]{2}-\d+"})])
        assert validator.validate({"reg": "TC-101"}).ok
        assert validator.validate({"reg": "xTC-101"}).errors[0].code == "regex"

    def test_rules_skip_empty_optional_values(self):
        validator = build_validator([_field("mail", validation_rules={"email": True})])
        assert validator.validate({"mail": ""}).ok

    def test_dropdown_must_be_listed_option(self):
        validator = build_validator([_field("size", "Dropdown List", options=CHOICES)])
        assert validator.validate({"size": "z"}).errors[0].code == "choice"
        assert validator.validate({"size": "a"}).ok

    def test_checkbox_unknown_option(self):
        validator = build_validator([_field("tags", "Checkbox Group", options=CHOICES)])
        assert validator.validate({"tags": ["a", "z"]}).errors[0].code == "choice"

    def test_errors_collected_for_every_field(self):
        result = build_validator([
            _field("title", is_required=True),
            _field("qty", "Number"),
        ]).validate({"qty": "x"})
        assert {e.field for e in result.errors} == {"title", "qty"}


# ═════════════════════════════════════════════════════════════════════════════
# Existing values
# ═════════════════════════════════════════════════════════════════════════════

class TestExisting:
    def test_missing_field_keeps_stored_value(self):
        validator = build_validator([_field("title"), _field("qty", "Number")])
        result = validator.validate({"qty": 3}, existing={"title": "Kept", "qty": 1})
        assert result.values == {"title": "Kept", "qty": 3}

    def test_missing_document_left_out(self):
        validator = build_validator([_field("title"), _field("doc", "Document Upload")])
        result = validator.validate({"title": "x"}, existing={"doc": "p/doc/a.pdf"})
        assert "doc" not in result.values

    def test_accepts_model_like_definitions(self):
        class Definition:
            name = "title"
            label = "Title"
            field_type = "Text Input"
            is_required = True
            validation_rules = {}
            options = []
            default_value = None

        result = build_validator([Definition()]).validate({})
        assert result.errors[0].message == "Title is required"


def test_unknown_field_type_rejected():
    with pytest.raises(ValidationError):
        build_validator([_field("x", "Signature")])
