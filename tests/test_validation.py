"""
Tests for the Field/Form Validator and the custom validator registry.
"""

import logging

import pytest

from vocaform.form_data import FormData
from vocaform.model import FieldType, FieldValidation, FormField
from vocaform.validation import (
    LOW_CONFIDENCE_WARNING,
    CustomValidatorRegistry,
    FormValidator,
    regex_validator,
)


@pytest.fixture
def validator():
    return FormValidator()


def make_field(type_=FieldType.TEXT, **rules):
    return FormField(id="f", type=type_, label="Field", validation=FieldValidation(**rules))


def form_data(template, values, confidences=None):
    return FormData(
        template_id=template.id,
        template_version=template.version,
        session_id="s1",
        values=dict(values),
        confidences=dict(confidences or {}),
    )


class TestRequired:
    """Required check short-circuits on empty values."""

    @pytest.mark.parametrize("value", [None, "", []])
    def test_required_empty_gives_single_error(self, validator, value):
        f = make_field(FieldType.EMAIL, required=True, min_length=5, pattern="x")
        assert validator.validate_field(f, value) == ["Field is required"]

    def test_custom_required_message(self, validator):
        f = make_field(required=True, message="Tell us your name")
        assert validator.validate_field(f, "") == ["Tell us your name"]

    def test_optional_empty_is_valid(self, validator):
        f = make_field(FieldType.EMAIL, min_length=5)
        assert validator.validate_field(f, "") == []

    def test_required_override(self, validator):
        f = make_field()
        assert validator.validate_field(f, None, required=True) == ["Field is required"]
        f = make_field(required=True)
        assert validator.validate_field(f, None, required=False) == []

    def test_zero_is_a_value(self, validator):
        f = make_field(FieldType.NUMBER, required=True)
        assert validator.validate_field(f, 0) == []


class TestShapeChecks:
    """Type-specific shape checks."""

    def test_email(self, validator):
        f = make_field(FieldType.EMAIL)
        assert validator.validate_field(f, "jane@example.com") == []
        assert validator.validate_field(f, "jane@example") == ["Please enter a valid email address"]

    def test_phone_ignores_separators(self, validator):
        f = make_field(FieldType.TEL)
        assert validator.validate_field(f, "+254 (712) 345-678") == []
        assert validator.validate_field(f, "phone me") == ["Please enter a valid phone number"]

    def test_number(self, validator):
        f = make_field(FieldType.NUMBER)
        assert validator.validate_field(f, "12.5") == []
        assert validator.validate_field(f, "twelve") == ["Please enter a valid number"]

    def test_date(self, validator):
        f = make_field(FieldType.DATE)
        assert validator.validate_field(f, "2025-01-15") == []
        assert validator.validate_field(f, "2025-13-45") == ["Please enter a valid date"]

    def test_date_rejects_trailing_text(self, validator):
        f = make_field(FieldType.DATE)
        assert validator.validate_field(f, "2024-01-01 not a date at all") == ["Please enter a valid date"]
        assert validator.validate_field(f, "2024-01-01T08:00") == []

    def test_datetime(self, validator):
        f = make_field(FieldType.DATETIME)
        assert validator.validate_field(f, "2025-01-15T10:30") == []
        assert validator.validate_field(f, "tomorrow") == ["Please enter a valid date and time"]

    def test_text_has_no_shape(self, validator):
        assert validator.validate_field(make_field(), "anything at all") == []


class TestBoundsAndPatterns:
    """Length, numeric, pattern and custom checks accumulate."""

    def test_length_bounds(self, validator):
        f = make_field(min_length=3, max_length=5)
        assert validator.validate_field(f, "ab") == ["Minimum length is 3 characters"]
        assert validator.validate_field(f, "abcdef") == ["Maximum length is 5 characters"]
        assert validator.validate_field(f, "abcd") == []

    def test_numeric_bounds(self, validator):
        f = make_field(FieldType.NUMBER, min=18, max=65)
        assert validator.validate_field(f, 16) == ["Minimum value is 18"]
        assert validator.validate_field(f, "70") == ["Maximum value is 65"]
        assert validator.validate_field(f, 21) == []

    def test_numeric_bounds_ignored_for_text(self, validator):
        f = make_field(FieldType.TEXT, min=18)
        assert validator.validate_field(f, "5") == []

    def test_pattern(self, validator):
        f = make_field(pattern=r"^[a-zA-Z\s]+$")
        assert validator.validate_field(f, "Jane Doe") == []
        assert validator.validate_field(f, "Jane 2") == ["Invalid format"]

    def test_pattern_uses_message(self, validator):
        f = make_field(pattern=r"^\d+$", message="Digits only")
        assert validator.validate_field(f, "12a") == ["Digits only"]

    def test_invalid_pattern_is_skipped(self, validator, caplog):
        f = make_field(pattern="([unclosed")
        with caplog.at_level(logging.WARNING, logger="vocaform.validation"):
            assert validator.validate_field(f, "value") == []
        assert "Invalid pattern" in caplog.text

    def test_checks_accumulate(self, validator):
        f = make_field(FieldType.EMAIL, min_length=20, pattern=r"\.org$")
        errors = validator.validate_field(f, "bad@x")
        assert errors == [
            "Please enter a valid email address",
            "Minimum length is 20 characters",
            "Invalid format",
        ]


class TestCustomValidators:
    """Registry and built-in validators."""

    @pytest.mark.parametrize(
        "name,good,bad",
        [
            ("kenyan_id", "12345678", "1234567"),
            ("kenyan_phone", "+254712345678", "+254612345678"),
            ("license_number", "DL123456", "dl123456"),
            ("nhif_number", "123456789012", "1234567"),
            ("nssf_number", "123456789", "12345678"),
        ],
    )
    def test_defaults(self, validator, name, good, bad):
        f = make_field(custom=name)
        assert validator.validate_field(f, good) == []
        assert len(validator.validate_field(f, bad)) == 1

    def test_local_phone_format(self, validator):
        f = make_field(custom="kenyan_phone")
        assert validator.validate_field(f, "0712345678") == []

    def test_unknown_custom_is_noop(self, validator):
        f = make_field(custom="no_such_check")
        assert validator.validate_field(f, "anything") == []

    def test_register_at_runtime(self, validator):
        validator.register_custom_validator(
            "even", lambda value, field: None if int(value) % 2 == 0 else f"{field.label} must be even"
        )
        f = make_field(FieldType.NUMBER, custom="even")
        assert validator.validate_field(f, 4) == []
        assert validator.validate_field(f, 3) == ["Field must be even"]

    def test_registry_operations(self):
        registry = CustomValidatorRegistry.with_defaults()
        assert "kenyan_id" in registry
        assert len(registry) == 5
        assert registry.names() == sorted(registry.names())
        registry.unregister("kenyan_id")
        assert "kenyan_id" not in registry
        assert registry.get("kenyan_id") is None
        registry.unregister("kenyan_id")

    def test_registry_rejects_empty_name(self):
        with pytest.raises(ValueError):
            CustomValidatorRegistry().register("", regex_validator(r"\d", "digit"))

    def test_independent_validators(self):
        """Registering on one validator leaves the other untouched."""
        a = FormValidator()
        b = FormValidator()
        a.register_custom_validator("always", lambda v, f: "nope")
        assert "always" in a.registry
        assert "always" not in b.registry

    def test_regex_validator_full_match(self):
        check = regex_validator(r"\d{3}", "three digits")
        f = make_field()
        assert check("123", f) is None
        assert check("1234", f) == "three digits"
        assert check("", f) is None


class TestValidateForm:
    """Form-level validation."""

    def test_age_below_minimum_then_fixed(self, validator, employment_template):
        data = form_data(employment_template, {"age": 16, "employment_status": "unemployed"})
        result = validator.validate_form(employment_template, data)
        assert not result.is_valid
        assert result.errors_for("age") == ["Minimum value is 18"]

        data.values["age"] = 21
        result = validator.validate_form(employment_template, data)
        assert "age" not in result.errors
        assert result.is_valid

    def test_hidden_fields_are_skipped(self, validator, employment_template):
        data = form_data(employment_template, {"age": 30, "employment_status": "unemployed"})
        result = validator.validate_form(employment_template, data)
        assert result.is_valid
        assert "employer_name" not in result.errors

    def test_required_if_is_enforced(self, validator, employment_template):
        data = form_data(employment_template, {"age": 30, "employment_status": "employed"})
        result = validator.validate_form(employment_template, data)
        assert result.errors == {"employer_name": ["Employer Name is required"]}

    def test_low_confidence_warning(self, validator, employment_template):
        data = form_data(
            employment_template,
            {"age": 30, "employment_status": "unemployed"},
            confidences={"age": 0.5, "employment_status": 0.95},
        )
        result = validator.validate_form(employment_template, data)
        assert result.is_valid
        assert result.warnings == {"age": [LOW_CONFIDENCE_WARNING]}

    def test_low_confidence_on_empty_value_is_silent(self, validator, employment_template):
        data = form_data(employment_template, {"age": ""}, confidences={"age": 0.1})
        result = validator.validate_form(employment_template, data)
        assert "age" not in result.warnings

    def test_threshold_is_configurable(self, employment_template):
        strict = FormValidator(low_confidence_threshold=0.99)
        data = form_data(
            employment_template,
            {"age": 30, "employment_status": "unemployed"},
            confidences={"age": 0.95},
        )
        assert "age" in strict.validate_form(employment_template, data).warnings

    def test_validate_is_idempotent(self, validator, employment_template):
        data = form_data(employment_template, {"age": 12, "employment_status": "employed"})
        first = validator.validate_form(employment_template, data)
        second = validator.validate_form(employment_template, data)
        assert first == second
