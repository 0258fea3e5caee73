"""
Field and Form Validator.

Validation errors are returned as data, never raised.

Field-level order:
    1. required check (short-circuits on an empty value)
    2. type-specific shape check
    3. length bounds
    4. numeric bounds (numeric field types only)
    5. regex pattern
    6. named custom validator
Checks 2-6 accumulate; they are not short-circuited.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

from .conditions import is_empty, to_number
from .evaluator import ConditionalLogicEngine
from .form_data import FormData, ValidationResult
from .model import FieldType, FormField, FormTemplate

logger = logging.getLogger(__name__)

DEFAULT_LOW_CONFIDENCE_THRESHOLD = 0.7
LOW_CONFIDENCE_WARNING = "Low confidence transcription - please verify"

CustomValidator = Callable[[Any, FormField], Optional[str]]

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_RE = re.compile(r"^\+?[1-9]\d{0,15}$")
_PHONE_STRIP_RE = re.compile(r"[\s\-()]")


def _is_valid_email(value: Any) -> bool:
    return isinstance(value, str) and bool(_EMAIL_RE.match(value))


def _is_valid_phone(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    return bool(_PHONE_RE.match(_PHONE_STRIP_RE.sub("", value)))


def _is_valid_number(value: Any) -> bool:
    return to_number(value) is not None


def _is_valid_date(value: Any) -> bool:
    if isinstance(value, date):
        return True
    if not isinstance(value, str):
        return False
    text = value.strip()
    try:
        date.fromisoformat(text)
    except ValueError:
        return _is_valid_datetime(text)
    return True


def _is_valid_datetime(value: Any) -> bool:
    if isinstance(value, datetime):
        return True
    if not isinstance(value, str):
        return False
    try:
        datetime.fromisoformat(value.strip())
    except ValueError:
        return False
    return True


# Shape check per field type. Types without an entry accept any shape.
_SHAPE_CHECKS: Dict[FieldType, tuple] = {
    FieldType.EMAIL: (_is_valid_email, "Please enter a valid email address"),
    FieldType.TEL: (_is_valid_phone, "Please enter a valid phone number"),
    FieldType.NUMBER: (_is_valid_number, "Please enter a valid number"),
    FieldType.DATE: (_is_valid_date, "Please enter a valid date"),
    FieldType.DATETIME: (_is_valid_datetime, "Please enter a valid date and time"),
}


def regex_validator(pattern: str, message: str) -> CustomValidator:
    """Build a custom validator that full-matches a fixed regex."""
    compiled = re.compile(pattern)

    def _validate(value: Any, field: FormField) -> Optional[str]:
        if is_empty(value):
            return None
        return None if compiled.fullmatch(str(value)) else message

    return _validate


class CustomValidatorRegistry:
    """
    Name -> validator mapping.

    A validator receives (value, field) and returns an error message or None.
    """

    def __init__(self, validators: Optional[Dict[str, CustomValidator]] = None):
        self._validators: Dict[str, CustomValidator] = dict(validators or {})

    @classmethod
    def with_defaults(cls) -> "CustomValidatorRegistry":
        """Registry pre-seeded with the national document number formats."""
        registry = cls()
        registry.register(
            "kenyan_id", regex_validator(r"\d{8}", "Please enter a valid 8-digit Kenyan ID number")
        )
        registry.register(
            "kenyan_phone",
            regex_validator(r"(\+254|0)[17]\d{8}", "Please enter a valid Kenyan phone number"),
        )
        registry.register(
            "license_number",
            regex_validator(
                r"[A-Z]{2}\d{6,8}", "Please enter a valid license number (e.g., DL123456)"
            ),
        )
        registry.register(
            "nhif_number", regex_validator(r"\d{8,12}", "Please enter a valid NHIF number")
        )
        registry.register(
            "nssf_number", regex_validator(r"\d{9}", "Please enter a valid 9-digit NSSF number")
        )
        return registry

    def register(self, name: str, validator: CustomValidator) -> None:
        if not name:
            raise ValueError("Custom validator name must be non-empty")
        self._validators[name] = validator

    def unregister(self, name: str) -> None:
        self._validators.pop(name, None)

    def get(self, name: str) -> Optional[CustomValidator]:
        return self._validators.get(name)

    def names(self) -> List[str]:
        return sorted(self._validators)

    def __contains__(self, name: object) -> bool:
        return name in self._validators

    def __len__(self) -> int:
        return len(self._validators)


class FormValidator:
    """
    Stateless validator service.

    Holds only configuration: the custom validator registry, the
    evaluator used to skip hidden fields and the low-confidence threshold.
    Several independently configured validators may coexist.
    """

    def __init__(
        self,
        registry: Optional[CustomValidatorRegistry] = None,
        evaluator: Optional[ConditionalLogicEngine] = None,
        low_confidence_threshold: float = DEFAULT_LOW_CONFIDENCE_THRESHOLD,
    ):
        self.registry = registry if registry is not None else CustomValidatorRegistry.with_defaults()
        self.evaluator = evaluator or ConditionalLogicEngine()
        self.low_confidence_threshold = low_confidence_threshold

    def register_custom_validator(self, name: str, validator: CustomValidator) -> None:
        self.registry.register(name, validator)

    def validate_field(self, field: FormField, value: Any, required: Optional[bool] = None) -> List[str]:
        """
        Validate one value against a field's rules.

        Args:
            field: Field definition
            value: Current value
            required: Override for the field's own required flag
                (form validation passes the evaluator's verdict so that
                required_if gates are honoured)

        Returns:
            List of error messages, empty when valid
        """
        rules = field.validation
        is_required = rules.required if required is None else required

        if is_empty(value):
            if is_required:
                return [rules.message or f"{field.label} is required"]
            return []

        errors: List[str] = []

        shape = _SHAPE_CHECKS.get(field.type)
        if shape is not None:
            check, message = shape
            if not check(value):
                errors.append(message)

        if isinstance(value, (str, list, tuple)):
            if rules.min_length is not None and len(value) < rules.min_length:
                errors.append(f"Minimum length is {rules.min_length} characters")
            if rules.max_length is not None and len(value) > rules.max_length:
                errors.append(f"Maximum length is {rules.max_length} characters")

        if field.type.is_numeric:
            number = to_number(value)
            if number is not None:
                if rules.min is not None and number < rules.min:
                    errors.append(f"Minimum value is {_format_bound(rules.min)}")
                if rules.max is not None and number > rules.max:
                    errors.append(f"Maximum value is {_format_bound(rules.max)}")

        if rules.pattern and not isinstance(value, (list, tuple, dict)):
            try:
                matched = re.search(rules.pattern, str(value)) is not None
            except re.error as exc:
                logger.warning("Invalid pattern %r on field '%s': %s", rules.pattern, field.id, exc)
                matched = True
            if not matched:
                errors.append(rules.message or "Invalid format")

        if rules.custom:
            validator = self.registry.get(rules.custom)
            if validator is None:
                logger.debug("No custom validator named '%s' (field '%s')", rules.custom, field.id)
            else:
                custom_error = validator(value, field)
                if custom_error:
                    errors.append(custom_error)

        return errors

    def validate_form(self, template: FormTemplate, form_data: FormData) -> ValidationResult:
        """
        Validate every visible field of a form.

        Hidden fields are skipped. Non-empty values whose confidence is
        below the threshold produce a warning, never an error.
        """
        logic = self.evaluator.evaluate(template, form_data.values)
        visible = set(logic.visible_fields)
        required = set(logic.required_fields)

        errors: Dict[str, List[str]] = {}
        warnings: Dict[str, List[str]] = {}

        for f in template.iter_fields():
            if f.id not in visible:
                continue

            value = form_data.values.get(f.id)
            field_errors = self.validate_field(f, value, required=f.id in required)
            if field_errors:
                errors[f.id] = field_errors

            confidence = form_data.confidences.get(f.id)
            if confidence is not None and confidence < self.low_confidence_threshold and not is_empty(value):
                warnings.setdefault(f.id, []).append(LOW_CONFIDENCE_WARNING)

        return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


def _format_bound(bound: float) -> str:
    if float(bound).is_integer():
        return str(int(bound))
    return str(bound)
