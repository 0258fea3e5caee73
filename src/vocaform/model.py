"""
Core Template Model Objects

Defines the data structures describing one version of a form template:
    - Field types (closed enumeration)
    - Fields (typed inputs with validation rules and conditional gates)
    - Sections (ordered, presentational grouping of fields)
    - Templates (root container with settings and submission config)

ARCHITECTURAL RULE:
    These objects:
        - Know nothing about rendering or storage
        - Are immutable (a content change produces a new version record)
        - Are fully serializable
        - Represent structure, not behavior
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, List, Optional, Tuple

from .conditions import Condition


class FieldType(Enum):
    """
    Closed enumeration of field types.

    Each type decides which shape check and which rule options apply:
        - numeric types get min/max bounds
        - enumerable types carry options
    """

    TEXT = "text"
    NUMBER = "number"
    EMAIL = "email"
    TEL = "tel"
    DATE = "date"
    DATETIME = "datetime"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    TEXTAREA = "textarea"
    FILE = "file"

    @classmethod
    def _missing_(cls, value):
        # HTML input name used by older templates
        if value == "datetime-local":
            return cls.DATETIME
        return None

    @property
    def is_numeric(self) -> bool:
        return self is FieldType.NUMBER

    @property
    def is_enumerable(self) -> bool:
        return self in (FieldType.SELECT, FieldType.RADIO, FieldType.CHECKBOX)


class FieldWidth(Enum):
    """Layout width hint for renderers."""
    FULL = "full"
    HALF = "half"
    THIRD = "third"
    QUARTER = "quarter"


class SubmissionMethod(Enum):
    PDF = "pdf"
    EMAIL = "email"
    API = "api"
    PRINT = "print"


@dataclass(frozen=True)
class FieldOption:
    """One choice of a select/radio/checkbox field."""

    value: str
    label: str
    disabled: bool = False


@dataclass(frozen=True)
class FieldValidation:
    """
    Validation rule set of a field.

    Properties:
        required: Value must be non-empty
        min_length / max_length: Length bounds for strings and lists
        min / max: Numeric bounds, applied to numeric field types only
        pattern: Regular expression the value must match (search semantics)
        custom: Name of a registered custom validator
        message: Override message for the required and pattern checks

    IMPORTANT:
        Rules are data only. Checking belongs in the validator.
    """

    required: bool = False
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = None
    custom: Optional[str] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class FormField:
    """
    Represents a single typed input of a template.

    Properties:
        id:
            Unique identifier across the whole template
            (section nesting is purely presentational)

        type:
            FieldType enum

        label:
            Human-readable label, used in required-field messages

        validation:
            FieldValidation rule set

        options:
            Choices for enumerable types

        show_if:
            Conditions (AND-combined) gating visibility.
            Empty: always visible (subject to the section gate)

        required_if:
            Conditions (AND-combined) making the field required.
            Empty: never required through this gate (use required)

        default_value:
            Seeded into new sessions and into migrated sessions
            when the field is added by a newer version

    ARCHITECTURAL RULE:
        - show_if is about reaching the field
        - validation is about accepting the response
        - These are separate concerns
    """

    id: str
    type: FieldType
    label: str
    validation: FieldValidation = field(default_factory=FieldValidation)
    options: Tuple[FieldOption, ...] = ()
    show_if: Tuple[Condition, ...] = ()
    required_if: Tuple[Condition, ...] = ()
    default_value: Any = None
    width: FieldWidth = FieldWidth.FULL
    placeholder: Optional[str] = None
    description: Optional[str] = None

    def option_values(self) -> List[str]:
        return [opt.value for opt in self.options]


@dataclass(frozen=True)
class FormSection:
    """
    Ordered, titled group of fields.

    A section whose show_if evaluates false hides every field inside it,
    regardless of the fields' own gates.
    """

    id: str
    title: str
    fields: Tuple[FormField, ...] = ()
    show_if: Tuple[Condition, ...] = ()
    description: Optional[str] = None
    collapsible: bool = False


@dataclass(frozen=True)
class TemplateSettings:
    """
    Global settings of a template.

    auto_save_interval is expressed in seconds.
    """

    auto_save: bool = True
    auto_save_interval: float = 30.0
    allow_partial_submission: bool = False
    show_progress: bool = True


@dataclass(frozen=True)
class SubmissionConfig:
    method: SubmissionMethod = SubmissionMethod.PDF
    endpoint: Optional[str] = None
    email_template: Optional[str] = None
    pdf_template: Optional[str] = None


@dataclass(frozen=True)
class FormTemplate:
    """
    Root container for one version of a form template.

    This is THE schema artifact. Sessions, validation and migration
    are all derived from it.

    ARCHITECTURAL PRINCIPLE:
        A template is immutable once stored under a version.
        A content change produces a NEW version record,
        never an in-place mutation.

    INVARIANTS:
        - Field ids are unique across all sections
        - Condition references should point at declared fields
          (checked by the analyzer, not enforced here)
    """

    id: str
    version: str
    name: str = ""
    sections: Tuple[FormSection, ...] = ()
    settings: TemplateSettings = field(default_factory=TemplateSettings)
    submission: SubmissionConfig = field(default_factory=SubmissionConfig)
    description: str = ""
    category: str = ""
    tags: Tuple[str, ...] = ()
    estimated_time: Optional[int] = None
    difficulty: Optional[str] = None

    def iter_fields(self) -> Iterator[FormField]:
        """Yield every field in template order."""
        for section in self.sections:
            yield from section.fields

    def field_ids(self) -> List[str]:
        return [f.id for f in self.iter_fields()]

    def get_field(self, field_id: str) -> Optional[FormField]:
        """
        Retrieve a field by ID.

        Args:
            field_id: Field identifier

        Returns:
            FormField object or None if not found
        """
        for f in self.iter_fields():
            if f.id == field_id:
                return f
        return None

    def get_section(self, section_id: str) -> Optional[FormSection]:
        for section in self.sections:
            if section.id == section_id:
                return section
        return None

    def section_of(self, field_id: str) -> Optional[FormSection]:
        """Return the section holding a field, or None."""
        for section in self.sections:
            for f in section.fields:
                if f.id == field_id:
                    return section
        return None

    def fields_by_id(self) -> dict:
        """Flatten all fields into an id -> FormField map."""
        return {f.id: f for f in self.iter_fields()}
