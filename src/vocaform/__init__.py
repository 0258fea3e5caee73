"""
Vocaform Dynamic Form Engine

Schema-driven form engine built around four tightly coupled services:

    - Conditional logic evaluation (which fields/sections are visible/required)
    - Field and form validation (with a pluggable custom validator registry)
    - Auto-save (debounced persistence with conflict reconciliation)
    - Template versioning (diffing and answer migration across revisions)

ARCHITECTURAL GUARANTEE:
------------------------
This package contains ZERO knowledge of:
    - Rendering of fields
    - Voice capture and transcription
    - Storage engines (persistence is an injected port)
    - Network transport

Collaborators supply (field_id, value, confidence) updates and consume
ValidationResult, visible/required field sets and progress percentages.
"""

from .conditions import Condition, Operator, is_empty
from .model import (
    FieldOption,
    FieldType,
    FieldValidation,
    FieldWidth,
    FormField,
    FormSection,
    FormTemplate,
    SubmissionConfig,
    SubmissionMethod,
    TemplateSettings,
)
from .form_data import AutoSaveMetadata, ConditionalLogicResult, FormData, ValidationResult
from .evaluator import ConditionalLogicEngine
from .validation import CustomValidatorRegistry, FormValidator
from .storage import FileStore, InMemoryStore, PersistencePort
from .autosave import AutoSaveManager, AutoSaveState, detect_conflicts, resolve_conflicts
from .versioning import TemplateVersion, TemplateVersionManager, VersionComparison
from .session import FormSession
from .config import EngineConfig, load_config
from .errors import (
    FormEngineError,
    MigrationError,
    PersistenceError,
    TemplateParseError,
    UnknownFieldError,
    VersionNotFoundError,
)

__version__ = "0.1.0"

__all__ = [
    "Condition",
    "Operator",
    "is_empty",
    "FieldOption",
    "FieldType",
    "FieldValidation",
    "FieldWidth",
    "FormField",
    "FormSection",
    "FormTemplate",
    "SubmissionConfig",
    "SubmissionMethod",
    "TemplateSettings",
    "AutoSaveMetadata",
    "ConditionalLogicResult",
    "FormData",
    "ValidationResult",
    "ConditionalLogicEngine",
    "CustomValidatorRegistry",
    "FormValidator",
    "FileStore",
    "InMemoryStore",
    "PersistencePort",
    "AutoSaveManager",
    "AutoSaveState",
    "detect_conflicts",
    "resolve_conflicts",
    "TemplateVersion",
    "TemplateVersionManager",
    "VersionComparison",
    "FormSession",
    "EngineConfig",
    "load_config",
    "FormEngineError",
    "MigrationError",
    "PersistenceError",
    "TemplateParseError",
    "UnknownFieldError",
    "VersionNotFoundError",
]
