"""
Session data objects.

FormData is the mutable, in-progress answer set of one session. It is
bound to the template version it was instantiated against.

ValidationResult and ConditionalLogicResult are read-only reports
produced by the validator and the evaluator.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AutoSaveMetadata:
    """
    Bookkeeping written by the auto-save manager.

    conflicts holds field ids that disagreed with another snapshot
    during reconciliation, kept for later user review.
    """

    last_save: Optional[datetime] = None
    save_count: int = 0
    conflicts: List[str] = field(default_factory=list)


@dataclass
class FormData:
    """
    In-progress answers of one form session.

    Properties:
        template_id / template_version:
            The template version this session is bound to

        values:
            field id -> current value

        confidences:
            field id -> confidence in [0, 1], present only for values
            that originated from voice input

        completed_fields:
            Ids of visible fields holding a non-empty value

        progress:
            |completed ∩ visible| / |visible| * 100

    INVARIANTS:
        - completed_fields ⊆ visible fields for the current values
        - confidences keys ⊆ values keys
    """

    template_id: str
    template_version: str
    session_id: str
    values: Dict[str, Any] = field(default_factory=dict)
    confidences: Dict[str, float] = field(default_factory=dict)
    completed_fields: Set[str] = field(default_factory=set)
    current_field: str = ""
    current_section: str = ""
    progress: float = 0.0
    started_at: datetime = field(default_factory=utcnow)
    last_saved_at: datetime = field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    user_id: Optional[str] = None
    autosave: AutoSaveMetadata = field(default_factory=AutoSaveMetadata)

    def copy(self) -> "FormData":
        """Deep copy, safe to hand to another thread."""
        return copy.deepcopy(self)

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None


@dataclass
class ValidationResult:
    """
    Outcome of validating a form.

    is_valid is true iff errors is empty. Warnings never affect it.
    """

    is_valid: bool = True
    errors: Dict[str, List[str]] = field(default_factory=dict)
    warnings: Dict[str, List[str]] = field(default_factory=dict)

    def errors_for(self, field_id: str) -> List[str]:
        return list(self.errors.get(field_id, []))

    def warnings_for(self, field_id: str) -> List[str]:
        return list(self.warnings.get(field_id, []))


@dataclass
class ConditionalLogicResult:
    """Visible/required field ids and hidden section ids, in template order."""

    visible_fields: List[str] = field(default_factory=list)
    required_fields: List[str] = field(default_factory=list)
    hidden_sections: List[str] = field(default_factory=list)

    def is_visible(self, field_id: str) -> bool:
        return field_id in self.visible_fields

    def is_required(self, field_id: str) -> bool:
        return field_id in self.required_fields
