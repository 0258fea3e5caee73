"""
Form Session orchestration.

Owns one FormData, forwards every mutation to the evaluator, validates
on demand and drives the auto-save manager's lifecycle. All rules live
in the evaluator, the validator and the version manager.
"""
from __future__ import annotations

import copy
import logging
import threading
import time
import uuid
from typing import Any, Callable, Optional

from .autosave import AutoSaveManager
from .conditions import is_empty, thaw_value
from .config import EngineConfig
from .errors import MigrationError, PersistenceError, UnknownFieldError
from .evaluator import ConditionalLogicEngine
from .form_data import ConditionalLogicResult, FormData, ValidationResult, utcnow
from .model import FormTemplate
from .storage import PersistencePort
from .validation import FormValidator
from .versioning import TemplateVersionManager

logger = logging.getLogger(__name__)


def new_session_id() -> str:
    return f"session_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class FormSession:
    """
    One user filling one template version.

    All reads and writes of the FormData happen under a lock, so a value
    and its paired confidence are always observed together.

    Example:
        >>> session = FormSession.start(template)
        >>> session.update_field("age", 21)
        >>> session.validate().is_valid
    """

    def __init__(
        self,
        template: FormTemplate,
        form_data: FormData,
        validator: Optional[FormValidator] = None,
        evaluator: Optional[ConditionalLogicEngine] = None,
        config: Optional[EngineConfig] = None,
        store: Optional[PersistencePort] = None,
        version_manager: Optional[TemplateVersionManager] = None,
        on_save_error: Optional[Callable[[PersistenceError], None]] = None,
    ) -> None:
        if form_data.template_id != template.id:
            raise ValueError(
                f"Form data of template '{form_data.template_id}' cannot be bound to '{template.id}'"
            )
        self.config = config or EngineConfig()
        self.template = template
        self.evaluator = evaluator or ConditionalLogicEngine()
        self.validator = validator or FormValidator(
            evaluator=self.evaluator,
            low_confidence_threshold=self.config.low_confidence_threshold,
        )
        self.version_manager = version_manager
        self._lock = threading.RLock()
        self._form_data = form_data
        self._refresh_locked()

        self.autosave: Optional[AutoSaveManager] = None
        if store is not None:
            interval = (
                template.settings.auto_save_interval
                if template.settings.auto_save
                else self.config.autosave_interval
            )
            self.autosave = AutoSaveManager.for_session(
                store,
                template.id,
                form_data.session_id,
                prefix=self.config.storage_key_prefix,
                interval=interval,
                on_save=self._record_save,
                on_error=on_save_error,
                version_manager=version_manager,
            )

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def start(
        cls,
        template: FormTemplate,
        session_id: Optional[str] = None,
        user_id: Optional[str] = None,
        **options: Any,
    ) -> "FormSession":
        """Open a new session seeded with the template's default values."""
        form_data = FormData(
            template_id=template.id,
            template_version=template.version,
            session_id=session_id or new_session_id(),
            user_id=user_id,
        )
        for f in template.iter_fields():
            if f.default_value is not None:
                form_data.values[f.id] = thaw_value(f.default_value)
        if template.sections:
            form_data.current_section = template.sections[0].id
        return cls(template, form_data, **options)

    @classmethod
    def resume(
        cls,
        store: PersistencePort,
        template_id: str,
        session_id: str,
        version_manager: TemplateVersionManager,
        **options: Any,
    ) -> Optional["FormSession"]:
        """
        Reopen a persisted session against the active template version.

        A snapshot bound to a stale version is migrated forward first.

        Returns:
            The session, or None when nothing is stored for it

        Raises:
            PersistenceError: if the store fails or holds a corrupt snapshot
            MigrationError: if the bound version is unknown to the history
        """
        config = options.get("config") or EngineConfig()
        loader = AutoSaveManager.for_session(
            store, template_id, session_id, prefix=config.storage_key_prefix
        )
        stored = loader.load()
        if stored is None:
            return None

        active = version_manager.get_active_version(template_id)
        if active is None:
            raise MigrationError(template_id, stored.template_version, "?", "no active version")
        form_data = version_manager.migrate_to_active(stored)
        return cls(active.template, form_data, store=store, version_manager=version_manager, **options)

    # ------------------------------------------------------------------
    # Mutation API (consumed by renderers and the voice layer)
    # ------------------------------------------------------------------

    def update_field(self, field_id: str, value: Any, confidence: Optional[float] = None) -> None:
        """
        Set a field's value, and its confidence when the value came from voice.

        A manual edit (confidence None) removes any previous confidence
        entry for the field.

        Raises:
            UnknownFieldError: if the template does not declare field_id
            ValueError: if confidence is outside [0, 1]
        """
        section = self.template.section_of(field_id)
        if section is None:
            raise UnknownFieldError(field_id, self.template.id)
        if confidence is not None and not 0.0 <= confidence <= 1.0:
            raise ValueError(f"Confidence must be within [0, 1], got {confidence}")

        with self._lock:
            data = self._form_data
            data.values[field_id] = copy.deepcopy(value)
            if confidence is None:
                data.confidences.pop(field_id, None)
            else:
                data.confidences[field_id] = float(confidence)
            data.current_field = field_id
            data.current_section = section.id
            self._refresh_locked()

    def evaluate(self) -> ConditionalLogicResult:
        with self._lock:
            return self.evaluator.evaluate(self.template, dict(self._form_data.values))

    def validate(self) -> ValidationResult:
        return self.validator.validate_form(self.template, self.snapshot())

    def progress(self) -> float:
        with self._lock:
            return self._form_data.progress

    def snapshot(self) -> FormData:
        """Deep copy of the current answers."""
        with self._lock:
            return self._form_data.copy()

    @property
    def session_id(self) -> str:
        return self._form_data.session_id

    @property
    def last_saved_at(self):
        with self._lock:
            return self._form_data.last_saved_at

    def _refresh_locked(self) -> ConditionalLogicResult:
        data = self._form_data
        logic = self.evaluator.evaluate(self.template, data.values)
        visible = logic.visible_fields
        data.completed_fields = {f for f in visible if not is_empty(data.values.get(f))}
        data.progress = (len(data.completed_fields) / len(visible) * 100) if visible else 0.0
        return logic

    # ------------------------------------------------------------------
    # Persistence lifecycle
    # ------------------------------------------------------------------

    def _record_save(self, stamped: FormData) -> None:
        with self._lock:
            self._form_data.last_saved_at = stamped.last_saved_at
            self._form_data.autosave = copy.deepcopy(stamped.autosave)

    def start_autosave(self) -> bool:
        """Start periodic saving; False when disabled or no store is wired."""
        if self.autosave is None:
            return False
        if not self.template.settings.auto_save:
            logger.info("Auto-save disabled by template '%s'", self.template.id)
            return False
        self.autosave.start(self.snapshot)
        return True

    def stop_autosave(self) -> None:
        if self.autosave is not None:
            self.autosave.stop()

    def save_now(self) -> bool:
        """
        Persist immediately.

        Raises:
            PersistenceError: if the store fails
        """
        if self.autosave is None:
            return False
        return self.autosave.save_now(self.snapshot())

    def reconcile(self) -> list:
        """
        Reconcile the in-memory answers with the stored snapshot.

        When the winning snapshot is bound to another template version,
        the session is rebound to that version's template.

        Returns:
            Field ids recorded as conflicting

        Raises:
            MigrationError: if the winner's template version cannot be
                looked up
        """
        if self.autosave is None:
            return []
        resolved = self.autosave.reconcile(self.snapshot())
        with self._lock:
            if resolved.template_version != self.template.version:
                self.template = self._template_for(resolved)
            self._form_data = resolved
            self._refresh_locked()
            return list(resolved.autosave.conflicts)

    def _template_for(self, form_data: FormData) -> FormTemplate:
        if self.version_manager is None:
            raise MigrationError(
                self.template.id,
                self.template.version,
                form_data.template_version,
                "no version manager to look up the stored version",
            )
        stored = self.version_manager.get_version(self.template.id, form_data.template_version)
        if stored is None:
            raise MigrationError(
                self.template.id,
                self.template.version,
                form_data.template_version,
                "unknown version",
            )
        logger.info(
            "Session '%s' rebound to template '%s' %s",
            form_data.session_id,
            self.template.id,
            form_data.template_version,
        )
        return stored.template

    def submit(self) -> ValidationResult:
        """
        Finalize the session.

        The session is marked completed when it validates, or when the
        template allows partial submission. It is then saved at once.
        """
        result = self.validate()
        if not result.is_valid and not self.template.settings.allow_partial_submission:
            return result

        with self._lock:
            self._form_data.completed_at = utcnow()
        self.save_now()
        return result

    def close(self) -> None:
        """Stop the schedule, then flush the latest answers."""
        self.stop_autosave()
        self.save_now()
