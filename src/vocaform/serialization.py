"""
Serialization helpers for templates and session snapshots.

Provides lossless JSON/YAML round-trip via intermediate dict representation.
Dict keys follow the external JSON template schema (camelCase).
This module intentionally keeps serialization structure stable and explicit.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

import yaml

from vocaform.conditions import Condition, Operator, freeze_value, thaw_value
from vocaform.errors import TemplateParseError
from vocaform.form_data import AutoSaveMetadata, FormData
from vocaform.model import (
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


def datetime_to_str(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def datetime_from_str(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ---------------------------------------------------------------------------
# Template model
# ---------------------------------------------------------------------------


def condition_to_dict(c: Condition) -> Dict[str, Any]:
    operator = c.operator.value if isinstance(c.operator, Operator) else c.operator
    return {"field": c.field, "operator": operator, "value": thaw_value(c.value)}


def condition_from_dict(d: Dict[str, Any]) -> Condition:
    return Condition(
        field=d["field"],
        operator=Operator.parse(d["operator"]),
        value=freeze_value(d.get("value")),
    )


def validation_to_dict(v: FieldValidation) -> Dict[str, Any]:
    return {
        "required": v.required,
        "minLength": v.min_length,
        "maxLength": v.max_length,
        "min": v.min,
        "max": v.max,
        "pattern": v.pattern,
        "custom": v.custom,
        "message": v.message,
    }


def validation_from_dict(d: Dict[str, Any] | None) -> FieldValidation:
    if not d:
        return FieldValidation()
    return FieldValidation(
        required=bool(d.get("required", False)),
        min_length=d.get("minLength"),
        max_length=d.get("maxLength"),
        min=d.get("min"),
        max=d.get("max"),
        pattern=d.get("pattern"),
        custom=d.get("custom"),
        message=d.get("message"),
    )


def option_to_dict(o: FieldOption) -> Dict[str, Any]:
    return {"value": o.value, "label": o.label, "disabled": o.disabled}


def option_from_dict(d: Dict[str, Any]) -> FieldOption:
    return FieldOption(value=d["value"], label=d.get("label", d["value"]), disabled=bool(d.get("disabled", False)))


def field_to_dict(f: FormField) -> Dict[str, Any]:
    return {
        "id": f.id,
        "type": f.type.value,
        "label": f.label,
        "validation": validation_to_dict(f.validation),
        "options": [option_to_dict(o) for o in f.options],
        "showIf": [condition_to_dict(c) for c in f.show_if],
        "requiredIf": [condition_to_dict(c) for c in f.required_if],
        "defaultValue": thaw_value(f.default_value),
        "width": f.width.value,
        "placeholder": f.placeholder,
        "description": f.description,
    }


def field_from_dict(d: Dict[str, Any]) -> FormField:
    return FormField(
        id=d["id"],
        type=FieldType(d["type"]),
        label=d.get("label", d["id"]),
        validation=validation_from_dict(d.get("validation")),
        options=tuple(option_from_dict(o) for o in d.get("options") or []),
        show_if=tuple(condition_from_dict(c) for c in d.get("showIf") or []),
        required_if=tuple(condition_from_dict(c) for c in d.get("requiredIf") or []),
        default_value=freeze_value(d.get("defaultValue")),
        width=FieldWidth(d.get("width") or "full"),
        placeholder=d.get("placeholder"),
        description=d.get("description"),
    )


def section_to_dict(s: FormSection) -> Dict[str, Any]:
    return {
        "id": s.id,
        "title": s.title,
        "description": s.description,
        "collapsible": s.collapsible,
        "showIf": [condition_to_dict(c) for c in s.show_if],
        "fields": [field_to_dict(f) for f in s.fields],
    }


def section_from_dict(d: Dict[str, Any]) -> FormSection:
    return FormSection(
        id=d["id"],
        title=d.get("title", ""),
        description=d.get("description"),
        collapsible=bool(d.get("collapsible", False)),
        show_if=tuple(condition_from_dict(c) for c in d.get("showIf") or []),
        fields=tuple(field_from_dict(f) for f in d.get("fields") or []),
    )


def settings_to_dict(s: TemplateSettings) -> Dict[str, Any]:
    return {
        "autoSave": s.auto_save,
        "autoSaveInterval": s.auto_save_interval,
        "allowPartialSubmission": s.allow_partial_submission,
        "showProgress": s.show_progress,
    }


def settings_from_dict(d: Dict[str, Any] | None) -> TemplateSettings:
    d = d or {}
    return TemplateSettings(
        auto_save=bool(d.get("autoSave", True)),
        auto_save_interval=float(d.get("autoSaveInterval", 30)),
        allow_partial_submission=bool(d.get("allowPartialSubmission", False)),
        show_progress=bool(d.get("showProgress", True)),
    )


def submission_to_dict(s: SubmissionConfig) -> Dict[str, Any]:
    return {
        "method": s.method.value,
        "endpoint": s.endpoint,
        "emailTemplate": s.email_template,
        "pdfTemplate": s.pdf_template,
    }


def submission_from_dict(d: Dict[str, Any] | None) -> SubmissionConfig:
    d = d or {}
    return SubmissionConfig(
        method=SubmissionMethod(d.get("method", "pdf")),
        endpoint=d.get("endpoint"),
        email_template=d.get("emailTemplate"),
        pdf_template=d.get("pdfTemplate"),
    )


def template_to_dict(t: FormTemplate) -> Dict[str, Any]:
    return {
        "id": t.id,
        "version": t.version,
        "name": t.name,
        "description": t.description,
        "category": t.category,
        "tags": list(t.tags),
        "estimatedTime": t.estimated_time,
        "difficulty": t.difficulty,
        "settings": settings_to_dict(t.settings),
        "submission": submission_to_dict(t.submission),
        "sections": [section_to_dict(s) for s in t.sections],
    }


def template_from_dict(d: Dict[str, Any]) -> FormTemplate:
    """
    Build a FormTemplate from its JSON document shape.

    Raises:
        TemplateParseError: missing keys, unknown enum values or
            duplicate field ids
    """
    if not isinstance(d, dict):
        raise TemplateParseError(f"Template document must be an object, got {type(d).__name__}")
    try:
        template = FormTemplate(
            id=d["id"],
            version=str(d.get("version", "1.0.0")),
            name=d.get("name", ""),
            description=d.get("description", ""),
            category=d.get("category", ""),
            tags=tuple(d.get("tags") or []),
            estimated_time=d.get("estimatedTime"),
            difficulty=d.get("difficulty"),
            settings=settings_from_dict(d.get("settings")),
            submission=submission_from_dict(d.get("submission")),
            sections=tuple(section_from_dict(s) for s in d.get("sections") or []),
        )
    except KeyError as e:
        raise TemplateParseError(f"Missing required key {e} in template document") from e
    except (ValueError, TypeError) as e:
        raise TemplateParseError(f"Invalid template document: {e}") from e

    seen = set()
    for f in template.iter_fields():
        if f.id in seen:
            raise TemplateParseError(f"Duplicate field id '{f.id}' in template '{template.id}'")
        seen.add(f.id)
    return template


def template_to_json(t: FormTemplate) -> str:
    return json.dumps(template_to_dict(t), sort_keys=True)


def template_from_json(s: str) -> FormTemplate:
    try:
        d = json.loads(s)
    except json.JSONDecodeError as e:
        raise TemplateParseError(f"Template is not valid JSON: {e}") from e
    return template_from_dict(d)


def template_to_yaml(t: FormTemplate) -> str:
    return yaml.safe_dump(template_to_dict(t), sort_keys=False)


def template_from_yaml(s: str) -> FormTemplate:
    try:
        d = yaml.safe_load(s)
    except yaml.YAMLError as e:
        raise TemplateParseError(f"Template is not valid YAML: {e}") from e
    return template_from_dict(d)


def load_template(path: Path | str) -> FormTemplate:
    """Read a template from a .json, .yaml or .yml file."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".yaml", ".yml"):
        return template_from_yaml(text)
    return template_from_json(text)


# ---------------------------------------------------------------------------
# Session snapshots
# ---------------------------------------------------------------------------


def autosave_to_dict(a: AutoSaveMetadata) -> Dict[str, Any]:
    return {
        "lastSave": datetime_to_str(a.last_save),
        "saveCount": a.save_count,
        "conflicts": list(a.conflicts),
    }


def autosave_from_dict(d: Dict[str, Any] | None) -> AutoSaveMetadata:
    d = d or {}
    return AutoSaveMetadata(
        last_save=datetime_from_str(d.get("lastSave")),
        save_count=int(d.get("saveCount", 0)),
        conflicts=list(d.get("conflicts") or []),
    )


def form_data_to_dict(f: FormData) -> Dict[str, Any]:
    return {
        "templateId": f.template_id,
        "templateVersion": f.template_version,
        "sessionId": f.session_id,
        "userId": f.user_id,
        "values": dict(f.values),
        "confidences": dict(f.confidences),
        "completedFields": sorted(f.completed_fields),
        "currentField": f.current_field,
        "currentSection": f.current_section,
        "progress": f.progress,
        "startedAt": datetime_to_str(f.started_at),
        "lastSavedAt": datetime_to_str(f.last_saved_at),
        "completedAt": datetime_to_str(f.completed_at),
        "autoSaveData": autosave_to_dict(f.autosave),
    }


def form_data_from_dict(d: Dict[str, Any]) -> FormData:
    form_data = FormData(
        template_id=d["templateId"],
        template_version=d["templateVersion"],
        session_id=d["sessionId"],
        user_id=d.get("userId"),
        values=dict(d.get("values") or {}),
        confidences={k: float(v) for k, v in (d.get("confidences") or {}).items()},
        completed_fields=set(d.get("completedFields") or []),
        current_field=d.get("currentField", ""),
        current_section=d.get("currentSection", ""),
        progress=float(d.get("progress", 0.0)),
        completed_at=datetime_from_str(d.get("completedAt")),
        autosave=autosave_from_dict(d.get("autoSaveData")),
    )
    started_at = datetime_from_str(d.get("startedAt"))
    if started_at is not None:
        form_data.started_at = started_at
    last_saved_at = datetime_from_str(d.get("lastSavedAt"))
    if last_saved_at is not None:
        form_data.last_saved_at = last_saved_at
    return form_data


def form_data_to_json(f: FormData) -> str:
    return json.dumps(form_data_to_dict(f), sort_keys=True)


def form_data_from_json(s: str) -> FormData:
    return form_data_from_dict(json.loads(s))
