"""
Template Version Manager.

Owns the append-only history of template revisions per template id,
computes schema diffs between revisions and migrates answer data from
one revision to another.

The diff (VersionComparison) is the sole input to migration.
"""
from __future__ import annotations

import dataclasses
import json
import logging
import re
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .conditions import thaw_value
from .errors import MigrationError, TemplateParseError, VersionNotFoundError
from .form_data import FormData, utcnow
from .model import FormField, FormTemplate
from .serialization import datetime_from_str, datetime_to_str, template_from_dict, template_to_dict

logger = logging.getLogger(__name__)

INITIAL_VERSION = "1.0.0"

_SEMVER_RE = re.compile(r"^\d+\.\d+\.\d+$")


def parse_version(version: str) -> Tuple[int, ...]:
    """Split a dotted version into integers; non-numeric parts count as 0."""
    parts = []
    for piece in str(version).split("."):
        parts.append(int(piece) if piece.isdigit() else 0)
    while len(parts) < 3:
        parts.append(0)
    return tuple(parts)


def bump_patch(version: str) -> str:
    major, minor, patch = parse_version(version)[:3]
    return f"{major}.{minor}.{patch + 1}"


@dataclass
class TemplateVersion:
    """
    One stored revision of a template.

    The template snapshot is immutable; only is_active ever changes.
    """

    version: str
    template: FormTemplate
    created_at: datetime = field(default_factory=utcnow)
    created_by: str = "system"
    changelog: List[str] = field(default_factory=list)
    is_active: bool = False


class ChangeType(Enum):
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"


@dataclass(frozen=True)
class FieldChange:
    type: ChangeType
    old: Optional[FormField] = None
    new: Optional[FormField] = None


@dataclass
class VersionComparison:
    """
    Field-level diff between two templates.

    Section nesting is irrelevant: fields are compared by id.
    """

    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    modified: List[str] = field(default_factory=list)
    field_changes: Dict[str, FieldChange] = field(default_factory=dict)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.modified)


def compare_templates(old: FormTemplate, new: FormTemplate) -> VersionComparison:
    """
    Diff two templates by flattened field id.

    Fields only in `new` are added, only in `old` are removed, and in
    both but structurally unequal are modified.
    """
    old_fields = old.fields_by_id()
    new_fields = new.fields_by_id()
    comparison = VersionComparison()

    for field_id, f in new_fields.items():
        if field_id not in old_fields:
            comparison.added.append(field_id)
            comparison.field_changes[field_id] = FieldChange(ChangeType.ADDED, new=f)

    for field_id, f in old_fields.items():
        if field_id not in new_fields:
            comparison.removed.append(field_id)
            comparison.field_changes[field_id] = FieldChange(ChangeType.REMOVED, old=f)
        elif f != new_fields[field_id]:
            comparison.modified.append(field_id)
            comparison.field_changes[field_id] = FieldChange(
                ChangeType.MODIFIED, old=f, new=new_fields[field_id]
            )

    return comparison


def apply_migration(form_data: FormData, comparison: VersionComparison, target: FormTemplate, to_version: str) -> FormData:
    """
    Apply a diff to a copy of form_data.

    Removed fields lose their value, confidence and completion mark.
    Added fields with a default are seeded. Modified fields are left
    untouched; callers re-validate after migration.
    """
    migrated = form_data.copy()
    for field_id in comparison.removed:
        migrated.values.pop(field_id, None)
        migrated.confidences.pop(field_id, None)
        migrated.completed_fields.discard(field_id)
        if migrated.current_field == field_id:
            migrated.current_field = ""

    target_fields = target.fields_by_id()
    for field_id in comparison.added:
        default = target_fields[field_id].default_value
        if default is not None:
            migrated.values[field_id] = thaw_value(default)

    migrated.template_version = to_version
    return migrated


class TemplateVersionManager:
    """
    In-memory version history keyed by template id.

    Thread-safe: mutations of the history happen under a lock, and at
    most one version per template id is active at any time.

    Example:
        >>> manager = TemplateVersionManager()
        >>> manager.add_version("intake", template, ["Initial version"], "system")
        '1.0.0'
    """

    def __init__(self) -> None:
        self._versions: Dict[str, List[TemplateVersion]] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def add_version(
        self,
        template_id: str,
        template: FormTemplate,
        changelog: Optional[List[str]] = None,
        created_by: str = "system",
    ) -> str:
        """
        Append a new revision and make it the active one.

        The first revision keeps the template's declared version when it
        is a plain MAJOR.MINOR.PATCH string (otherwise 1.0.0). Every
        later revision bumps the patch component of the highest version.

        Returns:
            The assigned version string
        """
        with self._lock:
            versions = self._versions.setdefault(template_id, [])
            if versions:
                latest = max(versions, key=lambda v: parse_version(v.version))
                new_version = bump_patch(latest.version)
            elif _SEMVER_RE.match(template.version or ""):
                new_version = template.version
            else:
                new_version = INITIAL_VERSION

            for v in versions:
                v.is_active = False

            versions.append(
                TemplateVersion(
                    version=new_version,
                    template=dataclasses.replace(template, id=template_id, version=new_version),
                    created_by=created_by,
                    changelog=list(changelog or []),
                    is_active=True,
                )
            )

        logger.info("Added version %s of template '%s' by %s", new_version, template_id, created_by)
        return new_version

    def get_active_version(self, template_id: str) -> Optional[TemplateVersion]:
        with self._lock:
            for v in self._versions.get(template_id, []):
                if v.is_active:
                    return v
        return None

    def get_version(self, template_id: str, version: str) -> Optional[TemplateVersion]:
        with self._lock:
            for v in self._versions.get(template_id, []):
                if v.version == version:
                    return v
        return None

    def get_all_versions(self, template_id: str) -> List[TemplateVersion]:
        with self._lock:
            return list(self._versions.get(template_id, []))

    def latest_version(self, template_id: str) -> Optional[TemplateVersion]:
        versions = self.get_all_versions(template_id)
        if not versions:
            return None
        return max(versions, key=lambda v: parse_version(v.version))

    def template_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._versions)

    def rollback(self, template_id: str, version: str) -> bool:
        """
        Make an existing version the active one.

        Returns False, without touching the history, when the version
        does not exist.
        """
        with self._lock:
            versions = self._versions.get(template_id, [])
            target = next((v for v in versions if v.version == version), None)
            if target is None:
                return False
            for v in versions:
                v.is_active = False
            target.is_active = True

        logger.info("Rolled back template '%s' to version %s", template_id, version)
        return True

    # ------------------------------------------------------------------
    # Diff and migration
    # ------------------------------------------------------------------

    def _require(self, template_id: str, version: str) -> TemplateVersion:
        found = self.get_version(template_id, version)
        if found is None:
            raise VersionNotFoundError(template_id, version)
        return found

    def compare_versions(self, template_id: str, version1: str, version2: str) -> VersionComparison:
        """
        Diff two stored versions.

        Raises:
            VersionNotFoundError: if either version is unknown
        """
        v1 = self._require(template_id, version1)
        v2 = self._require(template_id, version2)
        return compare_templates(v1.template, v2.template)

    def migrate_form_data(
        self,
        form_data: FormData,
        from_version: str,
        to_version: str,
        template_id: Optional[str] = None,
    ) -> FormData:
        """
        Migrate answers from one version to another.

        The input is not modified; a migrated copy is returned.

        Raises:
            MigrationError: if either version is not in the history
        """
        template_id = template_id or form_data.template_id
        try:
            source = self._require(template_id, from_version)
            target = self._require(template_id, to_version)
        except VersionNotFoundError as e:
            raise MigrationError(template_id, from_version, to_version, str(e)) from e

        comparison = compare_templates(source.template, target.template)
        migrated = apply_migration(form_data, comparison, target.template, to_version)
        logger.info(
            "Migrated session '%s' of '%s' from %s to %s (added=%d removed=%d modified=%d)",
            form_data.session_id,
            template_id,
            from_version,
            to_version,
            len(comparison.added),
            len(comparison.removed),
            len(comparison.modified),
        )
        return migrated

    def migrate_to_active(self, form_data: FormData) -> FormData:
        """
        Bring a snapshot forward to the active version of its template.

        Returns a copy unchanged in content when it is already current.

        Raises:
            MigrationError: if the template has no active version or the
                bound version is unknown
        """
        active = self.get_active_version(form_data.template_id)
        if active is None:
            raise MigrationError(
                form_data.template_id, form_data.template_version, "?", "no active version"
            )
        if active.version == form_data.template_version:
            return form_data.copy()
        return self.migrate_form_data(form_data, form_data.template_version, active.version)

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    def export_history(self, template_id: str) -> str:
        """Serialize the version history of a template for backup."""
        export_data = {
            "templateId": template_id,
            "versions": [
                {
                    "version": v.version,
                    "createdAt": datetime_to_str(v.created_at),
                    "createdBy": v.created_by,
                    "changelog": list(v.changelog),
                    "isActive": v.is_active,
                    "template": template_to_dict(v.template),
                }
                for v in self.get_all_versions(template_id)
            ],
            "exportedAt": datetime_to_str(utcnow()),
        }
        return json.dumps(export_data, indent=2)

    def import_history(self, template_id: str, export_data: str) -> bool:
        """
        Replace the history of a template from an export document.

        Returns False (and leaves the history untouched) when the
        document is malformed or marks more than one version active.
        """
        try:
            data = json.loads(export_data)
            versions = [_version_from_dict(v) for v in data["versions"]]
        except (ValueError, KeyError, TypeError, TemplateParseError) as e:
            logger.warning("Rejected version history import for '%s': %s", template_id, e)
            return False

        if sum(1 for v in versions if v.is_active) > 1:
            logger.warning(
                "Rejected version history import for '%s': more than one active version",
                template_id,
            )
            return False

        with self._lock:
            self._versions[template_id] = versions
        return True


def _version_from_dict(d: Dict[str, Any]) -> TemplateVersion:
    return TemplateVersion(
        version=str(d["version"]),
        template=template_from_dict(d["template"]),
        created_at=datetime_from_str(d.get("createdAt")) or utcnow(),
        created_by=d.get("createdBy", "system"),
        changelog=list(d.get("changelog") or []),
        is_active=bool(d.get("isActive", False)),
    )
