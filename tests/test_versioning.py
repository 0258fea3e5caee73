"""
Tests for the Template Version Manager.

Tests verify that the manager correctly:
    - Assigns patch-bumped versions and keeps one active version
    - Rolls back without raising on unknown versions
    - Diffs templates by flattened field id
    - Migrates answers while preserving unrelated data
    - Exports and imports history
"""

import dataclasses
import json

import pytest

from conftest import build_employment_template
from vocaform.errors import MigrationError, VersionNotFoundError
from vocaform.form_data import FormData
from vocaform.model import FieldType, FieldValidation, FormField, FormSection, FormTemplate
from vocaform.versioning import (
    ChangeType,
    TemplateVersionManager,
    apply_migration,
    bump_patch,
    compare_templates,
    parse_version,
)


def template_with(*fields, template_id="t", version="1.0.0"):
    return FormTemplate(
        id=template_id,
        version=version,
        sections=(FormSection(id="main", title="Main", fields=tuple(fields)),),
    )


def text(field_id, **kwargs):
    return FormField(id=field_id, type=FieldType.TEXT, label=field_id.title(), **kwargs)


def active_versions(manager, template_id):
    return [v.version for v in manager.get_all_versions(template_id) if v.is_active]


class TestVersionStrings:
    """Semantic version helpers."""

    def test_parse(self):
        assert parse_version("2.0.13") == (2, 0, 13)
        assert parse_version("2") == (2, 0, 0)
        assert parse_version("1.x.3") == (1, 0, 3)

    def test_numeric_ordering(self):
        assert parse_version("1.0.10") > parse_version("1.0.9")

    def test_bump_patch(self):
        assert bump_patch("1.0.0") == "1.0.1"
        assert bump_patch("2.3.9") == "2.3.10"


class TestHistory:
    """Adding versions and rolling back."""

    def test_first_version_keeps_declared_semver(self):
        manager = TemplateVersionManager()
        assert manager.add_version("t", template_with(text("a"), version="2.0.0")) == "2.0.0"

    def test_first_version_defaults_to_initial(self):
        manager = TemplateVersionManager()
        assert manager.add_version("t", template_with(text("a"), version="draft")) == "1.0.0"

    def test_each_add_bumps_patch_and_flips_active(self):
        manager = TemplateVersionManager()
        manager.add_version("t", template_with(text("a")), ["Initial version"], "alice")
        assert manager.add_version("t", template_with(text("a"), text("b"))) == "1.0.1"
        assert manager.add_version("t", template_with(text("b"))) == "1.0.2"

        assert active_versions(manager, "t") == ["1.0.2"]
        assert manager.get_active_version("t").version == "1.0.2"
        assert manager.latest_version("t").version == "1.0.2"
        first = manager.get_version("t", "1.0.0")
        assert first.changelog == ["Initial version"]
        assert first.created_by == "alice"

    def test_stored_template_carries_assigned_version(self):
        manager = TemplateVersionManager()
        manager.add_version("t", template_with(text("a")))
        manager.add_version("t", template_with(text("a"), version="9.9.9"))
        stored = manager.get_version("t", "1.0.1").template
        assert stored.version == "1.0.1"
        assert stored.id == "t"

    def test_bump_follows_highest_after_rollback(self):
        manager = TemplateVersionManager()
        manager.add_version("t", template_with(text("a")))
        manager.add_version("t", template_with(text("b")))
        assert manager.rollback("t", "1.0.0")
        assert manager.add_version("t", template_with(text("c"))) == "1.0.2"

    def test_rollback(self):
        manager = TemplateVersionManager()
        manager.add_version("t", template_with(text("a")))
        manager.add_version("t", template_with(text("b")))

        assert manager.rollback("t", "1.0.0")
        assert active_versions(manager, "t") == ["1.0.0"]

    def test_rollback_unknown_version(self):
        manager = TemplateVersionManager()
        manager.add_version("t", template_with(text("a")))
        assert not manager.rollback("t", "7.0.0")
        assert not manager.rollback("missing", "1.0.0")
        assert active_versions(manager, "t") == ["1.0.0"]

    def test_empty_history(self):
        manager = TemplateVersionManager()
        assert manager.get_active_version("t") is None
        assert manager.latest_version("t") is None
        assert manager.get_all_versions("t") == []
        assert manager.template_ids() == []

    def test_histories_are_independent(self):
        manager = TemplateVersionManager()
        manager.add_version("a", template_with(text("x")))
        manager.add_version("b", template_with(text("x")))
        assert manager.template_ids() == ["a", "b"]
        assert manager.get_active_version("a").version == "1.0.0"
        assert manager.get_active_version("b").version == "1.0.0"


class TestCompare:
    """Field-level diff."""

    def test_added_removed_modified(self):
        old = template_with(text("a"), text("b"), text("c"))
        new = template_with(text("a"), text("c", placeholder="changed"), text("d"))

        comparison = compare_templates(old, new)

        assert comparison.added == ["d"]
        assert comparison.removed == ["b"]
        assert comparison.modified == ["c"]
        assert comparison.has_changes
        assert comparison.field_changes["d"].type is ChangeType.ADDED
        assert comparison.field_changes["b"].old.id == "b"
        change = comparison.field_changes["c"]
        assert change.type is ChangeType.MODIFIED
        assert change.old.placeholder is None
        assert change.new.placeholder == "changed"

    def test_section_moves_are_not_changes(self):
        old = FormTemplate(id="t", version="1", sections=(
            FormSection(id="s1", title="S1", fields=(text("a"),)),
            FormSection(id="s2", title="S2", fields=(text("b"),)),
        ))
        new = FormTemplate(id="t", version="2", sections=(
            FormSection(id="only", title="Only", fields=(text("b"), text("a"))),
        ))
        assert not compare_templates(old, new).has_changes

    def test_compare_versions(self):
        manager = TemplateVersionManager()
        manager.add_version("t", template_with(text("a")))
        manager.add_version("t", template_with(text("a"), text("b")))
        assert manager.compare_versions("t", "1.0.0", "1.0.1").added == ["b"]

    def test_compare_unknown_version(self):
        manager = TemplateVersionManager()
        manager.add_version("t", template_with(text("a")))
        with pytest.raises(VersionNotFoundError):
            manager.compare_versions("t", "1.0.0", "3.0.0")


class TestMigration:
    """Answer migration across versions."""

    def build_manager(self):
        manager = TemplateVersionManager()
        manager.add_version("t", template_with(text("a"), text("y")))
        manager.add_version("t", template_with(text("a"), text("x", default_value="seeded")))
        return manager

    def test_migration_preserves_unrelated_data(self):
        manager = self.build_manager()
        data = FormData(
            template_id="t",
            template_version="1.0.0",
            session_id="s",
            values={"a": 1, "y": 2},
            confidences={"a": 0.9, "y": 0.4},
            completed_fields={"a", "y"},
            current_field="y",
        )

        migrated = manager.migrate_form_data(data, "1.0.0", "1.0.1")

        assert migrated.values == {"a": 1, "x": "seeded"}
        assert migrated.confidences == {"a": 0.9}
        assert migrated.completed_fields == {"a"}
        assert migrated.current_field == ""
        assert migrated.template_version == "1.0.1"
        # source untouched
        assert data.values == {"a": 1, "y": 2}
        assert data.template_version == "1.0.0"

    def test_added_field_without_default_is_not_seeded(self):
        old = template_with(text("a"))
        new = template_with(text("a"), text("b"))
        data = FormData(template_id="t", template_version="1", session_id="s", values={"a": "v"})
        migrated = apply_migration(data, compare_templates(old, new), new, "2")
        assert migrated.values == {"a": "v"}

    def test_modified_fields_keep_their_values(self):
        old = template_with(FormField(id="n", type=FieldType.TEXT, label="N"))
        new = template_with(FormField(
            id="n", type=FieldType.NUMBER, label="N", validation=FieldValidation(min=0)
        ))
        data = FormData(template_id="t", template_version="1", session_id="s", values={"n": "abc"})
        migrated = apply_migration(data, compare_templates(old, new), new, "2")
        assert migrated.values == {"n": "abc"}

    def test_list_defaults_are_thawed(self):
        old = template_with(text("a"))
        new = template_with(text("a"), FormField(
            id="tags", type=FieldType.CHECKBOX, label="Tags", default_value=("x", "y")
        ))
        data = FormData(template_id="t", template_version="1", session_id="s")
        migrated = apply_migration(data, compare_templates(old, new), new, "2")
        assert migrated.values["tags"] == ["x", "y"]

    def test_unknown_version_raises_migration_error(self):
        manager = self.build_manager()
        data = FormData(template_id="t", template_version="1.0.0", session_id="s")
        with pytest.raises(MigrationError) as exc_info:
            manager.migrate_form_data(data, "1.0.0", "5.0.0")
        assert exc_info.value.to_version == "5.0.0"

    def test_migrate_to_active(self):
        manager = self.build_manager()
        data = FormData(template_id="t", template_version="1.0.0", session_id="s", values={"y": 1})
        migrated = manager.migrate_to_active(data)
        assert migrated.template_version == "1.0.1"
        assert migrated.values == {"x": "seeded"}

    def test_migrate_to_active_when_current(self):
        manager = self.build_manager()
        data = FormData(template_id="t", template_version="1.0.1", session_id="s", values={"a": 1})
        migrated = manager.migrate_to_active(data)
        assert migrated == data
        assert migrated is not data

    def test_migrate_to_active_without_history(self):
        data = FormData(template_id="t", template_version="1.0.0", session_id="s")
        with pytest.raises(MigrationError):
            TemplateVersionManager().migrate_to_active(data)


class TestExportImport:
    """History backup and restore."""

    def test_export_shape(self):
        manager = TemplateVersionManager()
        manager.add_version("employment", build_employment_template(), ["Initial version"], "alice")

        exported = json.loads(manager.export_history("employment"))

        assert exported["templateId"] == "employment"
        assert "exportedAt" in exported
        (version,) = exported["versions"]
        assert version["version"] == "1.0.0"
        assert version["createdBy"] == "alice"
        assert version["changelog"] == ["Initial version"]
        assert version["isActive"] is True
        assert version["template"]["id"] == "employment"

    def test_roundtrip(self):
        source = TemplateVersionManager()
        source.add_version("employment", build_employment_template())
        source.add_version(
            "employment",
            dataclasses.replace(build_employment_template(), name="Employment v2"),
        )
        source.rollback("employment", "1.0.0")

        target = TemplateVersionManager()
        assert target.import_history("employment", source.export_history("employment"))

        restored = target.get_all_versions("employment")
        original = source.get_all_versions("employment")
        assert [v.version for v in restored] == ["1.0.0", "1.0.1"]
        assert [v.template for v in restored] == [v.template for v in original]
        assert [v.created_at for v in restored] == [v.created_at for v in original]
        assert target.get_active_version("employment").version == "1.0.0"

    def test_malformed_import_is_rejected(self):
        manager = TemplateVersionManager()
        manager.add_version("t", template_with(text("a")))
        assert not manager.import_history("t", "{broken")
        assert not manager.import_history("t", json.dumps({"versions": [{"version": "1.0.0"}]}))
        assert len(manager.get_all_versions("t")) == 1

    def test_two_active_versions_rejected(self):
        source = TemplateVersionManager()
        source.add_version("t", template_with(text("a")))
        source.add_version("t", template_with(text("b")))
        exported = json.loads(source.export_history("t"))
        for version in exported["versions"]:
            version["isActive"] = True

        target = TemplateVersionManager()
        assert not target.import_history("t", json.dumps(exported))
        assert target.get_all_versions("t") == []
