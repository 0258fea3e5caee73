#!/usr/bin/env python3
"""
Complete Pipeline Demo: Template → Session → Auto-Save → New Version → Resume

Shows the full workflow:
1. Build and lint a template
2. Register it with the version manager
3. Fill a session (manual and voice input) and validate it
4. Persist it to a file store
5. Publish a new template version and resume the stale session
"""

import dataclasses
import logging
import tempfile

from vocaform.analyzer import analyze_template
from vocaform.examples import build_health_registration_template
from vocaform.model import FieldType, FormField, FormSection
from vocaform.session import FormSession
from vocaform.storage import FileStore
from vocaform.versioning import TemplateVersionManager


def main():
    logging.basicConfig(level=logging.INFO, format="   [%(name)s] %(message)s")

    print("=" * 80)
    print("COMPLETE PIPELINE DEMO: Template → Session → Auto-Save → Migration")
    print("=" * 80)

    # =========================================================================
    # STEP 1: Build and lint
    # =========================================================================
    print("\n1. LINTING TEMPLATE...")
    template = build_health_registration_template()
    report = analyze_template(template)
    print(f"   ✓ Template: {template.name} ({template.id} {template.version})")
    print(f"   ✓ Sections: {report.total_sections}, fields: {report.total_fields}")
    print(f"   ✓ Conditional fields: {report.conditional_fields}")
    print(f"   ✓ Warnings: {len(report.warnings)}")

    # =========================================================================
    # STEP 2: Version history
    # =========================================================================
    print("\n2. REGISTERING VERSION...")
    versions = TemplateVersionManager()
    version = versions.add_version(template.id, template, ["Initial version"], "demo")
    print(f"   ✓ Active version: {version}")

    # =========================================================================
    # STEP 3: Fill and validate
    # =========================================================================
    print("\n3. FILLING SESSION...")
    store = FileStore(tempfile.mkdtemp(prefix="vocaform-demo-"))
    session = FormSession.start(
        versions.get_active_version(template.id).template,
        store=store,
        version_manager=versions,
    )
    session.update_field("full_name", "Achieng Otieno")
    session.update_field("id_number", "12345678", confidence=0.93)
    session.update_field("employment_status", "employed")
    session.update_field("monthly_income", "85000", confidence=0.55)

    logic = session.evaluate()
    result = session.validate()
    print(f"   ✓ Visible fields: {len(logic.visible_fields)}")
    print(f"   ✓ Progress: {session.progress():.1f}%")
    print(f"   ✓ Valid: {result.is_valid}")
    for field_id, errors in result.errors.items():
        print(f"      - {field_id}: {'; '.join(errors)}")
    for field_id, warnings in result.warnings.items():
        print(f"      ! {field_id}: {'; '.join(warnings)}")

    # =========================================================================
    # STEP 4: Persist
    # =========================================================================
    print("\n4. SAVING...")
    session.close()
    print(f"   ✓ Saved to {store.directory} at {session.last_saved_at.isoformat()}")

    # =========================================================================
    # STEP 5: New version and resume
    # =========================================================================
    print("\n5. PUBLISHING v2 AND RESUMING...")
    personal, employment = template.sections
    trimmed = dataclasses.replace(
        employment,
        fields=tuple(f for f in employment.fields if f.id != "employer_number"),
    )
    dependants = FormSection(
        id="dependants",
        title="Dependants",
        fields=(FormField(id="dependant_count", type=FieldType.NUMBER, label="Dependants", default_value=0),),
    )
    new_version = versions.add_version(
        template.id,
        dataclasses.replace(template, sections=(personal, trimmed, dependants)),
        ["Drop employer number", "Add dependants"],
        "demo",
    )
    diff = versions.compare_versions(template.id, version, new_version)
    print(f"   ✓ {version} → {new_version}: added={diff.added} removed={diff.removed}")

    resumed = FormSession.resume(store, template.id, session.session_id, versions)
    data = resumed.snapshot()
    print(f"   ✓ Resumed on {data.template_version} with {len(data.values)} values")
    print(f"   ✓ Progress: {resumed.progress():.1f}%")

    print("\n" + "=" * 80)
    print("PIPELINE COMPLETE")
    print("=" * 80)


if __name__ == "__main__":
    main()
