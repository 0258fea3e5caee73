"""
Template Analyzer: early diagnostics and inventory of form templates.

This module provides lightweight analysis of FormTemplate objects:
    - Field and section inventory
    - Condition reference checks (undeclared / self-referencing fields)
    - Rule consistency (bounds, patterns, custom validator names)
    - Conditional dependency map
    - Warning flags for authoring mistakes

IMPORTANT: This is read-only. It does NOT modify the template and never raises.
"""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from .conditions import Condition
from .model import FormTemplate
from .validation import CustomValidatorRegistry


@dataclass
class TemplateReport:
    """Comprehensive analysis report for a template."""

    template_id: str
    version: str
    total_sections: int = 0
    total_fields: int = 0
    conditional_fields: int = 0
    conditional_sections: int = 0

    duplicate_field_ids: Set[str] = field(default_factory=set)
    undefined_references: Set[str] = field(default_factory=set)
    self_references: Set[str] = field(default_factory=set)
    unknown_operators: Set[str] = field(default_factory=set)
    unknown_custom_validators: Set[str] = field(default_factory=set)
    missing_options: Set[str] = field(default_factory=set)
    invalid_patterns: Set[str] = field(default_factory=set)
    inconsistent_bounds: Set[str] = field(default_factory=set)

    # field/section id -> ids of the fields its conditions read
    dependencies: Dict[str, Set[str]] = field(default_factory=dict)

    warnings: List[str] = field(default_factory=list)

    def add_warning(self, msg: str) -> None:
        """Add a warning to the report."""
        if msg not in self.warnings:
            self.warnings.append(msg)

    @property
    def is_clean(self) -> bool:
        return not self.warnings


def _referenced_fields(conditions: Iterable[Condition]) -> Set[str]:
    return {c.field for c in conditions}


def analyze_template(
    template: FormTemplate, registry: Optional[CustomValidatorRegistry] = None
) -> TemplateReport:
    """
    Perform comprehensive analysis of a FormTemplate.

    Args:
        template: Template to inspect
        registry: Custom validators considered known
            (default: the built-in registry)

    Returns a TemplateReport with metrics and warnings.
    """
    registry = registry if registry is not None else CustomValidatorRegistry.with_defaults()
    report = TemplateReport(template_id=template.id, version=template.version)

    all_fields = list(template.iter_fields())
    report.total_sections = len(template.sections)
    report.total_fields = len(all_fields)

    # =========================================================================
    # 1. FIELD INVENTORY
    # =========================================================================

    declared: Set[str] = set()
    for f in all_fields:
        if f.id in declared:
            report.duplicate_field_ids.add(f.id)
        declared.add(f.id)

    # =========================================================================
    # 2. CONDITION REFERENCES
    # =========================================================================

    dependencies: Dict[str, Set[str]] = defaultdict(set)

    for section in template.sections:
        if section.show_if:
            report.conditional_sections += 1
            dependencies[section.id].update(_referenced_fields(section.show_if))
        for c in section.show_if:
            if not c.is_known_operator:
                report.unknown_operators.add(str(c.operator))

    for f in all_fields:
        conditions = list(f.show_if) + list(f.required_if)
        if conditions:
            report.conditional_fields += 1
            dependencies[f.id].update(_referenced_fields(conditions))
        for c in conditions:
            if not c.is_known_operator:
                report.unknown_operators.add(str(c.operator))
            if c.field == f.id:
                report.self_references.add(f.id)

    for refs in dependencies.values():
        report.undefined_references.update(refs - declared)
    report.dependencies = dict(dependencies)

    # =========================================================================
    # 3. RULE CONSISTENCY
    # =========================================================================

    for f in all_fields:
        rules = f.validation
        if f.type.is_enumerable and not f.options:
            report.missing_options.add(f.id)
        if rules.custom and rules.custom not in registry:
            report.unknown_custom_validators.add(rules.custom)
        if rules.pattern:
            try:
                re.compile(rules.pattern)
            except re.error:
                report.invalid_patterns.add(f.id)
        if rules.min is not None and rules.max is not None and rules.min > rules.max:
            report.inconsistent_bounds.add(f.id)
        if (
            rules.min_length is not None
            and rules.max_length is not None
            and rules.min_length > rules.max_length
        ):
            report.inconsistent_bounds.add(f.id)

    # =========================================================================
    # 4. WARNING FLAGS
    # =========================================================================

    if report.duplicate_field_ids:
        report.add_warning(f"Duplicate field ids: {', '.join(sorted(report.duplicate_field_ids))}")

    if report.undefined_references:
        report.add_warning(
            f"Conditions reference undeclared fields: {', '.join(sorted(report.undefined_references))}"
        )

    if report.self_references:
        report.add_warning(
            f"Fields gated on their own value: {', '.join(sorted(report.self_references))}"
        )

    if report.unknown_operators:
        report.add_warning(
            f"Unknown condition operators (treated as satisfied): {', '.join(sorted(report.unknown_operators))}"
        )

    if report.unknown_custom_validators:
        report.add_warning(
            f"Unknown custom validators (ignored): {', '.join(sorted(report.unknown_custom_validators))}"
        )

    if report.missing_options:
        report.add_warning(
            f"Choice fields without options: {', '.join(sorted(report.missing_options))}"
        )

    if report.invalid_patterns:
        report.add_warning(f"Invalid regex patterns on: {', '.join(sorted(report.invalid_patterns))}")

    if report.inconsistent_bounds:
        report.add_warning(
            f"Lower bound above upper bound on: {', '.join(sorted(report.inconsistent_bounds))}"
        )

    if report.total_fields == 0:
        report.add_warning("Template declares no fields")

    return report
