"""Command line interface for inspecting templates and answer files.

Usage:
    vocaform lint template.yaml
    vocaform validate template.json answers.json
    vocaform diff old.json new.json
    vocaform example health-registration --format yaml
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from vocaform.analyzer import analyze_template
from vocaform.config import load_config
from vocaform.errors import FormEngineError
from vocaform.evaluator import ConditionalLogicEngine
from vocaform.examples import build_example, example_names
from vocaform.form_data import FormData
from vocaform.serialization import (
    form_data_from_dict,
    load_template,
    template_to_json,
    template_to_yaml,
)
from vocaform.validation import FormValidator
from vocaform.versioning import compare_templates

logger = logging.getLogger(__name__)


def _load_answers(path: str, template_id: str, template_version: str) -> FormData:
    """Read either a bare {fieldId: value} object or a full session snapshot."""
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError(f"Answers file {path} must hold a JSON object")
    if "templateId" in data and "values" in data:
        return form_data_from_dict(data)
    return FormData(
        template_id=template_id,
        template_version=template_version,
        session_id="cli",
        values=data,
    )


def _cmd_lint(args) -> int:
    template = load_template(args.template)
    report = analyze_template(template)
    print(f"{report.template_id} {report.version}: "
          f"{report.total_sections} sections, {report.total_fields} fields, "
          f"{report.conditional_fields} conditional")
    for warning in report.warnings:
        print(f"  WARNING: {warning}")
    return 0 if report.is_clean else 1


def _cmd_validate(args) -> int:
    config = load_config(args.config)
    template = load_template(args.template)
    form_data = _load_answers(args.answers, template.id, template.version)

    evaluator = ConditionalLogicEngine()
    validator = FormValidator(
        evaluator=evaluator, low_confidence_threshold=config.low_confidence_threshold
    )
    result = validator.validate_form(template, form_data)
    logic = evaluator.evaluate(template, form_data.values)

    print(json.dumps(
        {
            "isValid": result.is_valid,
            "errors": result.errors,
            "warnings": result.warnings,
            "visibleFields": logic.visible_fields,
            "requiredFields": logic.required_fields,
            "hiddenSections": logic.hidden_sections,
        },
        indent=2,
    ))
    return 0 if result.is_valid else 1


def _cmd_diff(args) -> int:
    comparison = compare_templates(load_template(args.old), load_template(args.new))
    print(json.dumps(
        {
            "added": comparison.added,
            "removed": comparison.removed,
            "modified": comparison.modified,
            "hasChanges": comparison.has_changes,
        },
        indent=2,
    ))
    return 0


def _cmd_example(args) -> int:
    template = build_example(args.name)
    if args.format == "yaml":
        sys.stdout.write(template_to_yaml(template))
    else:
        print(template_to_json(template))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vocaform", description="Dynamic form template tools")
    parser.add_argument("--config", default=None, help="YAML file with engine settings")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    lint = subparsers.add_parser("lint", help="Report authoring problems in a template")
    lint.add_argument("template", type=Path)
    lint.set_defaults(func=_cmd_lint)

    validate = subparsers.add_parser("validate", help="Validate answers against a template")
    validate.add_argument("template", type=Path)
    validate.add_argument("answers", help="JSON object of values, or a session snapshot")
    validate.set_defaults(func=_cmd_validate)

    diff = subparsers.add_parser("diff", help="Compare the fields of two templates")
    diff.add_argument("old", type=Path)
    diff.add_argument("new", type=Path)
    diff.set_defaults(func=_cmd_diff)

    example = subparsers.add_parser("example", help="Print a built-in template")
    example.add_argument("name", choices=example_names())
    example.add_argument("--format", choices=("json", "yaml"), default="json")
    example.set_defaults(func=_cmd_example)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except (FormEngineError, OSError, ValueError) as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"[ERROR] {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
