"""
Shared template fixtures.

The employment template mirrors the smallest realistic gated form:
a status select driving the visibility and requirement of an
employer field, plus a numeric age with a lower bound.
"""

import pytest

from vocaform.conditions import Condition, Operator
from vocaform.model import (
    FieldOption,
    FieldType,
    FieldValidation,
    FormField,
    FormSection,
    FormTemplate,
)


def build_employment_template(version: str = "1.0.0") -> FormTemplate:
    employed = Condition("employment_status", Operator.EQUALS, "employed")
    return FormTemplate(
        id="employment",
        version=version,
        name="Employment",
        sections=(
            FormSection(
                id="about",
                title="About you",
                fields=(
                    FormField(
                        id="age",
                        type=FieldType.NUMBER,
                        label="Age",
                        validation=FieldValidation(required=True, min=18),
                    ),
                    FormField(
                        id="employment_status",
                        type=FieldType.SELECT,
                        label="Employment Status",
                        validation=FieldValidation(required=True),
                        options=(
                            FieldOption("employed", "Employed"),
                            FieldOption("unemployed", "Unemployed"),
                        ),
                    ),
                ),
            ),
            FormSection(
                id="work",
                title="Work",
                fields=(
                    FormField(
                        id="employer_name",
                        type=FieldType.TEXT,
                        label="Employer Name",
                        show_if=(employed,),
                        required_if=(employed,),
                    ),
                ),
            ),
        ),
    )


@pytest.fixture
def employment_template() -> FormTemplate:
    return build_employment_template()
