"""
Built-in example templates.

Two government service forms exercising every engine feature:
conditional visibility, conditional requirement, custom validators,
numeric bounds and checkbox (list-valued) conditions.
"""
from typing import Callable, Dict, List, Tuple

from vocaform.conditions import Condition, Operator
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


def _options(*pairs: Tuple[str, str]) -> Tuple[FieldOption, ...]:
    return tuple(FieldOption(value=value, label=label) for value, label in pairs)


def _required(**rules) -> FieldValidation:
    return FieldValidation(required=True, **rules)


def build_license_renewal_template() -> FormTemplate:
    """Driver's licence renewal: five sections, medical and endorsement branches."""
    personal_info = FormSection(
        id="personal_info",
        title="Personal Information",
        description="Basic personal details for license renewal",
        fields=(
            FormField(
                id="full_name",
                type=FieldType.TEXT,
                label="Full Name",
                placeholder="Enter your full name as it appears on your ID",
                validation=_required(
                    min_length=2,
                    max_length=100,
                    pattern=r"^[a-zA-Z\s]+$",
                    message="Name should only contain letters and spaces",
                ),
            ),
            FormField(
                id="id_number",
                type=FieldType.TEXT,
                label="National ID Number",
                placeholder="12345678",
                validation=_required(custom="kenyan_id"),
                width=FieldWidth.HALF,
            ),
            FormField(
                id="date_of_birth",
                type=FieldType.DATE,
                label="Date of Birth",
                validation=_required(),
                width=FieldWidth.HALF,
            ),
            FormField(
                id="gender",
                type=FieldType.SELECT,
                label="Gender",
                validation=_required(),
                options=_options(("male", "Male"), ("female", "Female"), ("other", "Other")),
                width=FieldWidth.HALF,
            ),
            FormField(
                id="phone_number",
                type=FieldType.TEL,
                label="Phone Number",
                placeholder="+254712345678",
                validation=_required(custom="kenyan_phone"),
                width=FieldWidth.HALF,
            ),
        ),
    )

    license_info = FormSection(
        id="license_info",
        title="Current License Information",
        description="Details about your current driving license",
        fields=(
            FormField(
                id="current_license_number",
                type=FieldType.TEXT,
                label="Current License Number",
                placeholder="DL123456",
                validation=_required(custom="license_number"),
                width=FieldWidth.HALF,
            ),
            FormField(
                id="license_class",
                type=FieldType.SELECT,
                label="License Class",
                validation=_required(),
                options=_options(
                    ("A", "Class A - Motorcycles"),
                    ("B", "Class B - Light Motor Vehicles"),
                    ("C", "Class C - Medium Motor Vehicles"),
                    ("D", "Class D - Heavy Motor Vehicles"),
                    ("E", "Class E - Articulated Vehicles"),
                ),
                width=FieldWidth.HALF,
            ),
            FormField(
                id="license_expiry",
                type=FieldType.DATE,
                label="Current License Expiry Date",
                validation=_required(),
                width=FieldWidth.HALF,
            ),
            FormField(
                id="has_endorsements",
                type=FieldType.CHECKBOX,
                label="Do you have any endorsements on your current license?",
                options=_options(("yes", "Yes, I have endorsements")),
                width=FieldWidth.HALF,
            ),
            FormField(
                id="endorsements_details",
                type=FieldType.TEXTAREA,
                label="Endorsement Details",
                placeholder="Describe your current endorsements",
                # checkbox values are lists
                show_if=(Condition("has_endorsements", Operator.EQUALS, ("yes",)),),
                validation=FieldValidation(min_length=10, max_length=500),
            ),
        ),
    )

    contact_info = FormSection(
        id="contact_info",
        title="Contact Information",
        description="Where we can reach you",
        fields=(
            FormField(
                id="email",
                type=FieldType.EMAIL,
                label="Email Address",
                placeholder="your.email@example.com",
            ),
            FormField(
                id="postal_address",
                type=FieldType.TEXTAREA,
                label="Postal Address",
                placeholder="P.O. Box 12345, Nairobi",
                validation=_required(min_length=10),
            ),
            FormField(
                id="physical_address",
                type=FieldType.TEXTAREA,
                label="Physical Address",
                placeholder="Street, Building, Area, City",
                validation=_required(min_length=15),
            ),
        ),
    )

    has_conditions = Condition("has_medical_conditions", Operator.EQUALS, "yes")
    medical_info = FormSection(
        id="medical_info",
        title="Medical Information",
        description="Health-related information for license renewal",
        fields=(
            FormField(
                id="has_medical_conditions",
                type=FieldType.RADIO,
                label="Do you have any medical conditions that may affect your driving?",
                validation=_required(),
                options=_options(("yes", "Yes"), ("no", "No")),
            ),
            FormField(
                id="medical_conditions_details",
                type=FieldType.TEXTAREA,
                label="Medical Condition Details",
                placeholder="Please describe your medical conditions",
                show_if=(has_conditions,),
                required_if=(has_conditions,),
                validation=FieldValidation(min_length=10, max_length=1000),
            ),
            FormField(
                id="wears_glasses",
                type=FieldType.CHECKBOX,
                label="Do you wear glasses or contact lenses while driving?",
                options=_options(("yes", "Yes, I wear corrective lenses")),
            ),
            FormField(
                id="medical_certificate",
                type=FieldType.FILE,
                label="Medical Certificate (if required)",
                show_if=(has_conditions,),
            ),
        ),
    )

    declaration = FormSection(
        id="declaration",
        title="Declaration",
        description="Legal declarations and agreements",
        fields=(
            FormField(
                id="declaration_truth",
                type=FieldType.CHECKBOX,
                label="I declare that the information provided is true and accurate",
                validation=_required(),
                options=_options(("agreed", "I confirm this declaration")),
            ),
            FormField(
                id="declaration_penalties",
                type=FieldType.CHECKBOX,
                label="I understand that providing false information may result in penalties",
                validation=_required(),
                options=_options(("understood", "I understand the penalties")),
            ),
            FormField(
                id="signature_date",
                type=FieldType.DATE,
                label="Date of Application",
                validation=_required(),
                width=FieldWidth.HALF,
            ),
        ),
    )

    return FormTemplate(
        id="ntsa-license-v2",
        version="2.0.0",
        name="NTSA Driver's License Renewal (Enhanced)",
        description="Enhanced NTSA license renewal form with conditional logic and validation",
        category="Transport",
        tags=("ntsa", "license", "renewal", "transport"),
        estimated_time=15,
        difficulty="medium",
        settings=TemplateSettings(auto_save=True, auto_save_interval=30, allow_partial_submission=True),
        submission=SubmissionConfig(method=SubmissionMethod.PDF, pdf_template="ntsa_license_template"),
        sections=(personal_info, license_info, contact_info, medical_info, declaration),
    )


def build_health_registration_template() -> FormTemplate:
    """Health insurance registration: employment answers gate the employer fields."""
    personal_details = FormSection(
        id="personal_details",
        title="Personal Details",
        fields=(
            FormField(
                id="full_name",
                type=FieldType.TEXT,
                label="Full Name",
                validation=_required(min_length=2, max_length=100),
            ),
            FormField(
                id="id_number",
                type=FieldType.TEXT,
                label="National ID Number",
                validation=_required(custom="kenyan_id"),
                width=FieldWidth.HALF,
            ),
            FormField(
                id="date_of_birth",
                type=FieldType.DATE,
                label="Date of Birth",
                validation=_required(),
                width=FieldWidth.HALF,
            ),
            FormField(
                id="gender",
                type=FieldType.SELECT,
                label="Gender",
                validation=_required(),
                options=_options(("male", "Male"), ("female", "Female")),
                width=FieldWidth.HALF,
            ),
            FormField(
                id="marital_status",
                type=FieldType.SELECT,
                label="Marital Status",
                validation=_required(),
                options=_options(
                    ("single", "Single"),
                    ("married", "Married"),
                    ("divorced", "Divorced"),
                    ("widowed", "Widowed"),
                ),
                width=FieldWidth.HALF,
            ),
        ),
    )

    employed = Condition("employment_status", Operator.EQUALS, "employed")
    employment_info = FormSection(
        id="employment_info",
        title="Employment Information",
        fields=(
            FormField(
                id="employment_status",
                type=FieldType.SELECT,
                label="Employment Status",
                validation=_required(),
                options=_options(
                    ("employed", "Employed"),
                    ("self_employed", "Self Employed"),
                    ("unemployed", "Unemployed"),
                    ("student", "Student"),
                    ("retired", "Retired"),
                ),
            ),
            FormField(
                id="employer_name",
                type=FieldType.TEXT,
                label="Employer Name",
                show_if=(employed,),
                required_if=(employed,),
                width=FieldWidth.HALF,
            ),
            FormField(
                id="employer_number",
                type=FieldType.TEXT,
                label="Employer NHIF Number",
                show_if=(employed,),
                validation=FieldValidation(custom="nhif_number"),
                width=FieldWidth.HALF,
            ),
            FormField(
                id="monthly_income",
                type=FieldType.NUMBER,
                label="Monthly Income (KSh)",
                show_if=(Condition("employment_status", Operator.NOT_EQUALS, "unemployed"),),
                validation=FieldValidation(min=0, max=10000000),
                width=FieldWidth.HALF,
            ),
        ),
    )

    return FormTemplate(
        id="nhif-registration-v2",
        version="2.0.0",
        name="NHIF Registration (Enhanced)",
        description="Enhanced NHIF registration form with smart validation",
        category="Health",
        tags=("nhif", "health", "insurance", "registration"),
        estimated_time=12,
        difficulty="easy",
        settings=TemplateSettings(auto_save=True, auto_save_interval=30, allow_partial_submission=True),
        submission=SubmissionConfig(
            method=SubmissionMethod.PDF, pdf_template="nhif_registration_template"
        ),
        sections=(personal_details, employment_info),
    )


EXAMPLE_TEMPLATES: Dict[str, Callable[[], FormTemplate]] = {
    "license-renewal": build_license_renewal_template,
    "health-registration": build_health_registration_template,
}


def example_names() -> List[str]:
    return sorted(EXAMPLE_TEMPLATES)


def build_example(name: str) -> FormTemplate:
    """
    Build a built-in template by name.

    Raises:
        KeyError: if no example has that name
    """
    try:
        builder = EXAMPLE_TEMPLATES[name]
    except KeyError:
        raise KeyError(f"Unknown example '{name}' (available: {', '.join(example_names())})") from None
    return builder()
