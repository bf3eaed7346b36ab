"""
Field Mapping Table
===================

The intake form uses camelCase keys ("heartDisease"), the downloadable CSV
template uses snake_case headers ("heart_disease"), and older exports use the
form names as CSV headers. This table is the one place where those names are
tied to the canonical PatientRecord attributes. Every lookup dict below is
derived from it.
"""

from typing import Dict, List, NamedTuple, Tuple


class FieldSpec(NamedTuple):
    canonical: str
    kind: str               # id | int | float | bool | gender | diagnosis
    form_name: str
    csv_name: str
    aliases: Tuple[str, ...] = ()
    mandatory: bool = False
    template: bool = False  # part of the downloadable template header


FIELDS: Tuple[FieldSpec, ...] = (
    # Demographics and admission
    FieldSpec('patient_id', 'id', 'id', 'patient_id', ('patientId',), template=True),
    FieldSpec('age', 'int', 'age', 'age', mandatory=True, template=True),
    FieldSpec('gender', 'gender', 'gender', 'gender', ('sex',), mandatory=True, template=True),
    FieldSpec('length_of_stay_days', 'int', 'lengthOfStay', 'length_of_stay',
              ('lengthOfStayDays', 'length_of_stay_days', 'los'), mandatory=True, template=True),
    FieldSpec('primary_diagnosis', 'diagnosis', 'primaryDiagnosis', 'primary_diagnosis',
              mandatory=True, template=True),

    # Comorbidities
    FieldSpec('diabetes', 'bool', 'diabetes', 'diabetes', template=True),
    FieldSpec('hypertension', 'bool', 'hypertension', 'hypertension', template=True),
    FieldSpec('heart_disease', 'bool', 'heartDisease', 'heart_disease', template=True),
    FieldSpec('lung_disease', 'bool', 'lungDisease', 'lung_disease', template=True),
    FieldSpec('renal_disease', 'bool', 'renalDisease', 'renal_disease',
              ('kidneyDisease', 'kidney_disease'), template=True),
    FieldSpec('cancer', 'bool', 'cancer', 'cancer'),
    FieldSpec('immunocompromised', 'bool', 'immunocompromised', 'immunocompromised'),

    # Interventions
    FieldSpec('ventilator_support', 'bool', 'ventilatorSupport', 'ventilator_support', template=True),
    FieldSpec('vasopressor_use', 'bool', 'vasopressorUse', 'vasopressors',
              ('vasopressor_use',), template=True),
    FieldSpec('dialysis', 'bool', 'dialysis', 'dialysis', template=True),
    FieldSpec('surgery_during_stay', 'bool', 'surgeryDuringStay', 'surgery_during_stay'),
    FieldSpec('previous_icu_admission', 'bool', 'previousICUAdmission', 'previous_icu_admission',
              ('previousIcuAdmission',), template=True),

    # Vital signs
    FieldSpec('heart_rate', 'float', 'heartRate', 'heart_rate'),
    FieldSpec('blood_pressure_systolic', 'float', 'bloodPressureSystolic', 'blood_pressure_systolic',
              ('systolic_bp',)),
    FieldSpec('blood_pressure_diastolic', 'float', 'bloodPressureDiastolic', 'blood_pressure_diastolic',
              ('diastolic_bp',)),
    FieldSpec('respiratory_rate', 'float', 'respiratoryRate', 'respiratory_rate'),
    FieldSpec('temperature_c', 'float', 'temperature', 'temperature', ('temperature_c',)),
    FieldSpec('oxygen_saturation_pct', 'float', 'oxygenSaturation', 'oxygen_saturation',
              ('oxygen_saturation_pct', 'spo2')),

    # Anthropometrics
    FieldSpec('height_cm', 'float', 'height', 'height', ('height_cm',)),
    FieldSpec('weight_kg', 'float', 'weight', 'weight', ('weight_kg',)),
)

FIELDS_BY_NAME: Dict[str, FieldSpec] = {spec.canonical: spec for spec in FIELDS}

VITAL_FIELDS: Tuple[str, ...] = (
    'heart_rate',
    'blood_pressure_systolic',
    'blood_pressure_diastolic',
    'respiratory_rate',
    'temperature_c',
    'oxygen_saturation_pct',
)

MANDATORY_FIELDS: Tuple[str, ...] = tuple(s.canonical for s in FIELDS if s.mandatory)

FORM_TO_CANONICAL: Dict[str, str] = {s.form_name: s.canonical for s in FIELDS}
CSV_TO_CANONICAL: Dict[str, str] = {s.csv_name: s.canonical for s in FIELDS}
CANONICAL_TO_FORM: Dict[str, str] = {s.canonical: s.form_name for s in FIELDS}
CANONICAL_TO_CSV: Dict[str, str] = {s.canonical: s.csv_name for s in FIELDS}

CSV_TEMPLATE_COLUMNS: List[str] = [s.csv_name for s in FIELDS if s.template]
CSV_EXPORT_COLUMNS: List[str] = [s.csv_name for s in FIELDS]


def candidate_keys(spec: FieldSpec, prefer_csv: bool) -> Tuple[str, ...]:
    """Keys to try for a field, in lookup order."""

    primary = (spec.csv_name, spec.form_name) if prefer_csv else (spec.form_name, spec.csv_name)
    seen = []
    for key in primary + (spec.canonical,) + spec.aliases:
        if key not in seen:
            seen.append(key)
    return tuple(seen)


def display_name(canonical: str) -> str:
    """Human-readable field name for error messages, e.g. 'length of stay'."""

    spec = FIELDS_BY_NAME.get(canonical)
    name = spec.csv_name if spec else canonical
    return name.replace('_', ' ')
