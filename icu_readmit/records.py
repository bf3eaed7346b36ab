"""
Domain Types for ICU Readmission Risk
=====================================

Clinical Context:
-----------------
Patient data reaches the system in several shapes (hand-entered form fields,
two CSV header conventions). Everything downstream works on one canonical,
immutable PatientRecord so that scoring never has to guess what a field means.

Absent vitals mean "not assessed", never zero. Absent comorbidity and
intervention flags mean False.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Dict, Optional, Tuple


class IntakeError(Exception):
    """Base class for errors raised while ingesting patient data."""


class ValidationError(IntakeError):
    """A single field is missing or could not be coerced."""

    def __init__(self, field_name: str, message: str):
        self.field = field_name
        self.message = message
        super().__init__(f"{field_name}: {message}")


class CsvFormatError(IntakeError):
    """A CSV row does not line up with its header."""

    def __init__(self, line_number: int, message: str):
        self.line_number = line_number
        self.message = message
        super().__init__(f"line {line_number}: {message}")


class SourceKind(str, Enum):
    FORM = "form"
    CSV = "csv"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class OutcomeLabel(str, Enum):
    LOW_RISK = "LowRisk"
    MODERATE_RISK = "ModerateRisk"
    HIGH_RISK = "HighRisk"

    @property
    def display(self) -> str:
        return {
            'LowRisk': 'Low Risk',
            'ModerateRisk': 'Moderate Risk',
            'HighRisk': 'High Risk',
        }[self.value]


class VitalStatus(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


# Known primary diagnoses and their display text
DIAGNOSIS_LABELS: Dict[str, str] = {
    'respiratory': 'Respiratory Failure',
    'cardiovascular': 'Cardiovascular Disorder',
    'sepsis': 'Sepsis',
    'neurological': 'Neurological Disorder',
    'gastrointestinal': 'Gastrointestinal Disorder',
    'trauma': 'Trauma',
    'renal': 'Renal Failure',
    'other': 'Other',
}

# Order matters: it is the display order of comorbidities and interventions
COMORBIDITY_LABELS: Dict[str, str] = {
    'diabetes': 'Diabetes',
    'hypertension': 'Hypertension',
    'heart_disease': 'Heart Disease',
    'lung_disease': 'Lung Disease',
    'renal_disease': 'Renal Disease',
    'cancer': 'Cancer',
    'immunocompromised': 'Immunocompromised',
}

INTERVENTION_LABELS: Dict[str, str] = {
    'ventilator_support': 'Ventilator Support',
    'vasopressor_use': 'Vasopressor Use',
    'dialysis': 'Dialysis',
    'surgery_during_stay': 'Surgery During Stay',
}


@dataclass(frozen=True)
class Vitals:
    """Bedside vital signs. Each value is None when it was not assessed."""

    heart_rate: Optional[float] = None
    blood_pressure_systolic: Optional[float] = None
    blood_pressure_diastolic: Optional[float] = None
    respiratory_rate: Optional[float] = None
    temperature_c: Optional[float] = None
    oxygen_saturation_pct: Optional[float] = None

    def assessed_count(self) -> int:
        return sum(1 for f in fields(self) if getattr(self, f.name) is not None)


@dataclass(frozen=True)
class PatientRecord:
    """
    Canonical patient record produced by the normalizer.

    Every comorbidity and intervention flag is a plain bool. Optional
    measurements (vitals, height, weight) are None when absent.
    """

    patient_id: str
    age: int
    gender: Gender
    length_of_stay_days: int
    primary_diagnosis: str

    # Comorbidities
    diabetes: bool = False
    hypertension: bool = False
    heart_disease: bool = False
    lung_disease: bool = False
    renal_disease: bool = False
    cancer: bool = False
    immunocompromised: bool = False

    # Interventions during the stay
    ventilator_support: bool = False
    vasopressor_use: bool = False
    dialysis: bool = False
    surgery_during_stay: bool = False

    previous_icu_admission: bool = False

    vitals: Vitals = field(default_factory=Vitals)
    height_cm: Optional[float] = None
    weight_kg: Optional[float] = None

    @property
    def diagnosis_label(self) -> str:
        return DIAGNOSIS_LABELS.get(self.primary_diagnosis, self.primary_diagnosis)

    @property
    def comorbidities(self) -> Tuple[str, ...]:
        return tuple(name for name in COMORBIDITY_LABELS if getattr(self, name))

    @property
    def interventions(self) -> Tuple[str, ...]:
        return tuple(name for name in INTERVENTION_LABELS if getattr(self, name))

    @property
    def bmi(self) -> Optional[float]:
        if not self.height_cm or self.weight_kg is None:
            return None
        height_m = self.height_cm / 100
        return round(self.weight_kg / (height_m * height_m), 1)


@dataclass(frozen=True)
class VitalReading:
    name: str
    value: str
    unit: str
    status: VitalStatus

    @property
    def normal(self) -> bool:
        return self.status is VitalStatus.NORMAL


@dataclass(frozen=True)
class Recommendation:
    title: str
    description: str


ASSESSMENT_COLUMNS = [
    'patient_id',
    'risk_score',
    'risk_percentage',
    'confidence',
    'outcome_label',
    'outcome',
    'key_factors',
    'comorbidities',
    'abnormal_vitals',
]


@dataclass(frozen=True)
class RiskAssessment:
    """
    Output of one scoring call. Recomputed on every call, never updated in place.
    """

    patient_id: str
    risk_score: int
    confidence: int
    outcome_label: OutcomeLabel
    key_factors: Tuple[str, ...]
    comorbidity_list: Tuple[str, ...]
    vitals_view: Tuple[VitalReading, ...]
    recommendations: Tuple[Recommendation, ...] = ()

    @property
    def risk_percentage(self) -> str:
        return f"{self.risk_score}%"

    def to_dict(self) -> Dict:
        """Flat projection used for CSV export and presentation."""
        return {
            'patient_id': self.patient_id,
            'risk_score': self.risk_score,
            'risk_percentage': self.risk_percentage,
            'confidence': self.confidence,
            'outcome_label': self.outcome_label.value,
            'outcome': self.outcome_label.display,
            'key_factors': '; '.join(self.key_factors),
            'comorbidities': ', '.join(self.comorbidity_list),
            'abnormal_vitals': ', '.join(
                v.name for v in self.vitals_view if not v.normal
            ),
        }
