"""
Patient Summary Projections
===========================

Presentation-ready views of a PatientRecord: the comorbidity list and the
vital signs tagged against fixed adult reference ranges.

Reference ranges (normal / critical):
- Heart rate: 60-100 bpm / below 40 or above 130
- Blood pressure: systolic <140 and diastolic <90 / systolic >=180 or diastolic >=120
- Respiratory rate: 12-20 breaths/min / below 8 or above 30
- Temperature: <=38.0 C / above 39.0 C
- Oxygen saturation: >=94% / below 90%

Anything between normal and critical is a warning.
"""

from typing import Dict, List, Optional, Tuple

from .records import (
    COMORBIDITY_LABELS,
    INTERVENTION_LABELS,
    PatientRecord,
    VitalReading,
    Vitals,
    VitalStatus,
)


def _fmt(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def classify_heart_rate(bpm: float) -> VitalStatus:
    if bpm < 40 or bpm > 130:
        return VitalStatus.CRITICAL
    if 60 <= bpm <= 100:
        return VitalStatus.NORMAL
    return VitalStatus.WARNING


def classify_blood_pressure(
    systolic: Optional[float],
    diastolic: Optional[float]
) -> VitalStatus:
    """Either half may be missing; the present half is judged alone."""

    if (systolic is not None and systolic >= 180) or (diastolic is not None and diastolic >= 120):
        return VitalStatus.CRITICAL
    if (systolic is None or systolic < 140) and (diastolic is None or diastolic < 90):
        return VitalStatus.NORMAL
    return VitalStatus.WARNING


def classify_respiratory_rate(rate: float) -> VitalStatus:
    if rate < 8 or rate > 30:
        return VitalStatus.CRITICAL
    if 12 <= rate <= 20:
        return VitalStatus.NORMAL
    return VitalStatus.WARNING


def classify_temperature(celsius: float) -> VitalStatus:
    if celsius > 39.0:
        return VitalStatus.CRITICAL
    if celsius <= 38.0:
        return VitalStatus.NORMAL
    return VitalStatus.WARNING


def classify_oxygen_saturation(pct: float) -> VitalStatus:
    if pct < 90:
        return VitalStatus.CRITICAL
    if pct >= 94:
        return VitalStatus.NORMAL
    return VitalStatus.WARNING


def build_vitals_view(vitals: Vitals) -> Tuple[VitalReading, ...]:
    """Tag each assessed vital. Vitals that were not taken are left out."""

    readings: List[VitalReading] = []

    if vitals.heart_rate is not None:
        readings.append(VitalReading(
            'Heart Rate', _fmt(vitals.heart_rate), 'bpm',
            classify_heart_rate(vitals.heart_rate)
        ))

    systolic, diastolic = vitals.blood_pressure_systolic, vitals.blood_pressure_diastolic
    if systolic is not None or diastolic is not None:
        value = '/'.join('--' if v is None else _fmt(v) for v in (systolic, diastolic))
        readings.append(VitalReading(
            'Blood Pressure', value, 'mmHg',
            classify_blood_pressure(systolic, diastolic)
        ))

    if vitals.respiratory_rate is not None:
        readings.append(VitalReading(
            'Respiratory Rate', _fmt(vitals.respiratory_rate), 'breaths/min',
            classify_respiratory_rate(vitals.respiratory_rate)
        ))

    if vitals.temperature_c is not None:
        readings.append(VitalReading(
            'Temperature', _fmt(vitals.temperature_c), '°C',
            classify_temperature(vitals.temperature_c)
        ))

    if vitals.oxygen_saturation_pct is not None:
        readings.append(VitalReading(
            'Oxygen Saturation', _fmt(vitals.oxygen_saturation_pct), '%',
            classify_oxygen_saturation(vitals.oxygen_saturation_pct)
        ))

    return tuple(readings)


def build_comorbidity_list(record: PatientRecord) -> Tuple[str, ...]:
    return tuple(COMORBIDITY_LABELS[name] for name in record.comorbidities)


def build_patient_summary(record: PatientRecord) -> Dict:
    """
    Everything the report page shows about the patient, in display form.
    """

    return {
        'patient_id': record.patient_id,
        'age': record.age,
        'gender': record.gender.value.title(),
        'primary_diagnosis': record.diagnosis_label,
        'length_of_stay': record.length_of_stay_days,
        'bmi': record.bmi,
        'vital_signs': build_vitals_view(record.vitals),
        'medical_history': [
            {'condition': label, 'present': getattr(record, name)}
            for name, label in COMORBIDITY_LABELS.items()
        ],
        'interventions': [
            {'intervention': label, 'present': getattr(record, name)}
            for name, label in INTERVENTION_LABELS.items()
        ],
        'previous_icu_admission': record.previous_icu_admission,
    }
