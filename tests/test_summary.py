"""Tests for vital sign tagging and patient summaries."""

import pytest

from icu_readmit.records import Vitals, VitalStatus
from icu_readmit.summary import (
    build_patient_summary,
    build_vitals_view,
    classify_blood_pressure,
    classify_heart_rate,
    classify_oxygen_saturation,
    classify_respiratory_rate,
    classify_temperature,
)

NORMAL = VitalStatus.NORMAL
WARNING = VitalStatus.WARNING
CRITICAL = VitalStatus.CRITICAL


@pytest.mark.parametrize("bpm,status", [
    (39, CRITICAL), (50, WARNING), (60, NORMAL), (100, NORMAL), (120, WARNING), (131, CRITICAL),
])
def test_heart_rate(bpm, status):
    assert classify_heart_rate(bpm) is status


@pytest.mark.parametrize("systolic,diastolic,status", [
    (120, 80, NORMAL),
    (145, 85, WARNING),
    (130, 95, WARNING),
    (180, 90, CRITICAL),
    (150, 120, CRITICAL),
    (None, 80, NORMAL),
    (185, None, CRITICAL),
])
def test_blood_pressure(systolic, diastolic, status):
    assert classify_blood_pressure(systolic, diastolic) is status


@pytest.mark.parametrize("rate,status", [
    (7, CRITICAL), (10, WARNING), (16, NORMAL), (24, WARNING), (31, CRITICAL),
])
def test_respiratory_rate(rate, status):
    assert classify_respiratory_rate(rate) is status


@pytest.mark.parametrize("celsius,status", [
    (36.8, NORMAL), (38.0, NORMAL), (38.5, WARNING), (39.0, WARNING), (39.4, CRITICAL),
])
def test_temperature(celsius, status):
    assert classify_temperature(celsius) is status


@pytest.mark.parametrize("pct,status", [
    (98, NORMAL), (94, NORMAL), (92, WARNING), (89, CRITICAL),
])
def test_oxygen_saturation(pct, status):
    assert classify_oxygen_saturation(pct) is status


class TestVitalsView:

    def test_unassessed_vitals_are_omitted(self):
        assert build_vitals_view(Vitals()) == ()

    def test_full_view(self):
        view = build_vitals_view(Vitals(
            heart_rate=92.0,
            blood_pressure_systolic=158.0,
            blood_pressure_diastolic=95.0,
            respiratory_rate=26.0,
            temperature_c=38.1,
            oxygen_saturation_pct=92.0,
        ))

        assert [(v.name, v.value, v.unit) for v in view] == [
            ('Heart Rate', '92', 'bpm'),
            ('Blood Pressure', '158/95', 'mmHg'),
            ('Respiratory Rate', '26', 'breaths/min'),
            ('Temperature', '38.1', '°C'),
            ('Oxygen Saturation', '92', '%'),
        ]
        assert [v.normal for v in view] == [True, False, False, False, False]

    def test_half_blood_pressure(self):
        (reading,) = build_vitals_view(Vitals(blood_pressure_diastolic=70.0))
        assert reading.value == '--/70'
        assert reading.normal


def test_patient_summary(high_risk_record):
    summary = build_patient_summary(high_risk_record)

    assert summary['patient_id'] == 'HR-1'
    assert summary['gender'] == 'Male'
    assert summary['primary_diagnosis'] == 'Respiratory Failure'
    assert summary['bmi'] is None
    assert summary['previous_icu_admission'] is True
    present = [h['condition'] for h in summary['medical_history'] if h['present']]
    assert present == ['Diabetes', 'Hypertension', 'Heart Disease', 'Lung Disease']
    assert len(summary['interventions']) == 4
