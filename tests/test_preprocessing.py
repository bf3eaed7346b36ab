"""Tests for record normalization and the field table."""

import math

import pytest

from icu_readmit.preprocessing import (
    normalize_diagnosis,
    normalize_record,
    parse_bool,
    parse_float,
    parse_int,
    validate_fields,
)
from icu_readmit.records import Gender, SourceKind, ValidationError
from icu_readmit.schema import (
    CSV_TEMPLATE_COLUMNS,
    CSV_TO_CANONICAL,
    FIELDS_BY_NAME,
    FORM_TO_CANONICAL,
    MANDATORY_FIELDS,
    candidate_keys,
    display_name,
)


class TestScalarParsing:

    def test_parse_int_accepts_digits_and_integral_numbers(self):
        assert parse_int("42") == 42
        assert parse_int(" 7 ") == 7
        assert parse_int(12.0) == 12

    @pytest.mark.parametrize("value", ["7.5", "seven", "", True, 7.5])
    def test_parse_int_rejects(self, value):
        with pytest.raises(ValueError):
            parse_int(value)

    def test_parse_float(self):
        assert parse_float("37.2") == 37.2
        assert parse_float(".5") == 0.5
        assert parse_float(94) == 94.0
        with pytest.raises(ValueError):
            parse_float("abc")

    @pytest.mark.parametrize("value", [math.inf, -math.inf, math.nan, "1" * 400])
    def test_parse_float_rejects_non_finite(self, value):
        with pytest.raises(ValueError):
            parse_float(value)

    @pytest.mark.parametrize("value,expected", [
        (True, True), (False, False), ("true", True), ("FALSE", False),
        ("1", True), ("0", False), (1, True), (0, False),
    ])
    def test_parse_bool_tokens(self, value, expected):
        assert parse_bool(value) is expected

    @pytest.mark.parametrize("value", ["yes", "2", 2, "maybe"])
    def test_parse_bool_rejects_unknown_tokens(self, value):
        with pytest.raises(ValueError):
            parse_bool(value)

    def test_normalize_diagnosis(self):
        assert normalize_diagnosis("respiratory") == "respiratory"
        assert normalize_diagnosis("Respiratory Failure") == "respiratory"
        assert normalize_diagnosis("renal_failure") == "renal"
        assert normalize_diagnosis("  postoperative ") == "postoperative"


class TestNormalizeRecord:

    def test_form_record_defaults(self, low_risk_form):
        record = normalize_record(low_risk_form, SourceKind.FORM)

        assert record.patient_id == "LR-1"
        assert record.age == 42
        assert record.gender is Gender.FEMALE
        assert record.length_of_stay_days == 2
        assert record.primary_diagnosis == "trauma"
        assert record.diabetes is False
        assert record.ventilator_support is False
        assert record.vitals.heart_rate is None
        assert record.vitals.assessed_count() == 0

    def test_form_and_csv_names_give_equal_records(self):
        form = {
            'id': 'X1', 'age': '60', 'gender': 'male', 'lengthOfStay': '4',
            'primaryDiagnosis': 'sepsis', 'heartDisease': 'true',
            'vasopressorUse': '1', 'heartRate': '88',
        }
        csv_row = {
            'patient_id': 'X1', 'age': '60', 'gender': 'male', 'length_of_stay': '4',
            'primary_diagnosis': 'sepsis', 'heart_disease': '1',
            'vasopressors': 'true', 'heart_rate': '88',
        }
        assert normalize_record(form, SourceKind.FORM) == normalize_record(csv_row, SourceKind.CSV)

    def test_kidney_disease_alias(self, low_risk_form):
        low_risk_form['kidneyDisease'] = True
        assert normalize_record(low_risk_form).renal_disease is True

    def test_missing_id_is_generated(self, low_risk_form):
        del low_risk_form['id']
        first = normalize_record(low_risk_form)
        second = normalize_record(low_risk_form)
        assert first.patient_id
        assert first.patient_id != second.patient_id

    @pytest.mark.parametrize("field_name,form_key", [
        ('age', 'age'),
        ('gender', 'gender'),
        ('length_of_stay_days', 'lengthOfStay'),
        ('primary_diagnosis', 'primaryDiagnosis'),
    ])
    def test_missing_mandatory_field(self, low_risk_form, field_name, form_key):
        del low_risk_form[form_key]
        with pytest.raises(ValidationError) as exc_info:
            normalize_record(low_risk_form)
        assert exc_info.value.field == field_name

    def test_non_numeric_age_is_rejected(self, low_risk_form):
        low_risk_form['age'] = 'forty'
        with pytest.raises(ValidationError) as exc_info:
            normalize_record(low_risk_form)
        assert exc_info.value.field == 'age'

    @pytest.mark.parametrize("age", ["-1", "121"])
    def test_age_out_of_range(self, low_risk_form, age):
        low_risk_form['age'] = age
        with pytest.raises(ValidationError):
            normalize_record(low_risk_form)

    def test_negative_length_of_stay(self, low_risk_form):
        low_risk_form['lengthOfStay'] = '-3'
        with pytest.raises(ValidationError) as exc_info:
            normalize_record(low_risk_form)
        assert exc_info.value.field == 'length_of_stay_days'

    def test_bad_boolean_token_is_rejected(self, low_risk_form):
        low_risk_form['diabetes'] = 'sometimes'
        with pytest.raises(ValidationError) as exc_info:
            normalize_record(low_risk_form)
        assert exc_info.value.field == 'diabetes'

    def test_unparseable_vital_is_not_assessed(self, low_risk_form):
        low_risk_form['heartRate'] = 'abc'
        low_risk_form['temperature'] = '37.5'
        record = normalize_record(low_risk_form)
        assert record.vitals.heart_rate is None
        assert record.vitals.temperature_c == 37.5

    def test_infinite_widget_values_are_not_assessed(self, low_risk_form):
        low_risk_form.update(heartRate=math.inf, weight=-math.inf, temperature=37.5)
        record = normalize_record(low_risk_form)
        assert record.vitals.heart_rate is None
        assert record.weight_kg is None
        assert record.vitals.temperature_c == 37.5

    def test_blank_and_nan_values_are_absent(self, low_risk_form):
        low_risk_form['oxygenSaturation'] = '  '
        low_risk_form['respiratoryRate'] = math.nan
        low_risk_form['diabetes'] = ''
        record = normalize_record(low_risk_form)
        assert record.vitals.oxygen_saturation_pct is None
        assert record.vitals.respiratory_rate is None
        assert record.diabetes is False

    def test_bmi(self, low_risk_form):
        low_risk_form.update(height='180', weight='81')
        assert normalize_record(low_risk_form).bmi == 25.0

    def test_unknown_source_kind(self, low_risk_form):
        with pytest.raises(ValueError):
            normalize_record(low_risk_form, "xml")


class TestValidateFields:

    def test_valid_input_has_no_errors(self, high_risk_form):
        assert validate_fields(high_risk_form) == {}

    def test_collects_every_error(self):
        errors = validate_fields({'age': 'old', 'diabetes': 'perhaps'})
        assert set(errors) == {'age', 'gender', 'length_of_stay_days',
                               'primary_diagnosis', 'diabetes'}
        assert errors['gender'] == "is required"


class TestFieldTable:

    def test_template_columns(self):
        assert CSV_TEMPLATE_COLUMNS == [
            'patient_id', 'age', 'gender', 'length_of_stay', 'primary_diagnosis',
            'diabetes', 'hypertension', 'heart_disease', 'lung_disease',
            'renal_disease', 'ventilator_support', 'vasopressors', 'dialysis',
            'previous_icu_admission',
        ]

    def test_mandatory_fields(self):
        assert set(MANDATORY_FIELDS) == {
            'age', 'gender', 'length_of_stay_days', 'primary_diagnosis'
        }

    def test_name_lookups(self):
        assert FORM_TO_CANONICAL['heartDisease'] == 'heart_disease'
        assert FORM_TO_CANONICAL['temperature'] == 'temperature_c'
        assert CSV_TO_CANONICAL['vasopressors'] == 'vasopressor_use'
        assert CSV_TO_CANONICAL['length_of_stay'] == 'length_of_stay_days'

    def test_candidate_key_order(self):
        spec = FIELDS_BY_NAME['renal_disease']
        assert candidate_keys(spec, prefer_csv=True)[:2] == ('renal_disease', 'renalDisease')
        assert candidate_keys(spec, prefer_csv=False)[0] == 'renalDisease'
        assert 'kidneyDisease' in candidate_keys(spec, prefer_csv=False)

    def test_display_name(self):
        assert display_name('length_of_stay_days') == 'length of stay'
        assert display_name('unknown_field') == 'unknown field'
