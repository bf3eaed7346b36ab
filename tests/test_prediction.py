"""Tests for the risk scoring engine."""

from dataclasses import replace

import pandas as pd
import pytest

from icu_readmit.data_loader import get_sample_patient, parse_patient_csv
from icu_readmit.prediction import (
    CONFIDENCE,
    MAX_KEY_FACTORS,
    MAX_RISK_SCORE,
    NO_FACTORS_TEXT,
    RECOMMENDATIONS,
    SCORED_FLAGS,
    RiskScorer,
    age_points,
    compute_risk_score,
    get_outcome_label,
    get_recommendations,
    length_of_stay_points,
    predict_readmission,
    rank_key_factors,
    score,
)
from icu_readmit.records import (
    ASSESSMENT_COLUMNS,
    COMORBIDITY_LABELS,
    INTERVENTION_LABELS,
    OutcomeLabel,
    ValidationError,
)
from icu_readmit.storage import InMemoryHistoryStore

ALL_FLAGS = tuple(COMORBIDITY_LABELS) + tuple(INTERVENTION_LABELS) + ('previous_icu_admission',)


class TestScenarios:

    def test_high_risk_patient_is_capped(self, high_risk_record):
        assessment = score(high_risk_record)

        assert assessment.risk_score == 95
        assert assessment.outcome_label is OutcomeLabel.HIGH_RISK
        assert assessment.risk_percentage == "95%"
        assert assessment.confidence == CONFIDENCE
        assert list(assessment.key_factors) == [
            "Required ventilator support",
            "Previous ICU admission",
            "Extended ICU stay (12 days)",
            "Age over 65 (72 years)",
            "History of diabetes",
        ]
        assert assessment.comorbidity_list == (
            'Diabetes', 'Hypertension', 'Heart Disease', 'Lung Disease'
        )

    def test_low_risk_patient(self, low_risk_record):
        assessment = score(low_risk_record)

        assert assessment.risk_score == 10
        assert assessment.outcome_label is OutcomeLabel.LOW_RISK
        assert list(assessment.key_factors) == [NO_FACTORS_TEXT]
        assert assessment.comorbidity_list == ()
        assert assessment.vitals_view == ()
        assert assessment.recommendations == RECOMMENDATIONS[OutcomeLabel.LOW_RISK]

    @pytest.mark.parametrize("sample_id,expected_score,expected_label", [
        ('sample1', 95, OutcomeLabel.HIGH_RISK),
        ('sample2', 53, OutcomeLabel.MODERATE_RISK),
        ('sample3', 10, OutcomeLabel.LOW_RISK),
    ])
    def test_sample_patients(self, sample_id, expected_score, expected_label):
        assessment = predict_readmission(get_sample_patient(sample_id))
        assert assessment.risk_score == expected_score
        assert assessment.outcome_label is expected_label

    def test_surgery_is_a_factor_without_points(self):
        assessment = predict_readmission(get_sample_patient('sample3'))
        assert assessment.risk_score == 10
        assert list(assessment.key_factors) == ["Surgery during ICU stay"]


class TestScoreComponents:

    @pytest.mark.parametrize("age,points", [
        (30, 0), (50, 0), (51, 8), (65, 8), (66, 20), (75, 20), (76, 25), (110, 25),
    ])
    def test_age_tiers(self, age, points):
        assert age_points(age) == points

    @pytest.mark.parametrize("days,points", [
        (0, 0), (3, 0), (4, 5), (7, 5), (8, 10), (10, 10), (11, 15), (14, 15), (15, 20),
    ])
    def test_length_of_stay_tiers(self, days, points):
        assert length_of_stay_points(days) == points

    def test_each_scored_flag_adds_ten(self, low_risk_record):
        for name in SCORED_FLAGS:
            assert compute_risk_score(replace(low_risk_record, **{name: True})) == 20

    def test_interactions(self, low_risk_record):
        diabetic_heart = replace(low_risk_record, diabetes=True, heart_disease=True)
        assert compute_risk_score(diabetic_heart) == 10 + 20 + 10

        ventilated = replace(low_risk_record, ventilator_support=True, length_of_stay_days=8)
        assert compute_risk_score(ventilated) == 10 + 10 + 10 + 8

        elderly_lung = replace(low_risk_record, age=70, lung_disease=True)
        assert compute_risk_score(elderly_lung) == 10 + 10 + 20 + 12

    @pytest.mark.parametrize("risk_score,label", [
        (0, OutcomeLabel.LOW_RISK),
        (29, OutcomeLabel.LOW_RISK),
        (30, OutcomeLabel.MODERATE_RISK),
        (69, OutcomeLabel.MODERATE_RISK),
        (70, OutcomeLabel.HIGH_RISK),
        (95, OutcomeLabel.HIGH_RISK),
    ])
    def test_outcome_thresholds(self, risk_score, label):
        assert get_outcome_label(risk_score) is label

    def test_recommendations_per_label(self):
        for label in OutcomeLabel:
            recs = get_recommendations(label)
            assert len(recs) == 4
        assert get_recommendations("HighRisk")[0].title == "Extended Monitoring"


class TestProperties:

    def test_deterministic(self, high_risk_record):
        assert score(high_risk_record) == score(high_risk_record)

    @pytest.mark.parametrize("flag", ALL_FLAGS)
    def test_setting_a_flag_never_lowers_the_score(self, low_risk_record, flag):
        for base in (low_risk_record, replace(low_risk_record, age=70, length_of_stay_days=9)):
            flagged = replace(base, **{flag: True})
            assert compute_risk_score(flagged) >= compute_risk_score(base)

    def test_score_stays_in_range(self, low_risk_record):
        everything = replace(low_risk_record, age=120, length_of_stay_days=60,
                             **{name: True for name in ALL_FLAGS})
        assert compute_risk_score(everything) == MAX_RISK_SCORE
        assert 0 <= compute_risk_score(low_risk_record) <= MAX_RISK_SCORE

    def test_label_matches_score(self, census_csv):
        for record in parse_patient_csv(census_csv).records:
            assessment = score(record)
            assert assessment.outcome_label is get_outcome_label(assessment.risk_score)

    def test_key_factor_cap(self, low_risk_record):
        everything = replace(low_risk_record, age=80, length_of_stay_days=20,
                             **{name: True for name in ALL_FLAGS})
        factors = rank_key_factors(everything)
        assert len(factors) == MAX_KEY_FACTORS
        assert factors[:3] == [
            "Required ventilator support",
            "Previous ICU admission",
            "Required dialysis",
        ]
        assert factors[3] == "Prolonged ICU stay (20 days)"


class TestPredictReadmission:

    def test_invalid_input_raises(self):
        with pytest.raises(ValidationError):
            predict_readmission({'age': '60', 'gender': 'male'})

    def test_csv_source(self):
        assessment = predict_readmission({
            'patient_id': 'C1', 'age': '80', 'gender': 'female',
            'length_of_stay': '2', 'primary_diagnosis': 'sepsis',
        }, 'csv')
        assert assessment.patient_id == 'C1'
        assert assessment.risk_score == 35
        assert list(assessment.key_factors) == ["Advanced age (80 years)"]

    def test_vitals_view_on_assessment(self, high_risk_form):
        high_risk_form.update(heartRate='135', oxygenSaturation='96')
        assessment = predict_readmission(high_risk_form)
        assert [v.name for v in assessment.vitals_view] == ['Heart Rate', 'Oxygen Saturation']
        assert assessment.to_dict()['abnormal_vitals'] == 'Heart Rate'


class TestRiskScorer:

    def test_score_batch_dataframe(self, census_csv):
        records = parse_patient_csv(census_csv).records
        df = RiskScorer().score_batch(records)

        assert isinstance(df, pd.DataFrame)
        assert list(df.columns) == ASSESSMENT_COLUMNS
        assert len(df) == 9
        assert df['patient_id'].tolist()[0] == 'P001'

    def test_score_batch_empty(self):
        df = RiskScorer().score_batch([])
        assert df.empty
        assert list(df.columns) == ASSESSMENT_COLUMNS

    def test_score_batch_list(self, census_csv):
        records = parse_patient_csv(census_csv).records
        assessments = RiskScorer().score_batch(records, return_dataframe=False)
        assert [a.patient_id for a in assessments] == [r.patient_id for r in records]

    def test_stratify_population(self, census_csv):
        records = parse_patient_csv(census_csv).records
        groups = RiskScorer().stratify_population(records)

        assert set(groups) == {label.value for label in OutcomeLabel}
        assert sum(len(g) for g in groups.values()) == len(records)
        assert (groups['HighRisk']['risk_score'] >= 70).all()
        assert (groups['LowRisk']['risk_score'] < 30).all()

    def test_stratify_population_reuses_assessments(self, census_csv):
        records = parse_patient_csv(census_csv).records
        scorer = RiskScorer()
        assessments = scorer.score_batch(records, return_dataframe=False)

        groups = scorer.stratify_population(records, assessments)
        expected = scorer.stratify_population(records)

        for label in OutcomeLabel:
            pd.testing.assert_frame_equal(groups[label.value], expected[label.value])

    def test_stratify_population_rejects_mismatched_assessments(self, census_csv):
        records = parse_patient_csv(census_csv).records
        scorer = RiskScorer()
        assessments = scorer.score_batch(records[:3], return_dataframe=False)

        with pytest.raises(ValueError):
            scorer.stratify_population(records, assessments)

    def test_history_store_first_write_wins(self, high_risk_form):
        store = InMemoryHistoryStore()
        scorer = RiskScorer(history_store=store)

        first = scorer.predict(high_risk_form)
        high_risk_form['ventilatorSupport'] = False
        second = scorer.predict(high_risk_form)

        assert second.key_factors != first.key_factors
        assert store.get('HR-1') == first.to_dict()
        assert len(store.list()) == 1
