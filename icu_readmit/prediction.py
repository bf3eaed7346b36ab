"""
Readmission Risk Scoring Module
===============================

Clinical Context:
-----------------
This module turns a canonical PatientRecord into a RiskAssessment:

1. Single-patient scoring: one record in, one assessment out
2. Batch scoring: population screening from a CSV census
3. Risk stratification: group patients by outcome label for follow-up planning

The score is a fixed weighted sum of clinical risk contributors, not a
trained model. Weights, tiers and thresholds below are contract values.

Scoring Table:
--------------
- Base: 10
- +10 per flag: diabetes, hypertension, heart disease, lung disease,
  previous ICU admission, ventilator support, vasopressor use
- Age (highest tier only): >75 +25, >65 +20, >50 +8
- Length of stay (highest tier only): >14 +20, >10 +15, >7 +10, >3 +5
- Interactions: diabetes with heart disease +10, ventilator with stay >7 +8,
  age >65 with lung disease +12
- Capped at 95: a rule-based score never claims near-certainty
"""

import logging
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from .preprocessing import normalize_record
from .records import (
    ASSESSMENT_COLUMNS,
    OutcomeLabel,
    PatientRecord,
    Recommendation,
    RiskAssessment,
    SourceKind,
)
from .summary import build_comorbidity_list, build_vitals_view

if TYPE_CHECKING:
    from .storage import HistoryStore

logger = logging.getLogger(__name__)


BASE_SCORE = 10
FLAG_POINTS = 10
MAX_RISK_SCORE = 95

SCORED_FLAGS: Tuple[str, ...] = (
    'diabetes',
    'hypertension',
    'heart_disease',
    'lung_disease',
    'previous_icu_admission',
    'ventilator_support',
    'vasopressor_use',
)

# (age strictly above, points); first match wins
AGE_TIERS: Tuple[Tuple[int, int], ...] = ((75, 25), (65, 20), (50, 8))

# (days strictly above, points); first match wins
LOS_TIERS: Tuple[Tuple[int, int], ...] = ((14, 20), (10, 15), (7, 10), (3, 5))

DIABETES_HEART_POINTS = 10
VENTILATOR_LONG_STAY_POINTS = 8
ELDERLY_LUNG_POINTS = 12

# Nominal model confidence: midpoint of the 70-95 band, independent of the score
CONFIDENCE = 82

OUTCOME_THRESHOLDS = {
    'high': 70,
    'moderate': 30,
}

MAX_KEY_FACTORS = 5
NO_FACTORS_TEXT = "No significant risk factors identified"

FACTOR_IMPORTANCE: Dict[str, int] = {
    'ventilator_support': 5,
    'previous_icu_admission': 4,
    'dialysis': 3,
    'extended_stay': 2,
}
DEFAULT_IMPORTANCE = 1

COMORBIDITY_FACTORS: Dict[str, str] = {
    'diabetes': "History of diabetes",
    'hypertension': "History of hypertension",
    'heart_disease': "Pre-existing heart disease",
    'lung_disease': "Chronic lung disease",
    'renal_disease': "Renal disease",
    'cancer': "Active cancer diagnosis",
    'immunocompromised': "Immunocompromised status",
}

INTERVENTION_FACTORS: Dict[str, str] = {
    'ventilator_support': "Required ventilator support",
    'vasopressor_use': "Required vasopressors",
    'dialysis': "Required dialysis",
    'surgery_during_stay': "Surgery during ICU stay",
}

RECOMMENDATIONS: Dict[OutcomeLabel, Tuple[Recommendation, ...]] = {
    OutcomeLabel.HIGH_RISK: (
        Recommendation("Extended Monitoring",
                       "Extend monitoring period post-discharge by 72 hours"),
        Recommendation("Follow-up Schedule",
                       "Schedule follow-up within 48 hours of discharge"),
        Recommendation("Detailed Discharge Plan",
                       "Create comprehensive discharge plan with specific care instructions"),
        Recommendation("Care Coordination",
                       "Coordinate with primary care and specialists for continuity of care"),
    ),
    OutcomeLabel.MODERATE_RISK: (
        Recommendation("Standard Monitoring",
                       "Regular monitoring for 48 hours post-discharge"),
        Recommendation("Follow-up Schedule",
                       "Schedule follow-up within one week of discharge"),
        Recommendation("Discharge Instructions",
                       "Provide clear discharge instructions with warning signs"),
        Recommendation("Risk Factor Management",
                       "Focus on managing identified risk factors"),
    ),
    OutcomeLabel.LOW_RISK: (
        Recommendation("Standard Follow-up",
                       "Regular follow-up as per standard protocol"),
        Recommendation("Discharge Instructions",
                       "Standard discharge instructions for self-monitoring"),
        Recommendation("Preventive Measures",
                       "Reinforce preventive measures and healthy lifestyle"),
        Recommendation("Resource Access",
                       "Ensure patient has access to necessary resources"),
    ),
}


# =============================================================================
# Score components
# =============================================================================

def _tier_points(value: int, tiers: Tuple[Tuple[int, int], ...]) -> int:
    for above, points in tiers:
        if value > above:
            return points
    return 0


def age_points(age: int) -> int:
    return _tier_points(age, AGE_TIERS)


def length_of_stay_points(days: int) -> int:
    return _tier_points(days, LOS_TIERS)


def interaction_points(record: PatientRecord) -> int:
    points = 0
    if record.diabetes and record.heart_disease:
        points += DIABETES_HEART_POINTS
    if record.ventilator_support and record.length_of_stay_days > 7:
        points += VENTILATOR_LONG_STAY_POINTS
    if record.age > 65 and record.lung_disease:
        points += ELDERLY_LUNG_POINTS
    return points


def compute_risk_score(record: PatientRecord) -> int:
    """
    Weighted-sum readmission risk, 0-95.

    Every component is non-negative and each flag only ever adds points, so
    setting any flag can never lower the score.
    """

    total = BASE_SCORE
    total += FLAG_POINTS * sum(1 for name in SCORED_FLAGS if getattr(record, name))
    total += age_points(record.age)
    total += length_of_stay_points(record.length_of_stay_days)
    total += interaction_points(record)
    return min(total, MAX_RISK_SCORE)


def get_outcome_label(risk_score: int) -> OutcomeLabel:
    """Map a risk score to its outcome label (>=70 high, >=30 moderate)."""

    if risk_score >= OUTCOME_THRESHOLDS['high']:
        return OutcomeLabel.HIGH_RISK
    elif risk_score >= OUTCOME_THRESHOLDS['moderate']:
        return OutcomeLabel.MODERATE_RISK
    else:
        return OutcomeLabel.LOW_RISK


def get_recommendations(outcome_label: OutcomeLabel) -> Tuple[Recommendation, ...]:
    """
    Clinical follow-up actions for an outcome label.

    Clinical Context:
    -----------------
    - High risk: extended monitoring and follow-up within 48 hours
    - Moderate risk: standard monitoring and follow-up within one week
    - Low risk: standard discharge protocol
    """

    return RECOMMENDATIONS[OutcomeLabel(outcome_label)]


def _age_factor(age: int) -> Optional[str]:
    if age > 75:
        return f"Advanced age ({age} years)"
    if age > 65:
        return f"Age over 65 ({age} years)"
    if age > 50:
        return f"Age over 50 ({age} years)"
    return None


def _stay_factor(days: int) -> Optional[str]:
    if days > 14:
        return f"Prolonged ICU stay ({days} days)"
    if days > 7:
        return f"Extended ICU stay ({days} days)"
    if days > 3:
        return f"ICU stay of {days} days"
    return None


def rank_key_factors(record: PatientRecord) -> List[str]:
    """
    Human-readable risk contributors, most important first.

    Candidates are collected in a fixed order (age, comorbidities, length of
    stay, interventions, previous ICU admission) and stably sorted by
    importance, so equal-importance factors keep that order. At most
    MAX_KEY_FACTORS are returned.
    """

    candidates: List[Tuple[int, str]] = []

    age_text = _age_factor(record.age)
    if age_text:
        candidates.append((DEFAULT_IMPORTANCE, age_text))

    for name, text in COMORBIDITY_FACTORS.items():
        if getattr(record, name):
            candidates.append((FACTOR_IMPORTANCE.get(name, DEFAULT_IMPORTANCE), text))

    stay_text = _stay_factor(record.length_of_stay_days)
    if stay_text:
        candidates.append((FACTOR_IMPORTANCE['extended_stay'], stay_text))

    for name, text in INTERVENTION_FACTORS.items():
        if getattr(record, name):
            candidates.append((FACTOR_IMPORTANCE.get(name, DEFAULT_IMPORTANCE), text))

    if record.previous_icu_admission:
        candidates.append((FACTOR_IMPORTANCE['previous_icu_admission'], "Previous ICU admission"))

    if not candidates:
        return [NO_FACTORS_TEXT]

    ranked = sorted(candidates, key=lambda c: c[0], reverse=True)
    return [text for _, text in ranked[:MAX_KEY_FACTORS]]


# =============================================================================
# Public interface
# =============================================================================

def score(record: PatientRecord) -> RiskAssessment:
    """
    Score one canonical patient record.

    Parameters
    ----------
    record : PatientRecord
        Output of normalize_record. Passing anything else is a caller error.

    Returns
    -------
    RiskAssessment
        risk_score (0-95), fixed confidence, outcome label, ranked key
        factors, comorbidity list, tagged vitals and recommendations.
        Identical records always give identical assessments.
    """

    assert isinstance(record, PatientRecord), "score() expects a normalized PatientRecord"

    risk_score = compute_risk_score(record)
    assert 0 <= risk_score <= MAX_RISK_SCORE

    outcome_label = get_outcome_label(risk_score)

    return RiskAssessment(
        patient_id=record.patient_id,
        risk_score=risk_score,
        confidence=CONFIDENCE,
        outcome_label=outcome_label,
        key_factors=tuple(rank_key_factors(record)),
        comorbidity_list=build_comorbidity_list(record),
        vitals_view=build_vitals_view(record.vitals),
        recommendations=get_recommendations(outcome_label),
    )


def predict_readmission(
    patient_data: Mapping,
    source_kind: Union[SourceKind, str] = SourceKind.FORM
) -> RiskAssessment:
    """
    Normalize raw intake data and score it in one call.

    Example Usage:
    --------------
    >>> result = predict_readmission({
    ...     'age': '42', 'gender': 'male', 'lengthOfStay': '2',
    ...     'primaryDiagnosis': 'trauma',
    ... })
    >>> result.risk_score, result.outcome_label.display
    (10, 'Low Risk')

    Raises
    ------
    ValidationError
        If the raw data cannot be normalized.
    """

    return score(normalize_record(patient_data, source_kind))


def assessments_to_dataframe(assessments: Sequence[RiskAssessment]) -> pd.DataFrame:
    """One row per assessment, in ASSESSMENT_COLUMNS order (columns kept when empty)."""
    return pd.DataFrame([a.to_dict() for a in assessments], columns=ASSESSMENT_COLUMNS)


class RiskScorer:
    """
    Class-based interface for scoring sessions.

    An optional history store receives every assessment; the scoring
    functions themselves never touch storage.

    Usage:
    ------
    >>> scorer = RiskScorer(history_store=InMemoryHistoryStore())
    >>> assessment = scorer.score(record)
    >>> results_df = scorer.score_batch(batch.records)
    """

    def __init__(self, history_store: Optional["HistoryStore"] = None):
        self.history_store = history_store

    def score(self, record: PatientRecord) -> RiskAssessment:
        assessment = score(record)
        if self.history_store is not None:
            self.history_store.put(assessment)
        return assessment

    def predict(
        self,
        patient_data: Mapping,
        source_kind: Union[SourceKind, str] = SourceKind.FORM
    ) -> RiskAssessment:
        return self.score(normalize_record(patient_data, source_kind))

    def score_batch(
        self,
        records: List[PatientRecord],
        return_dataframe: bool = True
    ) -> Union[pd.DataFrame, List[RiskAssessment]]:
        """
        Score many records in order.

        Returns
        -------
        pd.DataFrame or list
            One row per patient (RiskAssessment.to_dict columns), or the
            assessments themselves when return_dataframe is False.
        """

        assessments = [self.score(record) for record in records]

        if return_dataframe:
            return assessments_to_dataframe(assessments)

        return assessments

    def stratify_population(
        self,
        records: List[PatientRecord],
        assessments: Optional[Sequence[RiskAssessment]] = None
    ) -> Dict[str, pd.DataFrame]:
        """
        Group scored patients by outcome label.

        Parameters
        ----------
        records : list
            Patients to stratify.
        assessments : list, optional
            Existing assessments of the same records, in order. When given
            the records are not scored again.

        Returns
        -------
        dict
            'LowRisk', 'ModerateRisk' and 'HighRisk' -> DataFrame of the
            patients with that label (possibly empty).
        """

        if assessments is None:
            predictions = self.score_batch(records)
        else:
            if len(assessments) != len(records):
                raise ValueError(
                    f"got {len(assessments)} assessments for {len(records)} records"
                )
            predictions = assessments_to_dataframe(assessments)

        stratified = {}
        for label in OutcomeLabel:
            label_mask = predictions['outcome_label'] == label.value
            stratified[label.value] = predictions[label_mask]
            if len(predictions):
                logger.info(
                    "%s: %d patients (%.1f%%)",
                    label.display, label_mask.sum(), label_mask.mean() * 100
                )

        return stratified
