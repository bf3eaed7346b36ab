"""
Population Analysis Module
==========================

Clinical Context:
-----------------
Unit-level statistics help charge nurses and case managers plan discharge
resources:
1. Demographic mix (age, gender) of the current census
2. Comorbidity burden and intervention intensity (ventilator, vasopressors)
3. How many patients the scoring engine labels high risk

High-risk counts come from the same per-patient scoring engine used for
individual assessments, aggregated over the population.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from .prediction import OUTCOME_THRESHOLDS, score
from .records import (
    COMORBIDITY_LABELS,
    Gender,
    OutcomeLabel,
    PatientRecord,
    RiskAssessment,
)

logger = logging.getLogger(__name__)

# Set style for all plots
plt.style.use('seaborn-v0_8-whitegrid')
sns.set_palette("husl")

LABEL_COLORS = {
    OutcomeLabel.LOW_RISK.value: '#27ae60',
    OutcomeLabel.MODERATE_RISK.value: '#f39c12',
    OutcomeLabel.HIGH_RISK.value: '#e74c3c',
}


@dataclass
class PopulationSummary:
    """Descriptive statistics for a group of scored patients."""

    patient_count: int = 0
    mean_age: Optional[float] = None
    min_age: Optional[int] = None
    max_age: Optional[int] = None
    gender_pct: Dict[str, float] = field(default_factory=dict)
    mean_length_of_stay: Optional[float] = None
    condition_counts: Dict[str, int] = field(default_factory=dict)
    condition_prevalence_pct: Dict[str, float] = field(default_factory=dict)
    ventilator_count: int = 0
    ventilator_pct: float = 0.0
    vasopressor_count: int = 0
    vasopressor_pct: float = 0.0
    diagnosis_counts: Dict[str, int] = field(default_factory=dict)
    mean_risk_score: Optional[float] = None
    label_counts: Dict[str, int] = field(
        default_factory=lambda: {label.value: 0 for label in OutcomeLabel}
    )

    @property
    def high_risk_count(self) -> int:
        return self.label_counts.get(OutcomeLabel.HIGH_RISK.value, 0)


def _population_frame(
    records: Sequence[PatientRecord],
    assessments: Sequence[RiskAssessment]
) -> pd.DataFrame:
    rows = []
    for record, assessment in zip(records, assessments):
        row = {
            'age': record.age,
            'gender': record.gender.value,
            'length_of_stay': record.length_of_stay_days,
            'diagnosis': record.diagnosis_label,
            'ventilator_support': record.ventilator_support,
            'vasopressor_use': record.vasopressor_use,
            'risk_score': assessment.risk_score,
            'outcome_label': assessment.outcome_label.value,
        }
        for name in COMORBIDITY_LABELS:
            row[name] = getattr(record, name)
        rows.append(row)
    return pd.DataFrame(rows)


def _pct(mask: pd.Series) -> float:
    return round(float(mask.mean()) * 100, 1)


def analyze_population(
    records: Sequence[PatientRecord],
    assessments: Optional[Sequence[RiskAssessment]] = None
) -> PopulationSummary:
    """
    Aggregate descriptive statistics over many patients.

    Parameters
    ----------
    records : sequence of PatientRecord
        Canonical records, e.g. BatchResult.records.
    assessments : sequence of RiskAssessment, optional
        Matching assessments in the same order. Scored here when omitted.

    Returns
    -------
    PopulationSummary
        Zero counts and None statistics for an empty population.
    """

    if assessments is None:
        assessments = [score(r) for r in records]
    if len(assessments) != len(records):
        raise ValueError(
            f"Got {len(records)} records but {len(assessments)} assessments"
        )

    if not records:
        return PopulationSummary()

    df = _population_frame(records, assessments)

    diagnosis_counts = df['diagnosis'].value_counts()
    label_counts = df['outcome_label'].value_counts()

    return PopulationSummary(
        patient_count=len(df),
        mean_age=round(float(df['age'].mean()), 1),
        min_age=int(df['age'].min()),
        max_age=int(df['age'].max()),
        gender_pct={g.value: _pct(df['gender'] == g.value) for g in Gender},
        mean_length_of_stay=round(float(df['length_of_stay'].mean()), 1),
        condition_counts={
            label: int(df[name].sum()) for name, label in COMORBIDITY_LABELS.items()
        },
        condition_prevalence_pct={
            label: _pct(df[name]) for name, label in COMORBIDITY_LABELS.items()
        },
        ventilator_count=int(df['ventilator_support'].sum()),
        ventilator_pct=_pct(df['ventilator_support']),
        vasopressor_count=int(df['vasopressor_use'].sum()),
        vasopressor_pct=_pct(df['vasopressor_use']),
        diagnosis_counts={str(k): int(v) for k, v in diagnosis_counts.items()},
        mean_risk_score=round(float(df['risk_score'].mean()), 1),
        label_counts={
            label.value: int(label_counts.get(label.value, 0)) for label in OutcomeLabel
        },
    )


def population_insights(summary: PopulationSummary) -> List[str]:
    """Human-readable insight lines for the batch results page."""

    if summary.patient_count == 0:
        return ["No data available for analysis."]

    n = summary.patient_count
    male_pct = summary.gender_pct.get(Gender.MALE.value, 0.0)
    female_pct = summary.gender_pct.get(Gender.FEMALE.value, 0.0)

    insights = [
        f"Average patient age: {summary.mean_age:.1f} years "
        f"(range {summary.min_age}-{summary.max_age})",
        f"Gender distribution: {male_pct:.1f}% male, {female_pct:.1f}% female",
    ]

    for label in ('Diabetes', 'Heart Disease'):
        pct = summary.condition_prevalence_pct.get(label, 0.0)
        count = summary.condition_counts.get(label, 0)
        insights.append(f"{count} patients ({pct:.1f}%) have {label.lower()}")

    insights.append(f"Average length of stay: {summary.mean_length_of_stay:.1f} days")
    insights.append(
        f"{summary.ventilator_count} patients "
        f"({summary.ventilator_pct:.1f}%) required ventilator support"
    )
    insights.append(
        f"{summary.vasopressor_count} patients "
        f"({summary.vasopressor_pct:.1f}%) required vasopressors"
    )
    insights.append(
        f"{summary.high_risk_count} patients ({summary.high_risk_count / n * 100:.1f}%) "
        f"are high risk (score >= {OUTCOME_THRESHOLDS['high']})"
    )

    insights.append("Primary diagnosis distribution:")
    for diagnosis, count in summary.diagnosis_counts.items():
        insights.append(f"{diagnosis}: {count} patients ({count / n * 100:.1f}%)")

    return insights


# =============================================================================
# Reports and plots
# =============================================================================

def plot_condition_prevalence(
    summary: PopulationSummary,
    save_path: Optional[Path] = None,
    figsize: Tuple[int, int] = (10, 6)
) -> plt.Figure:
    """
    Horizontal bar chart of comorbidity and intervention prevalence.
    """

    prevalence = dict(summary.condition_prevalence_pct)
    prevalence['Ventilator Support'] = summary.ventilator_pct
    prevalence['Vasopressor Use'] = summary.vasopressor_pct

    plot_df = pd.DataFrame({
        'condition': list(prevalence.keys()),
        'pct': list(prevalence.values()),
    }).sort_values('pct', ascending=False)

    fig, ax = plt.subplots(figsize=figsize)
    sns.barplot(data=plot_df, x='pct', y='condition', ax=ax, color='#3498db')

    for idx, pct in enumerate(plot_df['pct']):
        ax.text(pct + 0.5, idx, f'{pct:.1f}%', va='center', fontsize=10)

    ax.set_xlim(0, 105)
    ax.set_xlabel('Patients (%)', fontsize=12)
    ax.set_ylabel('')
    ax.set_title(f'Condition Prevalence (n={summary.patient_count})',
                 fontsize=14, fontweight='bold')

    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info("Saved: %s", save_path)

    return fig


def plot_risk_distribution(
    assessments: Sequence[RiskAssessment],
    save_path: Optional[Path] = None,
    figsize: Tuple[int, int] = (12, 5)
) -> plt.Figure:
    """
    Risk score histogram with label thresholds, plus patients per label.
    """

    scores = np.array([a.risk_score for a in assessments], dtype=float)
    labels = pd.Series([a.outcome_label.value for a in assessments], dtype=object)

    fig, axes = plt.subplots(1, 2, figsize=figsize)

    # Plot 1: Score histogram
    ax1 = axes[0]
    sns.histplot(scores, bins=np.arange(0, 100, 5), ax=ax1, color='#3498db')
    ax1.axvline(OUTCOME_THRESHOLDS['moderate'], color='#f39c12', linestyle='--',
                label='Moderate threshold')
    ax1.axvline(OUTCOME_THRESHOLDS['high'], color='#e74c3c', linestyle='--',
                label='High threshold')
    ax1.set_xlabel('Risk Score', fontsize=12)
    ax1.set_ylabel('Number of Patients', fontsize=12)
    ax1.set_title('Risk Score Distribution', fontsize=14, fontweight='bold')
    ax1.legend(loc='upper left')

    # Plot 2: Label counts
    ax2 = axes[1]
    order = [label.value for label in OutcomeLabel]
    counts = labels.value_counts().reindex(order, fill_value=0)
    ax2.bar([OutcomeLabel(v).display for v in order], counts.values,
            color=[LABEL_COLORS[v] for v in order], edgecolor='black')
    ax2.set_ylabel('Number of Patients', fontsize=12)
    ax2.set_title('Patients by Outcome Label', fontsize=14, fontweight='bold')

    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info("Saved: %s", save_path)

    return fig


def generate_population_report(
    summary: PopulationSummary,
    output_path: Union[str, Path] = "outputs/population/population_report.txt"
) -> str:
    """
    Generate a text-based population report and save it.

    Returns
    -------
    str
        Formatted report.
    """

    report_lines = [
        "=" * 70,
        "POPULATION RISK REPORT",
        "ICU Readmission Risk Assessment",
        "=" * 70,
        "",
        "1. POPULATION OVERVIEW",
        "-" * 40,
        f"   Patients analyzed: {summary.patient_count:,}",
    ]

    if summary.patient_count:
        report_lines.extend([
            f"   Age: mean {summary.mean_age:.1f}, min {summary.min_age}, max {summary.max_age}",
            f"   Mean length of stay: {summary.mean_length_of_stay:.1f} days",
            "   Gender: " + ", ".join(
                f"{g} {pct:.1f}%" for g, pct in summary.gender_pct.items()
            ),
            "",
            "2. CONDITION PREVALENCE",
            "-" * 40,
        ])
        for condition, pct in summary.condition_prevalence_pct.items():
            report_lines.append(f"   {condition}: {pct:.1f}%")
        report_lines.extend([
            f"   Ventilator support: {summary.ventilator_pct:.1f}%",
            f"   Vasopressor use: {summary.vasopressor_pct:.1f}%",
            "",
            "3. RISK STRATIFICATION",
            "-" * 40,
            f"   Mean risk score: {summary.mean_risk_score:.1f}",
        ])
        for label in OutcomeLabel:
            report_lines.append(
                f"   {label.display}: {summary.label_counts.get(label.value, 0):,}"
            )
        report_lines.extend([
            "",
            "4. PRIMARY DIAGNOSES",
            "-" * 40,
        ])
        for diagnosis, count in summary.diagnosis_counts.items():
            report_lines.append(f"   {diagnosis}: {count:,}")

    report_lines.extend(["", "=" * 70])

    report = "\n".join(report_lines)

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(report)

    logger.info("Population report saved to: %s", output_path)

    return report


def run_population_analysis(
    records: Sequence[PatientRecord],
    assessments: Optional[Sequence[RiskAssessment]] = None,
    output_dir: Union[str, Path] = "outputs/population",
    save_plots: bool = True,
    close_figures: bool = False
) -> Dict:
    """
    Summarize a population and (optionally) save its plots.

    Batch runs should pass close_figures=True so pyplot does not keep every
    figure alive; the returned figures can then only be re-saved, not shown.

    Returns
    -------
    dict
        'summary', 'insights', and the two matplotlib figures.
    """

    if assessments is None:
        assessments = [score(r) for r in records]

    output_path = Path(output_dir)
    if save_plots:
        output_path.mkdir(parents=True, exist_ok=True)

    summary = analyze_population(records, assessments)

    results = {
        'summary': summary,
        'insights': population_insights(summary),
    }

    if summary.patient_count:
        results['prevalence_plot'] = plot_condition_prevalence(
            summary,
            save_path=output_path / "condition_prevalence.png" if save_plots else None
        )
        results['risk_plot'] = plot_risk_distribution(
            assessments,
            save_path=output_path / "risk_distribution.png" if save_plots else None
        )
        if close_figures:
            plt.close(results['prevalence_plot'])
            plt.close(results['risk_plot'])

    return results
