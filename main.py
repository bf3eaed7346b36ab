#!/usr/bin/env python3
"""
ICU Readmission Risk Pipeline
=============================

Healthcare Analytics Project
Screening ICU Patients for Readmission Risk at Discharge

This script runs the batch screening workflow:
1. Load a patient census CSV (bad rows are skipped and reported)
2. Score every patient with the rule-based risk engine
3. Stratify patients into Low / Moderate / High risk
4. Summarize the population (demographics, comorbidities, interventions)
5. Save per-patient results, a population report and plots

Clinical Goal:
--------------
Give discharge planners a ranked list of patients who need extended
monitoring and early follow-up, together with the factors driving each
patient's risk.

Usage:
------
    python main.py patients.csv                  # Score a census file
    python main.py patients.csv --skip-plots     # Skip matplotlib plots
    python main.py --sample sample1              # Score a demo patient
    python main.py --template template.csv       # Write the CSV template
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from icu_readmit.data_loader import (
    SAMPLE_PATIENTS,
    get_csv_template,
    get_sample_patient,
    load_patient_csv,
    save_results,
)
from icu_readmit.population import generate_population_report, run_population_analysis
from icu_readmit.prediction import RiskScorer, assessments_to_dataframe, score
from icu_readmit.preprocessing import normalize_record
from icu_readmit.records import OutcomeLabel, RiskAssessment, SourceKind
from icu_readmit.summary import build_patient_summary


def print_header():
    """Print pipeline header."""

    header = """
╔══════════════════════════════════════════════════════════════════════════════╗
║                      ICU READMISSION RISK ASSESSMENT                         ║
║                                                                              ║
║              Healthcare Analytics: Discharge Risk Screening                  ║
╚══════════════════════════════════════════════════════════════════════════════╝
    """
    print(header)
    print(f"Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("="*80 + "\n")


def print_section(title: str):
    """Print section separator."""
    print("\n" + "="*80)
    print(f"  {title}")
    print("="*80 + "\n")


def print_assessment(assessment: RiskAssessment):
    """Print one patient's assessment."""

    print(f"Patient: {assessment.patient_id}")
    print(f"  Risk Score: {assessment.risk_percentage}")
    print(f"  Outcome: {assessment.outcome_label.display.upper()}")
    print(f"  Confidence: {assessment.confidence}%")
    print("  Key Factors:")
    for factor in assessment.key_factors:
        print(f"    • {factor}")
    if assessment.vitals_view:
        print("  Vital Signs:")
        for vital in assessment.vitals_view:
            flag = "" if vital.normal else f"  [{vital.status.value.upper()}]"
            print(f"    {vital.name}: {vital.value} {vital.unit}{flag}")
    print("  Recommendations:")
    for rec in assessment.recommendations:
        print(f"    - {rec.title}: {rec.description}")


def write_template(template_path: str) -> Path:
    path = Path(template_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(get_csv_template())
    print(f"CSV template written to: {path}")
    return path


def score_sample(sample_id: str) -> RiskAssessment:
    print_section(f"SAMPLE PATIENT: {sample_id}")

    record = normalize_record(get_sample_patient(sample_id), SourceKind.FORM)
    summary = build_patient_summary(record)
    print(f"{summary['gender']}, {summary['age']} years, {summary['primary_diagnosis']}")
    print(f"ICU stay: {summary['length_of_stay']} days, BMI: {summary['bmi']}\n")

    assessment = score(record)
    print_assessment(assessment)
    return assessment


def main(
    input_path: str,
    output_path: str = "outputs/risk_assessments.csv",
    plots_dir: str = "outputs/population",
    report_path: str = "outputs/population/population_report.txt",
    save_plots: bool = True
):
    """
    Run the batch screening pipeline on one census file.

    Parameters
    ----------
    input_path : str
        Patient CSV (template or intake-form headers).
    output_path : str
        Where to write the per-patient assessment CSV.
    plots_dir : str
        Directory for population plots.
    report_path : str
        Where to write the text population report.
    save_plots : bool
        Generate and save matplotlib plots.

    Raises
    ------
    FileNotFoundError
        If input_path does not exist.
    """

    print_header()

    # =========================================================================
    # STEP 1: DATA LOADING
    # =========================================================================
    print_section("STEP 1: DATA LOADING")

    print(f"Loading patient census from {input_path}...")
    batch = load_patient_csv(input_path)

    print(f"\n{batch.summary()}")
    for skipped in batch.skipped:
        print(f"  ✗ line {skipped.line_number}: {skipped.reason}")

    # =========================================================================
    # STEP 2: RISK SCORING
    # =========================================================================
    print_section("STEP 2: RISK SCORING")

    scorer = RiskScorer()
    assessments = scorer.score_batch(batch.records, return_dataframe=False)
    results_df = assessments_to_dataframe(assessments)

    save_results(results_df, output_path, "risk assessments")
    print(f"Scored {len(assessments):,} patients")

    # =========================================================================
    # STEP 3: RISK STRATIFICATION
    # =========================================================================
    print_section("STEP 3: RISK STRATIFICATION")

    stratified = scorer.stratify_population(batch.records, assessments)
    for label in OutcomeLabel:
        group = stratified[label.value]
        print(f"  {label.display}: {len(group):,} patients")

    high_risk = stratified[OutcomeLabel.HIGH_RISK.value]
    if len(high_risk):
        print("\nHigh-risk patients (highest score first):")
        for _, row in high_risk.sort_values('risk_score', ascending=False).iterrows():
            print(f"  {row['patient_id']}: {row['risk_percentage']} ({row['key_factors']})")

    # =========================================================================
    # STEP 4: POPULATION ANALYSIS
    # =========================================================================
    print_section("STEP 4: POPULATION ANALYSIS")

    population = run_population_analysis(
        batch.records,
        assessments,
        output_dir=plots_dir,
        save_plots=save_plots,
        close_figures=True
    )
    for insight in population['insights']:
        print(f"  • {insight}")

    generate_population_report(population['summary'], output_path=report_path)

    # =========================================================================
    # PIPELINE COMPLETE
    # =========================================================================
    print("\n" + "="*80)
    print("  PIPELINE COMPLETE")
    print("="*80)

    print(f"""
Summary:
--------
• {batch.rows_processed:,} patients scored
• {batch.skipped_count:,} rows skipped
• {len(high_risk):,} high-risk patients

Output Files:
-------------
• Assessments: {output_path}
• Population Report: {report_path}
• Plots: {plots_dir + '/' if save_plots else '(skipped)'}

Completed at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}
    """)

    return {
        'batch': batch,
        'assessments': assessments,
        'results': results_df,
        'stratified': stratified,
        'population': population,
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="ICU Readmission Risk Assessment Pipeline"
    )

    parser.add_argument(
        'input',
        nargs='?',
        help='Patient census CSV to score'
    )

    parser.add_argument(
        '--output',
        default="outputs/risk_assessments.csv",
        help='Per-patient assessment CSV'
    )

    parser.add_argument(
        '--plots-dir',
        default="outputs/population",
        help='Directory for population plots'
    )

    parser.add_argument(
        '--report',
        default="outputs/population/population_report.txt",
        help='Population report path'
    )

    parser.add_argument(
        '--skip-plots',
        action='store_true',
        help='Skip plot generation'
    )

    parser.add_argument(
        '--template',
        metavar='PATH',
        help='Write the CSV template to PATH and exit'
    )

    parser.add_argument(
        '--sample',
        choices=[s['id'] for s in SAMPLE_PATIENTS],
        help='Score one of the demo patients and exit'
    )

    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Show debug logging'
    )

    return parser


def cli(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s"
    )

    if args.template:
        write_template(args.template)
        return 0

    if args.sample:
        score_sample(args.sample)
        return 0

    if not args.input:
        parser.print_usage(sys.stderr)
        print("error: an input CSV, --sample or --template is required", file=sys.stderr)
        return 2

    try:
        main(
            input_path=args.input,
            output_path=args.output,
            plots_dir=args.plots_dir,
            report_path=args.report,
            save_plots=not args.skip_plots
        )
    except FileNotFoundError as e:
        print(f"\n✗ {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(cli())
