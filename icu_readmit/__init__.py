# Healthcare Analytics: ICU Readmission Risk Assessment
# Rule-based scoring of ICU patients at discharge

from .records import (
    IntakeError,
    ValidationError,
    CsvFormatError,
    SourceKind,
    Gender,
    OutcomeLabel,
    VitalStatus,
    Vitals,
    PatientRecord,
    VitalReading,
    Recommendation,
    RiskAssessment,
)
from .preprocessing import normalize_record, validate_fields
from .data_loader import (
    BatchResult,
    SkippedRow,
    parse_patient_csv,
    load_patient_csv,
    decode_csv_bytes,
    records_to_dataframe,
    records_to_csv,
    get_csv_template,
    SAMPLE_PATIENTS,
)
from .summary import build_vitals_view, build_patient_summary
from .prediction import (
    score,
    get_outcome_label,
    get_recommendations,
    predict_readmission,
    RiskScorer,
    assessments_to_dataframe,
)
from .population import (
    analyze_population,
    population_insights,
    generate_population_report,
    run_population_analysis,
)

__version__ = "1.0.0"
