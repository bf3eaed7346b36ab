"""
Patient CSV Loading Module
==========================

Clinical Context:
-----------------
Units often upload a whole census as one CSV export. One bad row (a typo in
the age column, a truncated line) must not throw away the other 499 patients,
so batch loading is partial-failure tolerant: bad rows are skipped and
reported, good rows are normalized in file order.

Accepted headers are either the snake_case template columns
(patient_id, age, gender, length_of_stay, ...) or the camelCase names used by
the intake form (lengthOfStay, heartDisease, ...). Booleans may be 0/1 or
true/false.
"""

import csv
import io
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import numpy as np
import pandas as pd

from .preprocessing import normalize_record
from .records import CsvFormatError, PatientRecord, SourceKind, ValidationError
from .schema import CANONICAL_TO_CSV, CSV_EXPORT_COLUMNS, CSV_TEMPLATE_COLUMNS, VITAL_FIELDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkippedRow:
    line_number: int
    reason: str
    field: Optional[str] = None


@dataclass
class BatchResult:
    """Outcome of parsing one CSV document."""

    records: List[PatientRecord] = field(default_factory=list)
    skipped: List[SkippedRow] = field(default_factory=list)

    @property
    def rows_processed(self) -> int:
        return len(self.records)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def total_rows(self) -> int:
        return self.rows_processed + self.skipped_count

    def summary(self) -> str:
        text = f"{self.rows_processed} rows processed, {self.skipped_count} rows skipped"
        if self.skipped:
            reasons = "; ".join(f"line {s.line_number}: {s.reason}" for s in self.skipped)
            text += f" ({reasons})"
        return text


def _check_columns(row: List[str], header: List[str], line_number: int) -> None:
    if len(row) != len(header):
        raise CsvFormatError(
            line_number,
            f"expected {len(header)} columns, found {len(row)}"
        )


def parse_patient_csv(csv_content: str) -> BatchResult:
    """
    Parse a CSV document (header row + data rows) into canonical records.

    Parameters
    ----------
    csv_content : str
        Full CSV text. A UTF-8 byte order mark and blank lines are ignored.

    Returns
    -------
    BatchResult
        Records in row order plus one SkippedRow per malformed or invalid
        row. Never raises for bad rows.
    """

    result = BatchResult()
    reader = csv.reader(io.StringIO(csv_content.lstrip('\ufeff')))
    header: Optional[List[str]] = None

    while True:
        try:
            row = next(reader)
        except StopIteration:
            break
        except csv.Error as e:
            result.skipped.append(SkippedRow(reader.line_num, f"unreadable row: {e}"))
            continue

        if not any(cell.strip() for cell in row):
            continue

        if header is None:
            header = [name.strip() for name in row]
            continue

        try:
            _check_columns(row, header, reader.line_num)
            raw = dict(zip(header, (cell.strip() for cell in row)))
            result.records.append(normalize_record(raw, SourceKind.CSV))
        except CsvFormatError as e:
            result.skipped.append(SkippedRow(e.line_number, e.message))
        except ValidationError as e:
            result.skipped.append(SkippedRow(reader.line_num, str(e), e.field))

    for skipped in result.skipped:
        logger.warning("Skipped CSV line %d: %s", skipped.line_number, skipped.reason)
    logger.info(result.summary())

    return result


def decode_csv_bytes(raw: bytes) -> str:
    """
    Decode an uploaded or on-disk census as UTF-8 (BOM optional).

    Bytes that are not valid UTF-8 (spreadsheet exports in a legacy code
    page) become U+FFFD instead of failing the whole file. Free text such as
    the diagnosis keeps the replacement character; a numeric or flag cell
    holding one fails validation for that row only.
    """

    try:
        return raw.decode('utf-8-sig')
    except UnicodeDecodeError as e:
        logger.warning("Patient file is not valid UTF-8 (%s); undecodable bytes replaced", e.reason)
        return raw.decode('utf-8-sig', errors='replace')


def load_patient_csv(data_path: Union[str, Path]) -> BatchResult:
    """
    Load and normalize a patient CSV file from disk.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    """

    data_path = Path(data_path)
    if not data_path.exists():
        raise FileNotFoundError(f"Patient file not found: {data_path}")

    logger.info("Loading patient data from %s", data_path)
    return parse_patient_csv(decode_csv_bytes(data_path.read_bytes()))


# =============================================================================
# Serialization
# =============================================================================

def _format_value(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, bool):
        return '1' if value else '0'
    if isinstance(value, float):
        # Positional notation only: the intake parser accepts no exponent.
        return str(int(value)) if value.is_integer() else np.format_float_positional(value)
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def record_to_row(record: PatientRecord) -> Dict[str, str]:
    """Flatten a record into CSV cells keyed by snake_case header."""

    row = {}
    for canonical, csv_name in CANONICAL_TO_CSV.items():
        source = record.vitals if canonical in VITAL_FIELDS else record
        row[csv_name] = _format_value(getattr(source, canonical))
    return row


def records_to_dataframe(records: Iterable[PatientRecord]) -> pd.DataFrame:
    """
    Serialize records into a string-typed DataFrame.

    Booleans become 1/0 and absent measurements become empty cells, so
    writing this frame to CSV and parsing it again gives back equal records.
    """

    rows = [record_to_row(r) for r in records]
    return pd.DataFrame(rows, columns=CSV_EXPORT_COLUMNS, dtype=str)


def records_to_csv(records: Iterable[PatientRecord]) -> str:
    csv_buffer = io.StringIO()
    records_to_dataframe(records).to_csv(csv_buffer, index=False)
    return csv_buffer.getvalue()


def save_results(
    df: pd.DataFrame,
    output_path: Union[str, Path],
    description: str = "results"
) -> Path:
    """
    Save a DataFrame to CSV, creating parent directories.

    Parameters
    ----------
    df : pd.DataFrame
        Data to save.
    output_path : str or Path
        Destination CSV path.
    description : str
        Description for logging purposes.
    """

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    df.to_csv(output_path, index=False)
    logger.info("Saved %s: %s (%d rows)", description, output_path, len(df))

    return output_path


def get_csv_template() -> str:
    """Downloadable template: the snake_case header plus two example rows."""

    template_data = {
        'patient_id': ['P001', 'P002'],
        'age': [67, 45],
        'gender': ['male', 'female'],
        'length_of_stay': [9, 3],
        'primary_diagnosis': ['respiratory', 'trauma'],
        'diabetes': [1, 0],
        'hypertension': [1, 0],
        'heart_disease': [0, 0],
        'lung_disease': [1, 0],
        'renal_disease': [0, 0],
        'ventilator_support': [1, 0],
        'vasopressors': [0, 0],
        'dialysis': [0, 0],
        'previous_icu_admission': [1, 0],
    }
    template_df = pd.DataFrame(template_data, columns=CSV_TEMPLATE_COLUMNS)

    csv_template = io.StringIO()
    template_df.to_csv(csv_template, index=False)
    return csv_template.getvalue()


# Demo patients for the intake form, keyed by form field names
SAMPLE_PATIENTS: List[Dict[str, Any]] = [
    {
        'id': 'sample1',
        'name': 'Patient A (High Risk)',
        'data': {
            'age': '72', 'gender': 'male', 'height': '175', 'weight': '82',
            'heartRate': '92', 'bloodPressureSystolic': '158',
            'bloodPressureDiastolic': '95', 'respiratoryRate': '26',
            'temperature': '38.1', 'oxygenSaturation': '92',
            'diabetes': True, 'hypertension': True, 'heartDisease': True,
            'lungDisease': True, 'kidneyDisease': False, 'cancer': False,
            'immunocompromised': False, 'primaryDiagnosis': 'respiratory',
            'lengthOfStay': '9', 'ventilatorSupport': True,
            'vasopressorUse': True, 'surgeryDuringStay': False,
        },
    },
    {
        'id': 'sample2',
        'name': 'Patient B (Moderate Risk)',
        'data': {
            'age': '58', 'gender': 'female', 'height': '165', 'weight': '74',
            'heartRate': '85', 'bloodPressureSystolic': '145',
            'bloodPressureDiastolic': '88', 'respiratoryRate': '22',
            'temperature': '37.4', 'oxygenSaturation': '94',
            'diabetes': True, 'hypertension': True, 'heartDisease': False,
            'lungDisease': False, 'kidneyDisease': False, 'cancer': False,
            'immunocompromised': False, 'primaryDiagnosis': 'sepsis',
            'lengthOfStay': '5', 'ventilatorSupport': False,
            'vasopressorUse': True, 'surgeryDuringStay': False,
        },
    },
    {
        'id': 'sample3',
        'name': 'Patient C (Low Risk)',
        'data': {
            'age': '42', 'gender': 'male', 'height': '180', 'weight': '75',
            'heartRate': '72', 'bloodPressureSystolic': '125',
            'bloodPressureDiastolic': '78', 'respiratoryRate': '16',
            'temperature': '36.8', 'oxygenSaturation': '98',
            'diabetes': False, 'hypertension': False, 'heartDisease': False,
            'lungDisease': False, 'kidneyDisease': False, 'cancer': False,
            'immunocompromised': False, 'primaryDiagnosis': 'postoperative',
            'lengthOfStay': '2', 'ventilatorSupport': False,
            'vasopressorUse': False, 'surgeryDuringStay': True,
        },
    },
]


def get_sample_patient(sample_id: str) -> Dict[str, Any]:
    """Form field-set for a demo patient, with its id filled in."""

    for sample in SAMPLE_PATIENTS:
        if sample['id'] == sample_id:
            return {'id': sample['id'], **sample['data']}
    raise KeyError(f"Unknown sample patient: {sample_id}")
