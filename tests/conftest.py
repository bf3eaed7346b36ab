"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import matplotlib
import pytest

matplotlib.use("Agg")

# Add the project root to the path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from icu_readmit.preprocessing import normalize_record  # noqa: E402
from icu_readmit.records import SourceKind  # noqa: E402


HIGH_RISK_FORM = {
    'id': 'HR-1',
    'age': '72',
    'gender': 'male',
    'lengthOfStay': '12',
    'primaryDiagnosis': 'respiratory',
    'diabetes': True,
    'hypertension': True,
    'heartDisease': True,
    'lungDisease': True,
    'ventilatorSupport': True,
    'vasopressorUse': True,
    'previousICUAdmission': True,
}

LOW_RISK_FORM = {
    'id': 'LR-1',
    'age': '42',
    'gender': 'female',
    'lengthOfStay': '2',
    'primaryDiagnosis': 'trauma',
}

CSV_HEADER = (
    "patient_id,age,gender,length_of_stay,primary_diagnosis,diabetes,hypertension,"
    "heart_disease,lung_disease,renal_disease,ventilator_support,vasopressors,"
    "dialysis,previous_icu_admission"
)


@pytest.fixture
def high_risk_form():
    return dict(HIGH_RISK_FORM)


@pytest.fixture
def low_risk_form():
    return dict(LOW_RISK_FORM)


@pytest.fixture
def high_risk_record():
    return normalize_record(HIGH_RISK_FORM, SourceKind.FORM)


@pytest.fixture
def low_risk_record():
    return normalize_record(LOW_RISK_FORM, SourceKind.FORM)


@pytest.fixture
def census_csv():
    """Ten data rows; line 6 has a non-numeric age."""
    rows = [
        "P001,67,male,9,respiratory,1,1,0,1,0,1,0,0,1",
        "P002,45,female,3,trauma,0,0,0,0,0,0,0,0,0",
        "P003,80,female,15,sepsis,1,0,1,0,1,1,1,1,0",
        "P004,55,male,5,cardiovascular,0,1,1,0,0,0,1,0,0",
        "P005,seventy,male,4,renal,0,0,0,0,1,0,0,1,0",
        "P006,38,female,1,gastrointestinal,0,0,0,0,0,0,0,0,0",
        "P007,71,male,11,respiratory,0,1,0,1,0,1,0,0,1",
        "P008,62,other,6,neurological,1,0,0,0,0,0,0,0,0",
        "P009,49,female,2,trauma,0,0,0,0,0,0,0,0,0",
        "P010,77,male,8,sepsis,1,1,1,1,0,1,1,0,1",
    ]
    return "\n".join([CSV_HEADER] + rows) + "\n"


@pytest.fixture
def temp_output_dir(tmp_path):
    """Provide a temporary directory for test outputs."""
    return tmp_path / "outputs"
