"""
Record Normalization Module
===========================

Clinical Context:
-----------------
Intake data is hand-entered or exported from other systems, so the same
concept arrives in many spellings:
1. Booleans as checkboxes, "true"/"false", or "1"/"0"
2. Numbers as strings, sometimes blank when a vital was not taken
3. Field names in camelCase (form) or snake_case (CSV template)

Normalization rules:
- Mandatory fields (age, gender, length of stay, primary diagnosis) must be
  present and parseable, otherwise the record is rejected with a
  ValidationError naming the field.
- Optional measurements that fail to parse are treated as not assessed.
- Comorbidity and intervention flags default to False, never None.
"""

import logging
import math
import numbers
import re
import uuid
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import pandas as pd

from .records import (
    DIAGNOSIS_LABELS,
    Gender,
    PatientRecord,
    SourceKind,
    ValidationError,
    Vitals,
)
from .schema import FIELDS, VITAL_FIELDS, FieldSpec, candidate_keys

logger = logging.getLogger(__name__)


_INT_PATTERN = re.compile(r'^[+-]?\d+$')
_FLOAT_PATTERN = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)$')

TRUE_TOKENS = frozenset({'true', '1'})
FALSE_TOKENS = frozenset({'false', '0'})

GENDER_ALIASES: Dict[str, Gender] = {
    'male': Gender.MALE,
    'm': Gender.MALE,
    'female': Gender.FEMALE,
    'f': Gender.FEMALE,
    'other': Gender.OTHER,
}

AGE_RANGE = (0, 120)

_KNOWN_KEYS = frozenset(
    key for spec in FIELDS for key in candidate_keys(spec, prefer_csv=True)
)


# =============================================================================
# Scalar coercion
# =============================================================================

def is_blank(value: Any) -> bool:
    """True for None, empty/whitespace strings and NaN placeholders."""

    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, float):
        return pd.isna(value)
    return False


def parse_int(value: Any) -> int:
    """
    Strictly parse a whole number.

    Accepts ints, integral floats (number widgets) and strings of digits
    with an optional sign. "7.5", "seven" and booleans are rejected.
    """

    if isinstance(value, bool):
        raise ValueError("expected a whole number, got a boolean")
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, numbers.Real):
        if float(value).is_integer():
            return int(value)
        raise ValueError(f"expected a whole number, got {value!r}")
    if isinstance(value, str) and _INT_PATTERN.match(value.strip()):
        return int(value.strip())
    raise ValueError(f"expected a whole number, got {value!r}")


def parse_float(value: Any) -> float:
    """Strictly parse a plain decimal number ("37.2", "94", ".5")."""

    if isinstance(value, bool):
        raise ValueError("expected a number, got a boolean")
    if isinstance(value, numbers.Real):
        result = float(value)
    elif isinstance(value, str) and _FLOAT_PATTERN.match(value.strip()):
        result = float(value.strip())
    else:
        raise ValueError(f"expected a number, got {value!r}")

    if not math.isfinite(result):
        raise ValueError(f"expected a finite number, got {value!r}")
    return result


def parse_bool(value: Any) -> bool:
    """Accept True/False, "true"/"false" (any case), "1"/"0" and 1/0."""

    if isinstance(value, bool):
        return value
    if isinstance(value, numbers.Integral) and int(value) in (0, 1):
        return bool(value)
    if isinstance(value, str):
        token = value.strip().lower()
        if token in TRUE_TOKENS:
            return True
        if token in FALSE_TOKENS:
            return False
    raise ValueError(f"expected true/false or 1/0, got {value!r}")


def parse_gender(value: Any) -> Gender:
    token = str(value).strip().lower()
    if token not in GENDER_ALIASES:
        raise ValueError(f"expected male, female or other, got {value!r}")
    return GENDER_ALIASES[token]


def normalize_diagnosis(value: Any) -> str:
    """
    Map a diagnosis to a known key where possible.

    "respiratory", "Respiratory Failure" and "respiratory_failure" all become
    "respiratory". Unknown free text is kept as entered (stripped).
    """

    text = str(value).strip()
    if not text:
        raise ValueError("diagnosis is empty")

    key = text.lower()
    if key in DIAGNOSIS_LABELS:
        return key

    first_word = re.split(r'[\s_\-/]+', key)[0]
    if first_word in DIAGNOSIS_LABELS:
        return first_word

    return text


# =============================================================================
# Record normalization
# =============================================================================

def _lookup(raw: Mapping[str, Any], spec: FieldSpec, prefer_csv: bool) -> Any:
    """Return the first non-blank value stored under any name of the field."""

    found = None
    for key in candidate_keys(spec, prefer_csv):
        if key in raw:
            if not is_blank(raw[key]):
                return raw[key]
            found = raw[key]
    return found


def _coerce_field(spec: FieldSpec, value: Any) -> Any:
    if spec.kind == 'int':
        return parse_int(value)
    if spec.kind == 'float':
        return parse_float(value)
    if spec.kind == 'bool':
        return parse_bool(value)
    if spec.kind == 'gender':
        return parse_gender(value)
    if spec.kind == 'diagnosis':
        return normalize_diagnosis(value)
    return str(value).strip()


def _check_range(spec: FieldSpec, value: Any) -> None:
    if spec.canonical == 'age':
        low, high = AGE_RANGE
        if not low <= value <= high:
            raise ValueError(f"must be between {low} and {high}, got {value}")
    elif spec.canonical == 'length_of_stay_days':
        if value < 0:
            raise ValueError(f"must not be negative, got {value}")
    elif spec.kind == 'float' and value < 0:
        raise ValueError(f"must not be negative, got {value}")


def _normalize(
    raw: Mapping[str, Any],
    source_kind: Union[SourceKind, str],
    stop_on_error: bool
) -> Tuple[Dict[str, Any], Dict[str, str]]:
    """Coerce every field; return (canonical values, field errors)."""

    kind = SourceKind(source_kind)
    prefer_csv = kind is SourceKind.CSV

    values: Dict[str, Any] = {}
    errors: Dict[str, str] = {}

    for spec in FIELDS:
        value = _lookup(raw, spec, prefer_csv)

        if is_blank(value):
            if spec.mandatory:
                errors[spec.canonical] = "is required"
                if stop_on_error:
                    break
            elif spec.kind == 'bool':
                values[spec.canonical] = False
            else:
                values[spec.canonical] = None
            continue

        try:
            coerced = _coerce_field(spec, value)
            if spec.kind in ('int', 'float'):
                _check_range(spec, coerced)
        except ValueError as e:
            if spec.mandatory or spec.kind == 'bool':
                errors[spec.canonical] = str(e)
                if stop_on_error:
                    break
            else:
                logger.debug("Treating %s as not assessed: %s", spec.canonical, e)
                values[spec.canonical] = None
            continue

        values[spec.canonical] = coerced

    unknown = [key for key in raw if key not in _KNOWN_KEYS]
    if unknown:
        logger.debug("Ignoring unknown fields: %s", ", ".join(map(str, unknown)))

    return values, errors


def validate_fields(
    raw: Mapping[str, Any],
    source_kind: Union[SourceKind, str] = SourceKind.FORM
) -> Dict[str, str]:
    """
    Collect every field error for an input instead of stopping at the first.

    Returns
    -------
    dict
        Canonical field name -> message. Empty when the input normalizes.
    """

    _, errors = _normalize(raw, source_kind, stop_on_error=False)
    return errors


def normalize_record(
    raw: Mapping[str, Any],
    source_kind: Union[SourceKind, str] = SourceKind.FORM
) -> PatientRecord:
    """
    Convert a raw form field-set or CSV row into a canonical PatientRecord.

    Parameters
    ----------
    raw : mapping
        Field name -> raw value. Form names ("heartDisease"), CSV names
        ("heart_disease") and known aliases ("kidneyDisease") are accepted.
    source_kind : SourceKind or str
        "form" or "csv". Decides which naming is looked up first.

    Returns
    -------
    PatientRecord
        Fully populated record. Missing flags are False; missing or
        unparseable vitals are None.

    Raises
    ------
    ValidationError
        A mandatory field is missing or invalid, an age/length of stay is out
        of range, or a boolean field holds an unrecognised token.
    """

    values, errors = _normalize(raw, source_kind, stop_on_error=True)
    if errors:
        field_name, message = next(iter(errors.items()))
        raise ValidationError(field_name, message)

    vitals = Vitals(**{name: values.pop(name) for name in VITAL_FIELDS})
    patient_id: Optional[str] = values.pop('patient_id')
    if not patient_id:
        patient_id = uuid.uuid4().hex[:12]

    return PatientRecord(patient_id=patient_id, vitals=vitals, **values)
