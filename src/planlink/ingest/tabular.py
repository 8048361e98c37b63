"""Read CSV / Excel uploads into string rows keyed by canonical column names.

Headers are matched case-insensitively, and again with whitespace removed,
against ``COLUMN_ALIASES``. Unknown headers are dropped.
"""

from __future__ import annotations

import io
import zipfile
from pathlib import PurePath

import pandas as pd

from planlink.core.exceptions import ImportFileError
from planlink.models.records import PlanKind

# =============================================================================
# CANONICAL COLUMN NAMES
# =============================================================================
# Participant columns use the EnrollmentRequest field names.

COL_PARTICIPANT = "participant"
COL_DOB = "date_of_birth"
COL_PHONE = "phone_number"
COL_EMAIL = "email_address"
COL_ADDRESS = "address"
COL_ID_NUMBER = "id_number"
COL_HIRE_DATE = "hire_date"
COL_TERMINATION_DATE = "termination_date"
COL_CLASS = "class_number"
COL_PLAN_START = "effective_date"
COL_PROVIDER = "provider"
COL_PLAN_NAME = "plan_name"
COL_OPTION = "option"
COL_RATE = "rate"

# Dependent rows
COL_DEPENDENT_NAME = "dependent_name"
COL_RELATIONSHIP = "relationship"
COL_DEPENDENT_DOB = "dependent_dob"


# =============================================================================
# COLUMN ALIASES
# =============================================================================
# Key = lowercased header as it appears in upload files

COLUMN_ALIASES: dict[str, str] = {
    "participant": COL_PARTICIPANT,
    "participant name": COL_PARTICIPANT,
    "client name": COL_PARTICIPANT,

    "date of birth": COL_DOB,
    "date of birth (participant)": COL_DOB,
    "dob": COL_DOB,

    "phone number": COL_PHONE,
    "phone": COL_PHONE,
    "email address": COL_EMAIL,
    "email": COL_EMAIL,
    "address": COL_ADDRESS,
    "id number": COL_ID_NUMBER,
    "hire date": COL_HIRE_DATE,
    "termination date": COL_TERMINATION_DATE,
    "class": COL_CLASS,

    "plan start date": COL_PLAN_START,
    "provider": COL_PROVIDER,
    "plan name": COL_PLAN_NAME,
    "option": COL_OPTION,
    "rate": COL_RATE,

    "name (dependent)": COL_DEPENDENT_NAME,
    "dependent name": COL_DEPENDENT_NAME,
    "relationship to participant": COL_RELATIONSHIP,
    "relationship to partcipant": COL_RELATIONSHIP,
    "relationship": COL_RELATIONSHIP,
    "date of birth (dependant)": COL_DEPENDENT_DOB,
    "date of birth (dependent)": COL_DEPENDENT_DOB,
}

_COMPACT_ALIASES = {"".join(k.split()): v for k, v in COLUMN_ALIASES.items()}

GROUP_COLUMNS = [COL_PARTICIPANT, COL_DOB, COL_PLAN_NAME, COL_OPTION, COL_RATE]
MEDICARE_COLUMNS = [COL_PARTICIPANT, COL_DOB, COL_PLAN_START, COL_PLAN_NAME, COL_RATE]

REQUIRED_COLUMNS: dict[PlanKind, list[str]] = {
    PlanKind.GROUP: GROUP_COLUMNS,
    PlanKind.MEDICARE: MEDICARE_COLUMNS,
}

_EXCEL_SUFFIXES = {".xlsx", ".xls"}

COLUMN_LABELS: dict[str, str] = {
    COL_PARTICIPANT: "Participant",
    COL_DOB: "Date of Birth",
    COL_PLAN_START: "Plan Start Date",
    COL_PLAN_NAME: "Plan Name",
    COL_OPTION: "Option",
    COL_RATE: "Rate",
}


def canonical_column(header: object) -> str | None:
    text = str(header).strip().lower()
    if text in COLUMN_ALIASES:
        return COLUMN_ALIASES[text]
    return _COMPACT_ALIASES.get("".join(text.split()))


def normalize_headers(df: pd.DataFrame) -> pd.DataFrame:
    """Rename known headers to canonical names and drop the rest.

    The first header wins when two map to the same column.
    """
    rename: dict[str, str] = {}
    for header in df.columns:
        column = canonical_column(header)
        if column is not None and column not in rename.values():
            rename[header] = column
    return df[list(rename)].rename(columns=rename)


def _load(data: bytes, filename: str) -> pd.DataFrame:
    suffix = PurePath(filename or "").suffix.lower()
    try:
        if suffix in _EXCEL_SUFFIXES:
            return pd.read_excel(io.BytesIO(data), dtype=str)
        return pd.read_csv(
            io.BytesIO(data), dtype=str, keep_default_na=False, skipinitialspace=True,
        )
    except pd.errors.EmptyDataError as exc:
        raise ImportFileError("No data found in file") from exc
    except (ValueError, UnicodeDecodeError, pd.errors.ParserError, zipfile.BadZipFile) as exc:
        raise ImportFileError(f"Could not read {filename or 'upload'}: {exc}") from exc


def read_table(data: bytes, filename: str, kind: PlanKind | None = None) -> list[dict[str, str]]:
    """Parse an upload into rows of stripped strings, blank rows dropped.

    With ``kind`` set, a missing required column raises ``ImportFileError``.
    """
    df = normalize_headers(_load(data, filename))
    df = df.fillna("")
    for column in df.columns:
        df[column] = df[column].astype(str).str.strip()

    if kind is not None:
        missing = [c for c in REQUIRED_COLUMNS[kind] if c not in df.columns]
        if missing:
            labels = ", ".join(COLUMN_LABELS[c] for c in missing)
            raise ImportFileError(f"Missing required columns: {labels}")

    rows = df.to_dict(orient="records")
    return [row for row in rows if any(row.values())]
