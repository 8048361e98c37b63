"""Tests for reading CSV / Excel uploads."""

from __future__ import annotations

import io

import pandas as pd
import pytest

from planlink.core.exceptions import ImportFileError
from planlink.ingest.tabular import canonical_column, read_table
from planlink.models.records import PlanKind


def _csv(text: str) -> bytes:
    return text.strip().encode("utf-8") + b"\n"


class TestCanonicalColumn:
    @pytest.mark.parametrize("header, column", [
        ("Participant", "participant"),
        ("  PARTICIPANT NAME ", "participant"),
        ("DOB", "date_of_birth"),
        ("Date of Birth (Participant)", "date_of_birth"),
        ("PlanName", "plan_name"),
        ("Relationship to Partcipant", "relationship"),
        ("Date of Birth (Dependant)", "dependent_dob"),
        ("Name (Dependent)", "dependent_name"),
        ("Plan Start Date", "effective_date"),
    ])
    def test_aliases(self, header, column):
        assert canonical_column(header) == column

    def test_unknown_header(self):
        assert canonical_column("Favorite Color") is None


class TestReadTable:
    def test_csv_rows_are_stripped_strings(self):
        data = _csv("""
Participant,Date of Birth,Plan Name,Option,Rate,Favorite Color
 Jane Doe ,03/15/1980,PPO,Employee Only,520.00,blue
""")
        rows = read_table(data, "census.csv", PlanKind.GROUP)
        assert rows == [{
            "participant": "Jane Doe",
            "date_of_birth": "03/15/1980",
            "plan_name": "PPO",
            "option": "Employee Only",
            "rate": "520.00",
        }]

    def test_blank_rows_dropped(self):
        data = _csv("""
Participant,Date of Birth,Plan Name,Option,Rate
Jane Doe,03/15/1980,PPO,Employee Only,520
,,,,
Bob Roe,04/01/1970,PPO,Employee Only,520
""")
        rows = read_table(data, "census.csv")
        assert [r["participant"] for r in rows] == ["Jane Doe", "Bob Roe"]

    def test_leading_zeros_survive(self):
        data = _csv("""
Participant,Date of Birth,Plan Name,Option,Rate,ID Number
Jane Doe,03/15/1980,PPO,Employee Only,520,000123
""")
        assert read_table(data, "census.csv")[0]["id_number"] == "000123"

    def test_excel(self):
        df = pd.DataFrame([{
            "Participant": "Mary Major", "Date of Birth": "1950-05-05",
            "Plan Start Date": "02/01/2025", "Plan Name": "Plan G", "Rate": "142.50",
        }])
        buf = io.BytesIO()
        df.to_excel(buf, index=False)

        rows = read_table(buf.getvalue(), "medicare.xlsx", PlanKind.MEDICARE)

        assert rows[0]["participant"] == "Mary Major"
        assert rows[0]["effective_date"] == "02/01/2025"
        assert rows[0]["rate"] == "142.50"

    def test_missing_required_column(self):
        data = _csv("""
Participant,Date of Birth,Plan Name,Option
Jane Doe,03/15/1980,PPO,Employee Only
""")
        with pytest.raises(ImportFileError, match="Missing required columns: Rate"):
            read_table(data, "census.csv", PlanKind.GROUP)

    def test_medicare_requires_plan_start_date(self):
        data = _csv("""
Participant,Date of Birth,Plan Name,Rate
Mary Major,1950-05-05,Plan G,142.50
""")
        with pytest.raises(ImportFileError, match="Plan Start Date"):
            read_table(data, "medicare.csv", PlanKind.MEDICARE)

    def test_empty_file(self):
        with pytest.raises(ImportFileError):
            read_table(b"", "census.csv")

    def test_unreadable_excel(self):
        with pytest.raises(ImportFileError):
            read_table(b"this is not a workbook", "census.xlsx")
