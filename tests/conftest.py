from __future__ import annotations

import matplotlib

matplotlib.use("Agg")

import pandas as pd
import pytest

from overdose_report.config import RAW_COLUMNS, REQUIRED_COLUMNS

FIELDS = list(REQUIRED_COLUMNS.values()) + [
    "cause_of_death", "other_significant_factors", "injury_state", "injury_county",
]
_TO_RAW = {v: k for k, v in RAW_COLUMNS.items()}


def _make_raw(*rows: dict) -> pd.DataFrame:
    """Loaded-table fixture: every field present, '' unless given, row_id = 1..n."""
    recs = []
    for i, r in enumerate(rows, start=1):
        rec = {f: "" for f in FIELDS}
        rec["row_id"] = str(i)
        rec["id"] = f"14-{i:04d}"
        rec.update(r)
        recs.append(rec)
    return pd.DataFrame(recs, columns=FIELDS)


@pytest.fixture
def make_raw():
    return _make_raw


@pytest.fixture
def write_raw_csv(tmp_path):
    def _write(df: pd.DataFrame, name: str = "deaths.csv") -> str:
        path = tmp_path / name
        df.rename(columns=_TO_RAW).to_csv(path, index=False)
        return str(path)
    return _write


@pytest.fixture
def sample_raw(make_raw):
    return make_raw(
        {"sex": "Male", "age": "34", "location": "Residence", "death_county": "HARTFORD",
         "date": "01/05/2014 12:00:00 AM", "heroin": "1", "fentanyl": "1",
         "cause_of_death": "Acute Heroin and Fentanyl Intoxication"},
        {"sex": "female", "age": "29", "location": "Hospital", "death_county": "New Haven",
         "date": "06/10/2015", "cocaine": "1", "heroin": "0",
         "cause_of_death": "Cocaine Intoxication"},
        {"sex": "Male", "age": "45", "location": "Residence", "death_county": "Hartford",
         "date": "07/04/2015 12:00:00 AM", "fentanyl_analogue": "1", "ethanol": "1",
         "cause_of_death": "Acute Fentanyl Intoxication"},
        {"sex": "Unknown", "age": "61", "location": "Other", "death_county": "USA",
         "date": "not a date", "heroin": "0", "cocaine": "0"},
        {"sex": "Female", "age": "", "location": "", "death_county": "Fairfield",
         "date": ""},
    )
