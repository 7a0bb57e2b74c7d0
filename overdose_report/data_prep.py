from __future__ import annotations
from typing import Any, List

import numpy as np
import pandas as pd

from overdose_report.config import (
    DROPPED_COLUMNS,
    FLAG_VALUES,
    MISSINGNESS_THRESHOLD,
    RAW_COLUMNS,
    REQUIRED_COLUMNS,
    SUBSTANCES,
)
from overdose_report.utils import DataIntegrityError, make_logger, require_columns

log = make_logger()


# --- helpers ---
def _is_text(s: pd.Series) -> bool:
    return pd.api.types.is_object_dtype(s) or pd.api.types.is_string_dtype(s)

def _title(v: Any) -> Any:
    return v.strip().title() if isinstance(v, str) else v

def _blank_to_na(v: Any) -> Any:
    return np.nan if isinstance(v, str) and not v.strip() else v

def _check_unique(df: pd.DataFrame, col: str) -> None:
    vals = df[col].dropna()
    dup = vals[vals.duplicated(keep=False)]
    if not dup.empty:
        raise DataIntegrityError(
            f"Column '{col}' must be unique; duplicated values: {sorted(dup.astype(str).unique())[:10]}"
        )

def _coerce_flag(df: pd.DataFrame, col: str, fallback: Any) -> int:
    """Map present values outside {'0','1'} to `fallback`; returns how many changed."""
    bad = df[col].notna() & ~df[col].isin(FLAG_VALUES)
    n = int(bad.sum())
    if n:
        df.loc[bad, col] = fallback
    return n


def load_records(path: str) -> pd.DataFrame:
    """
    Read the raw CSV as strings and map raw headers to field names:
      'Index' -> row_id, 'ID' -> id, 'Morphine_NotHeroin' -> morphine_not_heroin, ...
    Raw headers are matched case-sensitively; missing required ones raise SchemaError.
    """
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    require_columns(df, REQUIRED_COLUMNS, what=f"CSV '{path}'")
    df = df.rename(columns={k: v for k, v in RAW_COLUMNS.items() if k in df.columns})
    log.info("loaded %d rows x %d columns from %s", len(df), df.shape[1], path)
    return df


def normalize(raw: pd.DataFrame) -> pd.DataFrame:
    """
    Clean a loaded record table into the wide analysis table.

    Steps, in order:
      uniqueness of row_id and id (DataIntegrityError otherwise), drop row_id/date_type,
      rename morphine_not_heroin -> morphine, title-case text, recode sentinels
      ('' everywhere, 'Unknown' sex, 'Usa' death_county) to NaN, merge fentanyl
      analogue into fentanyl, coerce flags, parse date (day only), numeric age,
      drop the fixed low-value columns. id uniqueness is checked again after casing.

    Returns a new frame; `raw` is not modified. Running it again on its own output
    (with a row_id column re-added) gives the same table.
    """
    require_columns(raw, ["row_id", "id"], what="record table")
    _check_unique(raw, "row_id")
    _check_unique(raw, "id")

    df = raw.drop(columns=["row_id", "date_type"], errors="ignore").copy()
    if "morphine_not_heroin" in df.columns:
        df = df.rename(columns={"morphine_not_heroin": "morphine"})

    # casing first so sentinel matching sees one spelling
    for col in df.columns:
        if _is_text(df[col]):
            df[col] = df[col].map(_title)
    df = blanks_to_na(df)
    # an all-missing flag column must still accept "0"/"1"
    for col in SUBSTANCES + ["fentanyl_analogue"]:
        if col in df.columns:
            df[col] = df[col].astype(object)

    # casing/stripping can merge ids that were distinct in the raw file
    _check_unique(df, "id")

    if "sex" in df.columns:
        df.loc[df["sex"] == "Unknown", "sex"] = np.nan
    if "death_county" in df.columns:
        df.loc[df["death_county"] == "Usa", "death_county"] = np.nan

    # fentanyl analogue counts as fentanyl
    if "fentanyl_analogue" in df.columns:
        if "fentanyl" in df.columns:
            df.loc[df["fentanyl_analogue"] == "1", "fentanyl"] = "1"
        df = df.drop(columns=["fentanyl_analogue"])

    for col in SUBSTANCES:
        if col not in df.columns:
            continue
        # malformed fentanyl is a detection; anything else malformed is unusable
        n = _coerce_flag(df, col, "1" if col == "fentanyl" else np.nan)
        if n:
            log.info("coerced %d malformed '%s' values", n, col)

    if "date" in df.columns:
        df["date"] = parse_dates(df["date"])
    if "age" in df.columns:
        df["age"] = pd.to_numeric(df["age"], errors="coerce")

    drop = [c for c in DROPPED_COLUMNS if c in df.columns]
    df = df.drop(columns=drop)
    if drop:
        log.info("dropped low-value columns: %s", drop)

    return df.reset_index(drop=True)


def blanks_to_na(df: pd.DataFrame) -> pd.DataFrame:
    """Empty or whitespace-only strings -> NaN in every text column (kept as object dtype)."""
    out = df.copy()
    for col in out.columns:
        if _is_text(out[col]):
            out[col] = out[col].map(_blank_to_na).astype(object)
    return out


def parse_dates(s: pd.Series) -> pd.Series:
    """
    'MM/DD/YYYY[ hh:mm:ss AM]' -> midnight timestamps. Time of day is discarded;
    rows that do not parse become NaT and are kept.
    """
    if pd.api.types.is_datetime64_any_dtype(s):
        return s.dt.normalize()

    day = s.map(lambda v: v.split()[0] if isinstance(v, str) and v.split() else np.nan)
    out = pd.to_datetime(day, format="%m/%d/%Y", errors="coerce")
    bad = int((day.notna() & out.isna()).sum())
    if bad:
        log.warning("%d dates did not parse; kept as missing", bad)
    return out


def missingness(df: pd.DataFrame) -> pd.DataFrame:
    """Per-column absent count and rate, highest rate first."""
    na = df.isna()
    out = pd.DataFrame({
        "column": df.columns,
        "missing": na.sum().to_numpy(),
        "rate": na.mean().to_numpy() if len(df) else np.zeros(df.shape[1]),
    })
    return out.sort_values(["rate", "column"], ascending=[False, True]).reset_index(drop=True)


def columns_over_threshold(df: pd.DataFrame, threshold: float = MISSINGNESS_THRESHOLD) -> List[str]:
    """Columns whose missing rate exceeds `threshold`. For inspection only."""
    m = missingness(df)
    return m.loc[m["rate"] > threshold, "column"].tolist()
