import pandas as pd
import numpy as np
from sklearn.feature_extraction.text import CountVectorizer

from overdose_report.config import (
    AGE_BAND_EDGES, AGE_BAND_LABELS, OTHER_LABEL, SUBSTANCES, TIME_UNITS, TOP_N, WEEKDAY_LABELS,
)
from overdose_report.reshape import substance_count
from overdose_report.utils import require_columns


# ----------------------------
# Shared bucketing rules
# ----------------------------
def age_band(age: pd.Series) -> pd.Series:
    """<20, 20-29, ..., 60+ ; lower bound inclusive, upper exclusive."""
    return pd.cut(pd.to_numeric(age, errors="coerce"), bins=AGE_BAND_EDGES,
                  labels=AGE_BAND_LABELS, right=False)

def lump_top_n(s: pd.Series, n: int = TOP_N, other: str = OTHER_LABEL) -> pd.Series:
    """Keep the n most frequent categories, everything else becomes `other`. NaN stays NaN."""
    if n <= 0:
        raise ValueError(f"top_n must be positive, got {n}")
    top = s.value_counts().head(n).index
    return s.where(s.isna() | s.isin(top), other)

def _positive(long: pd.DataFrame) -> pd.DataFrame:
    require_columns(long, ["id", "drug", "value"], what="long table")
    return long.loc[long["value"] != 0]


# ----------------------------
# Drug-centric summaries (long table)
# ----------------------------
def drug_prevalence(long: pd.DataFrame) -> pd.DataFrame:
    pos = _positive(long)
    n_subjects = long["id"].nunique()
    agg = (pos.groupby("drug").size()
              .reindex(SUBSTANCES, fill_value=0)
              .rename("deaths").rename_axis("drug")
              .to_frame())
    agg["share"] = agg["deaths"] / n_subjects if n_subjects else 0.0
    agg = agg.reset_index()
    return agg.sort_values(["deaths", "drug"], ascending=[False, True]).reset_index(drop=True)

def _drug_by(pos: pd.DataFrame, col: str) -> pd.DataFrame:
    sub = pos.dropna(subset=[col])
    tbl = pd.crosstab(sub["drug"], sub[col])
    return tbl.reindex(SUBSTANCES, fill_value=0)

def drug_by_sex(long: pd.DataFrame) -> pd.DataFrame:
    return _drug_by(_positive(long), "sex")

def drug_by_age_band(long: pd.DataFrame) -> pd.DataFrame:
    pos = _positive(long).copy()
    pos["age_band"] = age_band(pos["age"]).astype(object)
    tbl = _drug_by(pos, "age_band")
    return tbl.reindex(columns=AGE_BAND_LABELS, fill_value=0)

def drug_by_location(long: pd.DataFrame, top_n: int = TOP_N) -> pd.DataFrame:
    # lump over subjects, not observations, so one subject counts once per location
    pos = _positive(long).copy()
    subj = long.drop_duplicates("id").set_index("id")["location"]
    pos["location"] = pos["id"].map(lump_top_n(subj, top_n))
    return _drug_by(pos, "location")

def drug_by_year(cleaned: pd.DataFrame, long: pd.DataFrame) -> pd.DataFrame:
    """Positive counts per (year, drug); subjects without a date are excluded."""
    require_columns(cleaned, ["id", "date"], what="cleaned table")
    years = cleaned.dropna(subset=["date"]).set_index("id")["date"].dt.year
    pos = _positive(long).copy()
    pos["year"] = pos["id"].map(years)
    pos = pos.dropna(subset=["year"])
    pos["year"] = pos["year"].astype(int)
    tbl = pd.crosstab(pos["year"], pos["drug"])
    return tbl.reindex(columns=SUBSTANCES, fill_value=0)


# ----------------------------
# Subject-centric summaries (wide table)
# ----------------------------
def _count_by(s: pd.Series, name: str) -> pd.DataFrame:
    out = s.dropna().value_counts().rename("deaths").rename_axis(name).reset_index()
    return out

def deaths_by_sex(cleaned: pd.DataFrame) -> pd.DataFrame:
    require_columns(cleaned, ["sex"], what="cleaned table")
    return _count_by(cleaned["sex"], "sex")

def deaths_by_age_band(cleaned: pd.DataFrame) -> pd.DataFrame:
    require_columns(cleaned, ["age"], what="cleaned table")
    bands = age_band(cleaned["age"])
    counts = bands.value_counts().reindex(AGE_BAND_LABELS, fill_value=0)
    return counts.rename("deaths").rename_axis("age_band").reset_index()

def deaths_by_location(cleaned: pd.DataFrame, top_n: int = TOP_N) -> pd.DataFrame:
    require_columns(cleaned, ["location"], what="cleaned table")
    return _count_by(lump_top_n(cleaned["location"], top_n), "location")

def deaths_by_county(cleaned: pd.DataFrame, top_n: int = TOP_N, column: str = "death_county") -> pd.DataFrame:
    require_columns(cleaned, [column], what="cleaned table")
    return _count_by(lump_top_n(cleaned[column], top_n), "county")

def deaths_by_time(cleaned: pd.DataFrame, unit: str = "year") -> pd.DataFrame:
    """Death counts per year, calendar month (1-12) or weekday; undated rows are dropped."""
    if unit not in TIME_UNITS:
        raise ValueError(f"unit must be one of {TIME_UNITS}, got {unit!r}")
    require_columns(cleaned, ["date"], what="cleaned table")
    dates = cleaned["date"].dropna()
    if unit == "year":
        keys = dates.dt.year
        counts = keys.value_counts().sort_index()
    elif unit == "month":
        keys = dates.dt.month
        counts = keys.value_counts().reindex(range(1, 13), fill_value=0)
    else:
        keys = dates.dt.dayofweek.map(dict(enumerate(WEEKDAY_LABELS)))
        counts = keys.value_counts().reindex(WEEKDAY_LABELS, fill_value=0)
    return counts.rename("deaths").rename_axis(unit).reset_index()

def single_vs_multiple(cleaned: pd.DataFrame, long: pd.DataFrame) -> pd.DataFrame:
    """
    Subjects positive for exactly one drug vs more than one.
    Percentages are over every subject in the cleaned (wide) table, including
    those with no positive drug.
    """
    n = substance_count(cleaned, long)
    total = len(cleaned)
    rows = [
        {"group": "single", "deaths": int((n == 1).sum())},
        {"group": "multiple", "deaths": int((n > 1).sum())},
    ]
    out = pd.DataFrame(rows)
    out["percent"] = 100.0 * out["deaths"] / total if total else 0.0
    return out

def drugs_per_subject(cleaned: pd.DataFrame, long: pd.DataFrame) -> pd.DataFrame:
    """Distribution of the number of positive drugs per subject (0 included)."""
    n = substance_count(cleaned, long)
    return n.value_counts().sort_index().rename("deaths").rename_axis("n_drugs").reset_index()


# ----------------------------
# Free-text cause of death
# ----------------------------
def cause_of_death_terms(cleaned: pd.DataFrame, min_df: int = 5, top_k: int = 30,
                         column: str = "cause_of_death") -> pd.DataFrame:
    # top unigrams/bigrams from the cause-of-death text
    require_columns(cleaned, [column], what="cleaned table")
    docs = cleaned[column].dropna().astype(str)
    if docs.empty:
        return pd.DataFrame({"term": [], "count": []})
    vec = CountVectorizer(ngram_range=(1, 2), min_df=min_df, stop_words="english")
    try:
        X = vec.fit_transform(docs)
    except ValueError:
        # nothing survives min_df / stop words
        return pd.DataFrame({"term": [], "count": []})
    vocab = vec.get_feature_names_out()
    counts = np.asarray(X.sum(0)).ravel()
    top = pd.DataFrame({"term": vocab, "count": counts})
    return top.sort_values(["count", "term"], ascending=[False, True]).head(top_k).reset_index(drop=True)
