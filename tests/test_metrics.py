import numpy as np
import pandas as pd
import pytest

from overdose_report import metrics
from overdose_report.config import AGE_BAND_LABELS, SUBSTANCES
from overdose_report.data_prep import normalize
from overdose_report.reshape import to_long


@pytest.fixture
def tables(sample_raw):
    cleaned = normalize(sample_raw)
    return cleaned, to_long(cleaned)


def test_age_band_boundaries():
    bands = metrics.age_band(pd.Series([19, 20, 29, 30, 59, 60, 87, np.nan]))
    assert bands.astype(object).tolist()[:7] == ["<20", "20-29", "20-29", "30-39", "50-59", "60+", "60+"]
    assert pd.isna(bands.iloc[7])
    assert list(bands.cat.categories) == AGE_BAND_LABELS


def test_lump_top_n():
    s = pd.Series(["a"] * 5 + ["b"] * 4 + ["c"] * 3 + ["d"] * 2 + ["e"] + [None])
    out = metrics.lump_top_n(s, 3)
    assert out.value_counts().to_dict() == {"a": 5, "b": 4, "c": 3, "Other": 3}
    assert pd.isna(out.iloc[-1])
    with pytest.raises(ValueError):
        metrics.lump_top_n(s, 0)


def test_drug_prevalence(tables):
    _, long = tables
    prev = metrics.drug_prevalence(long)
    assert set(prev["drug"]) == set(SUBSTANCES)
    top = prev.set_index("drug")["deaths"]
    assert top["fentanyl"] == 2
    assert top["heroin"] == 1
    assert top["cocaine"] == 1
    assert top["morphine"] == 0
    assert prev["deaths"].is_monotonic_decreasing
    # share is over subjects present in the long table (4 of the 5)
    assert top["fentanyl"] / 4 == prev.set_index("drug").loc["fentanyl", "share"]


def test_drug_by_sex_excludes_missing_sex(tables):
    _, long = tables
    tbl = metrics.drug_by_sex(long)
    assert list(tbl.index) == SUBSTANCES
    assert set(tbl.columns) == {"Male", "Female"}
    assert tbl.loc["fentanyl", "Male"] == 2
    assert tbl.loc["cocaine", "Female"] == 1


def test_drug_by_age_band(tables):
    _, long = tables
    tbl = metrics.drug_by_age_band(long)
    assert list(tbl.columns) == AGE_BAND_LABELS
    assert tbl.loc["cocaine", "20-29"] == 1
    assert tbl.loc["heroin", "30-39"] == 1
    assert tbl.loc["ethanol", "40-49"] == 1
    assert tbl["60+"].sum() == 0


def test_drug_by_location_lumps(tables):
    _, long = tables
    tbl = metrics.drug_by_location(long, top_n=1)
    assert set(tbl.columns) == {"Residence", "Other"}
    assert tbl.loc["cocaine", "Other"] == 1


def test_drug_by_year_skips_undated(tables):
    cleaned, long = tables
    tbl = metrics.drug_by_year(cleaned, long)
    assert list(tbl.index) == [2014, 2015]
    assert tbl.loc[2015, "fentanyl"] == 1
    assert tbl.loc[2015, "cocaine"] == 1
    assert int(tbl.to_numpy().sum()) == 5


def test_deaths_by_sex_and_age_band(tables):
    cleaned, _ = tables
    sex = metrics.deaths_by_sex(cleaned).set_index("sex")["deaths"].to_dict()
    assert sex == {"Male": 2, "Female": 2}
    bands = metrics.deaths_by_age_band(cleaned)
    assert bands["age_band"].tolist() == AGE_BAND_LABELS
    assert bands["deaths"].tolist() == [0, 1, 1, 1, 0, 1]


def test_deaths_by_county_drops_usa(tables):
    cleaned, _ = tables
    out = metrics.deaths_by_county(cleaned, top_n=3).set_index("county")["deaths"].to_dict()
    assert out == {"Hartford": 2, "New Haven": 1, "Fairfield": 1}


def test_deaths_by_location_top_n(tables):
    cleaned, _ = tables
    out = metrics.deaths_by_location(cleaned, top_n=1).set_index("location")["deaths"].to_dict()
    assert out == {"Residence": 2, "Other": 2}


def test_deaths_by_time(tables):
    cleaned, _ = tables
    years = metrics.deaths_by_time(cleaned, "year")
    assert years.set_index("year")["deaths"].to_dict() == {2014: 1, 2015: 2}
    months = metrics.deaths_by_time(cleaned, "month")
    assert months["month"].tolist() == list(range(1, 13))
    assert months["deaths"].sum() == 3
    days = metrics.deaths_by_time(cleaned, "weekday").set_index("weekday")["deaths"]
    # 2014-01-05 Sunday, 2015-06-10 Wednesday, 2015-07-04 Saturday
    assert days[["Sunday", "Wednesday", "Saturday"]].tolist() == [1, 1, 1]
    assert days.sum() == 3
    with pytest.raises(ValueError):
        metrics.deaths_by_time(cleaned, "hour")


def test_single_vs_multiple_uses_wide_row_count(tables):
    cleaned, long = tables
    out = metrics.single_vs_multiple(cleaned, long).set_index("group")
    assert out.loc["single", "deaths"] == 1
    assert out.loc["multiple", "deaths"] == 2
    # denominator is all 5 cleaned rows, not the 4 subjects in the long table
    assert out.loc["single", "percent"] == pytest.approx(20.0)
    assert out.loc["multiple", "percent"] == pytest.approx(40.0)


def test_drugs_per_subject_reports_zero(tables):
    cleaned, long = tables
    out = metrics.drugs_per_subject(cleaned, long).set_index("n_drugs")["deaths"].to_dict()
    assert out == {0: 2, 1: 1, 2: 2}


def test_cause_of_death_terms(tables):
    cleaned, _ = tables
    terms = metrics.cause_of_death_terms(cleaned, min_df=2, top_k=5)
    got = terms.set_index("term")["count"].to_dict()
    assert got["intoxication"] == 3
    assert got["fentanyl"] == 2
    assert metrics.cause_of_death_terms(cleaned, min_df=10).empty
