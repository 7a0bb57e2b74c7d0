"""End-to-end report run: load -> normalize -> long table -> summaries -> charts."""

from __future__ import annotations
import os
from typing import Dict, Optional

import pandas as pd
import typer

from overdose_report import metrics, viz
from overdose_report.config import DEFAULT_DATA_PATH, DEFAULT_OUTPUT_DIR, TIME_UNITS, TOP_N
from overdose_report.data_prep import blanks_to_na, columns_over_threshold, load_records, missingness, normalize
from overdose_report.reshape import to_long
from overdose_report.utils import make_logger

log = make_logger()


def build_summaries(cleaned: pd.DataFrame, long: pd.DataFrame, top_n: int = TOP_N) -> Dict[str, pd.DataFrame]:
    """Every summary table the report shows, keyed by artifact name."""
    out = {
        "drug_prevalence": metrics.drug_prevalence(long),
        "drug_by_sex": metrics.drug_by_sex(long),
        "drug_by_age_band": metrics.drug_by_age_band(long),
        "drug_by_location": metrics.drug_by_location(long, top_n),
        "drug_by_year": metrics.drug_by_year(cleaned, long),
        "deaths_by_sex": metrics.deaths_by_sex(cleaned),
        "deaths_by_age_band": metrics.deaths_by_age_band(cleaned),
        "deaths_by_location": metrics.deaths_by_location(cleaned, top_n),
        "deaths_by_county": metrics.deaths_by_county(cleaned, top_n),
        "single_vs_multiple": metrics.single_vs_multiple(cleaned, long),
        "drugs_per_subject": metrics.drugs_per_subject(cleaned, long),
    }
    for unit in TIME_UNITS:
        out[f"deaths_by_{unit}"] = metrics.deaths_by_time(cleaned, unit)
    if "cause_of_death" in cleaned.columns:
        out["cause_of_death_terms"] = metrics.cause_of_death_terms(cleaned)
    return out


def render_charts(summaries: Dict[str, pd.DataFrame], miss: pd.DataFrame, out_dir: str) -> Dict[str, Optional[str]]:
    def p(name: str) -> str:
        return os.path.join(out_dir, "charts", f"{name}.png")

    s = summaries
    saved = {
        "missingness": viz.plot_missingness(miss, p("missingness"))[2],
        "drug_prevalence": viz.plot_bar(s["drug_prevalence"], "drug", out_path=p("drug_prevalence"),
                                        title="Deaths by drug detected", horizontal=True)[2],
        "drug_by_sex": viz.plot_grouped(s["drug_by_sex"], p("drug_by_sex"), title="Drug by sex")[2],
        "drug_by_age_band": viz.plot_grouped(s["drug_by_age_band"], p("drug_by_age_band"),
                                             title="Drug by age band")[2],
        "drug_by_location": viz.plot_grouped(s["drug_by_location"], p("drug_by_location"),
                                             title="Drug by location")[2],
        "drug_trends": viz.plot_drug_trends(s["drug_by_year"], p("drug_trends"))[2],
        "drug_year_heatmap": viz.plot_drug_year_heatmap(s["drug_by_year"], p("drug_year_heatmap"))[2],
        "deaths_by_sex": viz.plot_bar(s["deaths_by_sex"], "sex", out_path=p("deaths_by_sex"),
                                      title="Deaths by sex")[2],
        "deaths_by_age_band": viz.plot_bar(s["deaths_by_age_band"], "age_band", out_path=p("deaths_by_age_band"),
                                           title="Deaths by age band")[2],
        "deaths_by_county": viz.plot_bar(s["deaths_by_county"], "county", out_path=p("deaths_by_county"),
                                         title="Deaths by county of death")[2],
        "single_vs_multiple": viz.plot_bar(s["single_vs_multiple"], "group", "percent",
                                           out_path=p("single_vs_multiple"),
                                           title="Single vs multiple drugs (% of deaths)")[2],
    }
    for unit in TIME_UNITS:
        saved[f"deaths_by_{unit}"] = viz.plot_time(s[f"deaths_by_{unit}"], unit, p(f"deaths_by_{unit}"))[2]
    return saved


def run_report(csv_path: str = DEFAULT_DATA_PATH, out_dir: str = DEFAULT_OUTPUT_DIR,
               top_n: int = TOP_N, charts: bool = True) -> Dict[str, pd.DataFrame]:
    raw = load_records(csv_path)
    blank = blanks_to_na(raw)
    miss = missingness(blank)
    sparse = columns_over_threshold(blank)
    if sparse:
        log.info("columns over the missingness threshold: %s", sparse)
    cleaned = normalize(raw)
    long = to_long(cleaned)

    summaries = build_summaries(cleaned, long, top_n)

    tables_dir = os.path.join(out_dir, "tables")
    os.makedirs(tables_dir, exist_ok=True)
    for name, df in summaries.items():
        path = os.path.join(tables_dir, f"{name}.csv")
        df.to_csv(path, index=df.index.name is not None)
        log.info("wrote %s", path)

    if charts:
        for name, path in render_charts(summaries, miss, out_dir).items():
            log.info("chart %s -> %s", name, path)

    return {"cleaned": cleaned, "long": long, "missingness": miss, **summaries}


app = typer.Typer(help="Accidental drug-related deaths report")


@app.command()
def main(
    csv_path: str = typer.Argument(DEFAULT_DATA_PATH, help="Raw records CSV"),
    out_dir: str = typer.Option(DEFAULT_OUTPUT_DIR, "--out-dir", help="Where tables and charts go"),
    top_n: int = typer.Option(TOP_N, "--top-n", help="Categories kept before lumping into 'Other'"),
    no_charts: bool = typer.Option(False, "--no-charts", help="Write tables only"),
) -> None:
    """Run the full report and write tables/charts under OUT_DIR."""
    run_report(csv_path, out_dir, top_n=top_n, charts=not no_charts)


if __name__ == "__main__":
    app()
