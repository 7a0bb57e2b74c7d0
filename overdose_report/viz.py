from __future__ import annotations
from typing import Optional, Sequence, Tuple
import pandas as pd
import matplotlib.pyplot as plt

from overdose_report.config import MISSINGNESS_THRESHOLD
from overdose_report.utils import ensure_dir

Rendered = Tuple[plt.Figure, plt.Axes, Optional[str]]


def _finish(fig: plt.Figure, out_path: Optional[str], show: bool) -> Optional[str]:
    fig.tight_layout()
    saved = None
    if out_path:
        ensure_dir(out_path)
        fig.savefig(out_path, dpi=150, bbox_inches="tight")
        saved = out_path
    if show:
        plt.show()
    else:
        plt.close(fig)
    return saved

def _need(df: pd.DataFrame, cols: Sequence[str], name: str) -> None:
    miss = set(cols) - set(df.columns)
    if miss:
        raise ValueError(f"'{name}' is missing columns: {miss}")


def plot_bar(
    counts: pd.DataFrame,
    x: str,
    y: str = "deaths",
    out_path: Optional[str] = None,
    show: bool = False,
    *,
    title: str = "",
    horizontal: bool = False,
) -> Rendered:
    """Single-series bar chart from a two-column summary (category, count)."""
    _need(counts, [x, y], "counts")
    fig, ax = plt.subplots(figsize=(9, 5))
    labels = counts[x].astype(str).to_numpy()
    vals = counts[y].to_numpy()
    if horizontal:
        ax.barh(labels[::-1], vals[::-1])
        ax.set_xlabel(y.replace("_", " ").title())
    else:
        ax.bar(labels, vals)
        ax.set_ylabel(y.replace("_", " ").title())
        ax.tick_params(axis="x", rotation=45)
    ax.set_title(title)
    return fig, ax, _finish(fig, out_path, show)


def plot_grouped(
    table: pd.DataFrame,
    out_path: Optional[str] = None,
    show: bool = False,
    *,
    title: str = "",
    stacked: bool = True,
) -> Rendered:
    """
    Bar chart of a drug x category count table (rows = drugs, columns = categories),
    e.g. the output of drug_by_sex / drug_by_age_band / drug_by_location.
    """
    fig, ax = plt.subplots(figsize=(11, 5))
    if table.empty or table.shape[1] == 0:
        ax.text(0.5, 0.5, "no data", ha="center", va="center")
        ax.axis("off")
    else:
        table.plot(kind="bar", stacked=stacked, ax=ax)
        ax.set_ylabel("Deaths")
        ax.set_xlabel("")
        ax.legend(title=table.columns.name or "", fontsize=9)
    ax.set_title(title)
    return fig, ax, _finish(fig, out_path, show)


def plot_time(
    counts: pd.DataFrame,
    unit: str,
    out_path: Optional[str] = None,
    show: bool = False,
    *,
    title: str = "",
) -> Rendered:
    """Deaths per year / month / weekday (output of deaths_by_time)."""
    _need(counts, [unit, "deaths"], "counts")
    fig, ax = plt.subplots(figsize=(9, 4))
    ax.plot(counts[unit].astype(str).to_numpy(), counts["deaths"].to_numpy(), marker="o")
    ax.set_xlabel(unit.title())
    ax.set_ylabel("Deaths")
    ax.set_title(title or f"Deaths by {unit}")
    return fig, ax, _finish(fig, out_path, show)


def plot_drug_trends(
    by_year: pd.DataFrame,
    out_path: Optional[str] = None,
    show: bool = False,
    *,
    top_k: int = 5,
) -> Rendered:
    """One line per drug for the top_k drugs by total positives (output of drug_by_year)."""
    fig, ax = plt.subplots(figsize=(10, 5))
    if by_year.empty:
        ax.text(0.5, 0.5, "no dated records", ha="center", va="center")
        ax.axis("off")
    else:
        top = by_year.sum().sort_values(ascending=False).head(top_k).index
        for drug in top:
            ax.plot(by_year.index.to_numpy(), by_year[drug].to_numpy(), marker="o", label=drug.title())
        ax.set_xlabel("Year")
        ax.set_ylabel("Deaths (positive)")
        ax.legend(title="Drug", fontsize=9)
    ax.set_title(f"Top {top_k} drugs by year")
    return fig, ax, _finish(fig, out_path, show)


def plot_drug_year_heatmap(
    by_year: pd.DataFrame,
    out_path: Optional[str] = None,
    show: bool = False,
) -> Rendered:
    """Heatmap Year x Drug of positive counts."""
    fig, ax = plt.subplots(figsize=(11, 4))
    if by_year.empty:
        ax.text(0.5, 0.5, "no dated records", ha="center", va="center")
        ax.axis("off")
        return fig, ax, _finish(fig, out_path, show)
    im = ax.imshow(by_year.to_numpy(), aspect="auto")
    ax.set_yticks(range(len(by_year.index)))
    ax.set_yticklabels([str(y) for y in by_year.index])
    ax.set_xticks(range(len(by_year.columns)))
    ax.set_xticklabels([str(c).title() for c in by_year.columns], rotation=45, ha="right")
    ax.set_title("Positive drug detections (Year × Drug)")
    fig.colorbar(im, ax=ax)
    return fig, ax, _finish(fig, out_path, show)


def plot_missingness(
    miss: pd.DataFrame,
    out_path: Optional[str] = None,
    show: bool = False,
    *,
    threshold: float = MISSINGNESS_THRESHOLD,
) -> Rendered:
    """Missing rate per column with the inspection threshold marked."""
    _need(miss, ["column", "rate"], "miss")
    fig, ax = plt.subplots(figsize=(9, max(4, 0.25 * len(miss))))
    ax.barh(miss["column"].to_numpy()[::-1], miss["rate"].to_numpy()[::-1])
    ax.axvline(threshold, color="red", linestyle="--", linewidth=1)
    ax.set_xlim(0, 1)
    ax.set_xlabel("Missing rate")
    ax.set_title("Missing values by column")
    return fig, ax, _finish(fig, out_path, show)
