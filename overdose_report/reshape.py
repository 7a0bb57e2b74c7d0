from __future__ import annotations

import pandas as pd

from overdose_report.config import SUBJECT_COLUMNS, SUBSTANCES
from overdose_report.utils import make_logger, require_columns

log = make_logger()

LONG_COLUMNS = SUBJECT_COLUMNS + ["drug", "value"]
_DRUG_ORDER = {d: i for i, d in enumerate(SUBSTANCES)}


def to_long(cleaned: pd.DataFrame) -> pd.DataFrame:
    """
    Wide cleaned table -> one row per (subject, substance) with a present value.
    Columns: id, sex, age, location, drug, value (int 0/1).
    Rows follow subject order, then the fixed substance order. Subjects with no
    substance data contribute no rows.
    """
    require_columns(cleaned, SUBJECT_COLUMNS + SUBSTANCES, what="cleaned table")

    wide = cleaned[SUBJECT_COLUMNS + SUBSTANCES].reset_index(drop=True)
    wide["_pos"] = range(len(wide))

    long = (
        wide.melt(id_vars=SUBJECT_COLUMNS + ["_pos"], value_vars=SUBSTANCES,
                  var_name="drug", value_name="value")
            .dropna(subset=["value"])
    )
    long["_order"] = long["drug"].map(_DRUG_ORDER)
    long = long.sort_values(["_pos", "_order"], kind="mergesort")
    long["value"] = pd.to_numeric(long["value"]).astype(int)

    out = long[LONG_COLUMNS].reset_index(drop=True)
    log.info("long table: %d observations for %d subjects", len(out), out["id"].nunique())
    return out


def substance_count(cleaned: pd.DataFrame, long: pd.DataFrame) -> pd.Series:
    """Positive-drug count per subject, 0 for subjects with no positive rows."""
    require_columns(cleaned, ["id"], what="cleaned table")
    pos = long.loc[long["value"] != 0]
    counts = pos.groupby("id")["drug"].nunique()
    return counts.reindex(cleaned["id"].to_numpy(), fill_value=0).astype(int).rename("n_drugs")
