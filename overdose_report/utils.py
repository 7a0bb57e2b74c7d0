"""Shared helpers: logger factory, error types, small path utilities."""

from __future__ import annotations
import logging
import os
from typing import Iterable, Optional

import pandas as pd


class ReportError(Exception):
    """Base class for errors that abort a report run."""


class SchemaError(ReportError, ValueError):
    """Input table is missing columns the pipeline needs."""


class DataIntegrityError(ReportError):
    """An identifier that must be unique is duplicated."""


def make_logger(name: str = "overdose_report", level: int = logging.INFO) -> logging.Logger:
    """Create a simple logger if none exists for `name`."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        h = logging.StreamHandler()
        fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        h.setFormatter(fmt)
        logger.addHandler(h)
        logger.setLevel(level)
    return logger


def require_columns(df: pd.DataFrame, cols: Iterable[str], what: str = "table") -> None:
    missing = [c for c in cols if c not in df.columns]
    if missing:
        raise SchemaError(f"{what} is missing required columns: {missing}. Found: {list(df.columns)}")


def ensure_dir(p: Optional[str]) -> None:
    if p:
        d = os.path.dirname(p)
        if d and not os.path.exists(d):
            os.makedirs(d, exist_ok=True)
