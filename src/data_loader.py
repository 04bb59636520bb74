"""
data_loader.py
CSV loader and cleaner for transaction line items.
- Ensures the exact transaction columns exist (from utils.constants) and hold no missing values.
- Coerces quantity/sales_amount to float64; keeps purchase_date as text for the cleaner.
- clean_transactions():
    * applies the non-positive sales policy (default: drop sales_amount <= 0)
    * parses purchase_date as YYYY-MM-DD, failing loudly on any malformed value
    * sorts by (contact_id, purchase_date)
"""

import logging

import numpy as np
import pandas as pd

from utils.constants import (
    CUSTOMER_COL, DATE_COL, DATE_FORMAT, NUMERIC_COLS, REQUIRED_COLUMNS, SALES_COL,
    DEFAULT_NONPOSITIVE_SALES_POLICY, NONPOSITIVE_SALES_POLICIES,
)
from utils.errors import EmptyDatasetError, MalformedDateError, SchemaError

logger = logging.getLogger(__name__)


def _ensure_required_columns(df: pd.DataFrame) -> None:
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    extra = [c for c in df.columns if c not in REQUIRED_COLUMNS]
    if missing or extra:
        raise SchemaError(
            f"Transaction columns must be {REQUIRED_COLUMNS}; missing={missing}, unexpected={extra}"
        )


def _ensure_no_missing(df: pd.DataFrame) -> None:
    # purchase_date is left to the date parser, which reports it as MalformedDateError
    for c in REQUIRED_COLUMNS:
        if c == DATE_COL:
            continue
        missing = df[c].isna()
        if missing.any():
            raise SchemaError(
                f"Column '{c}' has {int(missing.sum())} missing value(s) at rows (first 5): "
                f"{list(df.index[missing][:5])}"
            )


def load_transactions(path: str) -> pd.DataFrame:
    """
    Read the transactions CSV and return a typed DataFrame.
    Raises SchemaError on wrong columns, missing values or non-numeric amounts.
    """
    df = pd.read_csv(
        path,
        dtype={CUSTOMER_COL: "string", "order_id": "string", "product_id": "string", DATE_COL: "string"},
        keep_default_na=True,
    )
    _ensure_required_columns(df)
    _ensure_no_missing(df)

    for c in NUMERIC_COLS:
        coerced = pd.to_numeric(df[c], errors="coerce")
        bad = coerced.isna() & df[c].notna()
        if bad.any():
            raise SchemaError(
                f"Column '{c}' has non-numeric values at rows (first 5): {list(df.index[bad][:5])}"
            )
        df[c] = coerced.astype("float64")

    logger.info("Loaded %d transaction rows from %s", len(df), path)
    return df[REQUIRED_COLUMNS]


def _parse_dates(dates: pd.Series) -> pd.Series:
    if pd.api.types.is_datetime64_any_dtype(dates):
        return dates
    parsed = pd.to_datetime(dates, format=DATE_FORMAT, errors="coerce")
    bad = parsed.isna()
    if bad.any():
        examples = dates[bad].head(5).tolist()
        raise MalformedDateError(
            f"{int(bad.sum())} row(s) have {DATE_COL} not matching {DATE_FORMAT}. "
            f"Rows (first 5): {list(dates.index[bad][:5])}, values: {examples}"
        )
    return parsed


def clean_transactions(df: pd.DataFrame, nonpositive_sales_policy: str = DEFAULT_NONPOSITIVE_SALES_POLICY) -> pd.DataFrame:
    """
    Return a new, cleaned DataFrame; the input is left untouched.

    nonpositive_sales_policy:
      - "drop": rows with sales_amount <= 0 are treated as data-quality errors and removed.
      - "keep": rows are retained (zero-cost promotions stay in the aggregates).
    quantity alone never causes a row to be dropped.
    """
    if nonpositive_sales_policy not in NONPOSITIVE_SALES_POLICIES:
        raise ValueError(f"Unknown nonpositive_sales_policy: {nonpositive_sales_policy}")
    _ensure_required_columns(df)
    _ensure_no_missing(df)

    out = df[REQUIRED_COLUMNS].copy()
    out[DATE_COL] = _parse_dates(out[DATE_COL])

    if nonpositive_sales_policy == "drop":
        keep = out[SALES_COL] > 0
        dropped = int((~keep).sum())
        if dropped:
            logger.info("Dropped %d row(s) with %s <= 0", dropped, SALES_COL)
        out = out[keep]

    if out.empty:
        raise EmptyDatasetError("No transactions left after cleaning.")

    out = out.sort_values([CUSTOMER_COL, DATE_COL], kind="mergesort").reset_index(drop=True)
    out[SALES_COL] = out[SALES_COL].astype(np.float64)
    return out


def rows_for_year(df: pd.DataFrame, year: int) -> pd.DataFrame:
    """Cleaned rows whose purchase_date falls in the given calendar year."""
    return df[df[DATE_COL].dt.year == year].reset_index(drop=True)
