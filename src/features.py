# features.py
"""
Customer-level feature and target tables.

- build_yearly_features(): base-year line items -> one feature row per customer.
- build_targets(): target-year line items -> total target-year spend per customer.
- assemble_modeling_table(): left join of targets <- features with the structural-zero fill.
"""

import logging

import pandas as pd

from utils.constants import CUSTOMER_COL, ORDER_COL, DATE_COL, QUANTITY_COL, SALES_COL
from utils.errors import JoinMismatchError
from utils.feature_utils import wide_monthly
from utils.schema import (
    BASE_YEAR_NUMERIC_COLS, EXISTED_COL, FEATURE_TABLE_COLS,
    MONTHLY_ORDER_COLS, MONTHLY_SALES_COLS, ORDER_FEATURE_COLS, SCALAR_FEATURE_COLS, TARGET_COL,
)

logger = logging.getLogger(__name__)


def _order_level(df: pd.DataFrame) -> pd.DataFrame:
    return (
        df.groupby([CUSTOMER_COL, ORDER_COL], as_index=False, sort=True)
        .agg(
            order_amount=(SALES_COL, "sum"),
            order_max_line=(SALES_COL, "max"),
            order_min_line=(SALES_COL, "min"),
            order_lines=(SALES_COL, "size"),
        )
    )


def build_yearly_features(year_df: pd.DataFrame) -> pd.DataFrame:
    """
    Aggregate one year of cleaned line items into a per-customer feature table.

    Assumptions:
      - year_df is the cleaner's output restricted to the base year.

    Output: one row per contact_id, columns FEATURE_TABLE_COLS, plus
    existed_in_<year> = True for every row.
    """
    if year_df.empty:
        return pd.DataFrame(columns=[CUSTOMER_COL] + FEATURE_TABLE_COLS)

    # --- Line-item level ---
    scalar = (
        year_df.groupby(CUSTOMER_COL, sort=True)
        .agg(
            total_sales=(SALES_COL, "sum"),
            line_items=(SALES_COL, "size"),
            orders=(ORDER_COL, "nunique"),
            total_quantity=(QUANTITY_COL, "sum"),
            max_line_amount=(SALES_COL, "max"),
            min_line_amount=(SALES_COL, "min"),
        )
    )
    scalar.columns = SCALAR_FEATURE_COLS

    # --- Order level, then collapsed to the customer ---
    orders = (
        _order_level(year_df)
        .groupby(CUSTOMER_COL, sort=True)
        .agg(
            avg_order_amount=("order_amount", "mean"),
            max_order_amount=("order_amount", "max"),
            min_order_amount=("order_amount", "min"),
            avg_order_max_line=("order_max_line", "mean"),
            avg_order_min_line=("order_min_line", "mean"),
            avg_order_lines=("order_lines", "mean"),
        )
    )
    orders.columns = ORDER_FEATURE_COLS

    # --- Monthly pivots (calendar order, zero-filled) ---
    monthly = (
        year_df.assign(month=year_df[DATE_COL].dt.month)
        .groupby([CUSTOMER_COL, "month"], as_index=False)
        .agg(sales=(SALES_COL, "sum"), orders=(ORDER_COL, "nunique"))
    )
    monthly_sales = wide_monthly(monthly, "sales", MONTHLY_SALES_COLS)
    monthly_orders = wide_monthly(monthly, "orders", MONTHLY_ORDER_COLS)

    out = pd.concat([scalar, orders, monthly_sales, monthly_orders], axis=1)
    out[BASE_YEAR_NUMERIC_COLS] = out[BASE_YEAR_NUMERIC_COLS].astype("float64")
    out[EXISTED_COL] = True
    out = out.rename_axis(CUSTOMER_COL).reset_index()

    logger.info("Built feature vectors for %d customers", len(out))
    return out[[CUSTOMER_COL] + FEATURE_TABLE_COLS]


def build_targets(year_df: pd.DataFrame) -> pd.DataFrame:
    """Total target-year spend per customer with at least one row; no fill for absence."""
    targets = (
        year_df.groupby(CUSTOMER_COL, as_index=False, sort=True)
        .agg(**{TARGET_COL: (SALES_COL, "sum")})
    )
    targets[TARGET_COL] = targets[TARGET_COL].astype("float64")
    return targets


def assemble_modeling_table(targets: pd.DataFrame, features: pd.DataFrame) -> pd.DataFrame:
    """
    Left join targets (drive the row set) <- yearly features.

    Only base-year numeric feature columns get the structural zero for customers
    without base-year activity; identifiers and the target are never filled.
    """
    merged = targets.merge(features, on=CUSTOMER_COL, how="left", indicator=True, validate="one_to_one")
    matched = merged["_merge"].eq("both")

    merged.loc[~matched, BASE_YEAR_NUMERIC_COLS] = 0.0
    merged[BASE_YEAR_NUMERIC_COLS] = merged[BASE_YEAR_NUMERIC_COLS].astype("float64")
    merged[EXISTED_COL] = matched.to_numpy()
    merged = merged.drop(columns="_merge")

    still_missing = merged[BASE_YEAR_NUMERIC_COLS].isna().any(axis=1)
    if still_missing.any():
        ids = merged.loc[still_missing, CUSTOMER_COL].head(5).tolist()
        raise JoinMismatchError(
            f"{int(still_missing.sum())} customer(s) have missing feature values after the join: {ids}"
        )
    if merged[TARGET_COL].isna().any():
        raise JoinMismatchError("Target values missing after the join.")

    logger.info(
        "Modeling table: %d rows (%d returning, %d new)",
        len(merged), int(matched.sum()), int((~matched).sum()),
    )
    return merged[[CUSTOMER_COL] + FEATURE_TABLE_COLS + [TARGET_COL]].reset_index(drop=True)
