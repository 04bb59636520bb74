# exploration.py
"""
Descriptive summaries of cleaned transactions (used by `pipeline.py describe`).
"""

import numpy as np
import pandas as pd

from utils.constants import CUSTOMER_COL, ORDER_COL, DATE_COL, PRODUCT_COL, QUANTITY_COL, SALES_COL


def summarize_transactions(df: pd.DataFrame) -> pd.DataFrame:
    """One-row overview of the line-item table."""
    return pd.DataFrame([{
        "row_count": len(df),
        "unique_customers": df[CUSTOMER_COL].nunique(),
        "transaction_count": df[ORDER_COL].nunique(),
        "unique_products": df[PRODUCT_COL].nunique(),
        "avg_quantity": df[QUANTITY_COL].mean(),
        "median_quantity": df[QUANTITY_COL].median(),
        "avg_sales_amount": df[SALES_COL].mean(),
        "median_sales_amount": df[SALES_COL].median(),
    }])


def per_contact_summary(df: pd.DataFrame) -> pd.DataFrame:
    return (
        df.groupby(CUSTOMER_COL, as_index=False)
        .agg(
            total_line_items=(SALES_COL, "size"),
            transaction_count=(ORDER_COL, "nunique"),
            unique_products=(PRODUCT_COL, "nunique"),
            avg_quantity=(QUANTITY_COL, "mean"),
            median_quantity=(QUANTITY_COL, "median"),
            avg_sales_amount=(SALES_COL, "mean"),
            median_sales_amount=(SALES_COL, "median"),
            total_sales_amount=(SALES_COL, "sum"),
        )
        .sort_values("transaction_count", ascending=False, kind="mergesort")
        .reset_index(drop=True)
    )


def sales_concentration(df: pd.DataFrame, n_groups: int = 20) -> pd.DataFrame:
    """
    Rank customers by total sales (descending), cut the ranking into `n_groups`
    equal-size groups and report each group's sales and cumulative share.
    Group 1 holds the biggest spenders, so group_sales should be non-increasing.
    """
    totals = (
        df.groupby(CUSTOMER_COL)[SALES_COL].sum()
        .sort_values(ascending=False, kind="mergesort")
        .to_numpy()
    )
    if totals.size == 0:
        return pd.DataFrame(columns=["group", "customers", "group_sales", "cumulative_sales", "cumulative_share"])

    groups = min(int(n_groups), totals.size)
    group_ids = np.arange(totals.size) * groups // totals.size + 1
    out = (
        pd.DataFrame({"group": group_ids, "sales": totals})
        .groupby("group", as_index=False)
        .agg(customers=("sales", "size"), group_sales=("sales", "sum"))
    )
    out["cumulative_sales"] = out["group_sales"].cumsum()
    out["cumulative_share"] = out["cumulative_sales"] / totals.sum()
    return out


def monthly_sales(df: pd.DataFrame) -> pd.DataFrame:
    """Sales per calendar year-month, in chronological order."""
    period = df[DATE_COL].dt.to_period("M")
    out = (
        df.assign(year_month=period)
        .groupby("year_month", as_index=False, sort=True)
        .agg(sales=(SALES_COL, "sum"), orders=(ORDER_COL, "nunique"))
    )
    out["year_month"] = out["year_month"].astype(str)
    return out
