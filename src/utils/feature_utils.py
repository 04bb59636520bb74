import pandas as pd

from utils.constants import CUSTOMER_COL, MONTHS


def wide_monthly(long_df: pd.DataFrame, value_col: str, columns: list) -> pd.DataFrame:
    """
    Reshape (contact_id, month, value) rows into one row per customer with a
    fixed 12-column layout in calendar order. Months with no activity become 0.
    """
    if len(columns) != len(MONTHS):
        raise ValueError(f"Expected {len(MONTHS)} monthly column names, got {len(columns)}")
    wide = long_df.pivot_table(
        index=CUSTOMER_COL, columns="month", values=value_col, aggfunc="sum", fill_value=0
    )
    wide = wide.reindex(columns=MONTHS, fill_value=0)
    wide.columns = columns
    return wide.astype("float64")
