# tests/test_data_loader.py
import pandas as pd
import pytest

from data_loader import clean_transactions, load_transactions, rows_for_year
from utils.errors import EmptyDatasetError, MalformedDateError, SchemaError


def test_clean_drops_nonpositive_sales_and_sorts(scenario_df):
    """Zero-amount rows are dropped; output sorted by (contact_id, purchase_date)."""
    shuffled = scenario_df.sample(frac=1.0, random_state=3)
    out = clean_transactions(shuffled)

    assert (out["sales_amount"] > 0).all()
    assert len(out) == len(scenario_df) - 1
    assert pd.api.types.is_datetime64_any_dtype(out["purchase_date"])

    keys = list(zip(out["contact_id"], out["purchase_date"]))
    assert keys == sorted(keys)


def test_clean_keep_policy_retains_zero_rows(scenario_df):
    out = clean_transactions(scenario_df, nonpositive_sales_policy="keep")
    assert len(out) == len(scenario_df)
    assert (out["sales_amount"] == 0).sum() == 1


def test_clean_rejects_unknown_policy(scenario_df):
    with pytest.raises(ValueError):
        clean_transactions(scenario_df, nonpositive_sales_policy="impute")


def test_clean_is_idempotent(synthetic_df):
    """Cleaning already-cleaned data changes nothing."""
    once = clean_transactions(synthetic_df)
    twice = clean_transactions(once)
    pd.testing.assert_frame_equal(once, twice)


def test_clean_does_not_mutate_input(scenario_df):
    before = scenario_df.copy()
    clean_transactions(scenario_df)
    pd.testing.assert_frame_equal(scenario_df, before)


def test_quantity_alone_never_drops_a_row(scenario_df):
    df = scenario_df.copy()
    df.loc[0, "quantity"] = 0
    df.loc[1, "quantity"] = -2
    out = clean_transactions(df)
    assert len(out) == len(df) - 1  # only D's zero-amount row goes


def test_malformed_date_raises(scenario_df):
    df = scenario_df.copy()
    df.loc[2, "purchase_date"] = "2012/03/02"
    with pytest.raises(MalformedDateError):
        clean_transactions(df)


def test_impossible_date_raises(scenario_df):
    df = scenario_df.copy()
    df.loc[0, "purchase_date"] = "2012-13-40"
    with pytest.raises(MalformedDateError):
        clean_transactions(df)


def test_empty_after_filter_raises(scenario_df):
    df = scenario_df.copy()
    df["sales_amount"] = 0.0
    with pytest.raises(EmptyDatasetError):
        clean_transactions(df)


def test_rows_for_year(scenario_df):
    out = clean_transactions(scenario_df)
    y2012 = rows_for_year(out, 2012)
    y2013 = rows_for_year(out, 2013)
    assert set(y2012["contact_id"]) == {"A", "C", "D"}
    assert set(y2013["contact_id"]) == {"A", "B"}
    assert len(y2012) + len(y2013) == len(out)


def test_load_transactions_reads_typed_frame(tmp_path, scenario_df):
    path = tmp_path / "transactions.csv"
    scenario_df.to_csv(path, index=False)

    df = load_transactions(str(path))
    assert list(df.columns) == list(scenario_df.columns)
    assert df["sales_amount"].dtype == "float64"
    assert df["contact_id"].tolist() == scenario_df["contact_id"].tolist()


def test_load_transactions_wrong_columns(tmp_path, scenario_df):
    path = tmp_path / "bad.csv"
    scenario_df.rename(columns={"contact_id": "customer"}).to_csv(path, index=False)
    with pytest.raises(SchemaError):
        load_transactions(str(path))


def test_load_transactions_non_numeric_amount(tmp_path, scenario_df):
    path = tmp_path / "bad_amount.csv"
    df = scenario_df.astype({"sales_amount": "object"})
    df.loc[0, "sales_amount"] = "fifty"
    df.to_csv(path, index=False)
    with pytest.raises(SchemaError):
        load_transactions(str(path))


@pytest.mark.parametrize("column", ["contact_id", "order_id", "product_id", "quantity", "sales_amount"])
def test_load_transactions_rejects_blank_cells(tmp_path, scenario_df, column):
    """A blank cell would otherwise vanish from the groupby sums and break conservation."""
    path = tmp_path / "blank.csv"
    df = scenario_df.astype({column: "object"})
    df.loc[3, column] = None  # A's December line item
    df.to_csv(path, index=False)
    with pytest.raises(SchemaError, match=column):
        load_transactions(str(path))


def test_clean_rejects_missing_sales_under_keep_policy(scenario_df):
    df = scenario_df.copy()
    df.loc[3, "sales_amount"] = float("nan")
    with pytest.raises(SchemaError):
        clean_transactions(df, nonpositive_sales_policy="keep")


def test_clean_rejects_missing_contact_id(scenario_df):
    df = scenario_df.astype({"contact_id": "object"})
    df.loc[6, "contact_id"] = None
    with pytest.raises(SchemaError):
        clean_transactions(df)
