# tests/test_partition.py
import numpy as np
import pandas as pd
import pytest

from partition import partition_modeling_rows, stratified_draw
from utils.errors import EmptyDatasetError
from utils.schema import TARGET_COL


def _table(n: int, seed: int = 0) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    return pd.DataFrame({
        "contact_id": [f"c{i}" for i in range(n)],
        TARGET_COL: rng.lognormal(4.0, 1.2, size=n),  # long-tailed spend
    })


@pytest.mark.parametrize("n", [4, 10, 11, 37, 101, 250])
def test_partition_is_complete_disjoint_and_60_30_10(n):
    parts = partition_modeling_rows(_table(n), np.random.default_rng(42))

    labels = parts.table["partition"]
    assert labels.isin(["train", "selection", "holdout"]).all()
    assert len(parts.train) + len(parts.selection) + len(parts.holdout) == n

    ids = [set(p["contact_id"]) for p in (parts.train, parts.selection, parts.holdout)]
    assert not (ids[0] & ids[1]) and not (ids[0] & ids[2]) and not (ids[1] & ids[2])
    assert ids[0] | ids[1] | ids[2] == set(parts.table["contact_id"])

    assert abs(len(parts.train) - 0.6 * n) <= 1
    assert abs(len(parts.selection) - 0.3 * n) <= 1
    assert abs(len(parts.holdout) - 0.1 * n) <= 1


def test_partition_is_reproducible_with_same_seed():
    table = _table(80)
    a = partition_modeling_rows(table, np.random.default_rng(7)).table["partition"]
    b = partition_modeling_rows(table, np.random.default_rng(7)).table["partition"]
    pd.testing.assert_series_equal(a, b)


def test_draw_is_stratified_on_target():
    """Equal-size target quintiles each contribute exactly 60% to the draw."""
    y = pd.Series(np.arange(100, dtype=float))
    mask = stratified_draw(y, 0.6, np.random.default_rng(1), n_strata=5)

    assert mask.sum() == 60
    for q in range(5):
        assert mask[q * 20:(q + 1) * 20].sum() == 12


def test_draw_handles_constant_target():
    y = pd.Series(np.full(9, 5.0))
    mask = stratified_draw(y, 0.6, np.random.default_rng(1))
    assert mask.sum() == 5


def test_draw_rejects_bad_share():
    with pytest.raises(ValueError):
        stratified_draw(pd.Series([1.0, 2.0]), 1.0, np.random.default_rng(0))


def test_empty_table_raises():
    with pytest.raises(EmptyDatasetError):
        partition_modeling_rows(_table(0), np.random.default_rng(0))


def test_tiny_tables_still_partition():
    """Too few rows to stratify: the draw falls back to a plain shuffled split."""
    parts = partition_modeling_rows(_table(3), np.random.default_rng(0))
    assert len(parts.train) == 2
    assert len(parts.train) + len(parts.selection) + len(parts.holdout) == 3


def test_different_generators_give_different_splits():
    table = _table(80)
    a = partition_modeling_rows(table, np.random.default_rng(1)).table["partition"]
    b = partition_modeling_rows(table, np.random.default_rng(2)).table["partition"]
    assert not a.equals(b)
