# src/tests/conftest.py
import copy
import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

# Add the parent directory of this tests folder (i.e., src/) to sys.path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from utils.io_utils import load_config  # noqa: E402

COLUMNS = ["contact_id", "order_id", "purchase_date", "product_id", "quantity", "sales_amount"]


@pytest.fixture
def scenario_df() -> pd.DataFrame:
    """
    Four customers:
      A: 3 orders in 2012 totaling 300, 1 order in 2013 totaling 150
      B: no 2012 activity, 1 order in 2013 totaling 50
      C: 2012 activity only
      D: 2012 activity; its only 2013 row has sales_amount 0
    """
    rows = [
        ("A", "a1", "2012-01-15", "p1", 1, 50.0),
        ("A", "a1", "2012-01-15", "p2", 2, 50.0),
        ("A", "a2", "2012-03-02", "p1", 1, 100.0),
        ("A", "a3", "2012-12-20", "p3", 4, 100.0),
        ("A", "a4", "2013-02-10", "p2", 1, 150.0),
        ("B", "b1", "2013-05-05", "p1", 1, 50.0),
        ("C", "c1", "2012-07-01", "p4", 3, 80.0),
        ("D", "d1", "2012-06-11", "p2", 1, 40.0),
        ("D", "d2", "2013-06-11", "p2", 1, 0.0),
    ]
    return pd.DataFrame(rows, columns=COLUMNS)


def make_synthetic_transactions(n_customers: int = 150, seed: int = 7) -> pd.DataFrame:
    """Deterministic two-year transaction set: returning, new and lapsed customers."""
    rng = np.random.default_rng(seed)
    rows = []
    order_no = 0
    for i in range(n_customers):
        cid = f"c{i:04d}"
        in_2012 = i % 4 != 0
        in_2013 = i % 5 != 0
        base_level = rng.lognormal(mean=3.5, sigma=0.8)

        years = ([2012] if in_2012 else []) + ([2013] if in_2013 else [])
        for year in years:
            for _ in range(int(rng.integers(1, 5))):
                order_no += 1
                month = int(rng.integers(1, 13))
                day = int(rng.integers(1, 29))
                for _ in range(int(rng.integers(1, 4))):
                    amount = round(float(base_level * rng.uniform(0.5, 1.5)), 2)
                    rows.append((
                        cid, f"o{order_no}", f"{year}-{month:02d}-{day:02d}",
                        f"p{int(rng.integers(1, 30))}", int(rng.integers(1, 4)), amount,
                    ))
    return pd.DataFrame(rows, columns=COLUMNS)


@pytest.fixture
def synthetic_df() -> pd.DataFrame:
    return make_synthetic_transactions()


@pytest.fixture
def fast_config() -> dict:
    """Default config with small folds/ensembles so tests stay quick."""
    cfg = copy.deepcopy(load_config())
    cfg["cv"]["n_folds"] = 3
    cfg["bagging"]["n_estimators"] = 10
    cfg["families"] = ["benchmark", "decision_tree"]
    return cfg
