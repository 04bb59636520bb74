# modeling.py
"""
Candidate model families and cross-validated grid search.
- Families: OLS benchmark, elastic-net, regression tree, bagged trees (scikit-learn)
  and an optional boosted-tree family (XGBoost).
- Each (family, segment) pair is tuned by k-fold CV minimising RMSE, then refit on the whole view.
- Grid points that fail to fit are skipped and logged; randomness comes from the passed Generator.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from sklearn.ensemble import BaggingRegressor
from sklearn.exceptions import ConvergenceWarning
from sklearn.linear_model import ElasticNet, LinearRegression
from sklearn.model_selection import KFold, ParameterGrid
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler
from sklearn.tree import DecisionTreeRegressor
from xgboost import XGBRegressor

from utils.constants import (
    BAGGING_N_ESTIMATORS, CUSTOMER_COL, N_FOLDS, SEGMENT_FULL, SEGMENT_RETURNING,
)
from utils.errors import EmptyDatasetError, FitConvergenceError
from utils.math_utils import rmse
from utils.schema import BENCHMARK_FEATURE_COLS, TARGET_COL

logger = logging.getLogger(__name__)

FAMILIES = ("benchmark", "elastic_net", "decision_tree", "bagged_trees", "boosted_trees")

_MAX_SEED = 2**31 - 1


@dataclass
class FittedModel:
    family: str
    segment: str
    estimator: object
    feature_cols: List[str]
    params: dict
    cv_rmse: float
    cv_results: pd.DataFrame = field(default=None, repr=False)

    def predict(self, df: pd.DataFrame) -> np.ndarray:
        X = _design_matrix(df, self.feature_cols)
        return np.asarray(self.estimator.predict(X), dtype=float).ravel()


@dataclass
class TrainingOutcome:
    family: str
    segment: str
    model: Optional[FittedModel] = None
    error: Optional[str] = None


# ------------------ Input checks ------------------
def _design_matrix(df: pd.DataFrame, feature_cols: List[str]) -> pd.DataFrame:
    missing = [c for c in feature_cols if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required feature columns: {missing}")
    return df[feature_cols].astype("float64")


def _check_inputs(X: pd.DataFrame, y: pd.Series):
    """Type, shape, and NA checks before training."""
    if not isinstance(X, pd.DataFrame):
        raise TypeError("X must be a pandas DataFrame.")
    if X.isnull().any().any():
        bad = X.columns[X.isnull().any()].tolist()
        raise ValueError(f"X contains NaN values in {bad}. Handle missing data before training.")
    if pd.isnull(y).any():
        raise ValueError("y contains NaN values.")
    if len(X) != len(y):
        raise ValueError(f"X and y length mismatch: {len(X)} vs {len(y)}.")
    return X, y


def feature_columns(family: str, view: pd.DataFrame) -> List[str]:
    """Benchmark uses base-year spend only; every other family uses all numeric predictors."""
    if family == "benchmark":
        return list(BENCHMARK_FEATURE_COLS)
    excluded = {CUSTOMER_COL, TARGET_COL}
    return [
        c for c in view.columns
        if c not in excluded
        and (pd.api.types.is_numeric_dtype(view[c]) or pd.api.types.is_bool_dtype(view[c]))
    ]


# ------------------ Estimators ------------------
def make_estimator(family: str, params: dict, random_state: int, n_estimators: int = BAGGING_N_ESTIMATORS):
    if family == "benchmark":
        return LinearRegression(**params)
    if family == "elastic_net":
        return Pipeline([
            ("scale", StandardScaler()),
            ("model", ElasticNet(max_iter=10000, random_state=random_state, **params)),
        ])
    if family == "decision_tree":
        return DecisionTreeRegressor(random_state=random_state, **params)
    if family == "bagged_trees":
        return BaggingRegressor(
            estimator=DecisionTreeRegressor(**params),
            n_estimators=n_estimators,
            bootstrap=True,
            random_state=random_state,
        )
    if family == "boosted_trees":
        return XGBRegressor(
            n_estimators=300,
            objective="reg:squarederror",
            tree_method="hist",
            random_state=random_state,
            n_jobs=1,
            verbosity=0,
            **params,
        )
    raise ValueError(f"Unknown model family '{family}'. Expected one of {FAMILIES}.")


def _fit_candidate(estimator, X: pd.DataFrame, y: pd.Series):
    """Fit, turning convergence trouble into FitConvergenceError."""
    with warnings.catch_warnings():
        warnings.simplefilter("error", ConvergenceWarning)
        try:
            estimator.fit(X, y)
        except (ConvergenceWarning, FloatingPointError, np.linalg.LinAlgError) as e:
            raise FitConvergenceError(str(e)) from e
    return estimator


def _fold_rmse(family, params, X, y, train_idx, test_idx, random_state, n_estimators) -> float:
    est = make_estimator(family, params, random_state, n_estimators)
    _fit_candidate(est, X.iloc[train_idx], y.iloc[train_idx])
    pred = np.asarray(est.predict(X.iloc[test_idx]), dtype=float)
    if not np.all(np.isfinite(pred)):
        raise FitConvergenceError("non-finite predictions")
    return rmse(y.iloc[test_idx], pred)


# ------------------ Training ------------------
def train_family(
    family: str,
    segment_view: pd.DataFrame,
    hyperparameter_grid: dict,
    rng: np.random.Generator,
    segment: str = SEGMENT_FULL,
    n_folds: int = N_FOLDS,
    n_jobs: int = 1,
    n_estimators: int = BAGGING_N_ESTIMATORS,
) -> FittedModel:
    """
    Grid-search one model family on one segment view with k-fold CV (mean fold RMSE),
    then refit the best candidate on the full view.
    """
    if segment_view is None or segment_view.empty:
        raise EmptyDatasetError(f"No training rows for {family}/{segment}.")
    if family not in FAMILIES:
        raise ValueError(f"Unknown model family '{family}'. Expected one of {FAMILIES}.")

    cols = feature_columns(family, segment_view)
    X, y = _check_inputs(_design_matrix(segment_view, cols), segment_view[TARGET_COL].astype("float64"))

    k = min(int(n_folds), len(X))
    if k < 2:
        raise EmptyDatasetError(f"{family}/{segment} needs at least 2 rows for cross-validation, got {len(X)}.")

    cv_seed, model_seed = (int(s) for s in rng.integers(0, _MAX_SEED, size=2))
    folds = list(KFold(n_splits=k, shuffle=True, random_state=cv_seed).split(X))

    rows = []
    for params in ParameterGrid(hyperparameter_grid or {}):
        try:
            scores = Parallel(n_jobs=n_jobs)(
                delayed(_fold_rmse)(family, params, X, y, tr, te, model_seed, n_estimators)
                for tr, te in folds
            )
        except (FitConvergenceError, ValueError, TypeError) as e:
            # invalid hyperparameters surface as ValueError/TypeError from sklearn and xgboost
            logger.warning("Skipping grid point (family=%s, segment=%s, params=%s): %s", family, segment, params, e)
            rows.append({"params": params, "cv_rmse": np.nan, "status": f"failed: {e}"})
            continue
        rows.append({"params": params, "cv_rmse": float(np.mean(scores)), "status": "ok"})

    cv_results = pd.DataFrame(rows)
    ok = cv_results[cv_results["status"] == "ok"]
    if ok.empty:
        raise FitConvergenceError(f"All {len(cv_results)} grid point(s) failed for {family}/{segment}.")

    best = ok.loc[ok["cv_rmse"].idxmin()]
    best_params = dict(best["params"])
    estimator = _fit_candidate(make_estimator(family, best_params, model_seed, n_estimators), X, y)

    logger.info("Trained %s/%s params=%s cv_rmse=%.4f", family, segment, best_params, best["cv_rmse"])
    return FittedModel(
        family=family,
        segment=segment,
        estimator=estimator,
        feature_cols=cols,
        params=best_params,
        cv_rmse=float(best["cv_rmse"]),
        cv_results=cv_results,
    )


def train_candidates(
    families: List[str],
    views: Dict[str, Optional[pd.DataFrame]],
    grids: dict,
    seed,
    n_folds: int = N_FOLDS,
    n_jobs: int = 1,
    n_estimators: int = BAGGING_N_ESTIMATORS,
) -> Dict[Tuple[str, str], TrainingOutcome]:
    """
    Train every (family, segment) pair, running the tasks through joblib with `n_jobs`.
    Each task gets its own child seed spawned from `seed` (an int or a SeedSequence),
    so results do not depend on the order tasks run in.
    Per-task failures are logged and recorded instead of aborting the run.
    """
    tasks = [(f, s) for f in families for s in (SEGMENT_FULL, SEGMENT_RETURNING)]
    seq = seed if isinstance(seed, np.random.SeedSequence) else np.random.SeedSequence(seed)
    children = seq.spawn(len(tasks))

    results = Parallel(n_jobs=n_jobs)(
        delayed(_train_task)(
            family, segment, views.get(segment), grids.get(family, {}), child, n_folds, n_estimators,
        )
        for (family, segment), child in zip(tasks, children)
    )
    return {(o.family, o.segment): o for o in results}


def _train_task(family, segment, view, grid, child_seed, n_folds, n_estimators) -> TrainingOutcome:
    # folds run serially inside a task; parallelism is across tasks
    try:
        model = train_family(
            family,
            view,
            grid,
            np.random.default_rng(child_seed),
            segment=segment,
            n_folds=n_folds,
            n_jobs=1,
            n_estimators=n_estimators,
        )
    except (FitConvergenceError, EmptyDatasetError) as e:
        logger.warning("Family %s unavailable for segment %s: %s", family, segment, e)
        return TrainingOutcome(family, segment, error=str(e))
    return TrainingOutcome(family, segment, model=model)
