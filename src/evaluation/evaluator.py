# evaluator.py
"""
Segment-aware evaluation of a (full, returning) model pair.
- Corrected prediction: returning model for returning customers, fallback constant otherwise.
- RMSE on the corrected prediction, over all rows and over returning rows only.
- Calibration table: mean actual vs mean corrected prediction per spend bucket.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd

from models.segments import corrected_predictions
from utils.constants import CALIBRATION_EDGES, CUSTOMER_COL, RMSE_DDOF
from utils.math_utils import rmse
from utils.schema import EXISTED_COL, TARGET_COL

logger = logging.getLogger(__name__)


@dataclass
class EvaluationResult:
    rmse_full: float
    rmse_returning_only: float
    calibration_table: pd.DataFrame
    predictions: pd.DataFrame


def _edge_label(edge: float) -> str:
    if np.isinf(edge):
        return "Inf"
    return f"{edge:g}"


def bucket_labels(edges=CALIBRATION_EDGES) -> list:
    labels = []
    for i, (lo, hi) in enumerate(zip(edges[:-1], edges[1:])):
        left = "[" if i == 0 else "("
        right = ")" if np.isinf(hi) else "]"
        labels.append(f"{left}{_edge_label(lo)},{_edge_label(hi)}{right}")
    return labels


def calibration_table(actual, predicted, edges=CALIBRATION_EDGES) -> pd.DataFrame:
    """
    Bucket rows by actual value; report row count, mean actual and mean predicted per bucket.
    Actuals below the first edge (negative spend under the "keep" policy) get their own
    leading bucket so the counts always add up to the row count.
    """
    df = pd.DataFrame({
        "actual": np.asarray(actual, dtype=float),
        "predicted": np.asarray(predicted, dtype=float),
    })
    labels = bucket_labels(edges)
    df["bucket"] = pd.cut(df["actual"], bins=edges, labels=labels, right=True, include_lowest=True)

    below = df["actual"] < edges[0]
    if below.any():
        low_label = f"(-Inf,{_edge_label(edges[0])})"
        logger.warning("%d row(s) have actual value below %s; bucketed as %s", int(below.sum()), edges[0], low_label)
        df["bucket"] = df["bucket"].cat.set_categories([low_label] + labels, ordered=True)
        df.loc[below, "bucket"] = low_label
    out = (
        df.groupby("bucket", observed=True)
        .agg(n_rows=("actual", "size"), mean_actual=("actual", "mean"), mean_predicted=("predicted", "mean"))
        .reset_index()
    )
    out["bucket"] = out["bucket"].astype(str)
    return out


def segment_rmse(actual, predicted, existed, ddof: int = RMSE_DDOF):
    """(RMSE over all rows, RMSE over returning rows)."""
    actual = np.asarray(actual, dtype=float)
    predicted = np.asarray(predicted, dtype=float)
    existed = np.asarray(existed, dtype=bool)
    overall = rmse(actual, predicted, ddof=ddof)
    returning = rmse(actual[existed], predicted[existed], ddof=ddof) if existed.any() else np.nan
    return overall, returning


def evaluate(full_model, returning_model, dataset: pd.DataFrame, fallback_value: float) -> EvaluationResult:
    """
    Score a model pair on `dataset`. The full model's raw prediction is kept in the
    predictions frame for reference (NaN when full_model is None); every reported
    metric uses the corrected prediction.
    """
    actual = dataset[TARGET_COL].to_numpy(dtype=float)
    existed = dataset[EXISTED_COL].to_numpy(dtype=bool)

    raw = full_model.predict(dataset) if full_model is not None else np.full(len(dataset), np.nan)
    corrected = corrected_predictions(returning_model, fallback_value, dataset)

    overall, returning = segment_rmse(actual, corrected, existed)
    predictions = pd.DataFrame({
        CUSTOMER_COL: dataset[CUSTOMER_COL].to_numpy(),
        EXISTED_COL: existed,
        TARGET_COL: actual,
        "pred_full": raw,
        "pred_corrected": corrected,
    })
    return EvaluationResult(
        rmse_full=overall,
        rmse_returning_only=returning,
        calibration_table=calibration_table(actual, corrected),
        predictions=predictions,
    )


def score_full_only(full_model, dataset: pd.DataFrame) -> EvaluationResult:
    """Degraded evaluation when no returning model exists: full model's raw prediction everywhere."""
    actual = dataset[TARGET_COL].to_numpy(dtype=float)
    existed = dataset[EXISTED_COL].to_numpy(dtype=bool)
    raw = full_model.predict(dataset)
    overall, returning = segment_rmse(actual, raw, existed)
    predictions = pd.DataFrame({
        CUSTOMER_COL: dataset[CUSTOMER_COL].to_numpy(),
        EXISTED_COL: existed,
        TARGET_COL: actual,
        "pred_full": raw,
        "pred_corrected": np.nan,
    })
    return EvaluationResult(
        rmse_full=overall,
        rmse_returning_only=returning,
        calibration_table=calibration_table(actual, raw),
        predictions=predictions,
    )
