# segments.py
"""
Segment views of the training set and the fallback dispatch used at prediction time.

- full view: every training row; existed_in_<year> stays as a predictor.
- returning view: rows with base-year activity only; the (constant) flag is dropped.
- fallback: mean base-year spend over the whole feature table, used for new customers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd

from utils.errors import EmptyDatasetError
from utils.schema import BASE_SALES_COL, EXISTED_COL

logger = logging.getLogger(__name__)


@dataclass
class SegmentViews:
    full: pd.DataFrame
    returning: Optional[pd.DataFrame]
    fallback_value: float
    returning_error: Optional[str] = None


def returning_view(train: pd.DataFrame) -> pd.DataFrame:
    mask = train[EXISTED_COL].astype(bool)
    view = train[mask].drop(columns=EXISTED_COL).reset_index(drop=True)
    if view.empty:
        raise EmptyDatasetError("Returning-customer segment has no training rows.")
    return view


def global_fallback_value(features: pd.DataFrame) -> float:
    """Mean base-year spend across the entire feature table, not a per-segment statistic."""
    if features.empty:
        raise EmptyDatasetError("Feature table is empty; no fallback value can be computed.")
    return float(features[BASE_SALES_COL].mean())


def segment_training_set(train: pd.DataFrame, features: pd.DataFrame) -> SegmentViews:
    full = train.reset_index(drop=True).copy()
    fallback = global_fallback_value(features)

    try:
        returning = returning_view(train)
        error = None
    except EmptyDatasetError as e:
        logger.warning("Segment 'returning' unavailable: %s", e)
        returning, error = None, str(e)

    logger.info(
        "Segments: full=%d rows, returning=%s rows, fallback=%.4f",
        len(full), "n/a" if returning is None else len(returning), fallback,
    )
    return SegmentViews(full=full, returning=returning, fallback_value=fallback, returning_error=error)


def corrected_predictions(returning_model, fallback_value: float, dataset: pd.DataFrame) -> np.ndarray:
    """
    Two-arm dispatch: returning customers get returning_model's prediction,
    everyone else gets the constant fallback_value.
    """
    existed = dataset[EXISTED_COL].to_numpy(dtype=bool)
    preds = np.full(len(dataset), float(fallback_value), dtype=float)
    if existed.any():
        preds[existed] = returning_model.predict(dataset.loc[existed])
    return preds
