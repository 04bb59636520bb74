# partition.py
"""
Stratified train / selection / holdout partitioning of the modeling table.

Two sequential draws, each stratified on quantile bins of the target:
    1) train vs rest       (train_share, default 60/40)
    2) selection vs holdout from the rest (selection_share_of_rest, default 75/25)
which gives 60/30/10 overall, each within one row of rounding.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

from utils.constants import (
    HOLDOUT, N_STRATA, PARTITION_COL, SELECTION, SELECTION_SHARE_OF_REST, TRAIN, TRAIN_SHARE,
)
from utils.errors import EmptyDatasetError
from utils.schema import TARGET_COL

logger = logging.getLogger(__name__)


@dataclass
class Partitions:
    table: pd.DataFrame  # modeling table with a `partition` column
    train: pd.DataFrame
    selection: pd.DataFrame
    holdout: pd.DataFrame


def _strata(y: pd.Series, n_strata: int) -> np.ndarray:
    """Quantile bin per row; ties broken by row order so bin edges are always unique."""
    ranks = y.rank(method="first")
    return pd.qcut(ranks, q=n_strata, labels=False).to_numpy(dtype=int)


def stratified_draw(y: pd.Series, share: float, rng: np.random.Generator, n_strata: int = N_STRATA) -> np.ndarray:
    """
    Boolean mask selecting round(share * len(y)) rows, stratified on target quantile bins.
    Small draws use fewer bins so every bin can land on both sides of the split.
    """
    if not 0.0 < share < 1.0:
        raise ValueError(f"share must be in (0, 1), got {share}")
    n = len(y)
    n_take = int(round(share * n))
    mask = np.zeros(n, dtype=bool)
    if n_take == 0:
        return mask
    if n_take == n:
        mask[:] = True
        return mask

    # stratified splitting needs >= 2 rows per bin and >= 1 row per bin on each side
    q = min(int(n_strata), n // 2, n_take, n - n_take)
    strata = _strata(y.reset_index(drop=True), q) if q >= 2 else None
    taken, _ = train_test_split(
        np.arange(n),
        train_size=n_take,
        stratify=strata,
        random_state=int(rng.integers(0, 2**31 - 1)),
    )
    mask[taken] = True
    return mask


def partition_modeling_rows(
    table: pd.DataFrame,
    rng: np.random.Generator,
    train_share: float = TRAIN_SHARE,
    selection_share_of_rest: float = SELECTION_SHARE_OF_REST,
    n_strata: int = N_STRATA,
) -> Partitions:
    """Tag every modeling row with exactly one of train / selection / holdout."""
    if table.empty:
        raise EmptyDatasetError("Modeling table is empty; nothing to partition.")

    out = table.reset_index(drop=True).copy()
    labels = np.full(len(out), HOLDOUT, dtype=object)

    in_train = stratified_draw(out[TARGET_COL], train_share, rng, n_strata)
    labels[in_train] = TRAIN

    rest_idx = np.flatnonzero(~in_train)
    if rest_idx.size:
        in_selection = stratified_draw(
            out[TARGET_COL].iloc[rest_idx], selection_share_of_rest, rng, n_strata
        )
        labels[rest_idx[in_selection]] = SELECTION

    out[PARTITION_COL] = labels

    parts = {
        name: out[out[PARTITION_COL] == name].drop(columns=PARTITION_COL).reset_index(drop=True)
        for name in (TRAIN, SELECTION, HOLDOUT)
    }
    logger.info(
        "Partitioned %d rows: train=%d selection=%d holdout=%d",
        len(out), len(parts[TRAIN]), len(parts[SELECTION]), len(parts[HOLDOUT]),
    )
    return Partitions(table=out, train=parts[TRAIN], selection=parts[SELECTION], holdout=parts[HOLDOUT])
