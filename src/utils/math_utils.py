import numpy as np

from utils.constants import RMSE_DDOF


def rmse(y_true, y_pred, ddof: int = RMSE_DDOF) -> float:
    """Root mean squared error; ddof=0 divides by n (population convention)."""
    y_true = np.asarray(y_true, dtype=float).ravel()
    y_pred = np.asarray(y_pred, dtype=float).ravel()
    if y_true.shape != y_pred.shape:
        raise ValueError(f"Length mismatch: {y_true.size} vs {y_pred.size}.")
    n = y_true.size - ddof
    if n <= 0:
        return np.nan
    return float(np.sqrt(np.sum((y_true - y_pred) ** 2) / n))
