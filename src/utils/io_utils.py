# utils/io_utils.py
import os
import yaml
import pandas as pd

from utils.constants import NONPOSITIVE_SALES_POLICIES

_REQUIRED_SECTIONS = ("seed", "partition", "cv", "bagging", "families", "grids")


def default_config_path() -> str:
    # project root = parent of utils/ (i.e., src/)
    project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    return os.path.join(project_root, "configs", "pipeline.yaml")


def load_config(path: str = None) -> dict:
    """
    Load the pipeline YAML configuration.
    If no path provided, defaults to configs/pipeline.yaml under src/.
    """
    if path is None:
        path = default_config_path()

    if not os.path.exists(path):
        raise FileNotFoundError(f"pipeline config not found at: {path}")
    with open(path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}

    missing = [k for k in _REQUIRED_SECTIONS if k not in cfg]
    if missing:
        raise KeyError(f"Config {path} is missing sections: {missing}")

    policy = cfg.get("nonpositive_sales_policy", "drop")
    if policy not in NONPOSITIVE_SALES_POLICIES:
        raise ValueError(
            f"nonpositive_sales_policy must be one of {NONPOSITIVE_SALES_POLICIES}, got '{policy}'"
        )
    unknown = [f for f in cfg["families"] if f not in cfg["grids"]]
    if unknown:
        raise KeyError(f"No hyperparameter grid configured for families: {unknown}")
    return cfg


def export_frames(frames: dict, out_dir: str) -> list:
    """Write each named DataFrame to <out_dir>/<name>.csv; returns written paths."""
    os.makedirs(out_dir, exist_ok=True)
    written = []
    for name, df in frames.items():
        if df is None:
            continue
        path = os.path.join(out_dir, f"{name}.csv")
        pd.DataFrame(df).to_csv(path, index=False)
        written.append(path)
    return written
