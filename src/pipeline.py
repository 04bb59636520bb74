# pipeline.py
"""
Customer spend forecasting pipeline: base-year transactions -> next-year spend.

CLI:
- Run the full pipeline and print the model comparison + holdout report:
  python pipeline.py run --data path/to/transactions.csv --out reports/

- Descriptive summaries of the transactions:
  python pipeline.py describe --data path/to/transactions.csv --out reports/
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from data_loader import clean_transactions, load_transactions, rows_for_year
from evaluation.evaluator import EvaluationResult, evaluate, score_full_only
from exploration import monthly_sales, per_contact_summary, sales_concentration, summarize_transactions
from features import assemble_modeling_table, build_targets, build_yearly_features
from models.modeling import FAMILIES, TrainingOutcome, train_candidates
from models.segments import segment_training_set
from partition import Partitions, partition_modeling_rows

from utils.constants import BASE_YEAR, SEED, SEGMENT_FULL, SEGMENT_RETURNING, TARGET_YEAR
from utils.errors import EmptyDatasetError, PipelineError, StageError
from utils.io_utils import export_frames, load_config

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    training_report: pd.DataFrame
    comparison: pd.DataFrame
    calibrations: Dict[str, pd.DataFrame]
    best_family: str
    holdout: EvaluationResult
    partitions: Partitions
    fallback_value: float


# ---------- Helpers ----------
def _run_stage(stage: str, fn, *args, **kwargs):
    """Run one stage; structural failures are fatal and tagged with the stage name."""
    logger.info("Stage: %s", stage)
    try:
        return fn(*args, **kwargs)
    except StageError:
        raise
    except (PipelineError, ValueError, KeyError) as e:
        raise StageError(stage, e) from e


def _require_rows(df: pd.DataFrame, what: str) -> pd.DataFrame:
    if df.empty:
        raise EmptyDatasetError(f"{what} is empty.")
    return df


def _check_families(families: List[str]) -> List[str]:
    unknown = [f for f in families if f not in FAMILIES]
    if unknown:
        raise ValueError(f"Unknown model families: {unknown}. Expected a subset of {list(FAMILIES)}.")
    return families


def _training_report(outcomes: Dict, families: List[str]) -> pd.DataFrame:
    rows = []
    for family in families:
        for segment in (SEGMENT_FULL, SEGMENT_RETURNING):
            o: TrainingOutcome = outcomes[(family, segment)]
            rows.append({
                "family": family,
                "segment": segment,
                "params": o.model.params if o.model else None,
                "cv_rmse": o.model.cv_rmse if o.model else np.nan,
                "status": "ok" if o.model else f"unavailable: {o.error}",
            })
    return pd.DataFrame(rows)


def _evaluate_family(full: TrainingOutcome, returning: TrainingOutcome, dataset: pd.DataFrame, fallback: float):
    """Return (EvaluationResult or None, status)."""
    if returning.model is not None:
        status = "ok" if full.model is not None else "ok (full model unavailable)"
        return evaluate(full.model, returning.model, dataset, fallback), status
    if full.model is not None:
        return score_full_only(full.model, dataset), "degraded: returning model unavailable"
    return None, "unavailable"


# ---------- Pipeline ----------
def run_pipeline(
    transactions: pd.DataFrame,
    cfg: dict,
    families: Optional[List[str]] = None,
    n_jobs: Optional[int] = None,
) -> PipelineResult:
    families = _run_stage("train", _check_families, list(families or cfg["families"]))
    n_jobs = int(n_jobs if n_jobs is not None else cfg["cv"].get("n_jobs", 1))
    part_cfg = cfg["partition"]

    # Independent child seeds for partitioning and training
    partition_seq, training_seq = np.random.SeedSequence(int(cfg.get("seed", SEED))).spawn(2)

    cleaned = _run_stage(
        "clean", clean_transactions, transactions, cfg.get("nonpositive_sales_policy", "drop")
    )
    features = _run_stage("features", build_yearly_features, rows_for_year(cleaned, BASE_YEAR))
    targets = _run_stage(
        "targets", lambda: _require_rows(build_targets(rows_for_year(cleaned, TARGET_YEAR)), f"{TARGET_YEAR} target set")
    )
    table = _run_stage("assemble", assemble_modeling_table, targets, features)

    parts = _run_stage(
        "partition",
        partition_modeling_rows,
        table,
        np.random.default_rng(partition_seq),
        train_share=float(part_cfg["train_share"]),
        selection_share_of_rest=float(part_cfg["selection_share_of_rest"]),
        n_strata=int(part_cfg["n_strata"]),
    )
    _run_stage("partition", _require_rows, parts.selection, "selection set")
    _run_stage("partition", _require_rows, parts.holdout, "holdout set")

    views = _run_stage("segment", segment_training_set, parts.train, features)

    outcomes = _run_stage(
        "train",
        train_candidates,
        families,
        {SEGMENT_FULL: views.full, SEGMENT_RETURNING: views.returning},
        cfg["grids"],
        training_seq,
        n_folds=int(cfg["cv"]["n_folds"]),
        n_jobs=n_jobs,
        n_estimators=int(cfg["bagging"]["n_estimators"]),
    )

    comparison_rows, calibrations = [], {}
    for family in families:
        full, returning = outcomes[(family, SEGMENT_FULL)], outcomes[(family, SEGMENT_RETURNING)]
        result, status = _evaluate_family(full, returning, parts.selection, views.fallback_value)
        if result is None:
            logger.warning("Family %s has no usable model; left out of selection", family)
        else:
            calibrations[family] = result.calibration_table
        comparison_rows.append({
            "family": family,
            "params_full": full.model.params if full.model else None,
            "params_returning": returning.model.params if returning.model else None,
            "rmse_selection": result.rmse_full if result else np.nan,
            "rmse_selection_returning_only": result.rmse_returning_only if result else np.nan,
            "status": status,
        })
    comparison = pd.DataFrame(comparison_rows)

    ranked = comparison.dropna(subset=["rmse_selection"])
    if ranked.empty:
        raise StageError("selection", EmptyDatasetError("No model family produced a usable model."))
    best_family = ranked.loc[ranked["rmse_selection"].idxmin(), "family"]

    holdout, _ = _evaluate_family(
        outcomes[(best_family, SEGMENT_FULL)],
        outcomes[(best_family, SEGMENT_RETURNING)],
        parts.holdout,
        views.fallback_value,
    )

    return PipelineResult(
        training_report=_training_report(outcomes, families),
        comparison=comparison,
        calibrations=calibrations,
        best_family=best_family,
        holdout=holdout,
        partitions=parts,
        fallback_value=views.fallback_value,
    )


def print_report(result: PipelineResult) -> None:
    with pd.option_context("display.width", 160, "display.max_columns", 20):
        print("=== Training (cross-validated) ===")
        print(result.training_report.to_string(index=False))
        print(f"\nFallback for new customers (mean {BASE_YEAR} spend): {result.fallback_value:,.2f}")
        print("\n=== Selection set ===")
        print(result.comparison.to_string(index=False))
        for family, table in result.calibrations.items():
            print(f"\n--- Calibration ({family}, selection) ---")
            print(table.to_string(index=False))

        print(f"\n✅ Best model family: {result.best_family}")
        print(f"Holdout RMSE (all)            : {result.holdout.rmse_full:,.4f}")
        print(f"Holdout RMSE (returning only) : {result.holdout.rmse_returning_only:,.4f}")
        print("\n--- Calibration (holdout) ---")
        print(result.holdout.calibration_table.to_string(index=False))


# ---------- Commands ----------
def cmd_run(data: str, config: Optional[str], out_dir: Optional[str], families: Optional[List[str]], n_jobs: Optional[int]):
    cfg = load_config(config)
    transactions = _run_stage("load", load_transactions, data)
    result = run_pipeline(transactions, cfg, families=families, n_jobs=n_jobs)
    print_report(result)

    if out_dir:
        frames = {
            "training_report": result.training_report,
            "model_comparison": result.comparison,
            "holdout_calibration": result.holdout.calibration_table,
            "holdout_predictions": result.holdout.predictions,
        }
        for family, table in result.calibrations.items():
            frames[f"calibration_{family}"] = table
        written = export_frames(frames, out_dir)
        print(f"✅ Wrote {len(written)} report file(s) to: {out_dir}")
    return result


def cmd_describe(data: str, config: Optional[str], out_dir: Optional[str]):
    cfg = load_config(config)
    transactions = _run_stage("load", load_transactions, data)
    cleaned = _run_stage("clean", clean_transactions, transactions, cfg.get("nonpositive_sales_policy", "drop"))

    frames = {
        "summary": summarize_transactions(cleaned),
        "per_contact": per_contact_summary(cleaned),
        "sales_concentration": sales_concentration(cleaned),
        "monthly_sales": monthly_sales(cleaned),
    }
    with pd.option_context("display.width", 160, "display.max_columns", 20):
        print("=== Transactions ===")
        print(frames["summary"].T.to_string(header=False))
        print("\n=== Top customers by order count ===")
        print(frames["per_contact"].head(10).to_string(index=False))
        print("\n=== Sales concentration (20 customer groups) ===")
        print(frames["sales_concentration"].to_string(index=False))
        print("\n=== Monthly sales ===")
        print(frames["monthly_sales"].to_string(index=False))

    if out_dir:
        written = export_frames(frames, out_dir)
        print(f"✅ Wrote {len(written)} summary file(s) to: {out_dir}")
    return frames


# ---------- CLI ----------
def main(argv=None):
    import argparse
    parser = argparse.ArgumentParser(description="Customer spend forecasting pipeline")
    parser.add_argument("--log-level", default="INFO")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_run = sub.add_parser("run", help="Train, select and evaluate spend models")
    p_run.add_argument("--data", required=True)
    p_run.add_argument("--config", default=None)
    p_run.add_argument("--out", default=None)
    p_run.add_argument("--families", nargs="+", default=None)
    p_run.add_argument("--n-jobs", type=int, default=None)

    p_desc = sub.add_parser("describe", help="Descriptive summaries of the transactions")
    p_desc.add_argument("--data", required=True)
    p_desc.add_argument("--config", default=None)
    p_desc.add_argument("--out", default=None)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.cmd == "run":
        cmd_run(args.data, args.config, args.out, args.families, args.n_jobs)
    elif args.cmd == "describe":
        cmd_describe(args.data, args.config, args.out)
    else:
        parser.print_help()


if __name__ == "__main__":
    try:
        main()
    except Exception as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        sys.exit(1)
