"""Taxi fare prediction pipeline.

Loads the Kaggle trip records, filters implausible rows, decomposes the
pickup timestamp into calendar labels, splits 80/20 at random and fits a
grid-searched LightGBM regressor, reporting RMSE on the held-out set.
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from typing import Any

from taxi_fare.config import Config
from taxi_fare.data_processor import DataProcessor
from taxi_fare.data_utils import resolve_data
from taxi_fare.splitter import RandomSplitter
from taxi_fare.trainer import ModelTrainer

logger = logging.getLogger("TaxiFare")


def run_pipeline(config: Config, seed: int | None = None) -> dict[str, Any]:
    """Orchestrate the full training pipeline.

    Args:
        config: Pipeline configuration.
        seed: Split seed; ``config.random_seed`` when omitted.

    Returns:
        Dict with ``best_params``, ``metrics`` and ``cleaning_report``.
    """
    # -- Data processing ---
    processor = DataProcessor(config)
    df = processor.prepare()

    # -- Split ---
    splitter = RandomSplitter(config)
    train_df, test_df = splitter.split(df, seed=seed)
    splitter.check_target_drift(
        train_df[config.target_column].to_numpy(),
        test_df[config.target_column].to_numpy(),
        label="Train/test",
    )

    # -- Training ---
    trainer = ModelTrainer(config)

    logger.info("=" * 60)
    logger.info("STAGE 1: Grid search with %d-fold CV", config.n_cv_splits)
    logger.info("=" * 60)
    best_params = trainer.tune_hyperparameters(train_df, splitter)

    logger.info("=" * 60)
    logger.info("STAGE 2: Final model training")
    logger.info("=" * 60)
    model = trainer.train_final_model(train_df, best_params)

    # -- Test evaluation ---
    logger.info("=" * 60)
    logger.info("FINAL EVALUATION on test set")
    logger.info("=" * 60)
    metrics = trainer.evaluate_holdout(model, test_df)

    # -- Save ---
    report = processor.report.as_dict()
    trainer.save(model, config, metrics, best_params, report)

    logger.info("Pipeline complete.")
    return {"best_params": best_params, "metrics": metrics, "cleaning_report": report}


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--data", help="Path to the trip CSV")
    parser.add_argument("--config", help="YAML file with Config overrides")
    parser.add_argument("--seed", type=int, help="Random seed for the split and search")
    parser.add_argument(
        "--synthetic", type=int, metavar="ROWS",
        help="Generate ROWS synthetic records at --data if the file is missing",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    overrides: dict[str, Any] = {}
    if args.data:
        overrides["data_path"] = args.data
    if args.seed is not None:
        overrides["random_seed"] = args.seed

    if args.config:
        config = Config.from_yaml(args.config, **overrides)
    else:
        config = replace(Config(), **overrides)

    if args.synthetic:
        resolve_data(config.data_path, rows=args.synthetic, seed=config.random_seed)

    run_pipeline(config)


if __name__ == "__main__":
    main()
