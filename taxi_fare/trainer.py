from __future__ import annotations

import json
import logging
import math
import pickle
from dataclasses import asdict
from typing import Any

import lightgbm as lgb
import numpy as np
import optuna
import polars as pl
from sklearn.compose import ColumnTransformer
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder

from taxi_fare.config import Config
from taxi_fare.splitter import RandomSplitter

logger = logging.getLogger("TaxiFare")


class ModelTrainer:
    """Grid-searched LightGBM regressor over one-hot encoded calendar labels.

    Args:
        config: Pipeline configuration.
    """

    def __init__(self, config: Config) -> None:
        self._config = config

    def _prepare_arrays(self, df: pl.DataFrame) -> tuple[Any, np.ndarray]:
        X = df.select(self._config.feature_columns).to_pandas()
        y = df.select(self._config.target_column).to_numpy().ravel()
        return X, y

    def _build_model(self, params: dict[str, Any]) -> Pipeline:
        encoder = ColumnTransformer(
            [(
                "onehot",
                OneHotEncoder(handle_unknown="ignore", sparse_output=False),
                self._config.categorical_features,
            )],
            remainder="passthrough",
        )
        regressor = lgb.LGBMRegressor(
            objective="regression",
            random_state=self._config.random_seed,
            n_jobs=self._config.n_jobs,
            verbosity=-1,
            **params,
        )
        return Pipeline([("encode", encoder), ("model", regressor)])

    def tune_hyperparameters(
        self, train_df: pl.DataFrame, splitter: RandomSplitter
    ) -> dict[str, Any]:
        """Exhaustive search over ``config.param_grid`` scored by k-fold RMSE.

        Returns:
            The parameter set with the lowest mean cross-validated RMSE.
        """
        grid = self._config.param_grid
        if not grid or any(len(values) == 0 for values in grid.values()):
            raise ValueError(f"param_grid must be non-empty, got {grid}")

        X, y = self._prepare_arrays(train_df)
        kfold = splitter.get_cv_splits()
        n_combinations = math.prod(len(values) for values in grid.values())
        logger.info(
            "Grid search: %d combinations x %d folds on %d rows",
            n_combinations, kfold.get_n_splits(), len(y),
        )

        def objective(trial: optuna.Trial) -> float:
            params = {
                name: trial.suggest_categorical(name, values)
                for name, values in grid.items()
            }

            rmse_scores: list[float] = []
            for train_idx, val_idx in kfold.split(X):
                model = self._build_model(params)
                model.fit(X.iloc[train_idx], y[train_idx])
                y_pred = model.predict(X.iloc[val_idx])
                rmse_scores.append(float(np.sqrt(mean_squared_error(y[val_idx], y_pred))))

            mean_rmse = float(np.mean(rmse_scores))
            logger.info("Trial %d params=%s cv_rmse=%.4f", trial.number, params, mean_rmse)
            return mean_rmse

        optuna.logging.set_verbosity(optuna.logging.WARNING)
        study = optuna.create_study(
            direction="minimize",
            study_name="taxi_fare_grid_search",
            sampler=optuna.samplers.GridSampler(grid, seed=self._config.random_seed),
        )
        study.optimize(objective, n_trials=n_combinations)

        best_params = dict(study.best_trial.params)
        logger.info("Best CV RMSE: %.4f", study.best_value)
        logger.info("Best params: %s", best_params)
        return best_params

    def train_final_model(
        self, train_df: pl.DataFrame, best_params: dict[str, Any]
    ) -> Pipeline:
        X, y = self._prepare_arrays(train_df)
        logger.info("Training final model on %d rows", len(y))
        model = self._build_model(best_params)
        model.fit(X, y)
        return model

    def evaluate_holdout(
        self, model: Pipeline, test_df: pl.DataFrame
    ) -> dict[str, float]:
        X_test, y_test = self._prepare_arrays(test_df)
        y_pred = model.predict(X_test)

        metrics = {
            "rmse": float(np.sqrt(mean_squared_error(y_test, y_pred))),
            "mae": float(mean_absolute_error(y_test, y_pred)),
            "r2": float(r2_score(y_test, y_pred)),
        }
        logger.info(
            "Test RMSE=%.4f  MAE=%.4f  R2=%.4f",
            metrics["rmse"], metrics["mae"], metrics["r2"],
        )
        return metrics

    def save(
        self,
        model: Pipeline,
        config: Config,
        metrics: dict[str, float],
        best_params: dict[str, Any] | None = None,
        cleaning_report: dict[str, Any] | None = None,
    ) -> None:
        with open(config.model_save_path, "wb") as f:
            pickle.dump(model, f)
        logger.info("Model saved to %s", config.model_save_path)

        summary = asdict(config)
        summary["best_params"] = best_params or {}
        summary["test_metrics"] = metrics
        summary["cleaning_report"] = cleaning_report or {}
        with open(config.summary_save_path, "w") as f:
            json.dump(summary, f, indent=2, default=str)
        logger.info("Run summary saved to %s", config.summary_save_path)
