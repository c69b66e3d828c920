"""Pipeline configuration."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any

import yaml

PARSE_ERROR_POLICIES = ("skip", "raise")


@dataclass
class Config:
    """Central configuration for the entire pipeline.

    Args:
        data_path: CSV file with the raw trip records.
        id_column: Identifier column, required in the source and discarded.
        datetime_column: Combined ``YYYY-MM-DD HH:MM:SS`` pickup timestamp.
        target_column: Prediction target.
        lon_min: Lower longitude bound (inclusive), pickup and dropoff.
        lon_max: Upper longitude bound (inclusive), pickup and dropoff.
        lat_min: Lower latitude bound (inclusive), pickup and dropoff.
        lat_max: Upper latitude bound (inclusive), pickup and dropoff.
        max_passengers: Passenger counts must be strictly below this.
        on_parse_error: ``"skip"`` drops unparseable timestamps, ``"raise"``
            aborts with ``ParseError``.
        train_fraction: Share of cleaned records drawn into the train set.
        n_cv_splits: Number of folds for KFold cross-validation.
        param_grid: LightGBM hyperparameter grid searched exhaustively.
        feature_columns: Columns used as model features.
        categorical_features: Columns one-hot encoded before boosting.
        n_jobs: Threads LightGBM may use.
        model_save_path: Where to persist the trained model.
        summary_save_path: Where to persist the run summary.
        random_seed: Reproducibility seed.
    """

    data_path: str = "train.csv"
    id_column: str = "key"
    datetime_column: str = "pickup_datetime"
    target_column: str = "fare_amount"

    # Cleaning thresholds
    lon_min: float = -120.0
    lon_max: float = -60.0
    lat_min: float = 25.0
    lat_max: float = 55.0
    max_passengers: int = 20
    on_parse_error: str = "skip"

    # Split params
    train_fraction: float = 0.8
    n_cv_splits: int = 5

    # Search space
    param_grid: dict[str, list[Any]] = field(default_factory=lambda: {
        "n_estimators": [200, 500],
        "learning_rate": [0.05, 0.1],
        "num_leaves": [31, 63],
        "max_depth": [-1, 8],
    })

    # Features
    feature_columns: list[str] = field(default_factory=lambda: [
        "pickup_longitude",
        "pickup_latitude",
        "dropoff_longitude",
        "dropoff_latitude",
        "passenger_count",
        "month",
        "day",
        "weekday",
        "min_after_midnight",
    ])

    categorical_features: list[str] = field(default_factory=lambda: [
        "month",
        "day",
        "weekday",
    ])

    n_jobs: int = -1

    # Persistence
    model_save_path: str = "model.pkl"
    summary_save_path: str = "run_summary.json"

    random_seed: int = 42

    def __post_init__(self) -> None:
        if not 0.0 < self.train_fraction < 1.0:
            raise ValueError(
                f"train_fraction must be in (0, 1), got {self.train_fraction}"
            )
        if self.on_parse_error not in PARSE_ERROR_POLICIES:
            raise ValueError(
                f"on_parse_error must be one of {PARSE_ERROR_POLICIES}, "
                f"got {self.on_parse_error!r}"
            )
        if self.n_cv_splits < 2:
            raise ValueError(f"n_cv_splits must be >= 2, got {self.n_cv_splits}")
        unknown = set(self.categorical_features) - set(self.feature_columns)
        if unknown:
            raise ValueError(
                f"categorical_features not in feature_columns: {sorted(unknown)}"
            )

    @classmethod
    def from_yaml(cls, path: str, **overrides: Any) -> Config:
        """Build a config from a YAML mapping, with keyword overrides on top.

        Args:
            path: YAML file whose top-level keys are ``Config`` field names.
            **overrides: Values that win over both the file and the defaults.

        Returns:
            Populated configuration.
        """
        with open(path, "r") as f:
            params = yaml.safe_load(f) or {}
        if not isinstance(params, dict):
            raise ValueError(f"{path}: expected a mapping at top level")

        params.update(overrides)
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(params) - known)
        if unknown:
            raise ValueError(f"{path}: unknown config keys {unknown}")
        return cls(**params)

    @property
    def geo_columns(self) -> list[str]:
        return [
            "pickup_longitude",
            "pickup_latitude",
            "dropoff_longitude",
            "dropoff_latitude",
        ]

    @property
    def required_columns(self) -> list[str]:
        """Columns the source file must provide, in output order."""
        return [
            self.id_column,
            self.target_column,
            self.datetime_column,
            *self.geo_columns,
            "passenger_count",
        ]
