"""Random train/test partitioning and cross-validation folds."""

from __future__ import annotations

import logging
import math

import numpy as np
import polars as pl
from sklearn.model_selection import KFold

from taxi_fare.config import Config

logger = logging.getLogger("TaxiFare")


class RandomSplitter:
    """Seeded row-level train/test partitioning.

    Draws ``round(train_fraction * N)`` rows uniformly without replacement
    for the train set; the remainder forms the test set. The random source
    is always passed in explicitly, global numpy state is never used.

    Args:
        config: Pipeline configuration.
    """

    def __init__(self, config: Config) -> None:
        self._config = config

    def train_size(self, n: int) -> int:
        """Number of train rows for a dataset of ``n`` rows (round half up)."""
        return int(math.floor(n * self._config.train_fraction + 0.5))

    def split(
        self,
        df: pl.DataFrame,
        seed: int | np.random.Generator | None = None,
    ) -> tuple[pl.DataFrame, pl.DataFrame]:
        """Partition ``df`` into disjoint train and test sets.

        Both outputs keep the relative row order of ``df``.

        Args:
            df: Cleaned, feature-engineered DataFrame.
            seed: Integer seed or numpy Generator. Defaults to
                ``config.random_seed``.

        Returns:
            (train_df, test_df) tuple.
        """
        if seed is None:
            seed = self._config.random_seed
        rng = np.random.default_rng(seed)

        n = df.height
        n_train = self.train_size(n)
        train_idx = rng.choice(n, size=n_train, replace=False)

        mask = np.zeros(n, dtype=bool)
        mask[train_idx] = True
        in_train = pl.Series("in_train", mask)
        train_df = df.filter(in_train)
        test_df = df.filter(~in_train)

        logger.info(
            "Random split (train_fraction=%.2f): %d train rows, %d test rows",
            self._config.train_fraction, train_df.height, test_df.height,
        )
        return train_df, test_df

    def get_cv_splits(self) -> KFold:
        """Return a shuffled scikit-learn KFold for hyperparameter search."""
        return KFold(
            n_splits=self._config.n_cv_splits,
            shuffle=True,
            random_state=self._config.random_seed,
        )

    @staticmethod
    def check_target_drift(
        y_train: np.ndarray, y_test: np.ndarray, label: str
    ) -> float:
        """Log a warning if train/test target means differ by more than 20%.

        Args:
            y_train: Target values in the training portion.
            y_test: Target values in the held-out portion.
            label: Name of the split being checked (for logging).

        Returns:
            Relative drift in percent (0.0 when the train mean is zero).
        """
        if len(y_train) == 0 or len(y_test) == 0:
            return 0.0
        mean_train = float(np.mean(y_train))
        mean_test = float(np.mean(y_test))
        if mean_train == 0:
            return 0.0
        drift_pct = abs(mean_train - mean_test) / abs(mean_train) * 100
        logger.info(
            "%s target mean: train=%.4f, test=%.4f (drift=%.1f%%)",
            label, mean_train, mean_test, drift_pct,
        )
        if drift_pct > 20:
            logger.warning(
                "%s: target drift %.1f%% exceeds 20%% threshold!",
                label, drift_pct,
            )
        return drift_pct
