"""Data loading, cleaning, and temporal feature derivation."""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field

import polars as pl

from taxi_fare.config import Config
from taxi_fare.errors import ParseError, PipelineError, SchemaError

logger = logging.getLogger("TaxiFare")

# Date token, whitespace, time token; anything after further whitespace is ignored.
_DATETIME_PATTERN = r"^(\S+)\s+(\S+)"
_DATE_FORMAT = "%Y-%m-%d"
_TIME_FORMAT = "%H:%M:%S"

_DATE_TMP = "_pickup_date"
_TIME_TMP = "_pickup_time"


@dataclass
class CleaningReport:
    """Row counts collected while a dataset moves through the processor."""

    rows_read: int = 0
    dropped_missing: int = 0
    dropped_bounds: int = 0
    dropped_unparseable: int = 0
    rows_clean: int = 0
    violations: dict[str, int] = field(default_factory=dict)

    def as_dict(self) -> dict:
        return asdict(self)


class DataProcessor:
    """Handles loading, bounds filtering, and datetime decomposition.

    Every stage returns a new DataFrame; row counts for the most recent run
    accumulate on ``self.report``.

    Args:
        config: Pipeline configuration.
    """

    def __init__(self, config: Config) -> None:
        self._config = config
        self.report = CleaningReport()

    def load(self, path: str | None = None) -> pl.DataFrame:
        """Read the source CSV and drop the identifier and incomplete rows.

        Args:
            path: CSV path, defaults to ``config.data_path``.

        Returns:
            Records with the required columns (identifier excluded) and no
            missing values, in file order.

        Raises:
            FileNotFoundError: If ``path`` does not exist.
            SchemaError: If any required column is absent.
        """
        path = path or self._config.data_path
        if not os.path.isfile(path):
            logger.error("Source file not found: %s", path)
            raise FileNotFoundError(f"No such file: {path}")

        logger.info("Loading data from %s", path)
        # Everything as text first; numeric casts below turn garbage into nulls.
        df = pl.read_csv(path, infer_schema_length=0)

        missing = [c for c in self._config.required_columns if c not in df.columns]
        if missing:
            raise SchemaError(missing)

        float_cols = [self._config.target_column, *self._config.geo_columns]
        as_float = {
            c: pl.col(c).cast(pl.Float64, strict=False)
            for c in [*float_cols, "passenger_count"]
        }
        passengers = as_float["passenger_count"]
        # NaN, inf and non-integral passenger counts become nulls.
        df = df.select(
            [c for c in self._config.required_columns if c != self._config.id_column]
        ).with_columns(
            [pl.when(as_float[c].is_finite()).then(as_float[c]).alias(c) for c in float_cols]
            + [
                pl.when(passengers.is_finite() & (passengers == passengers.floor()))
                .then(passengers)
                .cast(pl.Int64)
                .alias("passenger_count")
            ]
        )

        self.report = CleaningReport(rows_read=df.height)
        df = df.drop_nulls()
        self.report.dropped_missing = self.report.rows_read - df.height

        logger.info(
            "Loaded %d rows, dropped %d with missing values",
            self.report.rows_read, self.report.dropped_missing,
        )
        return df

    def filter_bounds(self, df: pl.DataFrame) -> pl.DataFrame:
        """Keep records inside the bounding box with a plausible passenger count.

        Each bound is an independent predicate; a record failing any of them
        is dropped. Surviving rows keep their input order.

        Args:
            df: Output of :meth:`load`.

        Returns:
            Filtered DataFrame.
        """
        cfg = self._config
        masks = {
            "pickup_longitude": pl.col("pickup_longitude").is_between(cfg.lon_min, cfg.lon_max),
            "dropoff_longitude": pl.col("dropoff_longitude").is_between(cfg.lon_min, cfg.lon_max),
            "pickup_latitude": pl.col("pickup_latitude").is_between(cfg.lat_min, cfg.lat_max),
            "dropoff_latitude": pl.col("dropoff_latitude").is_between(cfg.lat_min, cfg.lat_max),
            "passenger_count": pl.col("passenger_count") < cfg.max_passengers,
        }

        violations = df.select(
            [(~mask).sum().alias(name) for name, mask in masks.items()]
        ).row(0, named=True)
        self.report.violations = {f"violation_{k}": int(v) for k, v in violations.items()}

        rows_before = df.height
        df = df.filter(pl.all_horizontal(list(masks.values())))
        self.report.dropped_bounds = rows_before - df.height

        logger.info(
            "Bounds filter: %d -> %d rows (dropped %d, %.2f%%)",
            rows_before, df.height, self.report.dropped_bounds,
            (self.report.dropped_bounds / rows_before * 100) if rows_before else 0.0,
        )
        logger.info("Bounds violations: %s", self.report.violations)
        return df

    def decompose_datetime(self, df: pl.DataFrame) -> pl.DataFrame:
        """Replace the pickup timestamp with calendar labels and a minute count.

        Features: month, day, weekday (ISO, Monday=1) as string labels and
        min_after_midnight as an integer.

        Args:
            df: Filtered DataFrame holding the raw timestamp column.

        Returns:
            DataFrame without the timestamp, with the derived columns appended.

        Raises:
            ParseError: If a timestamp is malformed and the config policy is
                ``"raise"``.
        """
        dt_col = self._config.datetime_column
        df = df.with_columns([
            pl.col(dt_col).str.extract(_DATETIME_PATTERN, 1)
            .str.to_date(_DATE_FORMAT, strict=False).alias(_DATE_TMP),
            pl.col(dt_col).str.extract(_DATETIME_PATTERN, 2)
            .str.to_time(_TIME_FORMAT, strict=False).alias(_TIME_TMP),
        ])

        unparsed = pl.col(_DATE_TMP).is_null() | pl.col(_TIME_TMP).is_null()
        bad = df.filter(unparsed)
        if bad.height:
            example = bad[dt_col][0]
            if self._config.on_parse_error == "raise":
                raise ParseError(bad.height, example)
            logger.warning(
                "Skipping %d rows with unparseable %s (e.g. %r)",
                bad.height, dt_col, example,
            )
            df = df.filter(~unparsed)
        self.report.dropped_unparseable = bad.height

        df = df.with_columns([
            pl.col(_DATE_TMP).dt.month().cast(pl.String).alias("month"),
            pl.col(_DATE_TMP).dt.day().cast(pl.String).alias("day"),
            pl.col(_DATE_TMP).dt.weekday().cast(pl.String).alias("weekday"),
            (
                pl.col(_TIME_TMP).dt.hour().cast(pl.Int32) * 60
                + pl.col(_TIME_TMP).dt.minute().cast(pl.Int32)
            ).alias("min_after_midnight"),
        ]).drop([dt_col, _DATE_TMP, _TIME_TMP])

        logger.info(
            "Datetime decomposition complete. Columns: %d, Rows: %d",
            len(df.columns), df.height,
        )
        return df

    def prepare(self, path: str | None = None) -> pl.DataFrame:
        """Run load, bounds filter and datetime decomposition in order.

        Raises:
            PipelineError: If no records survive cleaning.
        """
        df = self.load(path)
        df = self.filter_bounds(df)
        df = self.decompose_datetime(df)

        self.report.rows_clean = df.height
        logger.info("Cleaning report: %s", self.report.as_dict())
        if df.height == 0:
            raise PipelineError("Resulting dataset is empty after cleaning")
        return df
