from __future__ import annotations

import logging
import os

import numpy as np
import polars as pl

logger = logging.getLogger("TaxiFare")

# Manhattan-ish centre; trips scatter around it.
_CENTER_LON = -73.98
_CENTER_LAT = 40.75
_EARTH_RADIUS_KM = 6371.0


def haversine_km(
    lon1: np.ndarray, lat1: np.ndarray, lon2: np.ndarray, lat2: np.ndarray
) -> np.ndarray:
    lon1, lat1, lon2, lat2 = map(np.radians, [lon1, lat1, lon2, lat2])
    a = (
        np.sin((lat2 - lat1) / 2.0) ** 2
        + np.cos(lat1) * np.cos(lat2) * np.sin((lon2 - lon1) / 2.0) ** 2
    )
    return 2 * _EARTH_RADIUS_KM * np.arcsin(np.sqrt(a))


def generate_synthetic_data(path: str, rows: int = 100_000, seed: int = 42) -> str:
    """Write a synthetic trip CSV matching the Kaggle fare-prediction schema.

    Used when real data is unavailable. Fares follow a base charge plus a
    per-km rate with a rush-hour surcharge. About 5% of the rows carry an
    anomaly the cleaning stages are expected to remove: coordinates outside
    the bounding box, oversized passenger counts, missing values, or
    malformed timestamps.

    Args:
        path: Destination CSV path.
        rows: Number of records.
        seed: Random seed for reproducibility.

    Returns:
        ``path``.
    """
    rng = np.random.default_rng(seed)
    n = rows

    pickup_lon = _CENTER_LON + rng.normal(0, 0.04, size=n)
    pickup_lat = _CENTER_LAT + rng.normal(0, 0.03, size=n)
    dropoff_lon = pickup_lon + rng.normal(0, 0.03, size=n)
    dropoff_lat = pickup_lat + rng.normal(0, 0.03, size=n)

    start = np.datetime64("2009-01-01T00:00:00", "s")
    span_seconds = int((np.datetime64("2015-06-30T23:59:59", "s") - start).astype(int))
    pickups = start + rng.integers(0, span_seconds, size=n).astype("timedelta64[s]")
    hours = (pickups.astype("datetime64[h]") - pickups.astype("datetime64[D]")).astype(int)
    rush = ((hours >= 7) & (hours <= 9)) | ((hours >= 16) & (hours <= 19))

    distance = haversine_km(pickup_lon, pickup_lat, dropoff_lon, dropoff_lat)
    fare = 2.5 + 1.56 * distance + np.where(rush, 1.0, 0.0) + rng.normal(0, 1.0, size=n)
    fare = np.round(fare.clip(2.5, 250), 2)

    passenger_count = rng.choice(
        [0, 1, 2, 3, 4, 5, 6], size=n,
        p=[0.01, 0.69, 0.15, 0.05, 0.03, 0.04, 0.03],
    )

    timestamps = np.datetime_as_string(pickups, unit="s")
    pickup_datetime = np.char.add(np.char.replace(timestamps, "T", " "), " UTC")

    df = pl.DataFrame({
        "key": [f"{ts}.{i:07d}" for i, ts in enumerate(timestamps)],
        "fare_amount": fare,
        "pickup_datetime": pickup_datetime,
        "pickup_longitude": pickup_lon,
        "pickup_latitude": pickup_lat,
        "dropoff_longitude": dropoff_lon,
        "dropoff_latitude": dropoff_lat,
        "passenger_count": passenger_count.astype(np.int64),
    })

    anomaly_idx = rng.choice(n, size=int(n * 0.05), replace=False)
    kinds = np.array_split(anomaly_idx, 4)

    def _mask(idx: np.ndarray) -> pl.Series:
        return pl.Series("mask", np.isin(np.arange(n), idx))

    df = df.with_columns([
        pl.when(_mask(kinds[0])).then(0.0).otherwise(pl.col("pickup_longitude")).alias("pickup_longitude"),
        pl.when(_mask(kinds[1])).then(208).otherwise(pl.col("passenger_count")).alias("passenger_count"),
        pl.when(_mask(kinds[2])).then(None).otherwise(pl.col("dropoff_latitude")).alias("dropoff_latitude"),
        pl.when(_mask(kinds[3])).then(pl.lit("not-a-date")).otherwise(pl.col("pickup_datetime")).alias("pickup_datetime"),
    ])

    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    df.write_csv(path)
    logger.info("Generated synthetic %s (%d rows)", path, n)
    return path


def resolve_data(path: str, rows: int = 100_000, seed: int = 42) -> str:
    """Return ``path``, generating synthetic data there first if it is missing."""
    if os.path.exists(path):
        logger.info("Data file found: %s", path)
        return path
    logger.warning("%s not found, generating synthetic data", path)
    return generate_synthetic_data(path, rows=rows, seed=seed)
