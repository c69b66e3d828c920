import pytest

from taxi_fare.config import Config

HEADER = (
    "key,fare_amount,pickup_datetime,pickup_longitude,pickup_latitude,"
    "dropoff_longitude,dropoff_latitude,passenger_count"
)

# One row per situation the cleaning stages must handle.
RAW_ROWS = [
    "X,12.5,2015-03-14 18:45:02 UTC,-73.98,40.75,-73.95,40.78,2",
    "A,8.0,2011-06-01 10:00:00 UTC,-50.0,40.75,-73.95,40.78,1",     # longitude out of box
    "B,9.0,2011-06-01 11:00:00 UTC,-73.98,40.75,-73.95,40.78,25",   # too many passengers
    "C,7.5,2011-06-01 12:00:00 UTC,-73.98,40.75,-73.95,,1",         # missing dropoff_latitude
    "D,5.0,2012-01-02 00:00:00 UTC,-73.99,40.73,-73.97,40.76,1",    # midnight
    "E,6.5,2010-07-04 23:59:59 UTC,-74.00,40.71,-73.99,40.72,0",    # last minute of the day
    "F,30.0,2014-11-20 08:05:00 UTC,-120.0,25.0,-60.0,55.0,19",     # exactly on every bound
    "G,4.5,2013-05-05,-73.98,40.75,-73.95,40.78,1",                 # no time token
]


def write_csv(path, rows, header=HEADER):
    path.write_text("\n".join([header, *rows]) + "\n")
    return str(path)


@pytest.fixture
def make_csv(tmp_path):
    """Factory writing ``rows`` under ``header`` to a fresh CSV file."""
    def _make(rows, header=HEADER, name="trips.csv"):
        return write_csv(tmp_path / name, rows, header)
    return _make


@pytest.fixture
def raw_csv(tmp_path):
    """Path to a small CSV mixing valid and invalid trip records."""
    return write_csv(tmp_path / "train.csv", RAW_ROWS)


@pytest.fixture
def config(tmp_path, raw_csv):
    """Config pointing at the sample CSV with tiny search settings."""
    return Config(
        data_path=raw_csv,
        n_cv_splits=3,
        param_grid={"n_estimators": [10, 20], "num_leaves": [7], "min_child_samples": [5]},
        n_jobs=1,
        model_save_path=str(tmp_path / "model.pkl"),
        summary_save_path=str(tmp_path / "run_summary.json"),
    )
