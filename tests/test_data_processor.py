import polars as pl
import pytest
from polars.testing import assert_frame_equal

from taxi_fare.config import Config
from taxi_fare.data_processor import DataProcessor
from taxi_fare.errors import ParseError, PipelineError, SchemaError

OUTPUT_COLUMNS = [
    "fare_amount",
    "pickup_longitude",
    "pickup_latitude",
    "dropoff_longitude",
    "dropoff_latitude",
    "passenger_count",
    "month",
    "day",
    "weekday",
    "min_after_midnight",
]


def test_load_drops_key_and_missing_rows(config):
    processor = DataProcessor(config)
    df = processor.load()

    assert "key" not in df.columns
    assert df.height == 7
    assert df.null_count().sum_horizontal().item() == 0
    assert processor.report.rows_read == 8
    assert processor.report.dropped_missing == 1


def test_load_missing_file_raises_oserror(tmp_path):
    processor = DataProcessor(Config(data_path=str(tmp_path / "nope.csv")))
    with pytest.raises(OSError):
        processor.load()


def test_load_missing_columns_raises_schema_error(make_csv):
    path = make_csv(
        ["1,12.5,2015-03-14 18:45:02,-73.98,40.75"],
        header="key,fare_amount,pickup_datetime,pickup_longitude,pickup_latitude",
    )
    with pytest.raises(SchemaError) as exc:
        DataProcessor(Config()).load(path)
    assert exc.value.missing == ["dropoff_longitude", "dropoff_latitude", "passenger_count"]


def test_load_requires_identifier_column(make_csv):
    path = make_csv(
        ["12.5,2015-03-14 18:45:02,-73.98,40.75,-73.95,40.78,2"],
        header=(
            "fare_amount,pickup_datetime,pickup_longitude,pickup_latitude,"
            "dropoff_longitude,dropoff_latitude,passenger_count"
        ),
    )
    with pytest.raises(SchemaError) as exc:
        DataProcessor(Config()).load(path)
    assert exc.value.missing == ["key"]


def test_load_treats_nan_and_garbage_as_missing(make_csv):
    path = make_csv([
        "a,nan,2015-03-14 18:45:02,-73.98,40.75,-73.95,40.78,2",
        "b,10.0,2015-03-14 18:45:02,-73.98,40.75,-73.95,40.78,two",
        "c,10.0,2015-03-14 18:45:02,-73.98,40.75,-73.95,40.78,3",
    ])
    df = DataProcessor(Config()).load(path)
    assert df["passenger_count"].to_list() == [3]


def test_load_keeps_integral_float_passenger_counts(make_csv):
    path = make_csv([
        "a,10.0,2015-03-14 18:45:02,-73.98,40.75,-73.95,40.78,2.0",
        "b,10.0,2015-03-14 18:45:02,-73.98,40.75,-73.95,40.78,3",
        "c,10.0,2015-03-14 18:45:02,-73.98,40.75,-73.95,40.78,1.5",
    ])
    df = DataProcessor(Config()).load(path)
    assert df.height == 2
    assert df["passenger_count"].to_list() == [2, 3]
    assert df["passenger_count"].dtype == pl.Int64


def test_prepare_treats_infinite_values_as_missing(make_csv):
    path = make_csv([
        "a,inf,2015-03-14 18:45:02,-73.98,40.75,-73.95,40.78,1",
        "b,10.0,2015-03-14 18:45:02,-inf,40.75,-73.95,40.78,1",
        "c,7.0,2015-03-14 18:45:02,-73.98,40.75,-73.95,40.78,1",
    ])
    processor = DataProcessor(Config())
    df = processor.prepare(path)
    assert df["fare_amount"].to_list() == [7.0]
    assert processor.report.dropped_missing == 2


def test_filter_bounds_keeps_only_plausible_rows(config):
    processor = DataProcessor(config)
    df = processor.filter_bounds(processor.load())

    assert df.height == 5
    assert df["pickup_longitude"].is_between(-120, -60).all()
    assert df["dropoff_longitude"].is_between(-120, -60).all()
    assert df["pickup_latitude"].is_between(25, 55).all()
    assert df["dropoff_latitude"].is_between(25, 55).all()
    assert (df["passenger_count"] < 20).all()
    assert -50.0 not in df["pickup_longitude"].to_list()
    assert 25 not in df["passenger_count"].to_list()

    assert processor.report.dropped_bounds == 2
    assert processor.report.violations["violation_pickup_longitude"] == 1
    assert processor.report.violations["violation_passenger_count"] == 1
    assert processor.report.violations["violation_dropoff_latitude"] == 0


def test_filter_bounds_is_stable():
    df = pl.DataFrame({
        "pickup_longitude": [-70.0, -10.0, -80.0, -90.0],
        "pickup_latitude": [40.0, 40.0, 40.0, 40.0],
        "dropoff_longitude": [-70.0, -70.0, -80.0, -90.0],
        "dropoff_latitude": [40.0, 40.0, 40.0, 60.0],
        "passenger_count": [3, 1, 2, 1],
        "fare_amount": [1.0, 2.0, 3.0, 4.0],
    })
    out = DataProcessor(Config()).filter_bounds(df)
    assert out["fare_amount"].to_list() == [1.0, 3.0]


def test_decompose_example_record(make_csv):
    path = make_csv(["X,12.5,2015-03-14 18:45:02,-73.98,40.75,-73.95,40.78,2"])
    processor = DataProcessor(Config())
    df = processor.decompose_datetime(processor.load(path))

    assert df.columns == OUTPUT_COLUMNS
    row = df.row(0, named=True)
    assert row["month"] == "3"
    assert row["day"] == "14"
    assert row["weekday"] == "6"  # Saturday, ISO numbering
    assert row["min_after_midnight"] == 1125
    assert row["fare_amount"] == 12.5
    assert df["month"].dtype == pl.String
    assert df["min_after_midnight"].dtype.is_integer()


def test_decompose_skips_unparseable_rows_by_default(make_csv):
    path = make_csv([
        "a,5.0,2015-03-14 18:45:02 UTC,-73.98,40.75,-73.95,40.78,1",
        "b,5.0,2015-03-14,-73.98,40.75,-73.95,40.78,1",
        "c,5.0,2015-02-30 10:00:00,-73.98,40.75,-73.95,40.78,1",
        "d,5.0,2015-03-14 25:61:00,-73.98,40.75,-73.95,40.78,1",
        "e,5.0,2015-03-15 00:00:00,-73.98,40.75,-73.95,40.78,1",
    ])
    processor = DataProcessor(Config())
    df = processor.decompose_datetime(processor.load(path))

    assert df["day"].to_list() == ["14", "15"]
    assert processor.report.dropped_unparseable == 3


def test_decompose_raise_policy(make_csv):
    path = make_csv(["b,5.0,2015-03-14,-73.98,40.75,-73.95,40.78,1"])
    processor = DataProcessor(Config(on_parse_error="raise"))
    df = processor.load(path)
    with pytest.raises(ParseError) as exc:
        processor.decompose_datetime(df)
    assert exc.value.count == 1
    assert exc.value.example == "2015-03-14"


def test_prepare_end_to_end(config):
    processor = DataProcessor(config)
    df = processor.prepare()

    assert df.columns == OUTPUT_COLUMNS
    assert df["fare_amount"].to_list() == [12.5, 5.0, 6.5, 30.0]
    assert df["min_after_midnight"].to_list() == [1125, 0, 1439, 485]
    assert df["weekday"].to_list() == ["6", "1", "7", "4"]
    assert df["month"].to_list() == ["3", "1", "7", "11"]

    report = processor.report
    assert report.rows_read == 8
    assert report.dropped_missing == 1
    assert report.dropped_bounds == 2
    assert report.dropped_unparseable == 1
    assert report.rows_clean == 4


def test_prepare_is_idempotent(config):
    first = DataProcessor(config).prepare()
    second = DataProcessor(config).prepare()
    assert_frame_equal(first, second)


def test_prepare_raises_when_nothing_survives(make_csv):
    path = make_csv(["a,5.0,2015-03-14 10:00:00,0.0,0.0,0.0,0.0,1"])
    with pytest.raises(PipelineError):
        DataProcessor(Config()).prepare(path)


@pytest.mark.parametrize("clock,expected", [
    ("00:00:00", 0),
    ("23:59:00", 1439),
    ("18:45:59", 1125),
])
def test_min_after_midnight_ignores_seconds(make_csv, clock, expected):
    path = make_csv([f"a,5.0,2015-03-14 {clock},-73.98,40.75,-73.95,40.78,1"])
    processor = DataProcessor(Config())
    df = processor.decompose_datetime(processor.load(path))
    assert df["min_after_midnight"].to_list() == [expected]
