from taxi_fare.config import Config
from taxi_fare.data_processor import CleaningReport, DataProcessor
from taxi_fare.errors import ParseError, PipelineError, SchemaError
from taxi_fare.splitter import RandomSplitter
from taxi_fare.trainer import ModelTrainer

__all__ = [
    "Config",
    "CleaningReport",
    "DataProcessor",
    "RandomSplitter",
    "ModelTrainer",
    "PipelineError",
    "SchemaError",
    "ParseError",
]
