"""Exceptions raised by the pipeline.

Unreadable input files surface as the built-in ``OSError`` family
(``FileNotFoundError``, ``PermissionError``) rather than a custom type.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for data errors that abort a pipeline run."""


class SchemaError(PipelineError):
    """The source file lacks one or more required columns."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Schema violation: missing columns {self.missing}")


class ParseError(PipelineError):
    """A pickup timestamp could not be split into a date and a time."""

    def __init__(self, count: int, example: str | None = None) -> None:
        self.count = count
        self.example = example
        msg = f"{count} record(s) with unparseable pickup timestamp"
        if example is not None:
            msg += f", e.g. {example!r}"
        super().__init__(msg)
