"""Exceptions raised by the delay cleaning and aggregation pipeline."""

from __future__ import annotations


class DelayAnalysisError(Exception):
    """Base class for every error raised by this package."""


class SchemaError(DelayAnalysisError):
    """Column names are ambiguous or a required column is missing."""


class IngestionError(DelayAnalysisError):
    """The raw delay data could not be located or downloaded."""


class EmptyInputError(DelayAnalysisError):
    """An aggregation has no rows left after filtering."""


class UndefinedModeError(EmptyInputError):
    """A line has no positive delays, so its mode is undefined."""

    def __init__(self, line: str):
        super().__init__(f"mode of min_delay is undefined for {line!r}: no positive delays")
        self.line = line
