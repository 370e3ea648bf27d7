"""Payload decoding, statistics and report formatting."""

from .data_processor import DataProcessor, DataValidationError
from .formatter import WeatherReportFormatter

__all__ = ["DataProcessor", "DataValidationError", "WeatherReportFormatter"]
