"""Data processor for weather payload validation and transformation."""

import re
import json
import math
import logging
import statistics
from typing import Dict, Any, Iterable, List, Optional
from datetime import datetime, timezone

from ..config.config_manager import ConfigManager
from ..database.models import NewWeatherSample, WeatherSample, utc_timestamp

MEASUREMENT_FIELDS = ('temp', 'pressure', 'humidity')

# Fractional seconds of any length; fromisoformat before 3.11 only takes 3 or 6 digits
FRACTIONAL_SECONDS = re.compile(r"\.(\d+)")


class DataValidationError(Exception):
    """Raised when data validation fails."""
    pass


class DataProcessor:
    """Processes and validates weather readings from the station."""

    def __init__(self, config: ConfigManager) -> None:
        """Initialize data processor with configuration.

        Args:
            config: Configuration manager instance
        """
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.validation_config = config.get_data_processing_config().get('validation', {})

    def process_message(self, message: str) -> NewWeatherSample:
        """Decode a JSON payload from the station into a sample.

        Args:
            message: One JSON object with temp, pressure, humidity and an
                optional timestamp

        Returns:
            Validated sample, stamped with the current UTC time when the
            payload carries no timestamp

        Raises:
            DataValidationError: If the payload is malformed or a value is out of range
        """
        self.logger.debug(f"Processing message: {message}")

        if not message or not isinstance(message, str) or not message.strip():
            raise DataValidationError("Empty message")

        try:
            payload = json.loads(message)
        except json.JSONDecodeError as e:
            raise DataValidationError(f"Message is not valid JSON: {e}")

        if not isinstance(payload, dict):
            raise DataValidationError(f"Message must be a JSON object: {message}")

        missing = [field for field in MEASUREMENT_FIELDS if field not in payload]
        if missing:
            raise DataValidationError(f"Message is missing fields: {', '.join(missing)}")

        return self.build_sample(
            payload['temp'],
            payload['pressure'],
            payload['humidity'],
            timestamp=payload.get('timestamp'),
        )

    def build_sample(self, temp: Any, pressure: Any, humidity: Any,
                     timestamp: Optional[str] = None) -> NewWeatherSample:
        """Validate raw readings and build a sample from them.

        Raises:
            DataValidationError: If a value is not numeric, out of range, or
                the timestamp cannot be parsed
        """
        values = {
            'temp': self._validate_field_value('temp', temp),
            'pressure': self._validate_field_value('pressure', pressure),
            'humidity': self._validate_field_value('humidity', humidity),
        }

        if timestamp is None:
            return NewWeatherSample.now(**values)

        return NewWeatherSample(timestamp=self.normalize_timestamp(timestamp), **values)

    def normalize_timestamp(self, value: Any) -> str:
        """Convert an ISO-8601 timestamp to the canonical UTC encoding.

        Naive timestamps are taken to be UTC.
        """
        if not isinstance(value, str) or not value.strip():
            raise DataValidationError(f"Invalid timestamp: {value!r}")

        text = value.strip()
        if text.endswith(('Z', 'z')):
            text = text[:-1] + '+00:00'
        text = FRACTIONAL_SECONDS.sub(lambda m: "." + m.group(1).ljust(6, "0")[:6], text, count=1)

        try:
            moment = datetime.fromisoformat(text)
        except ValueError:
            raise DataValidationError(f"Invalid timestamp: {value!r}")

        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return utc_timestamp(moment)

    def _validate_field_value(self, field_name: str, value: Any) -> float:
        """Validate individual field value against configured ranges.

        Args:
            field_name: Name of the field
            value: Raw value to validate

        Returns:
            Converted and validated value

        Raises:
            DataValidationError: If value is not a finite number or is out of range
        """
        if isinstance(value, bool):
            raise DataValidationError(f"{field_name} value {value!r} is not numeric")

        try:
            numeric_value = float(value)
        except (TypeError, ValueError):
            raise DataValidationError(f"{field_name} value {value!r} is not numeric")

        if not math.isfinite(numeric_value):
            raise DataValidationError(f"{field_name} value {value!r} is not finite")

        # Check validation ranges if configured
        if field_name in self.validation_config:
            range_config = self.validation_config[field_name]
            min_val = range_config.get('min')
            max_val = range_config.get('max')

            if min_val is not None and numeric_value < min_val:
                self.logger.warning(f"Value {numeric_value} for {field_name} below minimum {min_val}")
                raise DataValidationError(f"{field_name} value {numeric_value} below minimum {min_val}")

            if max_val is not None and numeric_value > max_val:
                self.logger.warning(f"Value {numeric_value} for {field_name} above maximum {max_val}")
                raise DataValidationError(f"{field_name} value {numeric_value} above maximum {max_val}")

        return numeric_value

    def format_for_logging(self, sample: NewWeatherSample, device_id: str) -> str:
        """Format a sample as a single log line.

        Args:
            sample: Stored or pending sample
            device_id: Device identifier

        Returns:
            Formatted log string
        """
        data_str = ", ".join(f"{field}:{getattr(sample, field)}" for field in MEASUREMENT_FIELDS)
        return f"[{sample.timestamp}] ID:{device_id}, {data_str}"

    def get_sample_statistics(self, samples: Iterable[WeatherSample]) -> Dict[str, Any]:
        """Summarise a series of samples.

        Args:
            samples: Samples to summarise, in any order

        Returns:
            Dictionary with the sample count, the covered time span and
            min/max/mean/median for every measurement
        """
        samples = list(samples)
        if not samples:
            return {"count": 0}

        timestamps = sorted(sample.timestamp for sample in samples)
        stats: Dict[str, Any] = {
            "count": len(samples),
            "first": timestamps[0],
            "last": timestamps[-1],
        }

        for field in MEASUREMENT_FIELDS:
            values: List[float] = [getattr(sample, field) for sample in samples]
            stats[field] = {
                "min": min(values),
                "max": max(values),
                "mean": statistics.fmean(values),
                "median": statistics.median(values),
            }

        return stats
