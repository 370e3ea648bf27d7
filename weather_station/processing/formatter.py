"""Human readable weather reports."""

from typing import Dict, Any, Iterable, List

from ..config.config_manager import ConfigManager

PA_TO_MM_MERCURY = 133.322
NORMAL_PRESSURE_MM = 101_325.0 / PA_TO_MM_MERCURY
PRESSURE_TOLERANCE_MM = 10.0

# Multipliers converting a raw pressure reading to pascal
PRESSURE_UNITS = {
    'pa': 1.0,
    'hpa': 100.0,
}


class WeatherReportFormatter:
    """Turns samples into short reports and decides when a reading deserves an alert."""

    def __init__(self, config: ConfigManager) -> None:
        """Initialize formatter with configuration.

        Args:
            config: Configuration manager instance
        """
        self.alerts: Dict[str, Any] = config.get_alerts_config()

        unit = str(config.get_report_config().get('pressure_unit', 'hpa')).lower()
        if unit not in PRESSURE_UNITS:
            raise ValueError(f"Unsupported pressure unit: {unit}")
        self.pressure_unit = unit

    def pressure_to_mm_mercury(self, pressure: float) -> float:
        return pressure * PRESSURE_UNITS[self.pressure_unit] / PA_TO_MM_MERCURY

    @staticmethod
    def temp_indicator(temp: float) -> str:
        if temp < -10.0:
            return "🥶"
        if temp < 0.0:
            return "❄️"
        if temp > 30.0:
            return "🔥"
        if temp > 20.0:
            return "☀️"
        return ""

    @staticmethod
    def humidity_indicator(humidity: float) -> str:
        if humidity > 90.0:
            return "🌧"
        if humidity > 70.0:
            return "☂️ take an umbrella"
        return ""

    def pressure_indicator(self, pressure: float) -> str:
        mm_mercury = self.pressure_to_mm_mercury(pressure)
        if mm_mercury > NORMAL_PRESSURE_MM + PRESSURE_TOLERANCE_MM:
            return "⬆️ high pressure"
        if mm_mercury < NORMAL_PRESSURE_MM - PRESSURE_TOLERANCE_MM:
            return "⬇️ low pressure"
        return ""

    def should_alert(self, sample) -> bool:
        """Check a sample against the configured alert thresholds."""
        return (
            sample.temp > self.alerts['temp_max']
            or sample.temp < self.alerts['temp_min']
            or sample.humidity >= self.alerts['humidity_max']
        )

    def format_sample(self, sample) -> str:
        """Format one sample as a multi-line report.

        Args:
            sample: Stored or pending sample

        Returns:
            Indicator line (omitted when nothing stands out) followed by
            temperature, humidity and pressure in mmHg
        """
        indicators = [
            self.temp_indicator(sample.temp),
            self.humidity_indicator(sample.humidity),
            self.pressure_indicator(sample.pressure),
        ]
        lines: List[str] = []
        headline = " ".join(indicator for indicator in indicators if indicator)
        if headline:
            lines.append(headline)

        lines.append(f"Temperature {sample.temp:>10.2f} °C")
        lines.append(f"Humidity    {sample.humidity:>10.2f} %")
        lines.append(f"Pressure    {self.pressure_to_mm_mercury(sample.pressure):>10.2f} mmHg")
        return "\n".join(lines)

    def format_table(self, samples: Iterable) -> str:
        """Format stored samples as one row each."""
        rows = [f"{'id':>6}  {'timestamp':<25} {'temp':>8} {'pressure':>10} {'humidity':>9}"]
        for sample in samples:
            rows.append(
                f"{sample.id:>6}  {sample.timestamp:<25} {sample.temp:>8.2f} "
                f"{sample.pressure:>10.2f} {sample.humidity:>9.2f}"
            )
        return "\n".join(rows)
