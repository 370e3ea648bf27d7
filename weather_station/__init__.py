"""
Weather Station Log

Stores timestamped temperature, pressure and humidity samples reported by
an ESP32 weather station in a SQLite database and reports on them.
"""

__version__ = "0.2.0"
__author__ = "Weather Station Team"
