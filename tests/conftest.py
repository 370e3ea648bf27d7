"""Shared pytest fixtures."""

import pytest
import yaml

from weather_station.database import WeatherLogStore


def base_config(db_path):
    return {
        'database': {'path': str(db_path), 'timeout': 1.0},
        'device': {'id': 'esp32-test'},
        'logging': {'level': 'DEBUG'},
        'data_processing': {
            'validation': {
                'temp': {'min': -40.0, 'max': 85.0},
                'pressure': {'min': 300.0, 'max': 1100.0},
                'humidity': {'min': 0.0, 'max': 100.0},
            }
        },
        'retry': {'max_attempts': 2, 'backoff_factor': 1, 'initial_delay': 0.0},
    }


@pytest.fixture
def db_path(tmp_path):
    """Path of a not yet created SQLite file."""
    return tmp_path / 'data' / 'weather.sqlite'


@pytest.fixture
def config_data(db_path):
    return base_config(db_path)


@pytest.fixture
def config_file(tmp_path, config_data):
    """Write config_data to a YAML file and return its path."""
    path = tmp_path / 'config.yaml'
    with open(path, 'w') as f:
        yaml.dump(config_data, f)
    return str(path)


@pytest.fixture
def store(db_path):
    """A connected store backed by a temporary file."""
    with WeatherLogStore(str(db_path)) as store:
        yield store
