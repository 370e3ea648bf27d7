"""Tests for the SQLite weather log store."""

import sqlite3
import threading

import pytest

from weather_station.database import (
    ConstraintViolationError,
    NewWeatherSample,
    SampleNotFoundError,
    StorageError,
    StorageIOError,
    WeatherLogStore,
    WeatherSample,
)


def make_sample(timestamp="2020-05-07T04:30:33Z", temp=21.5, pressure=1013.2, humidity=55.0):
    return NewWeatherSample(timestamp=timestamp, temp=temp, pressure=pressure, humidity=humidity)


class TestWeatherLogStore:
    """Test cases for WeatherLogStore."""

    def test_insert_and_get_round_trip(self, store):
        """Test that a stored sample comes back with identical fields."""
        sample_id = store.insert(make_sample())

        assert sample_id == 1
        assert store.get(1) == WeatherSample(
            id=1,
            timestamp="2020-05-07T04:30:33Z",
            temp=21.5,
            pressure=1013.2,
            humidity=55.0,
        )

    def test_insert_assigns_ascending_positive_ids(self, store):
        """Test that every insert returns a new positive id."""
        ids = [store.insert(make_sample(temp=20.0 + i)) for i in range(5)]

        assert all(sample_id > 0 for sample_id in ids)
        assert ids == sorted(ids)
        assert len(set(ids)) == 5

    def test_identical_samples_get_distinct_ids(self, store):
        """Test that equal field values still produce two rows."""
        first = store.insert(make_sample())
        second = store.insert(make_sample())

        assert first != second
        assert store.count() == 2

    def test_get_unknown_id(self, store):
        """Test that a missing id raises instead of returning a default."""
        store.insert(make_sample())

        with pytest.raises(SampleNotFoundError, match="Weather sample 42 not found") as excinfo:
            store.get(42)
        assert excinfo.value.sample_id == 42

    def test_insert_explicit_id(self, store):
        """Test storing a sample under a caller supplied id."""
        assert store.insert(make_sample(), sample_id=100) == 100
        assert store.get(100).temp == 21.5
        assert store.insert(make_sample()) == 101

    def test_insert_duplicate_explicit_id(self, store):
        """Test that reusing an id is a constraint violation."""
        store.insert(make_sample(), sample_id=7)

        with pytest.raises(ConstraintViolationError):
            store.insert(make_sample(temp=3.0), sample_id=7)

        # The failed write must not have touched the stored row
        assert store.get(7).temp == 21.5
        assert store.count() == 1

    def test_insert_missing_field(self, store):
        """Test that a missing measurement violates NOT NULL."""
        with pytest.raises(ConstraintViolationError):
            store.insert(make_sample(humidity=None))

        assert store.count() == 0

    @pytest.mark.parametrize('field, value', [
        ('temp', 'hot'),
        ('pressure', '1013.2'),
        ('humidity', True),
        ('temp', float('inf')),
    ])
    def test_insert_invalid_measurement(self, store, field, value):
        """Test that unusable values are constraint violations, not I/O errors."""
        with pytest.raises(ConstraintViolationError, match=field):
            store.insert(make_sample(**{field: value}))

        assert store.count() == 0

    def test_insert_nan_rejected(self, store):
        """Test that NaN is refused instead of being stored as NULL."""
        with pytest.raises(ConstraintViolationError):
            store.insert(make_sample(pressure=float('nan')))

        assert store.count() == 0

    @pytest.mark.parametrize('timestamp', ['', '   ', None])
    def test_insert_blank_timestamp(self, store, timestamp):
        """Test that the observation time is required."""
        with pytest.raises(ConstraintViolationError, match="timestamp is required"):
            store.insert(make_sample(timestamp=timestamp))

        assert store.count() == 0

    def test_insert_integer_measurements(self, store):
        """Test that whole numbers are accepted as readings."""
        sample_id = store.insert(make_sample(temp=21, pressure=1013, humidity=55))

        assert store.get(sample_id).temp == 21.0

    def test_concurrent_inserts_get_distinct_ids(self, store):
        """Test that writers sharing one store never receive the same id."""
        ids = []
        errors = []
        ids_lock = threading.Lock()

        def writer(offset):
            try:
                for i in range(10):
                    sample_id = store.insert(make_sample(temp=float(offset * 10 + i)))
                    with ids_lock:
                        ids.append(sample_id)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(ids) == 80
        assert len(set(ids)) == 80
        assert store.count() == 80

    def test_errors_share_base_class(self):
        """Test that all storage errors can be caught together."""
        for error in (ConstraintViolationError, StorageIOError, SampleNotFoundError):
            assert issubclass(error, StorageError)

    def test_list_recent_newest_first(self, store):
        """Test listing the most recent samples."""
        for hour in range(5):
            store.insert(make_sample(timestamp=f"2020-05-07T0{hour}:00:00+00:00", temp=float(hour)))

        recent = store.list_recent(3)

        assert [sample.temp for sample in recent] == [4.0, 3.0, 2.0]

    def test_list_recent_fewer_than_limit(self, store):
        """Test that the limit is an upper bound."""
        store.insert(make_sample())

        assert len(store.list_recent(10)) == 1

    def test_list_recent_empty(self, store):
        """Test listing an empty log."""
        assert store.list_recent() == []

    def test_list_recent_invalid_limit(self, store):
        """Test rejecting a non-positive limit."""
        with pytest.raises(ValueError):
            store.list_recent(0)

    def test_list_between(self, store):
        """Test listing samples inside a time window."""
        for hour in range(6):
            store.insert(make_sample(timestamp=f"2020-05-07T0{hour}:00:00+00:00", temp=float(hour)))

        window = store.list_between("2020-05-07T01:00:00+00:00", "2020-05-07T03:00:00+00:00")
        assert [sample.temp for sample in window] == [1.0, 2.0, 3.0]

        open_start = store.list_between(end="2020-05-07T01:00:00+00:00")
        assert [sample.temp for sample in open_start] == [0.0, 1.0]

        limited = store.list_between(start="2020-05-07T02:00:00+00:00", limit=2)
        assert [sample.temp for sample in limited] == [2.0, 3.0]

    def test_schema_matches_weather_log_table(self, store, db_path):
        """Test the column layout of the created table."""
        connection = sqlite3.connect(str(db_path))
        try:
            columns = connection.execute("PRAGMA table_info(weather_log)").fetchall()
        finally:
            connection.close()

        # (cid, name, type, notnull, default, pk)
        assert [(c[1], c[2], c[3], c[5]) for c in columns] == [
            ('id', 'INTEGER', 1, 1),
            ('timestamp', 'TEXT', 1, 0),
            ('temp', 'REAL', 1, 0),
            ('pressure', 'REAL', 1, 0),
            ('humidity', 'REAL', 1, 0),
        ]

    def test_samples_survive_reopen(self, db_path):
        """Test that samples are durable across store instances."""
        with WeatherLogStore(str(db_path)) as store:
            sample_id = store.insert(make_sample())

        with WeatherLogStore(str(db_path)) as store:
            assert store.get(sample_id).pressure == 1013.2

    def test_in_memory_database(self):
        """Test that an in-memory store keeps rows between sessions."""
        with WeatherLogStore(':memory:') as store:
            sample_id = store.insert(make_sample())
            assert store.get(sample_id).humidity == 55.0

    def test_connect_failure(self, tmp_path):
        """Test that an unusable database path raises StorageIOError."""
        blocker = tmp_path / 'not_a_dir'
        blocker.write_text('')

        store = WeatherLogStore(str(blocker / 'weather.sqlite'))
        with pytest.raises(StorageIOError):
            store.connect()
        assert store.engine is None

    def test_connects_lazily(self, db_path):
        """Test that the first operation opens the database."""
        store = WeatherLogStore(str(db_path))
        try:
            assert store.insert(make_sample()) == 1
            assert db_path.exists()
        finally:
            store.close()
