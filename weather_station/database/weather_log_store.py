"""SQLite backed store for weather samples."""

import os
import math
import logging
import threading
from contextlib import contextmanager
from typing import Iterator, List, Optional

from sqlalchemy import create_engine, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError, StatementError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base, NewWeatherSample, WeatherLogRecord, WeatherSample

MEMORY_DATABASE = ":memory:"
MEASUREMENT_COLUMNS = ("temp", "pressure", "humidity")


class StorageError(Exception):
    """Base class for weather log storage failures."""
    pass


class ConstraintViolationError(StorageError):
    """Raised when a write breaks a table constraint (duplicate id, missing field)."""
    pass


class StorageIOError(StorageError):
    """Raised when the database file cannot be opened, locked or written."""
    pass


class SampleNotFoundError(StorageError):
    """Raised when no sample exists for the requested id."""

    def __init__(self, sample_id: int) -> None:
        super().__init__(f"Weather sample {sample_id} not found")
        self.sample_id = sample_id


def _enable_wal(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


class WeatherLogStore:
    """Persists weather samples in the weather_log table.

    Writes made through one store are serialised with a lock; writers in
    other processes are arbitrated by SQLite's own file locking.
    """

    def __init__(self, db_path: str, timeout: float = 5.0) -> None:
        """Initialize the store.

        Args:
            db_path: Path to the SQLite database file, or ':memory:'
            timeout: Seconds to wait for a competing writer's lock
        """
        self.db_path = db_path
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)
        self.engine: Optional[Engine] = None
        self.Session: Optional[sessionmaker] = None
        self._write_lock = threading.Lock()

    def connect(self) -> None:
        """Open the database and create the weather_log table if needed.

        Raises:
            StorageIOError: If the database cannot be opened or initialised
        """
        if self.engine is not None:
            return

        self.logger.info(f"Connecting to {self.db_path}")
        try:
            self.engine = self._create_engine()
            Base.metadata.create_all(self.engine)
        except (OSError, SQLAlchemyError) as e:
            self.logger.error(f"Failed to initialize weather log database: {e}")
            self._dispose()
            raise StorageIOError(f"Weather log initialization failed: {e}") from e

        self.Session = sessionmaker(bind=self.engine, expire_on_commit=False)
        self.logger.info("Weather log database initialized successfully")

    def _create_engine(self) -> Engine:
        if self.db_path == MEMORY_DATABASE:
            # One shared connection, otherwise every session sees its own empty database
            return create_engine(
                "sqlite://",
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )

        directory = os.path.dirname(os.path.abspath(self.db_path))
        os.makedirs(directory, exist_ok=True)

        engine = create_engine(
            f"sqlite:///{self.db_path}",
            connect_args={"timeout": self.timeout, "check_same_thread": False},
        )
        event.listen(engine, "connect", _enable_wal)
        return engine

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Provide a transactional scope around a series of operations.

        SQLAlchemy errors are translated into StorageError subclasses.
        """
        if self.Session is None:
            self.connect()

        session = self.Session()
        try:
            yield session
            session.commit()
        except IntegrityError as e:
            session.rollback()
            raise ConstraintViolationError(f"Constraint violated: {e.orig}") from e
        except StatementError as e:
            session.rollback()
            if isinstance(e.orig, (ValueError, TypeError)):
                raise ConstraintViolationError(f"Invalid value: {e.orig}") from e
            raise StorageIOError(f"Database operation failed: {e}") from e
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageIOError(f"Database operation failed: {e}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @staticmethod
    def _check_sample(sample: NewWeatherSample) -> None:
        """Reject values the weather_log columns cannot hold.

        Raises:
            ConstraintViolationError: On a blank timestamp or a measurement
                that is missing, not a number, or not finite
        """
        if not isinstance(sample.timestamp, str) or not sample.timestamp.strip():
            raise ConstraintViolationError(f"timestamp is required, got {sample.timestamp!r}")

        for column in MEASUREMENT_COLUMNS:
            value = getattr(sample, column)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConstraintViolationError(f"{column} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise ConstraintViolationError(f"{column} must be finite, got {value!r}")

    def insert(self, sample: NewWeatherSample, sample_id: Optional[int] = None) -> int:
        """Persist a new sample.

        Args:
            sample: Reading to store
            sample_id: Explicit id to use instead of the next free one

        Returns:
            The id assigned to the stored sample

        Raises:
            ConstraintViolationError: On a duplicate id, a blank timestamp or a
                missing, non-numeric or non-finite measurement
            StorageIOError: If the database cannot be written
        """
        self._check_sample(sample)

        record = WeatherLogRecord(
            id=sample_id,
            timestamp=sample.timestamp,
            temp=sample.temp,
            pressure=sample.pressure,
            humidity=sample.humidity,
        )

        with self._write_lock:
            with self.session() as session:
                session.add(record)
                session.flush()
                new_id = record.id

        self.logger.debug(f"Stored weather sample {new_id} at {sample.timestamp}")
        return new_id

    def get(self, sample_id: int) -> WeatherSample:
        """Fetch a sample by id.

        Raises:
            SampleNotFoundError: If no sample has this id
        """
        with self.session() as session:
            record = session.get(WeatherLogRecord, sample_id)
            if record is None:
                raise SampleNotFoundError(sample_id)
            return WeatherSample.from_record(record)

    def list_recent(self, limit: int = 10) -> List[WeatherSample]:
        """Return up to `limit` samples, newest first."""
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")

        query = (
            select(WeatherLogRecord)
            .order_by(WeatherLogRecord.timestamp.desc(), WeatherLogRecord.id.desc())
            .limit(limit)
        )
        with self.session() as session:
            return [WeatherSample.from_record(r) for r in session.scalars(query)]

    def list_between(
        self,
        start: Optional[str] = None,
        end: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[WeatherSample]:
        """Return samples with start <= timestamp <= end, oldest first.

        Bounds are compared as text, so they should use the same canonical
        encoding as the stored timestamps. A missing bound is open.
        """
        query = select(WeatherLogRecord)
        if start is not None:
            query = query.where(WeatherLogRecord.timestamp >= start)
        if end is not None:
            query = query.where(WeatherLogRecord.timestamp <= end)
        query = query.order_by(WeatherLogRecord.timestamp.asc(), WeatherLogRecord.id.asc())
        if limit is not None:
            if limit <= 0:
                raise ValueError(f"limit must be positive, got {limit}")
            query = query.limit(limit)

        with self.session() as session:
            return [WeatherSample.from_record(r) for r in session.scalars(query)]

    def count(self) -> int:
        with self.session() as session:
            return session.scalar(select(func.count()).select_from(WeatherLogRecord))

    def _dispose(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
        self.engine = None
        self.Session = None

    def close(self) -> None:
        """Release all pooled connections."""
        if self.engine is not None:
            self._dispose()
            self.logger.info("Weather log database closed")

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
